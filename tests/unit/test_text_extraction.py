import docx
import pytest

from docflow.errors import ExtractionError, ValidationError
from docflow.extraction import extract_text, validate_file


@pytest.fixture
def invoice_docx(tmp_path):
    path = tmp_path / "invoice.docx"
    document = docx.Document()
    document.add_paragraph("Invoice Number: INV-2024")
    document.add_paragraph("Customer Name: Jane Doe")
    document.add_paragraph("Total: $450.00")
    document.save(str(path))
    return path


def test_extract_text_from_docx(invoice_docx):
    text = extract_text(invoice_docx)
    assert [line for line in text.splitlines() if line] == [
        "Invoice Number: INV-2024",
        "Customer Name: Jane Doe",
        "Total: $450.00",
    ]


def test_validate_file_accepts_supported_file(invoice_docx):
    assert validate_file(invoice_docx) == invoice_docx


def test_validate_file_missing(tmp_path):
    with pytest.raises(ValidationError, match="File does not exist"):
        validate_file(tmp_path / "missing.pdf")


def test_validate_file_directory(tmp_path):
    folder = tmp_path / "folder.pdf"
    folder.mkdir()
    with pytest.raises(ValidationError, match="Path is not a file"):
        validate_file(folder)


def test_validate_file_unsupported_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ValidationError, match=r"Unsupported file type: \.txt"):
        validate_file(path)


def test_validate_file_extension_is_case_insensitive(tmp_path):
    path = tmp_path / "SCAN.PDF"
    path.write_bytes(b"%PDF")
    assert validate_file(path) == path


def test_validate_file_too_large(tmp_path):
    path = tmp_path / "huge.pdf"
    with open(path, "wb") as f:
        f.truncate(16 * 1024 * 1024 + 1)
    with pytest.raises(ValidationError, match=r"File too large \(max 16MB\)"):
        validate_file(path)


def test_validate_file_at_limit_is_accepted(tmp_path):
    path = tmp_path / "edge.pdf"
    with open(path, "wb") as f:
        f.truncate(16 * 1024 * 1024)
    assert validate_file(path) == path


def test_extract_text_unsupported_type(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ExtractionError, match="Unsupported file type"):
        extract_text(path)


def test_extract_text_unreadable_pdf(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")
    with pytest.raises(ExtractionError, match="PDF extraction failed"):
        extract_text(path)
