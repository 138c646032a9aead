"""Plain-text extraction from uploaded PDF and DOCX files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import docx
import pdfplumber

from ..config import DEFAULT_MAX_FILE_SIZE
from ..errors import ExtractionError, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx")


def validate_file(
    file_path: str | Path,
    max_size: int = DEFAULT_MAX_FILE_SIZE,
    supported_extensions: Optional[Iterable[str]] = None,
) -> Path:
    """Check that ``file_path`` is an existing, supported file within size limits.

    Raises:
        ValidationError: If the file is missing, not a regular file, has an
            unsupported extension or is larger than ``max_size`` bytes.
    """
    path = Path(file_path)
    allowed = [ext.lower() for ext in (supported_extensions or SUPPORTED_EXTENSIONS)]

    if not path.exists():
        raise ValidationError("File does not exist")
    if not path.is_file():
        raise ValidationError("Path is not a file")

    extension = path.suffix.lower()
    if extension not in allowed:
        raise ValidationError(f"Unsupported file type: {extension or '(none)'}")

    if path.stat().st_size > max_size:
        raise ValidationError(f"File too large (max {max_size // (1024 * 1024)}MB)")
    return path


def extract_from_pdf(path: Path) -> str:
    text = ""
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            text += (page.extract_text() or "") + "\n"
    return text


def extract_from_docx(path: Path) -> str:
    document = docx.Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


_EXTRACTORS = {
    ".pdf": extract_from_pdf,
    ".docx": extract_from_docx,
}


def extract_text(file_path: str | Path) -> str:
    """Return the plain text of a PDF or DOCX file.

    Raises:
        ExtractionError: For unsupported formats or unreadable files.
    """
    path = Path(file_path)
    extension = path.suffix.lower()
    extractor = _EXTRACTORS.get(extension)
    if extractor is None:
        raise ExtractionError(f"Unsupported file type: {extension or '(none)'}")

    try:
        text = extractor(path)
    except Exception as exc:
        raise ExtractionError(f"{extension[1:].upper()} extraction failed: {exc}") from exc

    logger.debug(f"Extracted {len(text)} characters from {path.name}")
    return text
