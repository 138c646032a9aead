"""Field extraction tests."""

from docflow.extraction import FieldExtractor, extract_fields
from docflow.extraction.matchers import LabelledInvoiceNumber, RegexMatcher


def test_reference_invoice():
    text = "Invoice Number: INV-2024\nCustomer Name: Jane Doe\nTotal: $450.00"
    data = extract_fields(text)
    assert data.invoice_number == "INV-2024"
    assert data.customer_name == "Jane Doe"
    assert data.amount == 450.0


def test_large_invoice_amount():
    data = extract_fields("Invoice #A-77\nName: Acme Corp.\nAmount due: $1500.00")
    assert data.invoice_number == "A-77"
    assert data.customer_name == "Acme Corp"
    assert data.amount == 1500.0


def test_repeated_amount_token_is_not_summed():
    text = "Subtotal $1,234.56\nTotal: $1,234.56\nPlease pay 1,234.56 USD"
    assert extract_fields(text).amount == 1234.56


def test_largest_candidate_wins():
    text = "Item price: $20.00\nShipping fee: 5.50\nTax: $2.00\nTotal: $27.50"
    assert extract_fields(text).amount == 27.5


def test_currency_words():
    assert extract_fields("Payable: 300 dollars").amount == 300.0
    assert extract_fields("USD 1,250").amount == 1250.0


def test_fallback_amount_only_without_labelled_candidates():
    assert extract_fields("Balance 45.00").amount == 45.0
    # fallback values must exceed the minimum
    assert extract_fields("Balance 5.00").amount is None
    # labelled candidates suppress the fallback entirely
    assert extract_fields("Balance 999.00\nTotal: $12.00").amount == 12.0


def test_unlabelled_invoice_number_and_name():
    data = extract_fields("Reference PO12345\nBill to Jane Doe")
    assert data.invoice_number == "PO12345"
    assert data.customer_name == "Jane Doe"


def test_short_labelled_name_falls_back():
    data = extract_fields("Name: Jo\nprepared by Mary Ann Smith")
    assert data.customer_name == "Mary Ann Smith"


def test_missing_fields_are_none():
    for text in ("", None, "nothing to see here"):
        data = extract_fields(text)
        assert data.invoice_number is None
        assert data.customer_name is None
        assert data.amount is None


def test_matchers_are_pluggable():
    extractor = FieldExtractor(
        invoice_matchers=[RegexMatcher(r"Ref\s+(\d+)"), LabelledInvoiceNumber()],
    )
    data = extractor.extract("Ref 998877\nInvoice: INV-1")
    assert data.invoice_number == "998877"


def test_plain_name_label():
    data = extract_fields("Invoice Number: INV-2024\nName: Jane Doe\nTotal: $1500.00")
    assert data.invoice_number == "INV-2024"
    assert data.customer_name == "Jane Doe"
    assert data.amount == 1500.0
