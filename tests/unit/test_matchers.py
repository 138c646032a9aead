import pytest

from docflow.extraction.matchers import (
    CapitalisedName,
    FallbackAmount,
    InvoiceNumberShape,
    LabelledCustomerName,
    LabelledInvoiceNumber,
    dollar_prefixed,
    labelled_total,
    parse_amount,
)


@pytest.mark.parametrize(
    "raw, expected",
    [("1,234.56", 1234.56), ("450", 450.0), ("12.", 12.0), (",", None), ("", None)],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Invoice Number: INV-001", "INV-001"),
        ("invoice no. 42", "42"),
        ("INVOICE #A_7", "A_7"),
        ("Invoice: 2024-0001", "2024-0001"),
    ],
)
def test_labelled_invoice_number(text, expected):
    assert LabelledInvoiceNumber().first(text) == expected


def test_invoice_number_shape_is_case_sensitive():
    matcher = InvoiceNumberShape()
    assert matcher.first("order ab-123 or PO-98765") == "PO-98765"
    assert matcher.first("X-123") is None


def test_labelled_customer_name_only_considers_first_label():
    matcher = LabelledCustomerName()
    assert list(matcher.candidates("Name: A\nCompany Name: Globex Inc")) == []
    assert matcher.first("Customer name : Globex, Inc.") == "Globex, Inc"


def test_labelled_customer_name_rejects_overlong_values():
    assert LabelledCustomerName().first("Name: " + "a" * 120) is None


def test_capitalised_name():
    assert CapitalisedName().first("billed to Ada Lovelace King today") == "Ada Lovelace King"
    assert CapitalisedName().first("all lower case") is None


def test_amount_matchers_skip_zero_and_collect_every_match():
    assert list(labelled_total().candidates("Total: 0\nSum: 15\ndue 20.25")) == [15.0, 20.25]
    assert list(dollar_prefixed().candidates("$ 1,000 and $5")) == [1000.0, 5.0]


def test_fallback_amount_requires_cents_and_minimum():
    assert FallbackAmount().first("ref 123456 paid 88.10") == 88.1
    assert FallbackAmount().first("paid 9.99 then 50.00") is None
    assert FallbackAmount(minimum=0).first("paid 9.99") == 9.99
