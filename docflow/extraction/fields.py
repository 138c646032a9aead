"""Turn raw document text into structured invoice fields."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..contracts import ExtractedData
from .matchers import (
    CapitalisedName,
    FallbackAmount,
    InvoiceNumberShape,
    LabelledCustomerName,
    LabelledInvoiceNumber,
    Matcher,
    currency_word_after,
    currency_word_before,
    dollar_prefixed,
    labelled_charge,
    labelled_total,
)

logger = logging.getLogger(__name__)


def first_match(matchers: Sequence[Matcher], text: str):
    """Return the first candidate produced by the earliest matcher that has one."""
    for matcher in matchers:
        value = matcher.first(text)
        if value is not None:
            return value
    return None


def max_match(matchers: Sequence[Matcher[float]], text: str) -> Optional[float]:
    """Return the largest candidate produced by any of ``matchers``."""
    values = [value for matcher in matchers for value in matcher.candidates(text)]
    return max(values) if values else None


class FieldExtractor:
    """Best-effort parser for invoice number, customer name and amount.

    Invoice number and customer name are resolved first-match-wins over an
    ordered list of matchers. The amount is the maximum over every
    currency-flavoured candidate, since the largest labelled figure on an
    invoice is normally its grand total; only when none is found do the
    fallback matchers run.
    """

    def __init__(
        self,
        invoice_matchers: Optional[Sequence[Matcher[str]]] = None,
        name_matchers: Optional[Sequence[Matcher[str]]] = None,
        amount_matchers: Optional[Sequence[Matcher[float]]] = None,
        amount_fallbacks: Optional[Sequence[Matcher[float]]] = None,
    ) -> None:
        self.invoice_matchers = list(
            invoice_matchers or [LabelledInvoiceNumber(), InvoiceNumberShape()]
        )
        self.name_matchers = list(name_matchers or [LabelledCustomerName(), CapitalisedName()])
        self.amount_matchers = list(
            amount_matchers
            or [
                labelled_total(),
                dollar_prefixed(),
                currency_word_before(),
                currency_word_after(),
                labelled_charge(),
            ]
        )
        self.amount_fallbacks = list(amount_fallbacks or [FallbackAmount()])

    def extract(self, text: Optional[str]) -> ExtractedData:
        """Parse ``text``. Missing fields come back as ``None``."""
        text = text or ""
        amount = max_match(self.amount_matchers, text)
        if amount is None:
            amount = first_match(self.amount_fallbacks, text)

        data = ExtractedData(
            invoice_number=first_match(self.invoice_matchers, text),
            customer_name=first_match(self.name_matchers, text),
            amount=amount,
        )
        logger.debug(f"Extracted fields: {data.model_dump()}")
        return data


def extract_fields(text: Optional[str]) -> ExtractedData:
    """Convenience wrapper around a default :class:`FieldExtractor`."""
    return FieldExtractor().extract(text)
