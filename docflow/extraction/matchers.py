"""Matcher strategies used by the field extractor.

Each matcher is tagged with the field it produces and yields zero or more
candidates for a piece of text. Matchers never raise on malformed input; a
candidate that cannot be interpreted is simply not yielded.
"""

from __future__ import annotations

import abc
import re
from typing import ClassVar, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")

INVOICE_NUMBER = "invoice_number"
CUSTOMER_NAME = "customer_name"
AMOUNT = "amount"


def parse_amount(raw: str) -> Optional[float]:
    """Parse ``raw`` as a decimal number after removing thousands separators."""
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    return value


class Matcher(Generic[T], metaclass=abc.ABCMeta):
    """A single extraction strategy for one field."""

    field: ClassVar[str]

    @abc.abstractmethod
    def candidates(self, text: str) -> Iterator[T]:
        """Yield candidate values found in ``text`` in document order."""
        raise NotImplementedError

    def first(self, text: str) -> Optional[T]:
        return next(iter(self.candidates(text)), None)


class RegexMatcher(Matcher[str]):
    """Yield group ``group`` of every match of ``pattern``."""

    def __init__(self, pattern: str, flags: int = 0, group: int = 1) -> None:
        self.pattern = re.compile(pattern, flags)
        self.group = group

    def candidates(self, text: str) -> Iterator[str]:
        for match in self.pattern.finditer(text):
            yield match.group(self.group).strip()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern.pattern!r})"


class LabelledInvoiceNumber(RegexMatcher):
    """``Invoice Number: INV-001``, ``Invoice No. 42``, ``Invoice #A-7``."""

    field = INVOICE_NUMBER

    def __init__(self) -> None:
        super().__init__(r"invoice\s*(?:number|no\.?|#)?\s*:?\s*([A-Z0-9\-_]+)", re.IGNORECASE)


class InvoiceNumberShape(RegexMatcher):
    """Any ``LETTERS-DIGITS`` token, e.g. ``INV-2024`` or ``PO12345``."""

    field = INVOICE_NUMBER

    def __init__(self) -> None:
        super().__init__(r"([A-Z]{2,}-?\d{3,})")


class LabelledCustomerName(RegexMatcher):
    """``Name: Jane Doe`` running to the end of its line."""

    field = CUSTOMER_NAME
    min_length = 2
    max_length = 100

    def __init__(self) -> None:
        super().__init__(r"name\s*:\s*([A-Za-z0-9.,&' -]+)(?=\r?\n|\Z)", re.IGNORECASE)

    def candidates(self, text: str) -> Iterator[str]:
        # only the first labelled line is considered
        raw = next(super().candidates(text), None)
        if raw is None:
            return
        name = re.sub(r"[,.]$", "", raw).strip()
        if self.min_length < len(name) < self.max_length:
            yield name


class CapitalisedName(RegexMatcher):
    """Two or three capitalised words in a row."""

    field = CUSTOMER_NAME

    def __init__(self) -> None:
        super().__init__(r"([A-Z][a-z]+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)")


class AmountMatcher(Matcher[float]):
    """Positive numeric values captured by a currency-flavoured pattern."""

    field = AMOUNT

    def __init__(self, pattern: str, flags: int = re.IGNORECASE) -> None:
        self.pattern = re.compile(pattern, flags)

    def candidates(self, text: str) -> Iterator[float]:
        for match in self.pattern.finditer(text):
            value = parse_amount(match.group(1))
            if value is not None and value > 0:
                yield value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern.pattern!r})"


class FallbackAmount(Matcher[float]):
    """First number with two decimal places, kept only above ``minimum``."""

    field = AMOUNT

    def __init__(self, minimum: float = 10) -> None:
        self.pattern = re.compile(r"([\d,]+\.\d{2})")
        self.minimum = minimum

    def candidates(self, text: str) -> Iterator[float]:
        match = self.pattern.search(text)
        if not match:
            return
        value = parse_amount(match.group(1))
        if value is not None and value > self.minimum:
            yield value


_NUMBER = r"([\d,]+\.?\d*)"


def labelled_total() -> AmountMatcher:
    return AmountMatcher(r"(?:total|amount|sum|due)\s*:?\s*\$?" + _NUMBER)


def dollar_prefixed() -> AmountMatcher:
    return AmountMatcher(r"\$\s*" + _NUMBER)


def currency_word_before() -> AmountMatcher:
    return AmountMatcher(r"(?:usd|dollar|dollars)\s*" + _NUMBER)


def currency_word_after() -> AmountMatcher:
    return AmountMatcher(_NUMBER + r"\s*(?:usd|dollar|dollars)")


def labelled_charge() -> AmountMatcher:
    return AmountMatcher(r"(?:price|cost|fee)\s*:?\s*\$?" + _NUMBER)


__all__ = [
    "Matcher",
    "RegexMatcher",
    "LabelledInvoiceNumber",
    "InvoiceNumberShape",
    "LabelledCustomerName",
    "CapitalisedName",
    "AmountMatcher",
    "FallbackAmount",
    "labelled_total",
    "dollar_prefixed",
    "currency_word_before",
    "currency_word_after",
    "labelled_charge",
    "parse_amount",
]
