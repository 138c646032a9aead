"""Field and text extraction for uploaded documents."""

from __future__ import annotations

from .fields import FieldExtractor, extract_fields
from .matchers import Matcher
from .text import SUPPORTED_EXTENSIONS, extract_text, validate_file

__all__ = [
    "FieldExtractor",
    "Matcher",
    "SUPPORTED_EXTENSIONS",
    "extract_fields",
    "extract_text",
    "validate_file",
]
