"""Error taxonomy for docflow.

Every error carries a human readable message of the form ``"<kind>: <cause>"``
so callers can surface it directly.
"""

from __future__ import annotations


class DocflowError(Exception):
    """Base class for all caller-facing docflow failures."""

    kind = "Workflow error"

    def __init__(self, cause: str) -> None:
        self.cause = cause
        super().__init__(f"{self.kind}: {cause}")


class ValidationError(DocflowError):
    """Rejected input such as an unsupported file type, size or task action."""

    kind = "Validation failed"


class ExtractionError(DocflowError):
    """The document could not be read or its format is not supported."""

    kind = "Extraction failed"


class NotFoundError(DocflowError):
    """Unknown document or task id, or a task that is no longer pending."""

    kind = "Not found"


class ConflictError(DocflowError):
    """The requested change clashes with the current durable state."""

    kind = "Conflict"


class PersistenceError(DocflowError):
    """The document or task store is unavailable."""

    kind = "Persistence failed"


class NotificationError(DocflowError):
    """The process engine could not be reached."""

    kind = "Engine notification failed"


class WorkflowError(DocflowError):
    """Unexpected failure while driving a document through its lifecycle."""


__all__ = [
    "DocflowError",
    "ValidationError",
    "ExtractionError",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
    "NotificationError",
    "WorkflowError",
]
