"""Repository abstractions for document and task persistence."""

from __future__ import annotations

from typing import Iterable, Protocol

from ..contracts import ExtractedData
from .models import DocumentRecord, TaskRecord


class DocumentRepository(Protocol):
    """Protocol for document state persistence backends."""

    async def create_document(
        self, document_id: str, filename: str, file_path: str
    ) -> DocumentRecord:
        """Persist a new document in ``processing`` status.

        Raises ``ConflictError`` when ``document_id`` already exists.
        """

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Retrieve a document by id."""

    async def update_document(
        self,
        document_id: str,
        *,
        status: str | None = None,
        extracted_data: ExtractedData | None = None,
        workflow_data: dict | None = None,
        process_instance_id: str | None = None,
        expected_status: Iterable[str] | None = None,
    ) -> bool:
        """Merge the given fields into the document.

        When ``expected_status`` is given the update only applies while the
        document's current status is one of those values. Returns ``True``
        when a document was modified.
        """

    async def list_documents(self) -> list[DocumentRecord]:
        """Return all persisted documents."""


class TaskRepository(Protocol):
    """Protocol for approval task persistence backends."""

    async def create_task(
        self, task_id: str, document_id: str, task_type: str, data: dict | None = None
    ) -> TaskRecord:
        """Persist a new ``pending`` task.

        Raises ``ConflictError`` when the document already has a pending task.
        """

    async def get_task(self, task_id: str) -> TaskRecord | None:
        """Retrieve a task by id."""

    async def complete_task(self, task_id: str, result: dict | None = None) -> bool:
        """Mark a pending task completed.

        Returns ``False`` when the task does not exist or is no longer pending.
        """

    async def list_tasks(
        self, status: str | None = None, document_id: str | None = None
    ) -> list[TaskRecord]:
        """Return tasks filtered by status and document, oldest first."""
