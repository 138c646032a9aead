"""In-memory implementation of the document and task repositories."""

from __future__ import annotations

import threading
from typing import Dict, Iterable

from ..contracts import ExtractedData, TaskStatus, status_value
from ..errors import ConflictError
from .models import DocumentRecord, TaskRecord, utcnow
from .repository import DocumentRepository, TaskRepository


class InMemoryRepository(DocumentRepository, TaskRepository):
    """Store documents and tasks in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Records are handed out as copies so
    callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, DocumentRecord] = {}
        self._tasks: Dict[str, TaskRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Documents
    async def create_document(
        self, document_id: str, filename: str, file_path: str
    ) -> DocumentRecord:
        with self._lock:
            if document_id in self._documents:
                raise ConflictError(f"Document {document_id} already exists")
            doc = DocumentRecord(id=document_id, filename=filename, file_path=file_path)
            self._documents[document_id] = doc
            return doc.model_copy(deep=True)

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            doc = self._documents.get(document_id)
            return doc.model_copy(deep=True) if doc else None

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
        with self._lock:
            doc = self._documents.get(document_id)
            if doc is None:
                return False
            if expected_status is not None:
                if doc.status not in {status_value(s) for s in expected_status}:
                    return False
            updates = {
                "status": status_value(status) if status is not None else None,
                "extracted_data": extracted_data,
                "workflow_data": workflow_data,
                "process_instance_id": process_instance_id,
            }
            changes = {key: value for key, value in updates.items() if value is not None}
            if not changes:
                return False
            changes["updated_at"] = utcnow()
            self._documents[document_id] = DocumentRecord.model_validate(
                {**doc.model_dump(), **_dump(changes)}
            )
            return True

    async def list_documents(self) -> list[DocumentRecord]:
        with self._lock:
            return [doc.model_copy(deep=True) for doc in self._documents.values()]

    # ------------------------------------------------------------------
    # Tasks
    async def create_task(
        self, task_id: str, document_id: str, task_type: str, data: dict | None = None
    ) -> TaskRecord:
        with self._lock:
            if task_id in self._tasks:
                raise ConflictError(f"Task {task_id} already exists")
            for task in self._tasks.values():
                if task.document_id == document_id and task.status == TaskStatus.PENDING:
                    raise ConflictError(
                        f"Document {document_id} already has pending task {task.id}"
                    )
            task = TaskRecord(
                id=task_id, document_id=document_id, task_type=task_type, data=data or {}
            )
            self._tasks[task_id] = task
            return task.model_copy(deep=True)

    async def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    async def complete_task(self, task_id: str, result: dict | None = None) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status != TaskStatus.PENDING:
                return False
            task.status = TaskStatus.COMPLETED.value
            task.result = result or {}
            task.completed_at = utcnow()
            return True

    async def list_tasks(
        self, status: str | None = None, document_id: str | None = None
    ) -> list[TaskRecord]:
        with self._lock:
            tasks = [
                task.model_copy(deep=True)
                for task in self._tasks.values()
                if (status is None or task.status == status_value(status))
                and (document_id is None or task.document_id == document_id)
            ]
        # dicts keep insertion order, so ties on created_at stay stable
        return sorted(tasks, key=lambda t: t.created_at)


def _dump(changes: dict) -> dict:
    return {
        key: value.model_dump() if isinstance(value, ExtractedData) else value
        for key, value in changes.items()
    }
