"""SQLite implementation of the document and task repositories."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from ..contracts import ExtractedData, TaskStatus, status_value
from ..errors import ConflictError, PersistenceError
from .models import DocumentRecord, TaskRecord, utcnow
from .repository import DocumentRepository, TaskRepository

_DOCUMENT_COLUMNS = (
    "id, filename, file_path, status, extracted_data, workflow_data, "
    "process_instance_id, created_at, updated_at"
)
_TASK_COLUMNS = "id, document_id, task_type, status, data, result, created_at, completed_at"


class SQLiteRepository(DocumentRepository, TaskRepository):
    """Persist documents and tasks using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                file_path TEXT NOT NULL,
                status TEXT NOT NULL,
                extracted_data TEXT,
                workflow_data TEXT,
                process_instance_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                task_type TEXT NOT NULL,
                status TEXT NOT NULL,
                data TEXT,
                result TEXT,
                created_at TEXT NOT NULL,
                completed_at TEXT
            )
            """
        )
        # at most one open task per document
        cur.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS tasks_one_pending_per_document
            ON tasks (document_id) WHERE status = 'pending'
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            try:
                cur = self._conn.cursor()
                cur.execute(query, params)
                self._conn.commit()
                return cur.rowcount
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                raise ConflictError(str(exc)) from exc
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(str(exc)) from exc

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            try:
                cur = self._conn.cursor()
                cur.execute(query, params)
                return cur.fetchone()
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            try:
                cur = self._conn.cursor()
                cur.execute(query, params)
                return cur.fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Documents
    async def create_document(
        self, document_id: str, filename: str, file_path: str
    ) -> DocumentRecord:
        doc = DocumentRecord(id=document_id, filename=filename, file_path=file_path)
        try:
            await asyncio.to_thread(
                self._execute,
                f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) VALUES (?, ?, ?, ?, NULL, NULL, NULL, ?, ?)",
                doc.id,
                doc.filename,
                doc.file_path,
                doc.status,
                doc.created_at.isoformat(),
                doc.updated_at.isoformat(),
            )
        except ConflictError as exc:
            raise ConflictError(f"Document {document_id} already exists") from exc
        return doc

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
            document_id,
        )
        return _document_from_row(row) if row else None

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
        assignments: list[str] = []
        params: list[Any] = []
        if status is not None:
            assignments.append("status = ?")
            params.append(status_value(status))
        if extracted_data is not None:
            assignments.append("extracted_data = ?")
            params.append(extracted_data.model_dump_json())
        if workflow_data is not None:
            assignments.append("workflow_data = ?")
            params.append(json.dumps(workflow_data))
        if process_instance_id is not None:
            assignments.append("process_instance_id = ?")
            params.append(process_instance_id)
        if not assignments:
            return False
        assignments.append("updated_at = ?")
        params.append(utcnow().isoformat())

        query = f"UPDATE documents SET {', '.join(assignments)} WHERE id = ?"
        params.append(document_id)
        if expected_status is not None:
            allowed = [status_value(s) for s in expected_status]
            query += f" AND status IN ({', '.join('?' for _ in allowed)})"
            params.extend(allowed)

        modified = await asyncio.to_thread(self._execute, query, *params)
        return modified > 0

    async def list_documents(self) -> list[DocumentRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY created_at, rowid",
        )
        return [_document_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Tasks
    async def create_task(
        self, task_id: str, document_id: str, task_type: str, data: dict | None = None
    ) -> TaskRecord:
        task = TaskRecord(
            id=task_id, document_id=document_id, task_type=task_type, data=data or {}
        )
        try:
            await asyncio.to_thread(
                self._execute,
                f"INSERT INTO tasks ({_TASK_COLUMNS}) VALUES (?, ?, ?, ?, ?, NULL, ?, NULL)",
                task.id,
                task.document_id,
                task.task_type,
                task.status,
                json.dumps(task.data),
                task.created_at.isoformat(),
            )
        except ConflictError as exc:
            raise ConflictError(
                f"Task {task_id} conflicts with an existing task for document {document_id}"
            ) from exc
        return task

    async def get_task(self, task_id: str) -> TaskRecord | None:
        row = await asyncio.to_thread(
            self._fetchone, f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", task_id
        )
        return _task_from_row(row) if row else None

    async def complete_task(self, task_id: str, result: dict | None = None) -> bool:
        modified = await asyncio.to_thread(
            self._execute,
            """
            UPDATE tasks
            SET status = ?, result = ?, completed_at = ?
            WHERE id = ? AND status = ?
            """,
            TaskStatus.COMPLETED.value,
            json.dumps(result or {}),
            utcnow().isoformat(),
            task_id,
            TaskStatus.PENDING.value,
        )
        return modified > 0

    async def list_tasks(
        self, status: str | None = None, document_id: str | None = None
    ) -> list[TaskRecord]:
        query = f"SELECT {_TASK_COLUMNS} FROM tasks"
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status_value(status))
        if document_id is not None:
            clauses.append("document_id = ?")
            params.append(document_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at, rowid"
        rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [_task_from_row(row) for row in rows]


def _loads(value: str | None) -> Any:
    return json.loads(value) if value else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _document_from_row(row: sqlite3.Row) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        filename=row["filename"],
        file_path=row["file_path"],
        status=row["status"],
        extracted_data=_loads(row["extracted_data"]),
        workflow_data=_loads(row["workflow_data"]),
        process_instance_id=row["process_instance_id"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _task_from_row(row: sqlite3.Row) -> TaskRecord:
    return TaskRecord(
        id=row["id"],
        document_id=row["document_id"],
        task_type=row["task_type"],
        status=row["status"],
        data=_loads(row["data"]) or {},
        result=_loads(row["result"]),
        created_at=_parse_ts(row["created_at"]),
        completed_at=_parse_ts(row["completed_at"]),
    )
