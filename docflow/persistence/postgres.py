"""PostgreSQL implementation of the document and task repositories."""

from __future__ import annotations

import json
from typing import Any, Iterable

import asyncpg

from ..contracts import ExtractedData, TaskStatus, status_value
from ..errors import ConflictError, PersistenceError
from .models import DocumentRecord, TaskRecord, utcnow
from .repository import DocumentRepository, TaskRepository

_DOCUMENT_COLUMNS = (
    "id, filename, file_path, status, extracted_data, workflow_data, "
    "process_instance_id, created_at, updated_at"
)
_TASK_COLUMNS = "id, document_id, task_type, status, data, result, created_at, completed_at"


class PostgresRepository(DocumentRepository, TaskRepository):
    """Persist documents and tasks using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        try:
            conn = await asyncpg.connect(self._dsn)
        except (OSError, asyncpg.PostgresError) as exc:
            raise PersistenceError(f"Cannot connect to PostgreSQL: {exc}") from exc
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                file_path TEXT NOT NULL,
                status TEXT NOT NULL,
                extracted_data JSONB,
                workflow_data JSONB,
                process_instance_id TEXT,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                task_type TEXT NOT NULL,
                status TEXT NOT NULL,
                data JSONB,
                result JSONB,
                created_at TIMESTAMPTZ NOT NULL,
                completed_at TIMESTAMPTZ
            )
            """
        )
        await conn.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS tasks_one_pending_per_document
            ON tasks (document_id) WHERE status = 'pending'
            """
        )

    async def _execute(self, query: str, *params: Any) -> int:
        conn = await self._connect()
        try:
            status = await conn.execute(query, *params)
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(str(exc)) from exc
        except asyncpg.PostgresError as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            await conn.close()
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return int(status.split()[-1])

    async def _fetch(self, query: str, *params: Any) -> list[asyncpg.Record]:
        conn = await self._connect()
        try:
            return await conn.fetch(query, *params)
        except asyncpg.PostgresError as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            await conn.close()

    # ------------------------------------------------------------------
    # Documents
    async def create_document(
        self, document_id: str, filename: str, file_path: str
    ) -> DocumentRecord:
        doc = DocumentRecord(id=document_id, filename=filename, file_path=file_path)
        try:
            await self._execute(
                f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) "
                "VALUES ($1, $2, $3, $4, NULL, NULL, NULL, $5, $6)",
                doc.id,
                doc.filename,
                doc.file_path,
                doc.status,
                doc.created_at,
                doc.updated_at,
            )
        except ConflictError as exc:
            raise ConflictError(f"Document {document_id} already exists") from exc
        return doc

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        rows = await self._fetch(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = $1", document_id
        )
        return _document_from_row(rows[0]) if rows else None

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
        values: dict[str, Any] = {}
        if status is not None:
            values["status"] = status_value(status)
        if extracted_data is not None:
            values["extracted_data"] = extracted_data.model_dump_json()
        if workflow_data is not None:
            values["workflow_data"] = json.dumps(workflow_data)
        if process_instance_id is not None:
            values["process_instance_id"] = process_instance_id
        if not values:
            return False
        values["updated_at"] = utcnow()

        params: list[Any] = list(values.values())
        assignments = [f"{column} = ${i}" for i, column in enumerate(values, start=1)]
        params.append(document_id)
        query = f"UPDATE documents SET {', '.join(assignments)} WHERE id = ${len(params)}"
        if expected_status is not None:
            params.append([status_value(s) for s in expected_status])
            query += f" AND status = ANY(${len(params)}::text[])"

        return await self._execute(query, *params) > 0

    async def list_documents(self) -> list[DocumentRecord]:
        rows = await self._fetch(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY created_at"
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
            await self._execute(
                f"INSERT INTO tasks ({_TASK_COLUMNS}) VALUES ($1, $2, $3, $4, $5, NULL, $6, NULL)",
                task.id,
                task.document_id,
                task.task_type,
                task.status,
                json.dumps(task.data),
                task.created_at,
            )
        except ConflictError as exc:
            raise ConflictError(
                f"Task {task_id} conflicts with an existing task for document {document_id}"
            ) from exc
        return task

    async def get_task(self, task_id: str) -> TaskRecord | None:
        rows = await self._fetch(f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = $1", task_id)
        return _task_from_row(rows[0]) if rows else None

    async def complete_task(self, task_id: str, result: dict | None = None) -> bool:
        modified = await self._execute(
            """
            UPDATE tasks
            SET status = $1, result = $2, completed_at = $3
            WHERE id = $4 AND status = $5
            """,
            TaskStatus.COMPLETED.value,
            json.dumps(result or {}),
            utcnow(),
            task_id,
            TaskStatus.PENDING.value,
        )
        return modified > 0

    async def list_tasks(
        self, status: str | None = None, document_id: str | None = None
    ) -> list[TaskRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            params.append(status_value(status))
            clauses.append(f"status = ${len(params)}")
        if document_id is not None:
            params.append(document_id)
            clauses.append(f"document_id = ${len(params)}")
        query = f"SELECT {_TASK_COLUMNS} FROM tasks"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at"
        rows = await self._fetch(query, *params)
        return [_task_from_row(row) for row in rows]


def _loads(value: str | None) -> Any:
    return json.loads(value) if value else None


def _document_from_row(row: asyncpg.Record) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        filename=row["filename"],
        file_path=row["file_path"],
        status=row["status"],
        extracted_data=_loads(row["extracted_data"]),
        workflow_data=_loads(row["workflow_data"]),
        process_instance_id=row["process_instance_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _task_from_row(row: asyncpg.Record) -> TaskRecord:
    return TaskRecord(
        id=row["id"],
        document_id=row["document_id"],
        task_type=row["task_type"],
        status=row["status"],
        data=_loads(row["data"]) or {},
        result=_loads(row["result"]),
        created_at=row["created_at"],
        completed_at=row["completed_at"],
    )
