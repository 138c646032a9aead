"""Persistence layer for docflow documents and tasks."""

from __future__ import annotations

from typing import Optional

from ..config import DocflowConfig, load_config
from .inmemory import InMemoryRepository
from .models import DocumentRecord, TaskRecord
from .repository import DocumentRepository, TaskRepository
from .sqlite import SQLiteRepository

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresRepository
except ImportError:  # pragma: no cover - optional dependency
    PostgresRepository = None  # type: ignore

_repository_instance: DocumentRepository | None = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[DocflowConfig] = None
):
    """Factory function to obtain the document and task repository.

    The backend is selected based on ``database_url`` which can be provided
    explicitly or taken from ``config``. Without a config, :func:`load_config`
    is used, which honours ``DOCFLOW_DATABASE_URL`` and ``DATABASE_URL``.
    When no database is configured, an in-memory repository is returned. The returned object
    implements both :class:`DocumentRepository` and :class:`TaskRepository`.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = database_url or config.database_url

    if not database_url:
        _repository_instance = InMemoryRepository()
        return _repository_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _repository_instance = SQLiteRepository(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresRepository is None:
            raise RuntimeError("Postgres support not available; install docflow[postgres]")
        _repository_instance = PostgresRepository(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _repository_instance


__all__ = [
    "DocumentRecord",
    "TaskRecord",
    "DocumentRepository",
    "TaskRepository",
    "InMemoryRepository",
    "SQLiteRepository",
    "PostgresRepository",
    "get_repository",
]
