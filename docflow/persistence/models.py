"""Data models for persisted document and task state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..contracts import DocumentStatus, ExtractedData, TaskStatus, TaskType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(BaseModel):
    """Durable record of one uploaded document."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    filename: str
    file_path: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    extracted_data: Optional[ExtractedData] = None
    workflow_data: Optional[dict[str, Any]] = None
    process_instance_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TaskRecord(BaseModel):
    """Durable record of a human approval task."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    document_id: str
    task_type: TaskType = TaskType.MANUAL_APPROVAL
    status: TaskStatus = TaskStatus.PENDING
    data: dict[str, Any] = Field(default_factory=dict)
    result: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
