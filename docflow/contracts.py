"""Core contracts shared by the docflow lifecycle components."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    DATA_EXTRACTED = "data_extracted"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ERROR = "error"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskType(str, Enum):
    MANUAL_APPROVAL = "manual_approval"


class TaskAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    {DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value, DocumentStatus.ERROR.value}
)
NON_TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    s.value for s in DocumentStatus if s.value not in TERMINAL_STATUSES
)

# Allowed forward moves; ``error`` is additionally reachable from any
# non-terminal status.
TRANSITIONS: Dict[str, FrozenSet[str]] = {
    DocumentStatus.PROCESSING.value: frozenset({DocumentStatus.DATA_EXTRACTED.value}),
    DocumentStatus.DATA_EXTRACTED.value: frozenset(
        {DocumentStatus.AWAITING_APPROVAL.value, DocumentStatus.APPROVED.value}
    ),
    DocumentStatus.AWAITING_APPROVAL.value: frozenset(
        {DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value}
    ),
}


def status_value(status: str) -> str:
    """Return the plain string for a status that may be an enum member."""
    return status.value if isinstance(status, Enum) else status


def can_transition(current: str, target: str) -> bool:
    """Return ``True`` when a document may move from ``current`` to ``target``."""
    current, target = status_value(current), status_value(target)
    if target == DocumentStatus.ERROR.value:
        return current in NON_TERMINAL_STATUSES
    return target in TRANSITIONS.get(current, frozenset())


def new_document_id() -> str:
    return f"DOC-{uuid.uuid4().hex[:8].upper()}"


def new_task_id() -> str:
    return f"TASK-{uuid.uuid4().hex[:8].upper()}"


class ExtractedData(BaseModel):
    """Structured fields parsed from a document's text."""

    invoice_number: Optional[str] = None
    customer_name: Optional[str] = None
    amount: Optional[float] = None


class Decision(BaseModel):
    """Routing outcome for a document. Never persisted on its own."""

    model_config = ConfigDict(use_enum_values=True)

    auto_approve: bool
    amount: float
    status: DocumentStatus
    approval_type: ApprovalType
    reason: str


class StartWorkflowResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    document_id: str
    process_instance_id: Optional[str] = None
    status: DocumentStatus
    extracted: ExtractedData
    task_id: Optional[str] = None
    approval: Optional[Dict[str, Any]] = None
    message: str


class CompleteTaskResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    document_id: str
    status: DocumentStatus
    task_result: Dict[str, Any]
    message: str


class PendingTaskRef(BaseModel):
    task_id: str
    task_type: str
    created_at: datetime


class DocumentStatusView(BaseModel):
    """Read model returned for a single document."""

    document_id: str
    filename: str
    status: str
    process_instance_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    extracted: Optional[ExtractedData] = None
    workflow_result: Optional[Dict[str, Any]] = None
    pending_tasks: List[PendingTaskRef] = Field(default_factory=list)


class PendingTaskView(BaseModel):
    """A pending task joined with the document it belongs to."""

    task_id: str
    document_id: str
    filename: Optional[str] = None
    task_type: str
    created_at: datetime
    extracted_data: Optional[ExtractedData] = None
    requires_approval: bool = False
    amount: float = 0


class WorkflowSummary(BaseModel):
    document_id: str
    filename: str
    process_instance_id: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime
