"""Document lifecycle orchestration for docflow."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from .config import DocflowConfig, load_config
from .contracts import (
    NON_TERMINAL_STATUSES,
    TERMINAL_STATUSES,
    ApprovalType,
    CompleteTaskResult,
    Decision,
    DocumentStatus,
    DocumentStatusView,
    ExtractedData,
    PendingTaskRef,
    PendingTaskView,
    StartWorkflowResult,
    TaskAction,
    TaskStatus,
    TaskType,
    WorkflowSummary,
    can_transition,
    new_task_id,
    status_value,
)
from .engine import ProcessEngineNotifier, get_notifier, load_bpmn_definition
from .errors import (
    ConflictError,
    DocflowError,
    NotFoundError,
    ValidationError,
    WorkflowError,
)
from .extraction import FieldExtractor, extract_text, validate_file
from .persistence import DocumentRepository, TaskRepository, get_repository
from .routing import DecisionRouter

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DECISIONS = frozenset(action.value for action in TaskAction)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentOrchestrator:
    """Drive uploaded documents through their approval lifecycle.

    The orchestrator keeps no state between calls: every operation re-reads
    what it needs from the document and task repositories, which remain the
    single source of truth. The process engine only receives best-effort
    mirror notifications.

    Args:
        config: Settings for thresholds, upload limits and the engine.
        documents: Document store; defaults to :func:`get_repository`.
        tasks: Task store; defaults to the same repository as ``documents``.
        notifier: Process engine notifier; defaults to :func:`get_notifier`.
        text_extractor: Callable returning the plain text of a file.
        field_extractor: Parser turning text into :class:`ExtractedData`.
        router: Approval routing policy.
    """

    def __init__(
        self,
        config: Optional[DocflowConfig] = None,
        documents: Optional[DocumentRepository] = None,
        tasks: Optional[TaskRepository] = None,
        notifier: Optional[ProcessEngineNotifier] = None,
        text_extractor: Optional[Callable[[str], str]] = None,
        field_extractor: Optional[FieldExtractor] = None,
        router: Optional[DecisionRouter] = None,
    ) -> None:
        self.config = config or load_config()
        if documents is None or tasks is None:
            repository = get_repository(config=config)
            documents = documents if documents is not None else repository
            tasks = tasks if tasks is not None else repository
        self._documents = documents
        self._tasks = tasks
        self._notifier = notifier if notifier is not None else get_notifier(config=self.config)
        self._extract_text = text_extractor or extract_text
        self._fields = field_extractor or FieldExtractor()
        self._router = router or DecisionRouter(self.config.approval.threshold)

    async def close(self) -> None:
        await self._notifier.close()

    # ------------------------------------------------------------------
    # Lifecycle
    async def start_workflow(
        self,
        document_id: str,
        file_path: str | Path,
        original_filename: Optional[str] = None,
    ) -> StartWorkflowResult:
        """Validate, extract and route a newly uploaded document.

        Raises:
            ConflictError: If ``document_id`` is already known. The existing
                document is left untouched.
            DocflowError: For any later failure, after the document has been
                moved to ``error``.
        """
        file_path = str(file_path)
        filename = original_filename or Path(file_path).name
        logger.info(f"Starting workflow for document {document_id} ({filename})")

        await self._documents.create_document(document_id, filename, file_path)

        process_instance_id: Optional[str] = None
        try:
            validate_file(
                file_path,
                max_size=self.config.upload.max_file_size,
                supported_extensions=self.config.upload.supported_extensions,
            )
            text = await asyncio.to_thread(self._extract_text, file_path)
            extracted = self._fields.extract(text)

            process_instance_id = await self._notify(
                f"start process for document {document_id}",
                self._notifier.start_process(
                    document_id,
                    {
                        "filePath": file_path,
                        "originalFilename": filename,
                        "amount": extracted.amount or 0,
                    },
                ),
            )
            await self._transition(
                document_id,
                DocumentStatus.PROCESSING,
                DocumentStatus.DATA_EXTRACTED,
                extracted_data=extracted,
                process_instance_id=process_instance_id,
            )

            decision = self._router.route(extracted.amount)
            if decision.auto_approve:
                return await self._auto_approve(
                    document_id, extracted, decision, process_instance_id
                )
            return await self._request_manual_approval(
                document_id, extracted, decision, process_instance_id
            )
        except (Exception, asyncio.CancelledError) as exc:
            await self._mark_error(document_id, process_instance_id, exc)
            if isinstance(exc, (DocflowError, asyncio.CancelledError)):
                raise
            raise WorkflowError(f"Failed to start workflow for {document_id}: {exc}") from exc

    async def _request_manual_approval(
        self,
        document_id: str,
        extracted: ExtractedData,
        decision: Decision,
        process_instance_id: Optional[str],
    ) -> StartWorkflowResult:
        task_id = new_task_id()
        await self._tasks.create_task(
            task_id,
            document_id,
            TaskType.MANUAL_APPROVAL.value,
            {
                "extracted_data": extracted.model_dump(),
                "process_instance_id": process_instance_id,
                "requires_approval": True,
                "amount": decision.amount,
            },
        )
        try:
            await self._transition(
                document_id, DocumentStatus.DATA_EXTRACTED, DocumentStatus.AWAITING_APPROVAL
            )
        except (Exception, asyncio.CancelledError) as exc:
            await self._withdraw_task(task_id, exc)
            raise
        logger.info(f"Manual approval task created: {task_id}")
        return StartWorkflowResult(
            document_id=document_id,
            process_instance_id=process_instance_id,
            status=DocumentStatus.AWAITING_APPROVAL,
            extracted=extracted,
            task_id=task_id,
            message=decision.reason,
        )

    async def _auto_approve(
        self,
        document_id: str,
        extracted: ExtractedData,
        decision: Decision,
        process_instance_id: Optional[str],
    ) -> StartWorkflowResult:
        approval = {
            "status": DocumentStatus.APPROVED.value,
            "approval_type": ApprovalType.AUTOMATIC.value,
            "approved_by": "system",
            "approved_at": _now(),
            "reason": decision.reason,
        }
        await self._transition(
            document_id,
            DocumentStatus.DATA_EXTRACTED,
            DocumentStatus.APPROVED,
            workflow_data=approval,
        )
        await self._signal_completion(process_instance_id, approval)
        logger.info(f"Document auto-approved: {document_id}")
        return StartWorkflowResult(
            document_id=document_id,
            process_instance_id=process_instance_id,
            status=DocumentStatus.APPROVED,
            extracted=extracted,
            approval=approval,
            message="Document automatically approved",
        )

    async def complete_task(
        self,
        task_id: str,
        action: str | TaskAction,
        reason: str = "",
        completed_by: str = "user",
    ) -> CompleteTaskResult:
        """Resolve a pending manual approval task exactly once.

        Raises:
            ValidationError: If ``action`` is neither ``approve`` nor ``reject``.
            NotFoundError: If the task is unknown or was already completed.
            ConflictError: If the task's document is no longer awaiting approval.
        """
        try:
            task_action = TaskAction(str(status_value(action)).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"Invalid action {action!r}; expected 'approve' or 'reject'"
            ) from exc

        task = await self._tasks.get_task(task_id)
        if task is None or task.status != TaskStatus.PENDING:
            raise NotFoundError("Task not found or already completed")

        document = await self._documents.get_document(task.document_id)
        if document is None or document.status != DocumentStatus.AWAITING_APPROVAL:
            # a concurrent completion may have finished both writes meanwhile
            current = await self._tasks.get_task(task_id)
            if current is None or current.status != TaskStatus.PENDING:
                raise NotFoundError("Task not found or already completed")
            raise ConflictError(f"Document {task.document_id} is not awaiting approval")

        task_result = {
            "action": task_action.value,
            "completed_by": completed_by,
            "completed_at": _now(),
            "reason": reason,
        }
        # the conditional update is the guard against concurrent completion
        if not await self._tasks.complete_task(task_id, task_result):
            raise NotFoundError("Task not found or already completed")

        document_id = task.document_id
        process_instance_id = task.data.get("process_instance_id")
        status, outcome = self._manual_outcome(task_result)
        await self._transition(
            document_id, DocumentStatus.AWAITING_APPROVAL, status, workflow_data=outcome
        )
        await self._signal_completion(process_instance_id, outcome)

        logger.info(f"Task {task_id} completed; document {document_id} {status.value}")
        return CompleteTaskResult(
            document_id=document_id,
            status=status,
            task_result=task_result,
            message=f"Document {status.value}",
        )

    @staticmethod
    def _manual_outcome(task_result: Dict[str, Any]) -> tuple[DocumentStatus, Dict[str, Any]]:
        if task_result.get("action") == TaskAction.APPROVE.value:
            status = DocumentStatus.APPROVED
        else:
            status = DocumentStatus.REJECTED
        outcome = {
            "status": status.value,
            "approval_type": ApprovalType.MANUAL.value,
            **task_result,
        }
        return status, outcome

    async def reconcile(self) -> List[str]:
        """Finish documents whose approval task completed but whose own
        transition was never written, e.g. after a crash between the two.

        Returns the ids of the repaired documents.
        """
        repaired: List[str] = []
        for task in await self._tasks.list_tasks(status=TaskStatus.COMPLETED):
            if not task.result or task.result.get("action") not in _DECISIONS:
                continue
            document = await self._documents.get_document(task.document_id)
            if document is None or document.status != DocumentStatus.AWAITING_APPROVAL:
                continue

            status, outcome = self._manual_outcome(task.result)
            try:
                await self._transition(
                    document.id,
                    DocumentStatus.AWAITING_APPROVAL,
                    status,
                    workflow_data=outcome,
                )
            except ConflictError:
                # finished concurrently by another caller
                continue
            await self._signal_completion(task.data.get("process_instance_id"), outcome)
            logger.info(f"Reconciled document {document.id} from completed task {task.id}")
            repaired.append(document.id)
        return repaired

    # ------------------------------------------------------------------
    # Queries
    async def get_document_status(self, document_id: str) -> DocumentStatusView:
        document = await self._documents.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")

        pending = await self._tasks.list_tasks(
            status=TaskStatus.PENDING, document_id=document_id
        )
        return DocumentStatusView(
            document_id=document.id,
            filename=document.filename,
            status=document.status,
            process_instance_id=document.process_instance_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
            extracted=document.extracted_data,
            workflow_result=document.workflow_data,
            pending_tasks=[
                PendingTaskRef(task_id=t.id, task_type=t.task_type, created_at=t.created_at)
                for t in pending
            ],
        )

    async def get_pending_tasks(self) -> List[PendingTaskView]:
        """Pending tasks with their document details, oldest first."""
        tasks = await self._tasks.list_tasks(status=TaskStatus.PENDING)
        documents = await asyncio.gather(
            *(self._documents.get_document(task.document_id) for task in tasks)
        )
        views: List[PendingTaskView] = []
        for task, document in zip(tasks, documents):
            if document is not None and document.status in TERMINAL_STATUSES:
                continue
            extracted = document.extracted_data if document else None
            views.append(
                PendingTaskView(
                    task_id=task.id,
                    document_id=task.document_id,
                    filename=document.filename if document else None,
                    task_type=task.task_type,
                    created_at=task.created_at,
                    extracted_data=extracted or task.data.get("extracted_data"),
                    requires_approval=bool(task.data.get("requires_approval")),
                    amount=task.data.get("amount") or 0,
                )
            )
        return views

    async def get_all_workflows(self) -> List[WorkflowSummary]:
        """Lifecycle summary of every known document, newest first."""
        documents = await self._documents.list_documents()
        return [
            WorkflowSummary(
                document_id=doc.id,
                filename=doc.filename,
                process_instance_id=doc.process_instance_id,
                status=doc.status,
                created_at=doc.created_at,
                updated_at=doc.updated_at,
            )
            for doc in sorted(documents, key=lambda d: d.created_at, reverse=True)
        ]

    # ------------------------------------------------------------------
    # Process engine
    async def deploy_process(self) -> Optional[str]:
        """Deploy the bundled BPMN definition to the process engine."""
        return await self._notifier.deploy_process(load_bpmn_definition())

    async def list_engine_instances(self) -> List[Dict[str, Any]]:
        return await self._notifier.list_process_instances()

    # ------------------------------------------------------------------
    # Helpers
    async def _transition(
        self, document_id: str, current: str, target: str, **fields: Any
    ) -> None:
        current, target = status_value(current), status_value(target)
        if not can_transition(current, target):
            raise ConflictError(f"Illegal transition {current} -> {target}")
        updated = await self._documents.update_document(
            document_id, status=target, expected_status=[current], **fields
        )
        if not updated:
            raise ConflictError(f"Document {document_id} is not in status {current}")
        logger.info(f"Document {document_id}: {current} -> {target}")

    async def _withdraw_task(self, task_id: str, exc: BaseException) -> None:
        """Close a task whose document never reached ``awaiting_approval``."""
        try:
            await self._tasks.complete_task(
                task_id,
                {
                    "action": "withdrawn",
                    "completed_by": "system",
                    "completed_at": _now(),
                    "reason": str(exc) or type(exc).__name__,
                },
            )
        except Exception as task_exc:
            logger.error(f"Failed to withdraw task {task_id}: {task_exc}")

    async def _mark_error(
        self, document_id: str, process_instance_id: Optional[str], exc: BaseException
    ) -> None:
        message = str(exc) or type(exc).__name__
        logger.error(f"Workflow for document {document_id} failed: {message}")
        try:
            await self._documents.update_document(
                document_id,
                status=DocumentStatus.ERROR.value,
                expected_status=NON_TERMINAL_STATUSES,
            )
        except Exception as db_exc:
            logger.error(f"Failed to update document status for {document_id}: {db_exc}")

        if process_instance_id:
            await self._notify(
                f"signal error for process {process_instance_id}",
                self._notifier.signal_error(process_instance_id, message),
            )

    async def _signal_completion(
        self, process_instance_id: Optional[str], result: Dict[str, Any]
    ) -> None:
        if not process_instance_id:
            logger.debug("No process instance to notify")
            return
        await self._notify(
            f"signal completion for process {process_instance_id}",
            self._notifier.signal_completion(process_instance_id, result),
        )

    async def _notify(self, description: str, call: Awaitable[T]) -> Optional[T]:
        """Await an engine call for at most ``engine.timeout`` seconds.

        Failures are logged and swallowed; local state stays authoritative.
        """
        timeout = self.config.engine.timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Process engine did not {description} within {timeout}s")
        except Exception as exc:
            logger.warning(f"Failed to {description}: {exc}")
        return None
