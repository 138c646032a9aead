"""In-memory process engine notifier for testing."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..errors import NotificationError
from .base import ProcessEngineNotifier


class InMemoryNotifier(ProcessEngineNotifier):
    """Record engine calls in memory.

    Set ``fail`` to make every call raise :class:`NotificationError`, which
    simulates an unreachable engine.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.started: Dict[str, Dict[str, Any]] = {}
        self.completions: List[Tuple[str, Dict[str, Any]]] = []
        self.errors: List[Tuple[str, str]] = []
        self.deployments: List[str] = []

    def _check(self) -> None:
        if self.fail:
            raise NotificationError("in-memory engine configured to fail")

    async def start_process(
        self, document_id: str, variables: Dict[str, Any]
    ) -> Optional[str]:
        self._check()
        process_instance_id = f"proc-{uuid.uuid4()}"
        self.started[process_instance_id] = {"documentId": document_id, **variables}
        return process_instance_id

    async def signal_completion(
        self, process_instance_id: str, result: Dict[str, Any]
    ) -> None:
        self._check()
        self.completions.append((process_instance_id, result))

    async def signal_error(self, process_instance_id: str, message: str) -> None:
        self._check()
        self.errors.append((process_instance_id, message))

    async def deploy_process(self, bpmn: str) -> Optional[str]:
        self._check()
        self.deployments.append(bpmn)
        return f"deployment-{len(self.deployments)}"

    async def list_process_instances(self) -> List[Dict[str, Any]]:
        self._check()
        completed = {pid for pid, _ in self.completions}
        return [
            {
                "process_instance_id": pid,
                "process_definition_key": "process",
                "status": "completed" if pid in completed else "active",
                "started": variables.get("startTime"),
                "ended": None,
            }
            for pid, variables in self.started.items()
        ]
