"""Base notifier interface for the external BPMN process engine."""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ProcessEngineNotifier(metaclass=abc.ABCMeta):
    """Mirror document lifecycle events into an external process engine.

    The engine is a downstream view, never the system of record. Concrete
    notifiers raise :class:`~docflow.errors.NotificationError` when the engine
    cannot be reached; the orchestrator logs and swallows those failures.
    """

    async def close(self) -> None:
        """Release any open connection (no-op by default)."""
        pass

    @abc.abstractmethod
    async def start_process(
        self, document_id: str, variables: Dict[str, Any]
    ) -> Optional[str]:
        """Start a process instance for ``document_id`` and return its id."""
        raise NotImplementedError

    @abc.abstractmethod
    async def signal_completion(
        self, process_instance_id: str, result: Dict[str, Any]
    ) -> None:
        """Report the terminal outcome of a process instance."""
        raise NotImplementedError

    @abc.abstractmethod
    async def signal_error(self, process_instance_id: str, message: str) -> None:
        """Report that processing of a process instance failed."""
        raise NotImplementedError

    async def deploy_process(self, bpmn: str) -> Optional[str]:
        """Deploy the BPMN definition (no-op by default)."""
        return None

    async def list_process_instances(self) -> List[Dict[str, Any]]:
        """Return process instances known to the engine (none by default)."""
        return []


class NullNotifier(ProcessEngineNotifier):
    """Notifier used when no process engine is configured."""

    async def start_process(
        self, document_id: str, variables: Dict[str, Any]
    ) -> Optional[str]:
        logger.debug(f"No process engine configured; not starting process for {document_id}")
        return None

    async def signal_completion(
        self, process_instance_id: str, result: Dict[str, Any]
    ) -> None:
        logger.debug(f"No process engine configured; dropping completion of {process_instance_id}")

    async def signal_error(self, process_instance_id: str, message: str) -> None:
        logger.debug(f"No process engine configured; dropping error of {process_instance_id}")
