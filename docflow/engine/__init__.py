"""Process engine notifier factory and initialization."""

from __future__ import annotations

from importlib import resources
from typing import Optional

from ..config import DocflowConfig, load_config
from .base import NullNotifier, ProcessEngineNotifier
from .inmemory import InMemoryNotifier

BPMN_RESOURCE = "document_processing.bpmn"


def load_bpmn_definition() -> str:
    """Return the bundled BPMN XML for the document processing process."""
    return resources.files(__name__).joinpath(BPMN_RESOURCE).read_text(encoding="utf-8")


def get_notifier(
    backend: Optional[str] = None, config: Optional[DocflowConfig] = None
) -> ProcessEngineNotifier:
    """Factory function to get the configured process engine notifier."""

    # load_config applies DOCFLOW_ENGINE_BACKEND; an explicit config is used as given
    config = config or load_config()
    backend = (backend or config.engine.backend).lower()

    if backend == "none":
        return NullNotifier()
    elif backend == "inmemory":
        return InMemoryNotifier()
    elif backend == "flowable":
        from .flowable import FlowableNotifier

        engine = config.engine
        return FlowableNotifier(
            rest_endpoint=engine.rest_endpoint,
            username=engine.username,
            password=engine.password,
            process_definition_key=engine.process_definition_key,
            timeout=engine.timeout,
        )
    else:
        raise ValueError(f"Unsupported process engine backend: {backend}")


__all__ = [
    "ProcessEngineNotifier",
    "NullNotifier",
    "InMemoryNotifier",
    "get_notifier",
    "load_bpmn_definition",
]
