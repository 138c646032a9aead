"""docflow: Invoice document lifecycle orchestration with approval routing."""

from .config import DocflowConfig, load_config
from .contracts import DocumentStatus, ExtractedData, TaskAction, TaskStatus
from .engine import get_notifier
from .extraction import FieldExtractor, extract_fields
from .orchestrator import DocumentOrchestrator
from .persistence import get_repository
from .routing import DecisionRouter

__version__ = "0.1.0"
__all__ = [
    "DecisionRouter",
    "DocflowConfig",
    "DocumentOrchestrator",
    "DocumentStatus",
    "ExtractedData",
    "FieldExtractor",
    "TaskAction",
    "TaskStatus",
    "extract_fields",
    "get_notifier",
    "get_repository",
    "load_config",
]
