from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_MAX_FILE_SIZE = 16 * 1024 * 1024


class EngineConfig(BaseModel):
    """Connection settings for the BPMN process engine."""

    backend: Literal["none", "inmemory", "flowable"] = "none"
    url: str = "http://localhost:8080"
    rest_path: str = "/flowable-task/process-api"
    username: str = "admin"
    password: str = "test"
    process_definition_key: str = "process"
    timeout: float = 10.0

    @property
    def rest_endpoint(self) -> str:
        return self.url.rstrip("/") + self.rest_path


class ApprovalConfig(BaseModel):
    """Routing policy settings."""

    threshold: float = 1000.0


class UploadConfig(BaseModel):
    """Limits applied to incoming files before extraction."""

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    supported_extensions: List[str] = Field(default_factory=lambda: [".pdf", ".docx"])


class DocflowConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    approval: ApprovalConfig = Field(default_factory=ApprovalConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> DocflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to DOCFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("DOCFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = DocflowConfig(**data)
    else:
        config = DocflowConfig()

    env_db_url = os.getenv("DOCFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_backend = os.getenv("DOCFLOW_ENGINE_BACKEND")
    if env_backend:
        config.engine.backend = env_backend.lower()
    env_engine_url = os.getenv("FLOWABLE_URL")
    if env_engine_url:
        config.engine.url = env_engine_url
    env_log_level = os.getenv("DOCFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    return config
