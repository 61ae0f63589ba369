"""Configuration models and loader."""

from .loader import get_config_path, load_config, resolve_database_url
from .schema import (
    DEFAULT_MODEL,
    DEFAULT_USER_ID,
    DatabaseConfig,
    FormIQConfig,
    OllamaConfig,
    OpenAIConfig,
    ServerConfig,
    WorkflowConfig,
)

__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_USER_ID",
    "DatabaseConfig",
    "FormIQConfig",
    "OllamaConfig",
    "OpenAIConfig",
    "ServerConfig",
    "WorkflowConfig",
    "get_config_path",
    "load_config",
    "resolve_database_url",
]
