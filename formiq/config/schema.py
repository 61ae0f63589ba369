# formiq/config/schema.py
"""
Pydantic configuration models for FormIQ.

All models use extra="ignore" to allow unknown YAML keys without crashing.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL = "gpt-5-mini"
DEFAULT_USER_ID = "test-user-id"


class ServerConfig(BaseModel):
    """HTTP API server configuration."""

    model_config = ConfigDict(extra="ignore")

    host: str = Field(default="127.0.0.1", description="Interface to bind the API to")
    port: int = Field(default=3001, ge=1, le=65535, description="API port")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )


class DatabaseConfig(BaseModel):
    """Relational database configuration."""

    model_config = ConfigDict(extra="ignore")

    url: str | None = Field(
        default=None,
        description="SQLAlchemy URL (None = SQLite file in the user data dir)",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")


class OpenAIConfig(BaseModel):
    """OpenAI Responses API configuration."""

    model_config = ConfigDict(extra="ignore")

    api_key: str | None = Field(
        default=None, description="API key (None = read OPENAI_API_KEY from the environment)"
    )
    base_url: str | None = Field(default=None, description="Override for the API base URL")
    model: str = Field(default=DEFAULT_MODEL, description="Model used for every generation")
    timeout: int = Field(default=120, description="Request timeout in seconds")


class OllamaConfig(BaseModel):
    """Ollama server configuration."""

    model_config = ConfigDict(extra="ignore")

    base_url: str = Field(
        default="http://localhost:11434", description="Ollama API base URL"
    )
    model: str = Field(
        default="qwen2.5:14b-instruct", description="Ollama model used for generation"
    )
    timeout: int = Field(
        default=300, description="Request timeout in seconds (generous for model loading)"
    )


class WorkflowConfig(BaseModel):
    """Durable workflow runtime configuration."""

    model_config = ConfigDict(extra="ignore")

    namespace: str = Field(default="default", description="Partition for workflow runs")
    task_queue: str = Field(default="workflow", description="Queue the roadmap workflow runs on")
    poll_interval: float = Field(
        default=1.0, gt=0.0, description="Seconds between queue checks"
    )
    database_activity_timeout: float = Field(
        default=10.0, gt=0.0, description="Start-to-close timeout for database activities"
    )
    generate_activity_timeout: float = Field(
        default=120.0, gt=0.0, description="Start-to-close timeout for generation activities"
    )
    activity_max_attempts: int = Field(
        default=3, ge=1, le=10, description="Attempts per activity before the run fails"
    )
    activity_initial_interval: float = Field(
        default=1.0, ge=0.0, description="First retry backoff in seconds"
    )
    activity_max_interval: float = Field(
        default=30.0, ge=0.0, description="Upper bound for retry backoff in seconds"
    )
    embedded_worker: bool = Field(
        default=True, description="Run the workers inside the API process"
    )


class FormIQConfig(BaseModel):
    """Root configuration for FormIQ."""

    model_config = ConfigDict(extra="ignore")

    provider: Literal["openai", "ollama"] = Field(
        default="openai", description="LLM provider to use"
    )
    default_user_id: str = Field(
        default=DEFAULT_USER_ID,
        description="User assumed when a request carries no X-User-Id header",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
