# formiq/config/loader.py
"""
Configuration loading with auto-creation of defaults.

Uses platformdirs for cross-platform config/data directory management,
python-dotenv for local .env files, and environment variables on top.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from dotenv import load_dotenv
from platformdirs import user_config_path, user_data_path

from .schema import FormIQConfig

logger = logging.getLogger(__name__)

APP_NAME = "formiq"


def get_config_path() -> Path:
    """Get path to config file, ensuring config directory exists."""
    config_dir = user_config_path(APP_NAME, ensure_exists=True)
    return config_dir / "config.yaml"


def get_data_dir() -> Path:
    """Get the per-user data directory (SQLite database lives here)."""
    return user_data_path(APP_NAME, ensure_exists=True)


def load_config(
    config_path: Path | None = None, env: Mapping[str, str] | None = None
) -> FormIQConfig:
    """
    Load configuration from YAML file, then apply environment overrides.

    If the config file doesn't exist, creates it with defaults. When no
    explicit environment mapping is passed, a .env file in the working
    directory is loaded into os.environ first.

    Args:
        config_path: Config file location (defaults to the platformdirs path)
        env: Environment mapping (defaults to os.environ)

    Returns:
        Validated FormIQConfig
    """
    if env is None:
        load_dotenv()
        env = os.environ

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        default_config = FormIQConfig()
        config_dict = default_config.model_dump(mode="json")

        with config_path.open("w") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Created default config at {config_path}")
        config_data: dict = config_dict
    else:
        with config_path.open("r") as f:
            config_data = yaml.safe_load(f) or {}
        logger.info(f"Loaded config from {config_path}")

    return apply_env_overrides(FormIQConfig(**config_data), env)


def apply_env_overrides(config: FormIQConfig, env: Mapping[str, str]) -> FormIQConfig:
    """
    Overlay deployment environment variables onto a loaded config.

    Recognised: PORT, DATABASE_URL, OPENAI_API_KEY, TEMPORAL_NAMESPACE,
    FORMIQ_PROVIDER, FORMIQ_MODEL, LOG_LEVEL. TEMPORAL_ADDRESS is ignored;
    the workflow runtime shares the application database.

    Args:
        config: Config loaded from YAML
        env: Environment mapping

    Returns:
        New validated FormIQConfig
    """
    data = config.model_dump(mode="json")

    if port := env.get("PORT"):
        data["server"]["port"] = int(port)
    if database_url := env.get("DATABASE_URL"):
        data["database"]["url"] = database_url
    if api_key := env.get("OPENAI_API_KEY"):
        data["openai"]["api_key"] = api_key
    if namespace := env.get("TEMPORAL_NAMESPACE"):
        data["workflow"]["namespace"] = namespace
    if provider := env.get("FORMIQ_PROVIDER"):
        data["provider"] = provider
    if model := env.get("FORMIQ_MODEL"):
        data[data["provider"]]["model"] = model
    if log_level := env.get("LOG_LEVEL"):
        data["log_level"] = log_level

    return FormIQConfig.model_validate(data)


def resolve_database_url(config: FormIQConfig) -> str:
    """
    Return an async SQLAlchemy URL for the configured database.

    Plain driver-less URLs (as written for other tooling) are rewritten to
    their asyncio drivers: sqlite → aiosqlite, postgresql → asyncpg.

    Args:
        config: Root config

    Returns:
        SQLAlchemy URL string with an async driver
    """
    url = config.database.url
    if not url:
        return f"sqlite+aiosqlite:///{get_data_dir() / 'formiq.db'}"

    for prefix, replacement in (
        ("postgres://", "postgresql+asyncpg://"),
        ("postgresql://", "postgresql+asyncpg://"),
        ("sqlite://", "sqlite+aiosqlite://"),
    ):
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url
