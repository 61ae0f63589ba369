# tests/unit/test_config.py
"""Tests for YAML config loading and environment overrides."""

from pathlib import Path
from unittest.mock import patch

import yaml

from formiq.config import FormIQConfig, load_config, resolve_database_url
from formiq.config.loader import apply_env_overrides


class TestLoadConfig:
    """load_config() file handling."""

    def test_creates_default_file(self, tmp_path: Path):
        path = tmp_path / "nested" / "config.yaml"
        config = load_config(path, env={})

        assert path.exists()
        assert config == FormIQConfig()
        written = yaml.safe_load(path.read_text())
        assert written["server"]["port"] == 3001

    def test_reads_existing_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump({"provider": "ollama", "ollama": {"model": "llama3.1:8b"}})
        )
        config = load_config(path, env={})

        assert config.provider == "ollama"
        assert config.ollama.model == "llama3.1:8b"

    def test_unknown_keys_are_ignored(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 8080, "tls": True}, "extra": 1}))
        assert load_config(path, env={}).server.port == 8080

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path, env={}) == FormIQConfig()


class TestEnvOverrides:
    """Deployment environment variables on top of YAML."""

    def test_port_and_database_url(self):
        config = apply_env_overrides(
            FormIQConfig(), {"PORT": "8000", "DATABASE_URL": "postgresql://db/formiq"}
        )
        assert config.server.port == 8000
        assert config.database.url == "postgresql://db/formiq"

    def test_api_key_and_namespace(self):
        config = apply_env_overrides(
            FormIQConfig(),
            {
                "OPENAI_API_KEY": "sk-test",
                "TEMPORAL_NAMESPACE": "staging",
                "TEMPORAL_ADDRESS": "localhost:7233",
            },
        )
        assert config.openai.api_key == "sk-test"
        assert config.workflow.namespace == "staging"

    def test_model_applies_to_selected_provider(self):
        config = apply_env_overrides(
            FormIQConfig(), {"FORMIQ_PROVIDER": "ollama", "FORMIQ_MODEL": "mistral"}
        )
        assert config.provider == "ollama"
        assert config.ollama.model == "mistral"
        assert config.openai.model == FormIQConfig().openai.model

    def test_no_env_leaves_config_unchanged(self):
        config = FormIQConfig(log_level="DEBUG")
        assert apply_env_overrides(config, {}) == config


class TestResolveDatabaseUrl:
    """Driver rewriting for async SQLAlchemy."""

    def test_postgres_gets_asyncpg(self):
        config = FormIQConfig(database={"url": "postgres://u:p@db:5432/formiq"})
        assert resolve_database_url(config) == "postgresql+asyncpg://u:p@db:5432/formiq"

    def test_postgresql_gets_asyncpg(self):
        config = FormIQConfig(database={"url": "postgresql://db/formiq"})
        assert resolve_database_url(config) == "postgresql+asyncpg://db/formiq"

    def test_sqlite_gets_aiosqlite(self):
        config = FormIQConfig(database={"url": "sqlite:///tmp/formiq.db"})
        assert resolve_database_url(config) == "sqlite+aiosqlite:///tmp/formiq.db"

    def test_async_url_untouched(self):
        url = "sqlite+aiosqlite:///tmp/formiq.db"
        assert resolve_database_url(FormIQConfig(database={"url": url})) == url

    def test_default_is_sqlite_in_data_dir(self, tmp_path: Path):
        with patch("formiq.config.loader.get_data_dir", return_value=tmp_path):
            url = resolve_database_url(FormIQConfig())
        assert url == f"sqlite+aiosqlite:///{tmp_path / 'formiq.db'}"
