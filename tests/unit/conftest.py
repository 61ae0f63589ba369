# tests/unit/conftest.py
"""Shared fixtures: temporary SQLite database, services and a scripted LLM client."""

from pathlib import Path

import pytest
import pytest_asyncio

from formiq.ai.service import AIService
from formiq.config.schema import DatabaseConfig, FormIQConfig, WorkflowConfig
from formiq.db.engine import create_engine, create_session_factory, init_db
from formiq.db.service import DatabaseService

from .fakes import OTHER_USER_ID, USER_ID, ScriptedLLMClient


@pytest.fixture
def llm_client() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def ai_service(llm_client: ScriptedLLMClient) -> AIService:
    return AIService(llm_client)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'formiq.db'}"


@pytest.fixture
def config(database_url: str) -> FormIQConfig:
    """Config pointing at a temp database with instant activity retries."""
    return FormIQConfig(
        database=DatabaseConfig(url=database_url),
        workflow=WorkflowConfig(
            poll_interval=0.05,
            activity_initial_interval=0.0,
            activity_max_interval=0.0,
            embedded_worker=False,
        ),
    )


@pytest_asyncio.fixture
async def engine(database_url: str):
    engine = create_engine(database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> DatabaseService:
    """Database service with two users."""
    service = DatabaseService(session_factory)
    await service.ensure_user(USER_ID, email="test@test")
    await service.ensure_user(OTHER_USER_ID)
    return service
