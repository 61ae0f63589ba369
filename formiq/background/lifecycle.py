# formiq/background/lifecycle.py
"""
Server lifecycle management.

Coordinates startup (database schema, seed user, crash recovery, workers)
and shutdown for the API process and the standalone worker.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from formiq.ai.service import AIService
from formiq.config.loader import resolve_database_url
from formiq.config.schema import DEFAULT_USER_ID, FormIQConfig
from formiq.db.engine import create_engine, create_session_factory, init_db
from formiq.db.service import DatabaseService
from formiq.llm.factory import create_llm_client
from formiq.workflow.activities import (
    DATABASE_QUEUE,
    GENERATE_QUEUE,
    ActivityRegistry,
    build_ai_activities,
    build_database_activities,
)
from formiq.workflow.client import WorkflowClient
from formiq.workflow.roadmap import WORKFLOWS
from formiq.workflow.runs import WorkflowRunStore
from formiq.workflow.worker import Worker

from .signals import setup_signal_handlers

logger = logging.getLogger(__name__)

SEED_USER_EMAIL = "test@test"
SEED_USER_PASSWORD = "test"


async def open_database(config: FormIQConfig) -> tuple[AsyncEngine, DatabaseService]:
    """
    Create the engine, ensure the schema and the default user exist.

    Returns:
        (engine, database service); the caller disposes the engine
    """
    engine = create_engine(resolve_database_url(config), echo=config.database.echo)
    await init_db(engine)
    db = DatabaseService(create_session_factory(engine))

    email = SEED_USER_EMAIL if config.default_user_id == DEFAULT_USER_ID else None
    await db.ensure_user(config.default_user_id, email=email, password=SEED_USER_PASSWORD)
    return engine, db


class ServerLifecycle:
    """
    Server lifecycle coordinator.

    Manages:
        - Database initialization and the seed user
        - Workflow crash recovery (running → interrupted)
        - Workers for the workflow, generate and database task queues
        - Signal handler registration (standalone worker only)
        - Graceful shutdown
    """

    def __init__(self, config: FormIQConfig, ai_service: AIService | None = None) -> None:
        """
        Initialize server lifecycle manager.

        Args:
            config: Root configuration
            ai_service: Pre-built AI service (default: from the configured provider)
        """
        self.config = config
        self._ai_service = ai_service
        self._engine: AsyncEngine | None = None
        self._db: DatabaseService | None = None
        self._store: WorkflowRunStore | None = None
        self._client: WorkflowClient | None = None
        self._workers: list[Worker] = []
        self._closed = asyncio.Event()

    @property
    def db(self) -> DatabaseService:
        if self._db is None:
            raise RuntimeError("Lifecycle not started")
        return self._db

    @property
    def ai(self) -> AIService:
        if self._ai_service is None:
            self._ai_service = AIService(create_llm_client(self.config))
        return self._ai_service

    @property
    def store(self) -> WorkflowRunStore:
        if self._store is None:
            raise RuntimeError("Lifecycle not started")
        return self._store

    @property
    def workflow_client(self) -> WorkflowClient:
        if self._client is None:
            raise RuntimeError("Lifecycle not started")
        return self._client

    @property
    def workflow_worker(self) -> Worker | None:
        """The worker hosting workflows (for inspection/testing)."""
        task_queue = self.config.workflow.task_queue
        return next((w for w in self._workers if w.task_queue == task_queue), None)

    async def startup(
        self, start_workers: bool | None = None, install_signal_handlers: bool = False
    ) -> None:
        """
        Start the server lifecycle.

        Steps:
            1. Initialize database schema and the seed user
            2. Run crash recovery (mark running → interrupted)
            3. Register workers for all task queues
            4. Register signal handlers (when requested)
            5. Start the workflow worker loop (when requested)

        Args:
            start_workers: Poll for workflow runs (default: config.workflow.embedded_worker)
            install_signal_handlers: Shut down on SIGINT/SIGTERM
        """
        logger.info("Starting server lifecycle...")
        workflow_config = self.config.workflow

        self._engine, self._db = await open_database(self.config)

        self._store = WorkflowRunStore(
            create_session_factory(self._engine), namespace=workflow_config.namespace
        )
        interrupted = await self._store.initialize()
        if interrupted:
            logger.warning(
                f"Found {len(interrupted)} interrupted workflow run(s) from previous session"
            )
            for run in interrupted:
                logger.warning(f"  - {run.workflow_id}: {run.current_step}")

        self._client = WorkflowClient(
            self._store,
            default_task_queue=workflow_config.task_queue,
            poll_interval=workflow_config.poll_interval,
        )

        registry = ActivityRegistry()
        self._workers = [
            Worker(
                DATABASE_QUEUE,
                self._store,
                registry,
                workflow_config,
                activities=build_database_activities(self._db),
            ),
            Worker(
                GENERATE_QUEUE,
                self._store,
                registry,
                workflow_config,
                activities=build_ai_activities(self.ai),
            ),
            Worker(
                workflow_config.task_queue,
                self._store,
                registry,
                workflow_config,
                workflows=WORKFLOWS,
                model=self.ai.model,
            ),
        ]

        if install_signal_handlers:
            setup_signal_handlers(self)

        if start_workers is None:
            start_workers = workflow_config.embedded_worker
        if start_workers:
            for worker in self._workers:
                await worker.start()

        logger.info(
            f"Server lifecycle started (workers {'running' if start_workers else 'idle'})"
        )

    async def shutdown(self) -> None:
        """
        Shut down the server lifecycle gracefully.

        Steps:
            1. Stop workers (marks the running run as interrupted)
            2. Dispose the database engine
        """
        if self._closed.is_set():
            return
        logger.info("Shutting down server lifecycle...")

        for worker in self._workers:
            await worker.stop()

        if self._engine is not None:
            await self._engine.dispose()

        self._closed.set()
        logger.info("Server lifecycle shutdown complete")

    async def wait_closed(self) -> None:
        """Block until shutdown() has completed."""
        await self._closed.wait()
