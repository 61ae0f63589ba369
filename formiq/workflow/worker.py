# formiq/workflow/worker.py
"""
Task-queue workers.

Every worker registers its activities on the shared registry. A worker that
also hosts workflows polls its queue, runs one workflow at a time and
records how each run ended.
"""

import asyncio
import logging
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from formiq.config.schema import WorkflowConfig
from formiq.errors import WorkflowError

from .activities import (
    DATABASE_QUEUE,
    GENERATE_QUEUE,
    Activity,
    ActivityOptions,
    ActivityProxy,
    ActivityRegistry,
)
from .runs import RunState, WorkflowRunRecord, WorkflowRunStore

logger = logging.getLogger(__name__)


class WorkflowSuspended(Exception):
    """Raised by a workflow to park its run until it is resumed."""

    def __init__(self, reason: str, step: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.step = step


@dataclass
class WorkflowContext:
    """What a running workflow can touch: activity proxies and its own run."""

    run: WorkflowRunRecord
    db: ActivityProxy
    ai: ActivityProxy
    model: str | None
    store: WorkflowRunStore

    async def set_step(self, step: str) -> None:
        """Record the step the run is on (shown by `formiq runs`)."""
        self.run = await self.store.update(self.run.workflow_id, current_step=step)
        logger.info(f"Workflow {self.run.workflow_id}: {step}")


WorkflowFn = Callable[[WorkflowContext, dict[str, Any]], Awaitable[Any]]


def _failure_message(e: Exception) -> str:
    error_msg = f"{type(e).__name__}: {e}"
    tb_lines = traceback.format_exception(type(e), e, e.__traceback__)
    tb_snippet = "".join(tb_lines[-3:])
    return f"{error_msg}\n\n{tb_snippet}"


class Worker:
    """
    Worker bound to one task queue.

    Features:
        - Registers activities for its task queue
        - Polls for the next queued run (FIFO) when it hosts workflows
        - Parks runs that suspend as AWAITING_INPUT (re-queues them instead
          when a resume was requested while they ran)
        - Marks the running run as INTERRUPTED on shutdown (via CancelledError)
        - Marks runs as FAILED with the error and a traceback snippet
    """

    def __init__(
        self,
        task_queue: str,
        store: WorkflowRunStore,
        registry: ActivityRegistry,
        config: WorkflowConfig | None = None,
        workflows: dict[str, WorkflowFn] | None = None,
        activities: dict[str, Activity] | None = None,
        model: str | None = None,
    ) -> None:
        """
        Initialize worker.

        Args:
            task_queue: Queue this worker serves
            store: Workflow run store
            registry: Shared activity registry
            config: Timeouts, retry policy and poll interval
            workflows: Workflow functions by name (workflow queue only)
            activities: Activities by name to register on task_queue
            model: Model name recorded with prompt executions
        """
        self.task_queue = task_queue
        self._store = store
        self._registry = registry
        self._config = config or WorkflowConfig()
        self._workflows = dict(workflows or {})
        self._model = model
        self._current_run_id: str | None = None
        self._task: asyncio.Task | None = None

        if activities:
            registry.register(task_queue, activities)

        logger.info(
            f"Initialized Worker for '{task_queue}' "
            f"(workflows={sorted(self._workflows)}, activities={registry.names(task_queue)})"
        )

    @property
    def current_run_id(self) -> str | None:
        """Get the currently processing workflow id (None if idle)."""
        return self._current_run_id

    @property
    def running(self) -> bool:
        return self._task is not None

    def _proxy(self, task_queue: str, timeout: float) -> ActivityProxy:
        return ActivityProxy(
            self._registry,
            task_queue,
            ActivityOptions(
                start_to_close_timeout=timeout,
                max_attempts=self._config.activity_max_attempts,
                initial_interval=self._config.activity_initial_interval,
                max_interval=self._config.activity_max_interval,
            ),
        )

    async def start(self) -> None:
        """
        Start the polling loop.

        Activity-only workers have nothing to poll; activities run in the
        calling workflow's process.
        """
        if not self._workflows:
            logger.info(f"Worker '{self.task_queue}' hosts no workflows, nothing to poll")
            return
        if self._task is not None:
            logger.warning("Worker already started")
            return

        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Worker '{self.task_queue}' started")

    async def stop(self) -> None:
        """
        Stop the polling loop gracefully.

        If a run is in progress, it will be marked as INTERRUPTED.
        """
        if self._task is None:
            return

        logger.info(f"Stopping worker '{self.task_queue}'...")
        self._task.cancel()

        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Worker task cancelled")

        self._task = None
        logger.info(f"Worker '{self.task_queue}' stopped")

    async def _run_loop(self) -> None:
        logger.info("Worker loop started")

        try:
            while True:
                run = await self._store.claim_next_queued(self.task_queue)
                if run is None:
                    await asyncio.sleep(self._config.poll_interval)
                    continue
                await self._process(run)

        except asyncio.CancelledError:
            logger.info("Worker loop cancelled")
            raise

    async def drain(self) -> int:
        """
        Process queued runs until the queue is empty.

        Returns:
            Number of runs processed
        """
        processed = 0
        while (run := await self._store.claim_next_queued(self.task_queue)) is not None:
            await self._process(run)
            processed += 1
        return processed

    async def _process(self, run: WorkflowRunRecord) -> None:
        """Execute a claimed run and store its outcome."""
        self._current_run_id = run.workflow_id
        logger.info(f"Picked up workflow {run.workflow_id} (attempt {run.attempt})")

        try:
            result = await self._execute(run)
            await self._store.update(
                run.workflow_id, state=RunState.COMPLETE, result=result, current_step=None
            )
            logger.info(f"Workflow {run.workflow_id} completed successfully")

        except WorkflowSuspended as s:
            parked = await self._store.park(run.workflow_id, step=s.step)
            if parked.state == RunState.AWAITING_INPUT:
                logger.info(f"Workflow {run.workflow_id} awaiting input: {s.reason}")

        except asyncio.CancelledError:
            logger.warning(f"Workflow {run.workflow_id} interrupted by shutdown")
            try:
                await self._store.update(
                    run.workflow_id,
                    state=RunState.INTERRUPTED,
                    error="Server shutdown during processing",
                )
            except Exception as e:
                logger.error(f"Failed to mark workflow as interrupted: {e}")
            raise

        except Exception as e:
            await self._store.update(
                run.workflow_id, state=RunState.FAILED, error=_failure_message(e)
            )
            logger.error(f"Workflow {run.workflow_id} failed: {type(e).__name__}: {e}")

        finally:
            self._current_run_id = None

    async def _execute(self, run: WorkflowRunRecord) -> Any:
        workflow = self._workflows.get(run.workflow_type)
        if workflow is None:
            raise WorkflowError(
                f"Workflow type '{run.workflow_type}' is not registered on '{self.task_queue}'"
            )

        context = WorkflowContext(
            run=run,
            db=self._proxy(DATABASE_QUEUE, self._config.database_activity_timeout),
            ai=self._proxy(GENERATE_QUEUE, self._config.generate_activity_timeout),
            model=self._model,
            store=self._store,
        )
        return await workflow(context, run.input)
