# formiq/workflow/client.py
"""Client for starting, resuming, retrying and awaiting workflow runs."""

import asyncio
import logging
from typing import Any

from formiq.errors import (
    ConflictError,
    NotFoundError,
    WorkflowAlreadyStartedError,
    WorkflowFailedError,
)

from .activities import WORKFLOW_QUEUE
from .runs import ACTIVE_STATES, RunState, WorkflowRunRecord, WorkflowRunStore

logger = logging.getLogger(__name__)


class WorkflowHandle:
    """Reference to one workflow run."""

    def __init__(self, store: WorkflowRunStore, workflow_id: str, poll_interval: float = 0.5):
        self._store = store
        self.workflow_id = workflow_id
        self._poll_interval = poll_interval

    async def describe(self) -> WorkflowRunRecord:
        """
        Get the current run record.

        Raises:
            NotFoundError: If the run doesn't exist
        """
        record = await self._store.get(self.workflow_id)
        if record is None:
            raise NotFoundError(f"Workflow {self.workflow_id} not found")
        return record

    async def wait(self, *states: RunState, timeout: float | None = None) -> WorkflowRunRecord:
        """
        Poll until the run reaches one of the given states.

        Args:
            *states: States to wait for (default: complete, failed, interrupted)
            timeout: Seconds before giving up (None = wait forever)

        Raises:
            asyncio.TimeoutError: If the timeout elapses first
        """
        wanted = set(states) or {RunState.COMPLETE, RunState.FAILED, RunState.INTERRUPTED}

        async def _poll() -> WorkflowRunRecord:
            while True:
                record = await self.describe()
                if record.state in wanted:
                    return record
                await asyncio.sleep(self._poll_interval)

        return await asyncio.wait_for(_poll(), timeout=timeout)

    async def result(self, timeout: float | None = None) -> Any:
        """
        Wait for completion and return the workflow's result.

        Raises:
            WorkflowFailedError: If the run failed or was interrupted
        """
        record = await self.wait(timeout=timeout)
        if record.state != RunState.COMPLETE:
            raise WorkflowFailedError(
                f"Workflow {self.workflow_id} {record.state.value}: {record.error}"
            )
        return record.result


class WorkflowClient:
    """Starts named workflows on a task queue with typed input."""

    def __init__(
        self,
        store: WorkflowRunStore,
        default_task_queue: str = WORKFLOW_QUEUE,
        poll_interval: float = 0.5,
    ) -> None:
        self._store = store
        self._default_task_queue = default_task_queue
        self._poll_interval = poll_interval

    @property
    def namespace(self) -> str:
        return self._store.namespace

    def get_handle(self, workflow_id: str) -> WorkflowHandle:
        return WorkflowHandle(self._store, workflow_id, self._poll_interval)

    async def list_runs(self, state: RunState | None = None) -> list[WorkflowRunRecord]:
        return await self._store.list_all(state)

    async def start(
        self,
        workflow: str,
        input: dict[str, Any],
        *,
        workflow_id: str,
        task_queue: str | None = None,
    ) -> WorkflowHandle:
        """
        Queue a workflow run.

        A finished run with the same id (complete, failed or interrupted) is
        queued again with the new input.

        Args:
            workflow: Registered workflow name
            input: JSON-compatible workflow input
            workflow_id: Caller-chosen unique run id
            task_queue: Queue of the worker hosting the workflow

        Returns:
            Handle to the queued run

        Raises:
            WorkflowAlreadyStartedError: If a queued, running or parked run exists
        """
        task_queue = task_queue or self._default_task_queue
        existing = await self._store.get(workflow_id)

        if existing is None:
            await self._store.add(
                WorkflowRunRecord(
                    namespace=self._store.namespace,
                    workflow_id=workflow_id,
                    workflow_type=workflow,
                    task_queue=task_queue,
                    input=input,
                    state=RunState.QUEUED,
                    current_step=None,
                    attempt=0,
                )
            )
        elif existing.state in ACTIVE_STATES:
            raise WorkflowAlreadyStartedError(
                f"Workflow {workflow_id} is already {existing.state.value}"
            )
        else:
            await self._store.update(
                workflow_id,
                workflow_type=workflow,
                task_queue=task_queue,
                input=input,
                state=RunState.QUEUED,
                current_step=None,
                error=None,
                result=None,
            )

        logger.info(f"Started workflow {workflow} as {workflow_id} on '{task_queue}'")
        return self.get_handle(workflow_id)

    async def resume(self, workflow_id: str) -> WorkflowHandle:
        """
        Re-queue a run parked in awaiting_input.

        Raises:
            NotFoundError: If the run doesn't exist
            ConflictError: If the run isn't awaiting input
        """
        record = await self.get_handle(workflow_id).describe()
        if record.state != RunState.AWAITING_INPUT:
            raise ConflictError(
                f"Workflow {workflow_id} is in '{record.state.value}' state. "
                f"Only runs in 'awaiting_input' state can be resumed."
            )
        await self._store.update(workflow_id, state=RunState.QUEUED)
        logger.info(f"Resumed workflow {workflow_id}")
        return self.get_handle(workflow_id)

    async def signal_resume(self, workflow_id: str) -> WorkflowHandle:
        """
        Tell a running or parked run that the input it waits for has arrived.

        A parked run is queued now; a running one is queued again as soon as
        it parks.

        Raises:
            NotFoundError: If the run doesn't exist
        """
        record = await self._store.request_resume(workflow_id)
        if record is None:
            raise NotFoundError(f"Workflow {workflow_id} not found")
        logger.info(f"Resume signalled for workflow {workflow_id} ({record.state.value})")
        return self.get_handle(workflow_id)

    async def retry(self, workflow_id: str) -> WorkflowHandle:
        """
        Re-queue a failed or interrupted run.

        Raises:
            NotFoundError: If the run doesn't exist
            ConflictError: If the run isn't failed or interrupted
        """
        record = await self.get_handle(workflow_id).describe()
        if record.state not in (RunState.FAILED, RunState.INTERRUPTED):
            raise ConflictError(
                f"Workflow {workflow_id} is in '{record.state.value}' state. "
                f"Only failed or interrupted runs can be retried."
            )
        await self._store.update(
            workflow_id, state=RunState.QUEUED, error=None, current_step=None
        )
        logger.info(f"Retrying workflow {workflow_id}")
        return self.get_handle(workflow_id)
