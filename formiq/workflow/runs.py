# formiq/workflow/runs.py
"""
Durable workflow run records.

Runs live in the application database so any process sharing it (API with
embedded worker, standalone worker, CLI) sees the same queue.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formiq.db.tables import WorkflowRun, utcnow
from formiq.errors import WorkflowAlreadyStartedError

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Workflow run lifecycle states."""

    QUEUED = "queued"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    COMPLETE = "complete"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


# A run in one of these states blocks a new start with the same workflow id
ACTIVE_STATES = frozenset({RunState.QUEUED, RunState.RUNNING, RunState.AWAITING_INPUT})

TERMINAL_STATES = frozenset({RunState.COMPLETE, RunState.FAILED, RunState.INTERRUPTED})


@dataclass
class WorkflowRunRecord:
    """Snapshot of one workflow run."""

    namespace: str
    workflow_id: str
    workflow_type: str
    task_queue: str
    input: dict[str, Any]
    state: RunState
    current_step: str | None
    attempt: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    error: str | None = None
    result: Any = None
    resume_requested: bool = False


def _to_record(row: WorkflowRun) -> WorkflowRunRecord:
    def _utc(value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    return WorkflowRunRecord(
        namespace=row.namespace,
        workflow_id=row.workflow_id,
        workflow_type=row.workflow_type,
        task_queue=row.task_queue,
        input=row.input,
        state=RunState(row.state),
        current_step=row.current_step,
        attempt=row.attempt,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        error=row.error,
        result=row.result,
        resume_requested=row.resume_requested,
    )


_UPDATABLE_FIELDS = frozenset(
    {"workflow_type", "task_queue", "input", "state", "current_step", "attempt", "error", "result"}
)


class WorkflowRunStore:
    """Workflow run storage scoped to one namespace."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], namespace: str = "default"
    ) -> None:
        self._session_factory = session_factory
        self.namespace = namespace

    async def initialize(self) -> list[WorkflowRunRecord]:
        """
        Perform crash recovery: mark runs left in 'running' as 'interrupted'.

        Returns:
            The runs that were recovered
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(WorkflowRun).where(
                    WorkflowRun.namespace == self.namespace,
                    WorkflowRun.state == RunState.RUNNING.value,
                )
            )
            rows = list(result.scalars())
            for row in rows:
                row.state = RunState.INTERRUPTED.value
                row.error = "Server restarted during processing"
            await session.flush()
            recovered = [_to_record(row) for row in rows]

        if recovered:
            logger.warning(
                f"Crash recovery: marked {len(recovered)} running workflow run(s) as interrupted"
            )
        return recovered

    async def add(self, record: WorkflowRunRecord) -> None:
        """
        Add a run record.

        Raises:
            WorkflowAlreadyStartedError: If the workflow id already exists
        """
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    WorkflowRun(
                        namespace=self.namespace,
                        workflow_id=record.workflow_id,
                        workflow_type=record.workflow_type,
                        task_queue=record.task_queue,
                        input=record.input,
                        state=record.state.value,
                        current_step=record.current_step,
                        attempt=record.attempt,
                        error=record.error,
                        result=record.result,
                    )
                )
        except IntegrityError as e:
            raise WorkflowAlreadyStartedError(
                f"Workflow {record.workflow_id} already exists"
            ) from e
        logger.info(f"Added workflow run {record.workflow_id} ({record.workflow_type})")

    async def get(self, workflow_id: str) -> WorkflowRunRecord | None:
        """Get a run by workflow id."""
        async with self._session_factory() as session:
            row = await session.get(WorkflowRun, (self.namespace, workflow_id))
            return _to_record(row) if row else None

    async def list_all(self, state: RunState | None = None) -> list[WorkflowRunRecord]:
        """
        List runs, newest first.

        Args:
            state: Only return runs in this state
        """
        stmt = select(WorkflowRun).where(WorkflowRun.namespace == self.namespace)
        if state is not None:
            stmt = stmt.where(WorkflowRun.state == state.value)
        async with self._session_factory() as session:
            result = await session.execute(stmt.order_by(WorkflowRun.created_at.desc()))
            return [_to_record(row) for row in result.scalars()]

    async def update(self, workflow_id: str, **kwargs) -> WorkflowRunRecord:
        """
        Update fields on an existing run.

        Args:
            workflow_id: Workflow identifier
            **kwargs: Fields to update (state accepts RunState)

        Returns:
            Updated record

        Raises:
            ValueError: If the run doesn't exist
        """
        async with self._session_factory() as session, session.begin():
            row = await session.get(WorkflowRun, (self.namespace, workflow_id))
            if row is None:
                raise ValueError(f"Workflow run {workflow_id} not found")

            for key, value in kwargs.items():
                if key not in _UPDATABLE_FIELDS:
                    logger.warning(f"Ignored unknown field '{key}' in update")
                    continue
                if isinstance(value, RunState):
                    value = value.value
                setattr(row, key, value)
            row.updated_at = utcnow()
            await session.flush()
            record = _to_record(row)

        logger.debug(f"Updated workflow run {workflow_id}: {kwargs}")
        return record

    async def park(self, workflow_id: str, step: str | None = None) -> WorkflowRunRecord:
        """
        Move a running run to 'awaiting_input'.

        If a resume was requested while the run executed, the run is queued
        again instead, so input that arrived mid-run is not lost.

        Returns:
            Updated record (state AWAITING_INPUT or QUEUED)
        """
        async with self._session_factory() as session, session.begin():
            parked = await session.execute(
                update(WorkflowRun)
                .where(
                    WorkflowRun.namespace == self.namespace,
                    WorkflowRun.workflow_id == workflow_id,
                    WorkflowRun.state == RunState.RUNNING.value,
                    WorkflowRun.resume_requested.is_(False),
                )
                .values(
                    state=RunState.AWAITING_INPUT.value,
                    current_step=step,
                    error=None,
                    updated_at=utcnow(),
                )
            )
            if parked.rowcount == 0:
                await session.execute(
                    update(WorkflowRun)
                    .where(
                        WorkflowRun.namespace == self.namespace,
                        WorkflowRun.workflow_id == workflow_id,
                        WorkflowRun.state == RunState.RUNNING.value,
                    )
                    .values(
                        state=RunState.QUEUED.value,
                        resume_requested=False,
                        current_step=step,
                        error=None,
                        updated_at=utcnow(),
                    )
                )
                logger.info(f"Resume requested while {workflow_id} was running, re-queued")

        record = await self.get(workflow_id)
        if record is None:
            raise ValueError(f"Workflow run {workflow_id} not found")
        return record

    async def request_resume(self, workflow_id: str) -> WorkflowRunRecord | None:
        """
        Ask a run to continue with fresh input.

        A running run is flagged and re-queued when it parks; a run already
        parked is queued right away. Runs in other states are left alone.

        Returns:
            The run after the request, or None if it doesn't exist
        """
        async with self._session_factory() as session, session.begin():
            flagged = await session.execute(
                update(WorkflowRun)
                .where(
                    WorkflowRun.namespace == self.namespace,
                    WorkflowRun.workflow_id == workflow_id,
                    WorkflowRun.state == RunState.RUNNING.value,
                )
                .values(resume_requested=True)
            )
            if flagged.rowcount == 0:
                await session.execute(
                    update(WorkflowRun)
                    .where(
                        WorkflowRun.namespace == self.namespace,
                        WorkflowRun.workflow_id == workflow_id,
                        WorkflowRun.state == RunState.AWAITING_INPUT.value,
                    )
                    .values(state=RunState.QUEUED.value, updated_at=utcnow())
                )

        return await self.get(workflow_id)

    async def claim_next_queued(self, task_queue: str) -> WorkflowRunRecord | None:
        """
        Atomically move the oldest queued run on a task queue to 'running'.

        A conditional UPDATE makes the claim safe when several workers poll
        the same database.

        Returns:
            The claimed run (attempt already incremented), or None if idle
        """
        async with self._session_factory() as session:
            candidates = await session.execute(
                select(WorkflowRun.workflow_id)
                .where(
                    WorkflowRun.namespace == self.namespace,
                    WorkflowRun.task_queue == task_queue,
                    WorkflowRun.state == RunState.QUEUED.value,
                )
                .order_by(WorkflowRun.updated_at, WorkflowRun.created_at)
                .limit(5)
            )
            workflow_ids = list(candidates.scalars())

        for workflow_id in workflow_ids:
            async with self._session_factory() as session, session.begin():
                claimed = await session.execute(
                    update(WorkflowRun)
                    .where(
                        WorkflowRun.namespace == self.namespace,
                        WorkflowRun.workflow_id == workflow_id,
                        WorkflowRun.state == RunState.QUEUED.value,
                    )
                    .values(
                        state=RunState.RUNNING.value,
                        attempt=WorkflowRun.attempt + 1,
                        error=None,
                        resume_requested=False,
                        updated_at=utcnow(),
                    )
                )
            if claimed.rowcount == 1:
                return await self.get(workflow_id)
        return None
