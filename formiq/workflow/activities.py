# formiq/workflow/activities.py
"""
Named activities per task queue and the proxies workflows call them through.

A proxy call runs the activity in-process under a start-to-close timeout
and retries failed attempts with exponential backoff. Domain errors that a
re-run cannot fix fail the call immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from formiq.ai.service import AIService
from formiq.db.service import DatabaseService
from formiq.errors import NON_RETRYABLE_ERRORS, GenerationError, WorkflowError

logger = logging.getLogger(__name__)

WORKFLOW_QUEUE = "workflow"
DATABASE_QUEUE = "database"
GENERATE_QUEUE = "generate"

Activity = Callable[..., Awaitable[Any]]

# The AI service already repaired the output once; another round won't help
TERMINAL_ACTIVITY_ERRORS: tuple[type[Exception], ...] = NON_RETRYABLE_ERRORS + (GenerationError,)


class ActivityTimeoutError(WorkflowError):
    """Activity exceeded its start-to-close timeout."""


def is_retryable_activity_error(exception: BaseException) -> bool:
    return isinstance(exception, Exception) and not isinstance(
        exception, TERMINAL_ACTIVITY_ERRORS
    )


class ActivityRegistry:
    """Activities registered by name under the task queue that serves them."""

    def __init__(self) -> None:
        self._queues: dict[str, dict[str, Activity]] = {}

    def register(self, task_queue: str, activities: dict[str, Activity]) -> None:
        """
        Register activities for a task queue.

        Raises:
            ValueError: If an activity name is already registered on the queue
        """
        queue = self._queues.setdefault(task_queue, {})
        for name, activity in activities.items():
            if name in queue:
                raise ValueError(f"Activity '{name}' already registered on '{task_queue}'")
            queue[name] = activity
        logger.info(f"Registered {len(activities)} activities on task queue '{task_queue}'")

    def get(self, task_queue: str, name: str) -> Activity:
        """
        Look up an activity.

        Raises:
            WorkflowError: If no worker registered it on that queue
        """
        activity = self._queues.get(task_queue, {}).get(name)
        if activity is None:
            raise WorkflowError(f"No activity '{name}' registered on task queue '{task_queue}'")
        return activity

    def names(self, task_queue: str) -> list[str]:
        return sorted(self._queues.get(task_queue, {}))


@dataclass(frozen=True)
class ActivityOptions:
    """Per-proxy execution options."""

    start_to_close_timeout: float
    max_attempts: int = 3
    initial_interval: float = 1.0
    max_interval: float = 30.0


class ActivityProxy:
    """
    Attribute-style access to the activities of one task queue.

    `await proxy.create_project_milestones(data)` runs the registered
    activity with the proxy's timeout and retry policy.
    """

    def __init__(
        self, registry: ActivityRegistry, task_queue: str, options: ActivityOptions
    ) -> None:
        self._registry = registry
        self._task_queue = task_queue
        self._options = options

    def __getattr__(self, name: str) -> Callable[..., Awaitable[Any]]:
        if name.startswith("_"):
            raise AttributeError(name)

        async def _call(*args: Any, **kwargs: Any) -> Any:
            return await self.execute(name, *args, **kwargs)

        _call.__name__ = name
        return _call

    async def execute(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run an activity with timeout and retries.

        Raises:
            WorkflowError: If the activity isn't registered
            ActivityTimeoutError: If the final attempt timed out
            Exception: The activity's own error after the final attempt
        """
        activity = self._registry.get(self._task_queue, name)
        options = self._options
        retrying = AsyncRetrying(
            stop=stop_after_attempt(options.max_attempts),
            wait=wait_exponential(
                multiplier=options.initial_interval,
                min=options.initial_interval,
                max=options.max_interval,
            ),
            retry=retry_if_exception(is_retryable_activity_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    return await asyncio.wait_for(
                        activity(*args, **kwargs), timeout=options.start_to_close_timeout
                    )
                except asyncio.TimeoutError as e:
                    raise ActivityTimeoutError(
                        f"Activity '{name}' on '{self._task_queue}' timed out after "
                        f"{options.start_to_close_timeout}s"
                    ) from e


def build_database_activities(db: DatabaseService) -> dict[str, Activity]:
    """Database operations exposed on the database task queue."""
    return {
        "get_project_details": db.get_project_details,
        "get_project_focus_form": db.get_project_focus_form,
        "create_focus_form": db.create_focus_form,
        "create_project_milestones": db.create_project_milestones,
        "create_milestone_tasks": db.create_milestone_tasks,
        "update_project_status": db.update_project_status,
        "record_prompt_execution": db.record_prompt_execution,
        "record_project_event": db.record_project_event,
    }


def build_ai_activities(ai: AIService) -> dict[str, Activity]:
    """Generation operations exposed on the generate task queue."""
    return {
        "check_provider": ai.check_provider,
        "generate_focus_questions": ai.generate_focus_questions,
        "generate_project_outline": ai.generate_project_outline,
        "generate_tasks_for_milestone": ai.generate_tasks_for_milestone,
    }
