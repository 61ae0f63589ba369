"""
Embedded durable workflow runtime.

Runs are stored in the application database; workers poll their task queue
and call activities through proxies with per-queue timeouts and retries.
"""

from .activities import (
    DATABASE_QUEUE,
    GENERATE_QUEUE,
    WORKFLOW_QUEUE,
    ActivityOptions,
    ActivityProxy,
    ActivityRegistry,
    ActivityTimeoutError,
    build_ai_activities,
    build_database_activities,
)
from .client import WorkflowClient, WorkflowHandle
from .roadmap import (
    WORKFLOW_NAME,
    WORKFLOWS,
    GenerateProjectRoadmapInput,
    generate_project_roadmap,
    start_or_resume_roadmap,
    workflow_id_for,
)
from .runs import RunState, WorkflowRunRecord, WorkflowRunStore
from .worker import Worker, WorkflowContext, WorkflowSuspended

__all__ = [
    "DATABASE_QUEUE",
    "GENERATE_QUEUE",
    "WORKFLOWS",
    "WORKFLOW_NAME",
    "WORKFLOW_QUEUE",
    "ActivityOptions",
    "ActivityProxy",
    "ActivityRegistry",
    "ActivityTimeoutError",
    "GenerateProjectRoadmapInput",
    "RunState",
    "Worker",
    "WorkflowClient",
    "WorkflowContext",
    "WorkflowHandle",
    "WorkflowRunRecord",
    "WorkflowRunStore",
    "WorkflowSuspended",
    "build_ai_activities",
    "build_database_activities",
    "generate_project_roadmap",
    "start_or_resume_roadmap",
    "workflow_id_for",
]
