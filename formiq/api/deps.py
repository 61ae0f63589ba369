# formiq/api/deps.py
"""Request dependencies: services from app state and the requesting user."""

from typing import Annotated

from fastapi import Depends, Header, Request

from formiq.ai.service import AIService
from formiq.background.lifecycle import ServerLifecycle
from formiq.db.service import DatabaseService
from formiq.workflow.client import WorkflowClient


def get_lifecycle(request: Request) -> ServerLifecycle:
    return request.app.state.lifecycle


LifecycleDep = Annotated[ServerLifecycle, Depends(get_lifecycle)]


def get_db(lifecycle: LifecycleDep) -> DatabaseService:
    return lifecycle.db


def get_ai(lifecycle: LifecycleDep) -> AIService:
    return lifecycle.ai


def get_workflow_client(lifecycle: LifecycleDep) -> WorkflowClient:
    return lifecycle.workflow_client


def get_user_id(
    lifecycle: LifecycleDep, x_user_id: Annotated[str | None, Header()] = None
) -> str:
    """User from the X-User-Id header, else the configured default user."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return lifecycle.config.default_user_id


DbDep = Annotated[DatabaseService, Depends(get_db)]
AIDep = Annotated[AIService, Depends(get_ai)]
WorkflowClientDep = Annotated[WorkflowClient, Depends(get_workflow_client)]
UserIdDep = Annotated[str, Depends(get_user_id)]
