# formiq/schemas/dtos.py
"""
Read models returned by the database service and the HTTP API.

DTOs are plain data (no ORM objects) so they can cross activity boundaries
and be serialised as-is with CamelModel.to_wire().
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from .base import CamelModel
from .enums import (
    Commitment,
    Familiarity,
    FormKind,
    ProgressStatus,
    ProjectEventType,
    ProjectStatus,
    PromptStage,
    PromptStatus,
    QuestionType,
    WorkStyle,
)


class FormRecordDto(CamelModel):
    id: str
    name: str
    project_id: str
    kind: FormKind


class FocusItemDto(CamelModel):
    """Focus question plus the user's answer, if any."""

    id: str
    question: str
    question_type: QuestionType
    options: list[str] = Field(default_factory=list)
    position: int
    answer: str | None = None
    answered_at: datetime | None = None


class FocusFormDto(CamelModel):
    id: str
    name: str
    project_id: str
    kind: FormKind = FormKind.FOCUS_QUESTIONS
    items: list[FocusItemDto] = Field(default_factory=list)

    @property
    def unanswered(self) -> list[FocusItemDto]:
        """Items still waiting for an answer."""
        return [item for item in self.items if item.answer is None]


class MilestoneDto(CamelModel):
    id: str
    project_id: str
    title: str
    summary: str
    position: int
    status: ProgressStatus
    generated_at: datetime


class TaskDto(CamelModel):
    id: str
    milestone_id: str
    title: str
    description: str
    position: int
    status: ProgressStatus
    generated_at: datetime
    completed_at: datetime | None = None


class ProjectQuestionDto(CamelModel):
    id: str
    prompt: str
    question_type: QuestionType
    options: list[str] = Field(default_factory=list)


class ProjectResponseAnswerDto(CamelModel):
    question_id: str
    values: list[str] = Field(default_factory=list)


class ProjectResponseDto(CamelModel):
    """Intake answer joined with the question it answers."""

    question: ProjectQuestionDto
    answer: ProjectResponseAnswerDto


class ProjectDto(CamelModel):
    id: str
    user_id: str
    title: str
    commitment: Commitment
    familiarity: Familiarity
    work_style: WorkStyle
    status: ProjectStatus
    generated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    responses: list[ProjectResponseDto] = Field(default_factory=list)


class ProjectSummaryDto(CamelModel):
    id: str
    title: str
    status: ProjectStatus


class PromptExecutionDto(CamelModel):
    """Audit record of one generation call."""

    id: str
    project_id: str
    milestone_id: str | None = None
    task_id: str | None = None
    stage: PromptStage
    status: PromptStatus
    input: Any = None
    output: Any = None
    model: str | None = None
    metadata: Any = None
    created_at: datetime


class ProjectEventDto(CamelModel):
    id: str
    project_id: str
    event_type: ProjectEventType
    payload: Any = None
    created_at: datetime


class ProjectContextMilestoneDto(MilestoneDto):
    tasks: list[TaskDto] = Field(default_factory=list)


class ProjectContextProjectDto(ProjectDto):
    """Project with its full roadmap and audit trail."""

    milestones: list[ProjectContextMilestoneDto] = Field(default_factory=list)
    focus_form: FocusFormDto | None = None
    prompt_executions: list[PromptExecutionDto] = Field(default_factory=list)
    events: list[ProjectEventDto] = Field(default_factory=list)


class ProjectContextDto(CamelModel):
    project: ProjectContextProjectDto
