# formiq/schemas/inputs.py
"""Inputs accepted by the database service and the HTTP API."""

from typing import Any

from pydantic import Field

from .base import CamelModel
from .enums import (
    Commitment,
    Familiarity,
    FormKind,
    PromptStage,
    PromptStatus,
    QuestionType,
    WorkStyle,
)
from .intake import NonEmptyStr, ProjectIntakeAnswers


class UserProjectInput(CamelModel):
    """Ownership key carried by every project-scoped operation."""

    user_id: NonEmptyStr
    project_id: NonEmptyStr


class QuestionResponseInput(CamelModel):
    """Answer to one intake question."""

    question_id: NonEmptyStr
    values: list[str] = Field(default_factory=list)


class CreateProjectInput(CamelModel):
    user_id: NonEmptyStr
    title: NonEmptyStr
    commitment: Commitment
    familiarity: Familiarity
    work_style: WorkStyle
    responses: list[QuestionResponseInput] = Field(default_factory=list)


class CreateFocusItemInput(CamelModel):
    question: NonEmptyStr
    question_type: QuestionType
    options: list[str] = Field(default_factory=list)
    position: int = Field(ge=0)


class CreateFocusFormInput(UserProjectInput):
    name: NonEmptyStr
    kind: FormKind = FormKind.FOCUS_QUESTIONS
    items: list[CreateFocusItemInput] = Field(default_factory=list)


class ReplaceFocusFormItemsInput(CamelModel):
    user_id: NonEmptyStr
    form_id: NonEmptyStr
    items: list[CreateFocusItemInput] = Field(default_factory=list)


class FocusResponseInput(CamelModel):
    """
    Answer to one focus item.

    Multi-select answers may be sent as a list; they are stored as a JSON
    encoded string.
    """

    focus_item_id: NonEmptyStr
    answer: str | list[str]


class SubmitFocusResponsesInput(UserProjectInput):
    responses: list[FocusResponseInput] = Field(min_length=1)


class CreateMilestoneInput(CamelModel):
    title: NonEmptyStr
    summary: str
    position: int = Field(ge=0)


class CreateProjectMilestonesInput(UserProjectInput):
    milestones: list[CreateMilestoneInput] = Field(min_length=1)


class CreateTaskInput(CamelModel):
    title: NonEmptyStr
    description: str
    position: int = Field(gt=0)


class CreateMilestoneTasksInput(UserProjectInput):
    milestone_id: NonEmptyStr
    tasks: list[CreateTaskInput] = Field(min_length=1)


class RecordPromptExecutionInput(CamelModel):
    project_id: NonEmptyStr
    stage: PromptStage
    status: PromptStatus
    input: Any = None
    output: Any = None
    model: str | None = None
    milestone_id: str | None = None
    task_id: str | None = None
    metadata: Any = None


class CreateProjectRequest(ProjectIntakeAnswers):
    """Body of POST /projects: intake answers plus optional intake responses."""

    responses: list[QuestionResponseInput] = Field(default_factory=list)


class FocusResponsesRequest(CamelModel):
    """Body of PUT /projects/{projectId}/focus-responses."""

    responses: list[FocusResponseInput] = Field(min_length=1)
