"""Pydantic schemas for intake answers, generated output, DTOs and service inputs."""

from .dtos import (
    FocusFormDto,
    FocusItemDto,
    FormRecordDto,
    MilestoneDto,
    ProjectContextDto,
    ProjectContextMilestoneDto,
    ProjectContextProjectDto,
    ProjectDto,
    ProjectEventDto,
    ProjectSummaryDto,
    PromptExecutionDto,
    TaskDto,
)
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
from .generation import (
    FocusQuestion,
    FocusQuestionsDefinition,
    GeneratedTask,
    OutlineMilestone,
    ProjectOutline,
    TaskSchedule,
)
from .intake import INTAKE_FORMS, PROJECT_INTAKE_FORM, FormDefinition, ProjectIntakeAnswers
from .validation import format_issues, parse_json_payload, parse_payload

__all__ = [
    "INTAKE_FORMS",
    "PROJECT_INTAKE_FORM",
    "Commitment",
    "Familiarity",
    "FocusFormDto",
    "FocusItemDto",
    "FocusQuestion",
    "FocusQuestionsDefinition",
    "FormDefinition",
    "FormKind",
    "FormRecordDto",
    "GeneratedTask",
    "MilestoneDto",
    "OutlineMilestone",
    "ProgressStatus",
    "ProjectContextDto",
    "ProjectContextMilestoneDto",
    "ProjectContextProjectDto",
    "ProjectDto",
    "ProjectEventDto",
    "ProjectEventType",
    "ProjectIntakeAnswers",
    "ProjectOutline",
    "ProjectStatus",
    "ProjectSummaryDto",
    "PromptExecutionDto",
    "PromptStage",
    "PromptStatus",
    "QuestionType",
    "TaskDto",
    "TaskSchedule",
    "WorkStyle",
    "format_issues",
    "parse_json_payload",
    "parse_payload",
]
