# formiq/schemas/generation.py
"""
Shapes of model-generated output and of the prompt contexts sent with it.

Each pydantic model validates what comes back from the provider; the
matching *_JSON_SCHEMA dict is what the provider is asked to conform to
(strict mode: every property required, no additional properties).
"""

from pydantic import Field

from .base import CamelModel
from .enums import QuestionType
from .intake import NonEmptyStr


class FocusQuestion(CamelModel):
    """One AI-generated clarifying question."""

    id: NonEmptyStr = Field(description="snake_case question id")
    prompt: NonEmptyStr
    question_type: QuestionType
    options: list[str] = Field(default_factory=list)
    position: int = Field(ge=0)


class FocusQuestionsDefinition(CamelModel):
    """Generated focus question set."""

    questions: list[FocusQuestion] = Field(min_length=1)


class OutlineMilestone(CamelModel):
    title: NonEmptyStr
    description: NonEmptyStr


class ProjectOutline(CamelModel):
    """Generated milestone outline, in execution order."""

    milestones: list[OutlineMilestone] = Field(min_length=1)


class GeneratedTask(CamelModel):
    """One day of a generated task schedule."""

    day: int = Field(ge=1)
    title: NonEmptyStr
    objective: NonEmptyStr
    body: NonEmptyStr
    estimated_minutes: float = Field(gt=0)


class TaskSchedule(CamelModel):
    """Generated task schedule for one milestone."""

    tasks: list[GeneratedTask] = Field(min_length=1)


def _object(properties: dict, required: list[str] | None = None) -> dict:
    return {
        "type": "object",
        "additionalProperties": False,
        "required": required if required is not None else list(properties),
        "properties": properties,
    }


_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

FOCUS_QUESTIONS_JSON_SCHEMA = _object(
    {
        "questions": {
            "type": "array",
            "items": _object(
                {
                    "id": _STRING,
                    "prompt": _STRING,
                    "questionType": {
                        "type": "string",
                        "enum": [t.value for t in QuestionType],
                    },
                    "options": _STRING_LIST,
                    "position": {"type": "integer", "minimum": 0},
                }
            ),
        }
    }
)

PROJECT_OUTLINE_JSON_SCHEMA = _object(
    {
        "milestones": {
            "type": "array",
            "items": _object({"title": _STRING, "description": _STRING}),
        }
    }
)

TASK_SCHEDULE_JSON_SCHEMA = _object(
    {
        "tasks": {
            "type": "array",
            "items": _object(
                {
                    "day": {"type": "integer", "minimum": 1},
                    "title": _STRING,
                    "objective": _STRING,
                    "body": _STRING,
                    "estimatedMinutes": {"type": "number", "minimum": 1},
                }
            ),
        }
    }
)

PROJECT_INTAKE_JSON_SCHEMA = _object(
    {
        "goal": _STRING,
        "commitment": _STRING,
        "familiarity": _STRING,
        "workStyle": _STRING,
    }
)

PROJECT_CONTEXT_JSON_SCHEMA = _object(
    {
        "project": _object(
            {
                "title": _STRING,
                "commitment": _STRING,
                "familiarity": _STRING,
                "workStyle": _STRING,
                "focusItems": {
                    "type": "array",
                    "items": _object({"question": _STRING, "answers": _STRING_LIST}),
                },
            }
        )
    }
)

MILESTONE_CONTEXT_JSON_SCHEMA = _object(
    {"title": _STRING, "summary": _STRING, "position": {"type": "integer"}}
)

MILESTONE_TASK_CONTEXT_JSON_SCHEMA = _object(
    {
        "projectContext": PROJECT_CONTEXT_JSON_SCHEMA,
        "milestone": MILESTONE_CONTEXT_JSON_SCHEMA,
    }
)
