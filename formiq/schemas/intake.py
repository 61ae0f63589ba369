# formiq/schemas/intake.py
"""Fixed project intake form and the answers it collects."""

from typing import Annotated

from pydantic import Field, StringConstraints

from .base import CamelModel
from .enums import Commitment, Familiarity, FormKind, QuestionType, WorkStyle

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

INTAKE_QUESTION_ID_GOAL = "goal"
INTAKE_QUESTION_ID_COMMITMENT = "time_commitment"
INTAKE_QUESTION_ID_FAMILIARITY = "familiarity"
INTAKE_QUESTION_ID_WORK_STYLE = "work_style"


class FormOption(CamelModel):
    """Selectable option of a static form question."""

    value: str = Field(description="Machine value submitted by the client")
    label: str = Field(description="Human-readable label")


class FormQuestion(CamelModel):
    """Question of a static (non-generated) form."""

    id: str = Field(description="Stable question identifier")
    prompt: str = Field(description="Question text shown to the user")
    question_type: QuestionType = Field(description="Answer widget type")
    options: list[FormOption] = Field(default_factory=list)
    position: int = Field(ge=0, description="Display order")
    required: bool = Field(default=True)


class FormDefinition(CamelModel):
    """Named static form served to the client."""

    name: str = Field(description="Form name used in /intake-forms/{name}")
    kind: FormKind = Field(default=FormKind.PROJECT_INTAKE)
    questions: list[FormQuestion] = Field(default_factory=list)

    def question(self, question_id: str) -> FormQuestion | None:
        """Look up a question by id."""
        return next((q for q in self.questions if q.id == question_id), None)


def _options(enum_labels: list[tuple[str, str]]) -> list[FormOption]:
    return [FormOption(value=value, label=label) for value, label in enum_labels]


PROJECT_INTAKE_FORM = FormDefinition(
    name="project_intake",
    kind=FormKind.PROJECT_INTAKE,
    questions=[
        FormQuestion(
            id=INTAKE_QUESTION_ID_GOAL,
            prompt="What do you want to accomplish?",
            question_type=QuestionType.FREE_TEXT,
            options=[],
            position=1,
        ),
        FormQuestion(
            id=INTAKE_QUESTION_ID_COMMITMENT,
            prompt="How much time can you realistically commit per week?",
            question_type=QuestionType.SINGLE_SELECT,
            options=_options(
                [
                    (Commitment.LIGHT.value, "Light"),
                    (Commitment.MODERATE.value, "Moderate"),
                    (Commitment.HEAVY.value, "Heavy"),
                    (Commitment.DEDICATED.value, "Dedicated"),
                ]
            ),
            position=2,
        ),
        FormQuestion(
            id=INTAKE_QUESTION_ID_FAMILIARITY,
            prompt="How familiar are you with this area?",
            question_type=QuestionType.SINGLE_SELECT,
            options=_options(
                [
                    (Familiarity.COMPLETELY_NEW.value, "Completely new"),
                    (Familiarity.SOME_EXPERIENCE.value, "Some experience"),
                    (Familiarity.EXPERIENCED_REFINING.value, "Experienced / refining"),
                ]
            ),
            position=3,
        ),
        FormQuestion(
            id=INTAKE_QUESTION_ID_WORK_STYLE,
            prompt="How do you prefer to work?",
            question_type=QuestionType.SINGLE_SELECT,
            options=_options(
                [
                    (WorkStyle.SHORT_DAILY_SESSIONS.value, "Short daily sessions"),
                    (
                        WorkStyle.FOCUSED_SESSIONS_PER_WEEK.value,
                        "A few focused sessions per week",
                    ),
                    (WorkStyle.FLEXIBLE_OR_VARIES.value, "Flexible / varies"),
                ]
            ),
            position=4,
        ),
    ],
)

# Static forms addressable by name
INTAKE_FORMS: dict[str, FormDefinition] = {PROJECT_INTAKE_FORM.name: PROJECT_INTAKE_FORM}


class ProjectIntakeAnswers(CamelModel):
    """Answers to the project intake form."""

    goal: NonEmptyStr = Field(description="What the user wants to accomplish")
    commitment: Commitment
    familiarity: Familiarity
    work_style: WorkStyle
