# formiq/ai/service.py
"""AI service: focus questions, milestone outlines and task schedules."""

import json
import logging

from formiq.llm.types import StructuredLLMClient
from formiq.schemas.dtos import MilestoneDto, ProjectContextDto
from formiq.schemas.enums import QuestionType
from formiq.schemas.generation import (
    FOCUS_QUESTIONS_JSON_SCHEMA,
    MILESTONE_TASK_CONTEXT_JSON_SCHEMA,
    PROJECT_CONTEXT_JSON_SCHEMA,
    PROJECT_INTAKE_JSON_SCHEMA,
    PROJECT_OUTLINE_JSON_SCHEMA,
    TASK_SCHEDULE_JSON_SCHEMA,
    FocusQuestionsDefinition,
    ProjectOutline,
    TaskSchedule,
)
from formiq.schemas.intake import ProjectIntakeAnswers

from .contexts import MilestoneContext, MilestoneTaskContext, ProjectContext
from .prompts import load_prompt
from .structured import request_structured_json

logger = logging.getLogger(__name__)


def build_user_prompt(schemas: dict[str, dict], context_label: str, payload: dict) -> str:
    """
    Render schema declarations followed by the serialized context.

    Args:
        schemas: Ordered label → JSON schema (e.g. {"PROJECT_CONTEXT_JSON_SCHEMA": ...})
        context_label: Label of the payload (e.g. "PROJECT_CONTEXT_JSON")
        payload: Context document

    Returns:
        Newline-joined prompt
    """
    lines = [f"{label}: {json.dumps(schema, indent=2)}" for label, schema in schemas.items()]
    lines.append(f"{context_label}:")
    lines.append(json.dumps(payload, indent=2))
    return "\n".join(lines)


class AIService:
    """
    Generation operations on top of a structured-output LLM client.

    Every operation validates the model's answer and repairs it once; a
    second failure raises GenerationError.
    """

    def __init__(self, client: StructuredLLMClient):
        self.client = client

    @property
    def model(self) -> str:
        return self.client.model

    async def check_provider(self) -> None:
        """
        Fail fast when the model provider is unreachable.

        Raises:
            ConnectionError: If the client's health check fails
        """
        healthy = await self.client.health_check()
        if not healthy:
            raise ConnectionError(
                f"LLM health check failed: provider not available for model {self.model}"
            )

    async def generate_focus_questions(
        self, answers: ProjectIntakeAnswers
    ) -> FocusQuestionsDefinition:
        """
        Generate clarifying questions for a stated goal.

        Args:
            answers: Intake answers (goal, commitment, familiarity, work style)

        Returns:
            FocusQuestionsDefinition ordered by position, free-text
            questions without options
        """
        user_prompt = build_user_prompt(
            {
                "PROJECT_INTAKE_JSON_SCHEMA": PROJECT_INTAKE_JSON_SCHEMA,
                "FOCUS_QUESTIONS_JSON_SCHEMA": FOCUS_QUESTIONS_JSON_SCHEMA,
            },
            "PROJECT_INTAKE_JSON",
            answers.to_wire(),
        )
        definition = await request_structured_json(
            self.client,
            system_prompt=load_prompt("focus_questions"),
            user_prompt=user_prompt,
            schema_name="focus_questions",
            schema=FOCUS_QUESTIONS_JSON_SCHEMA,
            description="FormIQ focus questions payload",
            output_model=FocusQuestionsDefinition,
        )

        questions = sorted(definition.questions, key=lambda q: q.position)
        for question in questions:
            if question.question_type == QuestionType.FREE_TEXT:
                question.options = []
        logger.info(f"Generated {len(questions)} focus question(s)")
        return FocusQuestionsDefinition(questions=questions)

    async def generate_project_outline(self, project: ProjectContextDto) -> ProjectOutline:
        """Generate the milestone outline for a project, in execution order."""
        user_prompt = build_user_prompt(
            {
                "PROJECT_CONTEXT_JSON_SCHEMA": PROJECT_CONTEXT_JSON_SCHEMA,
                "PROJECT_PLAN_JSON_SCHEMA": PROJECT_OUTLINE_JSON_SCHEMA,
            },
            "PROJECT_CONTEXT_JSON",
            ProjectContext.from_details(project).to_json(),
        )
        outline = await request_structured_json(
            self.client,
            system_prompt=load_prompt("project_outline"),
            user_prompt=user_prompt,
            schema_name="project_outline",
            schema=PROJECT_OUTLINE_JSON_SCHEMA,
            description="FormIQ project outline payload",
            output_model=ProjectOutline,
        )
        logger.info(f"Generated outline with {len(outline.milestones)} milestone(s)")
        return outline

    async def generate_tasks_for_milestone(
        self, project: ProjectContextDto, milestone: MilestoneDto
    ) -> TaskSchedule:
        """Generate a day-by-day task schedule for one milestone."""
        context = MilestoneTaskContext(
            ProjectContext.from_details(project), MilestoneContext(milestone)
        )
        user_prompt = build_user_prompt(
            {
                "MILESTONE_TASK_CONTEXT_JSON_SCHEMA": MILESTONE_TASK_CONTEXT_JSON_SCHEMA,
                "TASK_SCHEDULE_JSON_SCHEMA": TASK_SCHEDULE_JSON_SCHEMA,
            },
            "MILESTONE_TASK_CONTEXT_JSON",
            context.to_json(),
        )
        schedule = await request_structured_json(
            self.client,
            system_prompt=load_prompt("task_generation"),
            user_prompt=user_prompt,
            schema_name="task_schedule",
            schema=TASK_SCHEDULE_JSON_SCHEMA,
            description="FormIQ task schedule payload",
            output_model=TaskSchedule,
        )
        logger.info(
            f"Generated {len(schedule.tasks)} task(s) for milestone {milestone.position}"
        )
        return schedule
