# formiq/workflow/roadmap.py
"""
GenerateProjectRoadmap: focus questions → answers → milestones → tasks.

Each step checks persisted state before doing any work, so a run that
crashed, failed or was parked picks up where it stopped when it is queued
again.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from formiq.ai.contexts import MilestoneContext, MilestoneTaskContext, ProjectContext
from formiq.errors import NotFoundError, WorkflowAlreadyStartedError
from formiq.schemas.base import CamelModel
from formiq.schemas.dtos import ProjectContextDto
from formiq.schemas.enums import FormKind, ProjectStatus, PromptStage, PromptStatus
from formiq.schemas.generation import FocusQuestionsDefinition
from formiq.schemas.inputs import (
    CreateFocusFormInput,
    CreateFocusItemInput,
    CreateMilestoneInput,
    CreateMilestoneTasksInput,
    CreateProjectMilestonesInput,
    CreateTaskInput,
    RecordPromptExecutionInput,
)
from formiq.schemas.intake import NonEmptyStr, ProjectIntakeAnswers
from formiq.schemas.validation import parse_payload

from .client import WorkflowClient, WorkflowHandle
from .runs import RunState
from .worker import WorkflowContext, WorkflowSuspended

logger = logging.getLogger(__name__)

WORKFLOW_NAME = "GenerateProjectRoadmap"

ResultT = TypeVar("ResultT", bound=BaseModel)


class GenerateProjectRoadmapInput(CamelModel):
    user_id: NonEmptyStr
    project_id: NonEmptyStr


def workflow_id_for(project_id: str) -> str:
    """One roadmap run per project."""
    return f"generate-roadmap-{project_id}"


def focus_form_name(project_id: str) -> str:
    """Unique form name: creation time in ms plus a project id prefix."""
    return f"focus-questions-{int(time.time() * 1000)}-{project_id[:8]}"


def intake_answers_for(details: ProjectContextDto) -> ProjectIntakeAnswers:
    """Rebuild the intake answers a project was created from."""
    project = details.project
    return ProjectIntakeAnswers(
        goal=project.title,
        commitment=project.commitment,
        familiarity=project.familiarity,
        work_style=project.work_style,
    )


def focus_items_from(definition: FocusQuestionsDefinition) -> list[CreateFocusItemInput]:
    return [
        CreateFocusItemInput(
            question=question.prompt,
            question_type=question.question_type,
            options=question.options,
            position=question.position,
        )
        for question in definition.questions
    ]


def task_description(objective: str, body: str) -> str:
    return "\n\n".join(part for part in (objective.strip(), body.strip()) if part)


async def _generate(
    ctx: WorkflowContext,
    project_id: str,
    stage: PromptStage,
    prompt_input: Any,
    call: Callable[[], Awaitable[ResultT]],
    milestone_id: str | None = None,
) -> ResultT:
    """Run one generation activity and append its prompt execution record."""
    try:
        result = await call()
    except Exception as e:
        await ctx.db.record_prompt_execution(
            RecordPromptExecutionInput(
                project_id=project_id,
                milestone_id=milestone_id,
                stage=stage,
                status=PromptStatus.FAILED,
                input=prompt_input,
                model=ctx.model,
                metadata={"error": f"{type(e).__name__}: {e}", "attempt": ctx.run.attempt},
            )
        )
        raise

    await ctx.db.record_prompt_execution(
        RecordPromptExecutionInput(
            project_id=project_id,
            milestone_id=milestone_id,
            stage=stage,
            status=PromptStatus.SUCCESS,
            input=prompt_input,
            output=result.to_wire() if isinstance(result, CamelModel) else result,
            model=ctx.model,
            metadata={"attempt": ctx.run.attempt},
        )
    )
    return result


async def generate_project_roadmap(ctx: WorkflowContext, payload: dict[str, Any]) -> dict:
    """
    Workflow body.

    Steps:
        1. Generate and persist focus questions if the project has no focus form
           (after checking the model provider is reachable)
        2. Park the run while any focus item is unanswered
        3. Generate and persist the milestone outline if there are no milestones
        4. Generate and persist tasks for every milestone without tasks, in order
        5. Mark the project ready

    Args:
        ctx: Activity proxies and the current run
        payload: {"userId", "projectId"}

    Returns:
        Summary with milestone and task counts

    Raises:
        WorkflowSuspended: While focus responses are missing
    """
    data = parse_payload(GenerateProjectRoadmapInput, payload)
    user_id, project_id = data.user_id, data.project_id

    await ctx.set_step("load_project")
    details: ProjectContextDto = await ctx.db.get_project_details(user_id, project_id)

    if details.project.focus_form is None:
        await ctx.set_step("health_check")
        await ctx.ai.check_provider()

        await ctx.set_step("focus_questions")
        answers = intake_answers_for(details)
        definition = await _generate(
            ctx,
            project_id,
            PromptStage.PROJECT_CONTEXT,
            answers.to_wire(),
            lambda: ctx.ai.generate_focus_questions(answers),
        )
        await ctx.db.create_focus_form(
            CreateFocusFormInput(
                user_id=user_id,
                project_id=project_id,
                name=focus_form_name(project_id),
                kind=FormKind.FOCUS_QUESTIONS,
                items=focus_items_from(definition),
            )
        )
        details = await ctx.db.get_project_details(user_id, project_id)

    unanswered = details.project.focus_form.unanswered
    if unanswered:
        raise WorkflowSuspended(
            f"Waiting for {len(unanswered)} focus response(s)", step="awaiting_focus_responses"
        )

    needs_generation = not details.project.milestones or any(
        not milestone.tasks for milestone in details.project.milestones
    )
    if needs_generation:
        await ctx.set_step("health_check")
        await ctx.ai.check_provider()
        if details.project.status != ProjectStatus.GENERATING:
            await ctx.db.update_project_status(user_id, project_id, ProjectStatus.GENERATING)

    if not details.project.milestones:
        await ctx.set_step("milestone_outline")
        outline = await _generate(
            ctx,
            project_id,
            PromptStage.MILESTONE_OUTLINE,
            ProjectContext.from_details(details).to_json(),
            lambda: ctx.ai.generate_project_outline(details),
        )
        await ctx.db.create_project_milestones(
            CreateProjectMilestonesInput(
                user_id=user_id,
                project_id=project_id,
                milestones=[
                    CreateMilestoneInput(
                        title=milestone.title, summary=milestone.description, position=index
                    )
                    for index, milestone in enumerate(outline.milestones)
                ],
            )
        )
        details = await ctx.db.get_project_details(user_id, project_id)

    project_context = ProjectContext.from_details(details)
    task_count = 0
    for milestone in sorted(details.project.milestones, key=lambda m: m.position):
        if milestone.tasks:
            task_count += len(milestone.tasks)
            continue

        await ctx.set_step(f"tasks:{milestone.position}")
        schedule = await _generate(
            ctx,
            project_id,
            PromptStage.TASK_GENERATION,
            MilestoneTaskContext(project_context, MilestoneContext(milestone)).to_json(),
            lambda milestone=milestone: ctx.ai.generate_tasks_for_milestone(details, milestone),
            milestone_id=milestone.id,
        )
        created = await ctx.db.create_milestone_tasks(
            CreateMilestoneTasksInput(
                user_id=user_id,
                project_id=project_id,
                milestone_id=milestone.id,
                tasks=[
                    CreateTaskInput(
                        title=task.title,
                        description=task_description(task.objective, task.body),
                        position=index + 1,
                    )
                    for index, task in enumerate(sorted(schedule.tasks, key=lambda t: t.day))
                ],
            )
        )
        task_count += len(created)

    await ctx.set_step("finalize")
    await ctx.db.update_project_status(user_id, project_id, ProjectStatus.READY)

    return {
        "projectId": project_id,
        "milestones": len(details.project.milestones),
        "tasks": task_count,
    }


async def start_or_resume_roadmap(
    client: WorkflowClient, user_id: str, project_id: str
) -> WorkflowHandle:
    """
    Make sure a roadmap run for the project is queued or in progress.

    Parked runs are resumed, a running one is re-queued once it parks,
    finished ones are started again and queued ones are left alone.
    """
    workflow_id = workflow_id_for(project_id)
    handle = client.get_handle(workflow_id)
    try:
        record = await handle.describe()
    except NotFoundError:
        record = None

    if record is not None and record.state in (RunState.AWAITING_INPUT, RunState.RUNNING):
        return await client.signal_resume(workflow_id)
    if record is not None and record.state == RunState.QUEUED:
        return handle

    try:
        return await client.start(
            WORKFLOW_NAME,
            GenerateProjectRoadmapInput(user_id=user_id, project_id=project_id).to_wire(),
            workflow_id=workflow_id,
        )
    except WorkflowAlreadyStartedError:
        logger.info(f"Roadmap workflow {workflow_id} was started concurrently")
        return handle


WORKFLOWS = {WORKFLOW_NAME: generate_project_roadmap}
