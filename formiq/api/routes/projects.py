# formiq/api/routes/projects.py
"""Project creation, focus questions, focus responses and project reads."""

import logging

from fastapi import APIRouter, status

from formiq.errors import NotFoundError
from formiq.schemas.enums import FormKind
from formiq.schemas.inputs import (
    CreateFocusFormInput,
    CreateProjectInput,
    CreateProjectRequest,
    FocusResponsesRequest,
    SubmitFocusResponsesInput,
)
from formiq.schemas.intake import ProjectIntakeAnswers
from formiq.workflow.roadmap import focus_form_name, focus_items_from, start_or_resume_roadmap

from ..deps import AIDep, DbDep, UserIdDep, WorkflowClientDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
async def list_projects(db: DbDep, user_id: UserIdDep) -> dict:
    projects = await db.get_projects_by_user_id(user_id)
    return {"projects": [project.to_wire() for project in projects]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(body: CreateProjectRequest, db: DbDep, user_id: UserIdDep) -> dict:
    """Create a draft project; the title is the trimmed goal."""
    project = await db.create_project(
        CreateProjectInput(
            user_id=user_id,
            title=body.goal,
            commitment=body.commitment,
            familiarity=body.familiarity,
            work_style=body.work_style,
            responses=body.responses,
        )
    )
    return project.to_wire()


@router.post("/start")
async def start_project(
    body: ProjectIntakeAnswers,
    db: DbDep,
    ai: AIDep,
    workflows: WorkflowClientDep,
    user_id: UserIdDep,
) -> dict:
    """
    Create a project from intake answers and ask its focus questions.

    The roadmap workflow is started right away; it waits for the focus
    responses before generating milestones.
    """
    logger.info(
        f"Received new project intake (commitment={body.commitment.value}, "
        f"familiarity={body.familiarity.value}, workStyle={body.work_style.value})"
    )
    project = await db.create_project(
        CreateProjectInput(
            user_id=user_id,
            title=body.goal,
            commitment=body.commitment,
            familiarity=body.familiarity,
            work_style=body.work_style,
        )
    )

    focus_questions = await ai.generate_focus_questions(body)
    await db.create_focus_form(
        CreateFocusFormInput(
            user_id=user_id,
            project_id=project.id,
            name=focus_form_name(project.id),
            kind=FormKind.FOCUS_QUESTIONS,
            items=focus_items_from(focus_questions),
        )
    )

    handle = await start_or_resume_roadmap(workflows, user_id, project.id)
    return {
        "goal": body.goal,
        "project": project.to_wire(),
        "focusQuestions": focus_questions.to_wire(),
        "workflowId": handle.workflow_id,
        "status": "ok",
    }


@router.get("/{project_id}")
async def get_project(project_id: str, db: DbDep, user_id: UserIdDep) -> dict:
    try:
        details = await db.get_project_details(user_id, project_id)
    except NotFoundError as e:
        raise NotFoundError("Project not found") from e
    return details.to_wire()


@router.get("/{project_id}/focus-form")
async def get_project_focus_form(project_id: str, db: DbDep, user_id: UserIdDep) -> dict:
    focus_form = await db.get_project_focus_form(user_id, project_id)
    if focus_form is None:
        raise NotFoundError("Focus form not found")
    return {"focusForm": focus_form.to_wire()}


@router.put("/{project_id}/focus-responses")
async def submit_focus_responses(
    project_id: str,
    body: FocusResponsesRequest,
    db: DbDep,
    workflows: WorkflowClientDep,
    user_id: UserIdDep,
) -> dict:
    """Store focus answers; once none are missing, the roadmap workflow continues."""
    details = await db.submit_focus_responses(
        SubmitFocusResponsesInput(
            user_id=user_id, project_id=project_id, responses=body.responses
        )
    )

    focus_form = details.project.focus_form
    if focus_form is not None and not focus_form.unanswered:
        handle = await start_or_resume_roadmap(workflows, user_id, project_id)
        logger.info(f"All focus questions answered, roadmap workflow {handle.workflow_id} queued")
    return details.to_wire()
