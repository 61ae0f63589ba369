# formiq/api/routes/intake.py
"""Static intake forms and generated focus forms by name."""

from fastapi import APIRouter

from formiq.errors import NotFoundError
from formiq.schemas.intake import INTAKE_FORMS, PROJECT_INTAKE_FORM

from ..deps import DbDep, UserIdDep

router = APIRouter(tags=["intake"])


@router.get("/project-intake/questions")
async def get_project_intake_questions() -> dict:
    """The fixed project intake form."""
    return {"form": PROJECT_INTAKE_FORM.to_wire()}


@router.get("/intake-forms/{name}")
async def get_intake_form(name: str) -> dict:
    form = INTAKE_FORMS.get(name)
    if form is None:
        raise NotFoundError(f"Intake form '{name}' not found")
    return {"form": form.to_wire()}


@router.get("/focus-questions/{name}")
async def get_focus_questions(name: str, db: DbDep, user_id: UserIdDep) -> dict:
    """A generated focus form by its unique name, if the user owns its project."""
    focus_form = await db.get_focus_form_by_name(name, user_id=user_id)
    if focus_form is None:
        raise NotFoundError("Focus form not found")
    return {"focusForm": focus_form.to_wire()}
