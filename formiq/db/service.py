# formiq/db/service.py
"""
Database service: ownership-checked CRUD over projects and their roadmap.

Every project-scoped read filters on (project_id, user_id), so another user's
project is indistinguishable from a missing one. Multi-row mutations run in a
single transaction; the milestone and task creators refuse to run twice.
"""

import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from formiq.errors import ConflictError, FieldIssue, NotFoundError, PayloadValidationError
from formiq.schemas.dtos import (
    FocusFormDto,
    FormRecordDto,
    MilestoneDto,
    ProjectContextDto,
    ProjectDto,
    ProjectEventDto,
    ProjectSummaryDto,
    PromptExecutionDto,
    TaskDto,
)
from formiq.schemas.enums import (
    FormKind,
    ProgressStatus,
    ProjectEventType,
    ProjectStatus,
    QuestionType,
)
from formiq.schemas.inputs import (
    CreateFocusFormInput,
    CreateFocusItemInput,
    CreateMilestoneTasksInput,
    CreateProjectInput,
    CreateProjectMilestonesInput,
    RecordPromptExecutionInput,
    ReplaceFocusFormItemsInput,
    SubmitFocusResponsesInput,
)
from formiq.schemas.intake import PROJECT_INTAKE_FORM
from formiq.schemas.validation import format_issues, parse_payload

from .mappers import (
    map_focus_form_dto,
    map_form_record_dto,
    map_milestone_dto,
    map_project_context_dto,
    map_project_dto,
    map_project_event_dto,
    map_project_summary_dto,
    map_prompt_execution_dto,
    map_task_dto,
)
from .tables import (
    FocusForm,
    FocusItem,
    Milestone,
    Project,
    ProjectEvent,
    PromptExecution,
    Task,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)


def _coerce(model: type[InputT], data: InputT | dict) -> InputT:
    """Accept a validated model or an untyped payload."""
    if isinstance(data, model):
        return data
    return parse_payload(model, data)


def _clean_answer(answer: str | list[str]) -> str | list[str]:
    """Strip an answer; list answers also lose their blank entries."""
    if isinstance(answer, list):
        return [value.strip() for value in answer if value.strip()]
    return answer.strip()


def _project_not_found(project_id: str, user_id: str) -> NotFoundError:
    return NotFoundError(f"Project {project_id} not found for user {user_id}")


class DatabaseService:
    """
    Async persistence for users, projects, focus forms, milestones and tasks.

    Returns DTOs only; ORM objects never leave a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize database service.

        Args:
            session_factory: Session factory bound to the application engine
        """
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def ensure_user(
        self, user_id: str, email: str | None = None, password: str = "test"
    ) -> str:
        """
        Create a user if it doesn't exist yet.

        Args:
            user_id: User identifier
            email: Email (defaults to "<user_id>@formiq.local")
            password: Opaque password value

        Returns:
            The user id
        """
        async with self._session_factory() as session, session.begin():
            if await session.get(User, user_id) is None:
                session.add(
                    User(id=user_id, email=email or f"{user_id}@formiq.local", password=password)
                )
                logger.info(f"Created user {user_id}")
        return user_id

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, data: CreateProjectInput | dict) -> ProjectDto:
        """
        Create a draft project from intake answers.

        Args:
            data: Owner, title, enums and optional intake responses

        Returns:
            Created ProjectDto (status draft, no milestones)

        Raises:
            PayloadValidationError: If a response references an unknown intake question
            NotFoundError: If the user doesn't exist
        """
        data = _coerce(CreateProjectInput, data)

        issues = [
            FieldIssue(
                path=f"responses.{index}.questionId",
                reason=f"Unknown intake question '{response.question_id}'",
            )
            for index, response in enumerate(data.responses)
            if PROJECT_INTAKE_FORM.question(response.question_id) is None
        ]
        if issues:
            raise PayloadValidationError(format_issues(issues), issues)

        async with self._session_factory() as session, session.begin():
            if await session.get(User, data.user_id) is None:
                raise NotFoundError(f"User {data.user_id} not found")

            project = Project(
                user_id=data.user_id,
                title=data.title,
                commitment=data.commitment,
                familiarity=data.familiarity,
                work_style=data.work_style,
                status=ProjectStatus.DRAFT,
                responses=[
                    {"questionId": r.question_id, "values": list(r.values)}
                    for r in data.responses
                ],
            )
            session.add(project)
            await session.flush()
            dto = map_project_dto(project)

        logger.info(f"Created project {dto.id} for user {dto.user_id}")
        return dto

    async def get_project(self, user_id: str, project_id: str) -> ProjectDto | None:
        """
        Get a project owned by the user.

        Returns:
            ProjectDto, or None if missing or owned by someone else
        """
        async with self._session_factory() as session:
            project = await self._owned_project(session, user_id, project_id)
            return map_project_dto(project) if project else None

    async def get_project_details(self, user_id: str, project_id: str) -> ProjectContextDto:
        """
        Get a project with milestones, tasks, focus form and audit trail.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        async with self._session_factory() as session:
            project = await self._load_project_context(session, user_id, project_id)
            if project is None:
                raise _project_not_found(project_id, user_id)
            return map_project_context_dto(project)

    async def get_projects_by_user_id(self, user_id: str) -> list[ProjectSummaryDto]:
        """List a user's projects, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Project)
                .where(Project.user_id == user_id)
                .order_by(Project.created_at.desc())
            )
            return [map_project_summary_dto(p) for p in result.scalars()]

    async def update_project_status(
        self, user_id: str, project_id: str, status: ProjectStatus
    ) -> ProjectDto:
        """
        Store a new project status and record a status_change event.

        The transition order (draft → generating → ready) is driven by the
        roadmap workflow; this method only stores the value. Reaching ready
        stamps generated_at.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        status = ProjectStatus(status)
        async with self._session_factory() as session, session.begin():
            project = await self._owned_project(session, user_id, project_id)
            if project is None:
                raise _project_not_found(project_id, user_id)

            previous = project.status
            if previous != status:
                project.status = status
                if status == ProjectStatus.READY:
                    project.generated_at = utcnow()
                session.add(
                    ProjectEvent(
                        project_id=project.id,
                        event_type=ProjectEventType.STATUS_CHANGE,
                        payload={"from": previous.value, "to": status.value},
                    )
                )
                logger.info(f"Project {project_id}: {previous.value} -> {status.value}")
            await session.flush()
            return map_project_dto(project)

    # ------------------------------------------------------------------
    # Focus forms
    # ------------------------------------------------------------------

    async def create_focus_form(self, data: CreateFocusFormInput | dict) -> FormRecordDto:
        """
        Create the project's focus form with its items.

        Raises:
            PayloadValidationError: If kind is not focus_questions
            NotFoundError: If the project is missing or not owned by the user
            ConflictError: If the project already has a focus form or the name is taken
        """
        data = _coerce(CreateFocusFormInput, data)
        if data.kind != FormKind.FOCUS_QUESTIONS:
            issue = FieldIssue(path="kind", reason="Focus forms must have kind 'focus_questions'")
            raise PayloadValidationError(format_issues([issue]), [issue])

        async with self._session_factory() as session, session.begin():
            project = await self._owned_project(
                session, data.user_id, data.project_id, selectinload(Project.focus_form)
            )
            if project is None:
                raise _project_not_found(data.project_id, data.user_id)
            if project.focus_form is not None:
                raise ConflictError(f"Project {data.project_id} already has a focus form")

            taken = await session.scalar(
                select(func.count()).select_from(FocusForm).where(FocusForm.name == data.name)
            )
            if taken:
                raise ConflictError(f"Focus form '{data.name}' already exists")

            form = FocusForm(
                name=data.name,
                project_id=project.id,
                kind=FormKind.FOCUS_QUESTIONS,
                items=[self._new_item(item) for item in data.items],
            )
            session.add(form)
            await session.flush()
            dto = map_form_record_dto(form)

        logger.info(
            f"Created focus form {dto.name} with {len(data.items)} item(s) "
            f"for project {data.project_id}"
        )
        return dto

    async def get_project_focus_form(
        self, user_id: str, project_id: str
    ) -> FocusFormDto | None:
        """
        Get the focus form of a project owned by the user.

        Returns:
            FocusFormDto, or None if the project has none or isn't owned by the user
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(FocusForm)
                .join(Project, FocusForm.project_id == Project.id)
                .where(Project.id == project_id, Project.user_id == user_id)
                .options(selectinload(FocusForm.items))
            )
            form = result.scalar_one_or_none()
            return map_focus_form_dto(form) if form else None

    async def get_focus_form_by_name(
        self, name: str, user_id: str | None = None
    ) -> FocusFormDto | None:
        """
        Get a focus form by its unique name.

        Args:
            name: Form name (e.g. "focus-questions-1700000000000-0f3c2a9e")
            user_id: When given, only return the form if the user owns its project
        """
        async with self._session_factory() as session:
            stmt = (
                select(FocusForm)
                .where(FocusForm.name == name)
                .options(selectinload(FocusForm.items))
            )
            if user_id is not None:
                stmt = stmt.join(Project, FocusForm.project_id == Project.id).where(
                    Project.user_id == user_id
                )
            form = (await session.execute(stmt)).scalar_one_or_none()
            return map_focus_form_dto(form) if form else None

    async def replace_focus_form_items(
        self, data: ReplaceFocusFormItemsInput | dict
    ) -> FocusFormDto:
        """
        Delete all items of a focus form and recreate them, atomically.

        Raises:
            NotFoundError: If the form is missing or its project isn't owned by the user
        """
        data = _coerce(ReplaceFocusFormItemsInput, data)
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(FocusForm)
                .join(Project, FocusForm.project_id == Project.id)
                .where(FocusForm.id == data.form_id, Project.user_id == data.user_id)
                .options(selectinload(FocusForm.items))
            )
            form = result.scalar_one_or_none()
            if form is None:
                raise NotFoundError(f"Focus form {data.form_id} not found for user {data.user_id}")

            form.items.clear()
            await session.flush()
            form.items.extend(
                self._new_item(item) for item in sorted(data.items, key=lambda i: i.position)
            )
            await session.flush()
            dto = map_focus_form_dto(form)

        logger.info(f"Replaced items of focus form {data.form_id} ({len(data.items)} item(s))")
        return dto

    async def submit_focus_responses(
        self, data: SubmitFocusResponsesInput | dict
    ) -> ProjectContextDto:
        """
        Store answers for focus items of the project's form in one transaction.

        Every focusItemId is checked against the addressed project's form before
        anything is written, so a single foreign id rejects the whole submission.

        Returns:
            Updated project context

        Raises:
            NotFoundError: If the project or its focus form is missing
            PayloadValidationError: If an item id is foreign or an answer is empty
        """
        data = _coerce(SubmitFocusResponsesInput, data)
        async with self._session_factory() as session, session.begin():
            project = await self._owned_project(
                session,
                data.user_id,
                data.project_id,
                selectinload(Project.focus_form).selectinload(FocusForm.items),
            )
            if project is None:
                raise _project_not_found(data.project_id, data.user_id)
            if project.focus_form is None:
                raise NotFoundError(f"Focus form not found for project {data.project_id}")

            items = {item.id: item for item in project.focus_form.items}
            issues = []
            for index, response in enumerate(data.responses):
                if response.focus_item_id not in items:
                    issues.append(
                        FieldIssue(
                            path=f"responses.{index}.focusItemId",
                            reason=(
                                f"Focus item {response.focus_item_id} does not belong "
                                f"to project {data.project_id}"
                            ),
                        )
                    )
                elif not _clean_answer(response.answer):
                    issues.append(
                        FieldIssue(path=f"responses.{index}.answer", reason="Answer is empty")
                    )
            if issues:
                raise PayloadValidationError(format_issues(issues), issues)

            answered_at = utcnow()
            for response in data.responses:
                item = items[response.focus_item_id]
                answer = _clean_answer(response.answer)
                if isinstance(answer, list):
                    # Multi-select answers are stored as a JSON encoded list
                    if item.question_type == QuestionType.MULTI_SELECT:
                        answer = json.dumps(answer)
                    else:
                        answer = ", ".join(answer)
                item.answer = answer
                item.answered_at = answered_at

        logger.info(
            f"Stored {len(data.responses)} focus response(s) for project {data.project_id}"
        )
        return await self.get_project_details(data.user_id, data.project_id)

    # ------------------------------------------------------------------
    # Roadmap
    # ------------------------------------------------------------------

    async def create_project_milestones(
        self, data: CreateProjectMilestonesInput | dict
    ) -> list[MilestoneDto]:
        """
        Create the project's milestones. Refuses if any milestone exists.

        The lowest-positioned milestone starts unlocked, the rest locked.

        Raises:
            NotFoundError: If the project is missing or not owned by the user
            ConflictError: If the project already has milestones
            PayloadValidationError: If positions repeat
        """
        data = _coerce(CreateProjectMilestonesInput, data)
        positions = [m.position for m in data.milestones]
        if len(set(positions)) != len(positions):
            issue = FieldIssue(path="milestones", reason="Milestone positions must be unique")
            raise PayloadValidationError(format_issues([issue]), [issue])

        first = min(positions)
        async with self._session_factory() as session, session.begin():
            project = await self._owned_project(session, data.user_id, data.project_id)
            if project is None:
                raise _project_not_found(data.project_id, data.user_id)

            existing = await session.scalar(
                select(func.count())
                .select_from(Milestone)
                .where(Milestone.project_id == project.id)
            )
            if existing:
                raise ConflictError(f"Project {data.project_id} already has milestones")

            milestones = [
                Milestone(
                    project_id=project.id,
                    title=m.title,
                    summary=m.summary,
                    position=m.position,
                    status=(
                        ProgressStatus.UNLOCKED if m.position == first else ProgressStatus.LOCKED
                    ),
                )
                for m in data.milestones
            ]
            session.add_all(milestones)
            session.add(
                ProjectEvent(
                    project_id=project.id,
                    event_type=ProjectEventType.MILESTONE_GENERATED,
                    payload={"count": len(milestones)},
                )
            )
            try:
                await session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent creator
                raise ConflictError(f"Project {data.project_id} already has milestones") from e
            dtos = [map_milestone_dto(m) for m in sorted(milestones, key=lambda m: m.position)]

        logger.info(f"Created {len(dtos)} milestone(s) for project {data.project_id}")
        return dtos

    async def create_milestone_tasks(
        self, data: CreateMilestoneTasksInput | dict
    ) -> list[TaskDto]:
        """
        Create the tasks of one milestone. Refuses if the milestone has any task.

        Raises:
            NotFoundError: If the project or milestone is missing / not owned
            ConflictError: If the milestone already has tasks
            PayloadValidationError: If positions repeat
        """
        data = _coerce(CreateMilestoneTasksInput, data)
        positions = [t.position for t in data.tasks]
        if len(set(positions)) != len(positions):
            issue = FieldIssue(path="tasks", reason="Task positions must be unique")
            raise PayloadValidationError(format_issues([issue]), [issue])

        first = min(positions)
        async with self._session_factory() as session, session.begin():
            project = await self._owned_project(session, data.user_id, data.project_id)
            if project is None:
                raise _project_not_found(data.project_id, data.user_id)

            milestone = await session.scalar(
                select(Milestone).where(
                    Milestone.id == data.milestone_id, Milestone.project_id == project.id
                )
            )
            if milestone is None:
                raise NotFoundError(
                    f"Milestone {data.milestone_id} not found for project {data.project_id}"
                )

            existing = await session.scalar(
                select(func.count()).select_from(Task).where(Task.milestone_id == milestone.id)
            )
            if existing:
                raise ConflictError(f"Milestone {data.milestone_id} already has tasks")

            unlock_first = milestone.status == ProgressStatus.UNLOCKED
            tasks = [
                Task(
                    milestone_id=milestone.id,
                    title=t.title,
                    description=t.description,
                    position=t.position,
                    status=(
                        ProgressStatus.UNLOCKED
                        if unlock_first and t.position == first
                        else ProgressStatus.LOCKED
                    ),
                )
                for t in data.tasks
            ]
            session.add_all(tasks)
            session.add(
                ProjectEvent(
                    project_id=project.id,
                    event_type=ProjectEventType.TASK_GENERATED,
                    payload={"milestoneId": milestone.id, "count": len(tasks)},
                )
            )
            try:
                await session.flush()
            except IntegrityError as e:
                raise ConflictError(f"Milestone {data.milestone_id} already has tasks") from e
            dtos = [map_task_dto(t) for t in sorted(tasks, key=lambda t: t.position)]

        logger.info(f"Created {len(dtos)} task(s) for milestone {data.milestone_id}")
        return dtos

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    async def record_prompt_execution(
        self, data: RecordPromptExecutionInput | dict
    ) -> PromptExecutionDto:
        """
        Append a prompt execution record.

        Raises:
            NotFoundError: If the project doesn't exist
        """
        data = _coerce(RecordPromptExecutionInput, data)
        async with self._session_factory() as session, session.begin():
            if await session.get(Project, data.project_id) is None:
                raise NotFoundError(f"Project {data.project_id} not found")
            execution = PromptExecution(
                project_id=data.project_id,
                milestone_id=data.milestone_id,
                task_id=data.task_id,
                stage=data.stage,
                status=data.status,
                input=data.input,
                output=data.output,
                model=data.model,
                metadata_=data.metadata,
            )
            session.add(execution)
            await session.flush()
            return map_prompt_execution_dto(execution)

    async def record_project_event(
        self, project_id: str, event_type: ProjectEventType, payload: Any = None
    ) -> ProjectEventDto:
        """
        Append a project event.

        Raises:
            NotFoundError: If the project doesn't exist
        """
        async with self._session_factory() as session, session.begin():
            if await session.get(Project, project_id) is None:
                raise NotFoundError(f"Project {project_id} not found")
            event = ProjectEvent(
                project_id=project_id, event_type=ProjectEventType(event_type), payload=payload
            )
            session.add(event)
            await session.flush()
            return map_project_event_dto(event)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _new_item(item: CreateFocusItemInput) -> FocusItem:
        return FocusItem(
            question=item.question,
            question_type=item.question_type,
            options=list(item.options),
            position=item.position,
        )

    @staticmethod
    async def _owned_project(
        session: AsyncSession, user_id: str, project_id: str, *options
    ) -> Project | None:
        stmt = select(Project).where(Project.id == project_id, Project.user_id == user_id)
        if options:
            stmt = stmt.options(*options)
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _load_project_context(
        self, session: AsyncSession, user_id: str, project_id: str
    ) -> Project | None:
        return await self._owned_project(
            session,
            user_id,
            project_id,
            selectinload(Project.milestones).selectinload(Milestone.tasks),
            selectinload(Project.focus_form).selectinload(FocusForm.items),
            selectinload(Project.prompt_executions),
            selectinload(Project.events),
        )
