# formiq/db/mappers.py
"""ORM row → DTO conversion."""

from datetime import datetime, timezone

from formiq.schemas.dtos import (
    FocusFormDto,
    FocusItemDto,
    FormRecordDto,
    MilestoneDto,
    ProjectContextDto,
    ProjectContextMilestoneDto,
    ProjectContextProjectDto,
    ProjectDto,
    ProjectEventDto,
    ProjectQuestionDto,
    ProjectResponseAnswerDto,
    ProjectResponseDto,
    ProjectSummaryDto,
    PromptExecutionDto,
    TaskDto,
)
from formiq.schemas.intake import PROJECT_INTAKE_FORM

from .tables import (
    FocusForm,
    FocusItem,
    Milestone,
    Project,
    ProjectEvent,
    PromptExecution,
    Task,
)


def _utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def map_response_dto(response: dict) -> ProjectResponseDto:
    """Join a stored intake answer with its intake question."""
    question_id = response["questionId"]
    question = PROJECT_INTAKE_FORM.question(question_id)
    return ProjectResponseDto(
        question=ProjectQuestionDto(
            id=question_id,
            prompt=question.prompt,
            question_type=question.question_type,
            options=[option.label for option in question.options],
        ),
        answer=ProjectResponseAnswerDto(
            question_id=question_id, values=list(response.get("values", []))
        ),
    )


def map_project_dto(project: Project) -> ProjectDto:
    return ProjectDto(
        id=project.id,
        user_id=project.user_id,
        title=project.title,
        commitment=project.commitment,
        familiarity=project.familiarity,
        work_style=project.work_style,
        status=project.status,
        generated_at=_utc(project.generated_at),
        created_at=_utc(project.created_at),
        updated_at=_utc(project.updated_at),
        responses=[map_response_dto(r) for r in project.responses or []],
    )


def map_project_summary_dto(project: Project) -> ProjectSummaryDto:
    return ProjectSummaryDto(id=project.id, title=project.title, status=project.status)


def map_focus_item_dto(item: FocusItem) -> FocusItemDto:
    return FocusItemDto(
        id=item.id,
        question=item.question,
        question_type=item.question_type,
        options=list(item.options or []),
        position=item.position,
        answer=item.answer,
        answered_at=_utc(item.answered_at),
    )


def map_focus_form_dto(form: FocusForm) -> FocusFormDto:
    return FocusFormDto(
        id=form.id,
        name=form.name,
        project_id=form.project_id,
        kind=form.kind,
        items=[map_focus_item_dto(item) for item in form.items],
    )


def map_form_record_dto(form: FocusForm) -> FormRecordDto:
    return FormRecordDto(id=form.id, name=form.name, project_id=form.project_id, kind=form.kind)


def map_milestone_dto(milestone: Milestone) -> MilestoneDto:
    return MilestoneDto(
        id=milestone.id,
        project_id=milestone.project_id,
        title=milestone.title,
        summary=milestone.summary,
        position=milestone.position,
        status=milestone.status,
        generated_at=_utc(milestone.generated_at),
    )


def map_task_dto(task: Task) -> TaskDto:
    return TaskDto(
        id=task.id,
        milestone_id=task.milestone_id,
        title=task.title,
        description=task.description,
        position=task.position,
        status=task.status,
        generated_at=_utc(task.generated_at),
        completed_at=_utc(task.completed_at),
    )


def map_prompt_execution_dto(execution: PromptExecution) -> PromptExecutionDto:
    return PromptExecutionDto(
        id=execution.id,
        project_id=execution.project_id,
        milestone_id=execution.milestone_id,
        task_id=execution.task_id,
        stage=execution.stage,
        status=execution.status,
        input=execution.input,
        output=execution.output,
        model=execution.model,
        metadata=execution.metadata_,
        created_at=_utc(execution.created_at),
    )


def map_project_event_dto(event: ProjectEvent) -> ProjectEventDto:
    return ProjectEventDto(
        id=event.id,
        project_id=event.project_id,
        event_type=event.event_type,
        payload=event.payload,
        created_at=_utc(event.created_at),
    )


def map_project_context_dto(project: Project) -> ProjectContextDto:
    """
    Map a fully loaded project (milestones.tasks, focus_form.items,
    prompt_executions, events) to its context DTO.
    """
    base = map_project_dto(project)
    milestones = [
        ProjectContextMilestoneDto(
            **map_milestone_dto(milestone).model_dump(),
            tasks=[map_task_dto(task) for task in milestone.tasks],
        )
        for milestone in project.milestones
    ]
    return ProjectContextDto(
        project=ProjectContextProjectDto(
            **base.model_dump(),
            milestones=milestones,
            focus_form=map_focus_form_dto(project.focus_form) if project.focus_form else None,
            prompt_executions=[map_prompt_execution_dto(e) for e in project.prompt_executions],
            events=[map_project_event_dto(e) for e in project.events],
        )
    )
