# formiq/db/tables.py
"""
SQLAlchemy ORM tables.

Collections are never lazy-loaded under asyncio: every query that reads a
relationship must request it with selectinload().
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from formiq.schemas.enums import (
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


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _enum(enum_cls: type[Enum]) -> SAEnum:
    """Store the enum's value (not its name) in a plain VARCHAR column."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    projects: Mapped[list["Project"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    commitment: Mapped[Commitment] = mapped_column(_enum(Commitment), nullable=False)
    familiarity: Mapped[Familiarity] = mapped_column(_enum(Familiarity), nullable=False)
    work_style: Mapped[WorkStyle] = mapped_column(_enum(WorkStyle), nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        _enum(ProjectStatus), nullable=False, default=ProjectStatus.DRAFT
    )
    # Intake answers: [{"questionId": ..., "values": [...]}]
    responses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship(back_populates="projects")
    focus_form: Mapped[Optional["FocusForm"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", uselist=False
    )
    milestones: Mapped[list["Milestone"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Milestone.position",
    )
    prompt_executions: Mapped[list["PromptExecution"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="PromptExecution.created_at",
    )
    events: Mapped[list["ProjectEvent"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectEvent.created_at",
    )


class FocusForm(Base):
    __tablename__ = "focus_forms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # One focus form per project
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    kind: Mapped[FormKind] = mapped_column(
        _enum(FormKind), nullable=False, default=FormKind.FOCUS_QUESTIONS
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped[Project] = relationship(back_populates="focus_form")
    items: Mapped[list["FocusItem"]] = relationship(
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FocusItem.position",
    )


class FocusItem(Base):
    __tablename__ = "focus_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    form_id: Mapped[str] = mapped_column(
        ForeignKey("focus_forms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(_enum(QuestionType), nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    answer: Mapped[str | None] = mapped_column(Text)
    answered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    form: Mapped[FocusForm] = relationship(back_populates="items")


class Milestone(Base):
    __tablename__ = "milestones"
    __table_args__ = (UniqueConstraint("project_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProgressStatus] = mapped_column(
        _enum(ProgressStatus), nullable=False, default=ProgressStatus.LOCKED
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped[Project] = relationship(back_populates="milestones")
    tasks: Mapped[list["Task"]] = relationship(
        back_populates="milestone",
        cascade="all, delete-orphan",
        order_by="Task.position",
    )


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (UniqueConstraint("milestone_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    milestone_id: Mapped[str] = mapped_column(
        ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProgressStatus] = mapped_column(
        _enum(ProgressStatus), nullable=False, default=ProgressStatus.LOCKED
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    milestone: Mapped[Milestone] = relationship(back_populates="tasks")


class PromptExecution(Base):
    """Append-only audit record of one generation call."""

    __tablename__ = "prompt_executions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    milestone_id: Mapped[str | None] = mapped_column(
        ForeignKey("milestones.id", ondelete="SET NULL")
    )
    task_id: Mapped[str | None] = mapped_column(ForeignKey("tasks.id", ondelete="SET NULL"))
    stage: Mapped[PromptStage] = mapped_column(_enum(PromptStage), nullable=False)
    status: Mapped[PromptStatus] = mapped_column(_enum(PromptStatus), nullable=False)
    input: Mapped[Any] = mapped_column(JSON)
    output: Mapped[Any] = mapped_column(JSON, nullable=True)
    model: Mapped[str | None] = mapped_column(String(128))
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[Any] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped[Project] = relationship(back_populates="prompt_executions")


class ProjectEvent(Base):
    """Append-only audit record of a project state change."""

    __tablename__ = "project_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[ProjectEventType] = mapped_column(
        _enum(ProjectEventType), nullable=False
    )
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped[Project] = relationship(back_populates="events")


class WorkflowRun(Base):
    """Durable record of one workflow execution."""

    __tablename__ = "workflow_runs"

    namespace: Mapped[str] = mapped_column(String(64), primary_key=True)
    workflow_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    workflow_type: Mapped[str] = mapped_column(String(128), nullable=False)
    task_queue: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    input: Mapped[Any] = mapped_column(JSON, nullable=False)
    state: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    current_step: Mapped[str | None] = mapped_column(String(128))
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Set when new input arrives while the run is executing
    resume_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error: Mapped[str | None] = mapped_column(Text)
    result: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
