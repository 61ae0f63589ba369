# formiq/schemas/enums.py
"""Enumerations persisted in the database and exchanged over the API."""

from enum import Enum


class Commitment(str, Enum):
    """Time the user can commit per week."""

    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    DEDICATED = "dedicated"


class Familiarity(str, Enum):
    """How familiar the user is with the goal's area."""

    COMPLETELY_NEW = "completely_new"
    SOME_EXPERIENCE = "some_experience"
    EXPERIENCED_REFINING = "experienced_refining"


class WorkStyle(str, Enum):
    """How the user prefers to schedule work."""

    SHORT_DAILY_SESSIONS = "short_daily_sessions"
    FOCUSED_SESSIONS_PER_WEEK = "focused_sessions_per_week"
    FLEXIBLE_OR_VARIES = "flexible_or_varies"


class QuestionType(str, Enum):
    MULTI_SELECT = "multi_select"
    SINGLE_SELECT = "single_select"
    FREE_TEXT = "free_text"


class ProjectStatus(str, Enum):
    """Project lifecycle: draft → generating → ready."""

    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"


class ProgressStatus(str, Enum):
    """Shared lifecycle of milestones and tasks."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class FormKind(str, Enum):
    PROJECT_INTAKE = "project_intake"
    FOCUS_QUESTIONS = "focus_questions"


class PromptStage(str, Enum):
    """Generation step a prompt execution belongs to."""

    PROJECT_CONTEXT = "project_context"
    MILESTONE_OUTLINE = "milestone_outline"
    MILESTONE_VALIDATION = "milestone_validation"
    TASK_GENERATION = "task_generation"
    TASK_VALIDATION = "task_validation"


class PromptStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class ProjectEventType(str, Enum):
    STATUS_CHANGE = "status_change"
    MILESTONE_GENERATED = "milestone_generated"
    TASK_GENERATED = "task_generated"
    TASK_COMPLETED = "task_completed"
