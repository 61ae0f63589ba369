# formiq/errors.py
"""
Typed error hierarchy shared by the services, the workflow runtime and the API.

The HTTP layer maps each class to a status code; the workflow runtime uses the
same classes to decide which activity failures are worth retrying.
"""

from dataclasses import dataclass


class FormIQError(Exception):
    """Base class for all FormIQ domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(FormIQError):
    """Entity is missing or not owned by the requesting user."""


class ConflictError(FormIQError):
    """Operation would violate an idempotency guard."""


@dataclass(frozen=True)
class FieldIssue:
    """One violated field path and the reason it failed."""

    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason}


class PayloadValidationError(FormIQError):
    """Payload does not match the expected shape."""

    def __init__(self, message: str, issues: list[FieldIssue] | None = None) -> None:
        super().__init__(message)
        self.issues = list(issues or [])


class GenerationError(FormIQError):
    """Model provider returned nothing usable."""


class WorkflowError(FormIQError):
    """Failure inside the workflow runtime itself."""


class WorkflowAlreadyStartedError(ConflictError):
    """A non-terminal run with the same workflow id already exists."""


class WorkflowFailedError(WorkflowError):
    """Awaited run finished in a failed or interrupted state."""


# Failures that no amount of re-running can fix
NON_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    PayloadValidationError,
    NotFoundError,
    ConflictError,
)
