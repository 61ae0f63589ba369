# formiq/schemas/validation.py
"""Turn untyped payloads into models, or into a list of field issues."""

from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from formiq.errors import FieldIssue, PayloadValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

ROOT_PATH = "<root>"


def issues_from_errors(
    errors: Sequence[dict[str, Any]], strip_prefix: tuple[str, ...] = ()
) -> list[FieldIssue]:
    """
    Convert pydantic/FastAPI error dicts into FieldIssues.

    Args:
        errors: Output of ValidationError.errors() (or RequestValidationError)
        strip_prefix: Leading loc parts to drop (e.g. ("body",))

    Returns:
        One FieldIssue per error, path joined with "."
    """
    issues = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if strip_prefix and tuple(loc[: len(strip_prefix)]) == strip_prefix:
            loc = loc[len(strip_prefix):]
        path = ".".join(str(part) for part in loc) or ROOT_PATH
        issues.append(FieldIssue(path=path, reason=error.get("msg", "invalid value")))
    return issues


def format_issues(issues: Sequence[FieldIssue]) -> str:
    """Render issues as "path: reason; path: reason"."""
    return "; ".join(f"{issue.path}: {issue.reason}" for issue in issues)


def parse_payload(model: type[ModelT], data: Any) -> ModelT:
    """
    Validate an untyped payload against a model.

    Args:
        model: Target pydantic model
        data: Decoded JSON value (dict, list, ...)

    Returns:
        Validated model instance

    Raises:
        PayloadValidationError: Listing every violated field path
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        issues = issues_from_errors(e.errors())
        raise PayloadValidationError(format_issues(issues), issues) from e


def parse_json_payload(model: type[ModelT], raw: str | bytes) -> ModelT:
    """
    Validate a JSON document against a model.

    Malformed JSON is reported as a single <root> issue.

    Raises:
        PayloadValidationError: Listing every violated field path
    """
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        issues = issues_from_errors(e.errors())
        raise PayloadValidationError(format_issues(issues), issues) from e
