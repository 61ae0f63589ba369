# formiq/api/errors.py
"""Map typed errors to HTTP responses of shape {message, error?, issues?}."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from formiq.errors import (
    ConflictError,
    FormIQError,
    GenerationError,
    NotFoundError,
    PayloadValidationError,
)
from formiq.schemas.validation import format_issues, issues_from_errors

logger = logging.getLogger(__name__)


def error_body(message: str, error: str | None = None, issues=None) -> dict:
    body: dict = {"message": message}
    if error is not None:
        body["error"] = error
    if issues is not None:
        body["issues"] = [issue.to_dict() for issue in issues]
    return body


def _status_for(exc: FormIQError) -> int:
    if isinstance(exc, PayloadValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, GenerationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def formiq_error_handler(request: Request, exc: FormIQError) -> JSONResponse:
    status_code = _status_for(exc)
    if isinstance(exc, PayloadValidationError):
        body = error_body(exc.message, issues=exc.issues)
    elif isinstance(exc, GenerationError):
        body = error_body("Generation failed", error=exc.message)
    else:
        body = error_body(exc.message)

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=body)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    issues = issues_from_errors(exc.errors(), strip_prefix=("body",))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(format_issues(issues), issues=issues),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", error=str(exc)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FormIQError, formiq_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
