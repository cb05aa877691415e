"""
Global exception handlers.

Every failure leaves the API in the same envelope:

    {"message": ..., "code": ..., "metadata": {...}, "requestId": ...}

with the error kind's HTTP status and an X-Request-ID header. Messages are
translated into the request language. Unexpected exceptions become a
generic 500 that never leaks internal details.
"""

import logging
from typing import Any, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.exceptions import AppError, ConflictError, ErrorKind, ValidationError
from shared.i18n import Translator
from shared.models import ErrorResponse
from shared.validation import VALIDATION_ERROR_KEY, summarize

from .middleware.request_context import REQUEST_ID_HEADER

logger = logging.getLogger(__name__)

# Statuses Starlette raises itself that have no dedicated error kind.
_HTTP_STATUS_CODES = {
    405: ("METHOD_NOT_ALLOWED", "common:METHOD_NOT_ALLOWED"),
}


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = uuid4().hex
        request.state.request_id = request_id
    return request_id


def get_language(request: Request) -> Optional[str]:
    return getattr(request.state, "language", None)


def _translator(request: Request) -> Translator:
    return request.app.state.translator


def error_response(
    request: Request,
    error: AppError,
    status_code: Optional[int] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Render an AppError into the failure envelope."""
    request_id = get_request_id(request)
    error.request_id = request_id
    status_code = status_code or error.status_code

    message = _translator(request).resolve_message(
        error.translation_key,
        message=error.message,
        language=get_language(request),
        values=error.interpolation,
        prioritize_message=error.prioritize_message,
    )
    metadata: Optional[dict[str, Any]] = error.metadata or None
    if error.kind is ErrorKind.INTERNAL_SERVER:
        metadata = None

    body = ErrorResponse(message=message, code=error.code, metadata=metadata, request_id=request_id)
    response_headers = {REQUEST_ID_HEADER: request_id, **(headers or {})}
    if status_code == 401:
        response_headers.setdefault("WWW-Authenticate", "Bearer")

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=response_headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle errors raised deliberately by services, rules and dependencies."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        exc.message,
    )
    return error_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI's own parameter validation in the validation envelope."""
    raw_errors = []
    location = "body"
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            location = "params" if loc[0] == "path" else loc[0]
            loc = loc[1:]
        raw_errors.append({**error, "loc": tuple(loc)})

    engine = request.app.state.container.validation
    errors = engine.format_errors(raw_errors, location, get_language(request))
    logger.info(
        "%s %s -> 422 with %d parameter error(s)",
        request.method,
        request.url.path,
        len(errors),
    )
    return error_response(
        request,
        ValidationError(
            "Validation error",
            translation_key=VALIDATION_ERROR_KEY,
            metadata={"errors": errors, "summary": summarize(errors)},
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing errors (404, 405, ...) raised by Starlette."""
    kind = ErrorKind.from_status(exc.status_code)
    code, translation_key = _HTTP_STATUS_CODES.get(exc.status_code, (kind.code, kind.translation_key))
    logger.info("%s %s -> %d", request.method, request.url.path, exc.status_code)
    return error_response(
        request,
        AppError(str(exc.detail), kind=kind, code=code, translation_key=translation_key),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    """A unique index rejected a write that slipped past the service checks."""
    logger.warning("Duplicate key on %s %s: %s", request.method, request.url.path, exc.details)
    return error_response(request, ConflictError("Resource already exists."))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    request_id = get_request_id(request)
    logger.error(
        "Unhandled exception [%s]: %s: %s - %s %s",
        request_id,
        type(exc).__name__,
        exc,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return error_response(request, AppError("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
