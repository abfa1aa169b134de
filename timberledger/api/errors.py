"""Exception handlers that render every failure as the response envelope.

In development the envelope also carries ``error`` (type and detail) and
``stack``. In production 5xx responses use a generic message and unique
constraint violations are reported as 409 "Record already exists".
"""

import traceback
from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from timberledger.api.responses import respond
from timberledger.config import get_settings
from timberledger.exceptions import AppError, PersistenceError

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
DUPLICATE_RECORD_MESSAGE = "Record already exists"


def _debug_detail(exc: BaseException) -> dict[str, Any]:
    """Error type, detail and stack, returned only in development."""
    return {
        "error": {"type": type(exc).__name__, "detail": str(exc)},
        "stack": traceback.format_exception(type(exc), exc, exc.__traceback__),
    }


def _error_response(exc: BaseException, status_code: int, message: str) -> JSONResponse:
    settings = get_settings()
    if settings.is_production:
        if status_code >= 500:
            message = GENERIC_ERROR_MESSAGE
        return respond(message, status_code=status_code)
    return respond(message, status_code=status_code, **_debug_detail(exc))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Domain errors keep their status code and message."""
    status_code = exc.status_code
    message = exc.message

    if isinstance(exc, PersistenceError) and exc.unique_violation:
        status_code = status.HTTP_409_CONFLICT
        message = DUPLICATE_RECORD_MESSAGE

    if status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=exc,
        )
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            status=status_code,
            error_type=type(exc).__name__,
            error=exc.message,
        )
    return _error_response(exc, status_code, message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures become 400 with the offending fields named."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))

    message = "Invalid request: " + "; ".join(problems)
    logger.info("request_validation_failed", path=request.url.path, errors=problems)
    return _error_response(exc, status.HTTP_400_BAD_REQUEST, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework HTTP errors, e.g. unknown routes or wrong methods."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return respond(message, status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is logged with its stack and reported as 500."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    return _error_response(exc, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Install all envelope-producing exception handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
