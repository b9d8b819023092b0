"""
Global exception handlers for the FastAPI application.

These handlers catch exceptions raised anywhere in the request lifecycle
(routes, dependencies, middleware) and return consistent JSON responses.

Registration (in main.py):
    register_exception_handlers(app)
"""

import logging
from typing import Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from content_engine.config import ConfigError
from content_engine.exceptions import AppException
from content_engine.services.errors import (
    AIServiceError,
    ChunkingError,
    EmptyRetrievalError,
    FetchError,
    PipelineError,
    WorkflowStepError,
    format_error_message,
)

logger = logging.getLogger(__name__)


def _log(request: Request, status_code: int, error_code: str, message: str) -> None:
    # Use warning level for client errors (4xx), error level for server errors (5xx)
    log_level = logging.WARNING if status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"{error_code}: {message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle application-level exceptions (AppException and subclasses).

    Response format:
        {
            "detail": "Human-readable error message",
            "error_code": "MACHINE_READABLE_CODE",
            ...extra fields
        }
    """
    _log(request, exc.status_code, exc.error_code, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error_code": exc.error_code,
            **exc.extra,
        },
    )


def _classify_pipeline_error(exc: PipelineError) -> Tuple[int, str]:
    if isinstance(exc, ChunkingError):
        return 400, "CHUNKING_ERROR"
    if isinstance(exc, EmptyRetrievalError):
        return 404, "NO_MATCHING_KNOWLEDGE"
    if isinstance(exc, (AIServiceError, FetchError)):
        return 502, "EXTERNAL_SERVICE_ERROR"
    return 500, "PIPELINE_ERROR"


async def pipeline_exception_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Map service-layer errors to HTTP responses."""
    if isinstance(exc, WorkflowStepError):
        message = f"Workflow failed at step '{exc.step_id}': {format_error_message(exc.cause)}"
        _log(request, 502, "WORKFLOW_STEP_FAILED", message)
        return JSONResponse(
            status_code=502,
            content={
                "detail": message,
                "error_code": "WORKFLOW_STEP_FAILED",
                "step_id": exc.step_id,
            },
        )

    status_code, error_code = _classify_pipeline_error(exc)
    message = format_error_message(exc)
    _log(request, status_code, error_code, message)

    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "error_code": error_code},
    )


async def config_exception_handler(request: Request, exc: ConfigError) -> JSONResponse:
    _log(request, 503, "CONFIGURATION_MISSING", str(exc))
    return JSONResponse(
        status_code=503,
        content={
            "detail": str(exc),
            "error_code": "CONFIGURATION_MISSING",
            "missing_keys": exc.missing_keys,
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unhandled exceptions.

    Logs the full stack trace and returns a generic error response.
    This prevents internal details from leaking to clients.

    Note: HTTPException is handled by FastAPI's default handler,
    so it won't reach here.
    """
    logger.exception(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(PipelineError, pipeline_exception_handler)
    app.add_exception_handler(ConfigError, config_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
