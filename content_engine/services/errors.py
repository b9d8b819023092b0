"""
Service-layer error taxonomy and error handling helpers.

Provides:
1. Pipeline exceptions (chunking, embedding, vector index, retrieval, workflow)
2. AI service exceptions carrying structured information
3. OpenAI SDK error classification
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

from openai import (
    APIError as OpenAIAPIError,
    APIStatusError,
    APIConnectionError,
    APITimeoutError,
    AuthenticationError as OpenAIAuthError,
    RateLimitError as OpenAIRateLimitError,
    BadRequestError,
    NotFoundError as OpenAINotFoundError,
    InternalServerError,
)

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base class for content pipeline errors."""
    pass


# =============================================================================
# Structured Error Info
# =============================================================================

@dataclass
class AIErrorInfo:
    """Structured information about an AI service failure."""

    error_type: str  # "rate_limit", "authentication", "timeout", ...
    message: str
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    error_code: Optional[str] = None
    error_param: Optional[str] = None
    raw_body: Optional[Any] = None

    def to_log_dict(self) -> Dict[str, Any]:
        """Log-friendly dict without None values."""
        return {
            k: v
            for k, v in {
                "error_type": self.error_type,
                "status_code": self.status_code,
                "request_id": self.request_id,
                "error_code": self.error_code,
                "error_param": self.error_param,
            }.items()
            if v is not None
        }


RETRYABLE_ERROR_TYPES = frozenset({"rate_limit", "timeout", "connection", "server_error"})


# =============================================================================
# AI Service Exceptions
# =============================================================================

class AIServiceError(PipelineError):
    """
    Base class for failures of external model calls.

    Carries structured error information for logging and retry decisions.
    """

    def __init__(self, message: str, info: Optional[AIErrorInfo] = None):
        super().__init__(message)
        self.message = message
        self.info = info or AIErrorInfo(error_type="unknown", message=message)

    @property
    def status_code(self) -> Optional[int]:
        return self.info.status_code

    @property
    def request_id(self) -> Optional[str]:
        return self.info.request_id

    @property
    def retryable(self) -> bool:
        return self.info.error_type in RETRYABLE_ERROR_TYPES

    def __str__(self) -> str:
        parts = [self.message]
        if self.info.status_code:
            parts.append(f"[status={self.info.status_code}]")
        if self.info.request_id:
            parts.append(f"[request_id={self.info.request_id}]")
        return " ".join(parts)


class EmbeddingError(AIServiceError):
    """Embedding call failed or returned a mismatched number of vectors."""
    pass


class GenerationError(AIServiceError):
    """Language model call failed."""
    pass


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class FetchError(PipelineError):
    """A page could not be fetched."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class ChunkingError(PipelineError):
    """Chunker received malformed input or parameters."""
    pass


class IndexCreationError(PipelineError):
    """Vector index creation failed for a reason other than "already exists"."""
    pass


class IndexAlreadyExistsError(IndexCreationError):
    """The vector index being created already exists."""
    pass


class UpsertError(PipelineError):
    """Writing records into the vector index failed."""
    pass


class RetrievalError(PipelineError):
    """Querying the vector index failed."""
    pass


class EmptyRetrievalError(RetrievalError):
    """No usable text could be extracted from a retrieval response."""
    pass


class OutlineParseError(PipelineError):
    """The research step did not return a valid outline."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class WorkflowDefinitionError(PipelineError):
    """The workflow step graph is invalid (unknown dependency, cycle, duplicate id)."""
    pass


class StepDependencyError(RuntimeError):
    """
    A step read the result of a step that is not one of its completed predecessors.

    This is a programming error in the step graph, so it is never wrapped into
    WorkflowStepError.
    """
    pass


class WorkflowStepError(PipelineError):
    """A workflow step failed; wraps the underlying error with the step id."""

    def __init__(self, step_id: str, cause: BaseException):
        super().__init__(f"Step '{step_id}' failed: {type(cause).__name__}: {cause}")
        self.step_id = step_id
        self.cause = cause


# =============================================================================
# Error Classification
# =============================================================================

def _extract_error_message(e: APIStatusError) -> Optional[str]:
    """Pull a readable message out of an OpenAI error response body."""
    if not e.body:
        return None

    if isinstance(e.body, dict):
        error = e.body.get("error", {})
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return error
        # Non-standard shape: {'code': -1, 'msg': 'xxx'}
        msg = e.body.get("msg") or e.body.get("message")
        if msg:
            return msg

    return None


def classify_openai_error(e: Exception) -> AIErrorInfo:
    """
    Classify an OpenAI SDK exception into structured error information.

    Args:
        e: Exception raised by the OpenAI SDK

    Returns:
        AIErrorInfo
    """
    if isinstance(e, OpenAIRateLimitError):
        return AIErrorInfo(
            error_type="rate_limit",
            message="API rate limit exceeded, retry later",
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            raw_body=e.body,
        )

    if isinstance(e, OpenAIAuthError):
        return AIErrorInfo(
            error_type="authentication",
            message="API key is invalid or expired",
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            raw_body=e.body,
        )

    if isinstance(e, BadRequestError):
        msg = _extract_error_message(e) or "Invalid request parameters"
        return AIErrorInfo(
            error_type="bad_request",
            message=msg,
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            error_param=getattr(e, "param", None),
            raw_body=e.body,
        )

    if isinstance(e, OpenAINotFoundError):
        return AIErrorInfo(
            error_type="not_found",
            message="Model or resource not found, check configuration",
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            raw_body=e.body,
        )

    if isinstance(e, InternalServerError):
        msg = _extract_error_message(e) or "AI service temporarily unavailable"
        return AIErrorInfo(
            error_type="server_error",
            message=msg,
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            raw_body=e.body,
        )

    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(e, APITimeoutError):
        return AIErrorInfo(
            error_type="timeout",
            message="Request timed out",
        )

    if isinstance(e, APIConnectionError):
        return AIErrorInfo(
            error_type="connection",
            message="Could not connect to the AI service",
        )

    if isinstance(e, APIStatusError):
        msg = _extract_error_message(e) or f"API error (HTTP {e.status_code})"
        return AIErrorInfo(
            error_type="api_error",
            message=msg,
            status_code=e.status_code,
            request_id=getattr(e, "request_id", None),
            error_code=getattr(e, "code", None),
            raw_body=e.body,
        )

    if isinstance(e, OpenAIAPIError):
        return AIErrorInfo(
            error_type="api_error",
            message=str(e) or "AI API call failed",
            error_code=getattr(e, "code", None),
            raw_body=getattr(e, "body", None),
        )

    return AIErrorInfo(
        error_type="unknown",
        message=f"{type(e).__name__}: {str(e)}" if str(e) else type(e).__name__,
    )


# =============================================================================
# Error Handling Utilities
# =============================================================================

E = TypeVar("E", bound=AIServiceError)


def handle_openai_error(
    e: Exception,
    operation: str,
    error_class: Type[E] = AIServiceError,
    context: Optional[Dict[str, Any]] = None,
) -> E:
    """
    Classify, log and wrap an OpenAI SDK exception.

    Usage:
        try:
            response = await client.chat.completions.create(...)
        except Exception as e:
            raise handle_openai_error(e, "chat completion", GenerationError)
    """
    info = classify_openai_error(e)

    log_data = info.to_log_dict()
    if context:
        log_data.update(context)

    log_msg = f"{operation} failed: {info.message}"
    if log_data:
        log_msg += f" | {log_data}"

    if info.error_type in RETRYABLE_ERROR_TYPES:
        logger.warning(log_msg)
    else:
        logger.error(log_msg)

    return error_class(f"{operation} failed: {info.message}", info=info)


def format_error_message(e: BaseException, default: str = "") -> str:
    """Format an exception as a short human-readable message."""
    if isinstance(e, AIServiceError):
        return e.message

    if isinstance(e, OpenAIAPIError):
        return classify_openai_error(e).message

    msg = str(e)
    if msg:
        return f"{type(e).__name__}: {msg}"

    if default:
        return f"{default} ({type(e).__name__})"

    return type(e).__name__
