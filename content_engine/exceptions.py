"""
Custom exception classes for the HTTP layer.

These exceptions are caught by global exception handlers in exception_handlers.py,
providing consistent error responses across all API endpoints.

Usage:
    from content_engine.exceptions import WorkflowFailedError

    # In route handlers - just raise, no try-except needed
    raise WorkflowFailedError("research", "...") # 502 with the failing step id
"""


class AppException(Exception):
    """
    Base exception class for application-level errors.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code to return
        error_code: Machine-readable error code for client handling
        extra: Additional fields merged into the response body
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str | None = None,
        extra: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or f"ERR_{status_code}"
        self.extra = extra or {}
        super().__init__(message)


class WorkflowFailedError(AppException):
    """A workflow run failed at a step (502). No partial result is returned."""

    def __init__(self, step_id: str, reason: str):
        super().__init__(
            message=f"Workflow failed at step '{step_id}': {reason}",
            status_code=502,
            error_code="WORKFLOW_STEP_FAILED",
            extra={"step_id": step_id},
        )
