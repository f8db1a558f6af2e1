"""Exception handling for research web endpoints.

This module maps the domain exceptions raised by the orchestrator and the
session stores to Litestar HTTP exceptions.
"""

from __future__ import annotations

from litestar.exceptions import HTTPException, NotFoundException, ValidationException

from invest_workflows.exceptions import (
    ProfileNotFoundError,
    SessionNotFoundError,
    StepResultNotFoundError,
    WorkflowStepError,
)

__all__ = ["NOT_FOUND_ERRORS", "to_http_exception"]

NOT_FOUND_ERRORS = (SessionNotFoundError, StepResultNotFoundError, ProfileNotFoundError)
"""Domain exceptions reported as 404."""


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a domain exception into the HTTP exception to raise.

    Args:
        exc: A missing-record error or a :class:`WorkflowStepError`.

    Returns:
        ``NotFoundException`` for missing records and ``ValidationException``
        carrying the step's messages for rejected orchestrator calls.

    Raises:
        TypeError: If ``exc`` has no HTTP mapping.
    """
    if isinstance(exc, NOT_FOUND_ERRORS):
        return NotFoundException(detail=str(exc))
    if isinstance(exc, WorkflowStepError):
        return ValidationException(detail="; ".join(exc.errors), extra={"step_id": exc.step_id, "errors": exc.errors})
    msg = f"No HTTP mapping for {type(exc).__name__}"
    raise TypeError(msg)
