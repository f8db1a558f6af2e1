"""Exception hierarchy for invest-workflows.

Provider failures are raised inside a single adapter call and classified into a
closed set of kinds (see :class:`ErrorKind`). Step processors turn them into
``errors``/``warnings`` data; they never escape the step boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from invest_workflows.core.types import ErrorKind

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "ConfigurationError",
    "FallbackExhaustedError",
    "InvestWorkflowsError",
    "NetworkError",
    "NotFoundError",
    "ProfileNotFoundError",
    "ProviderError",
    "RateLimitError",
    "SessionNotFoundError",
    "StepResultNotFoundError",
    "ValidationError",
    "WorkflowStepError",
    "classify_exception",
)


class InvestWorkflowsError(Exception):
    """Base exception for all invest-workflows errors.

    All exceptions raised by invest-workflows inherit from this class so callers
    can catch every workflow or provider error with a single except clause.
    """


class ProviderError(InvestWorkflowsError):
    """Base exception for failures talking to an external data provider.

    Attributes:
        provider: Name of the adapter that raised the error.
        code: Stable machine-readable error code.
        retryable: Whether the failure is transient.
    """

    kind: ErrorKind = ErrorKind.NETWORK
    code: str = "PROVIDER_ERROR"
    retryable: bool = False

    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        """Initialize the exception with provider details.

        Args:
            message: Human readable description of the failure.
            provider: Name of the adapter that raised the error.
        """
        self.provider = provider
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Serialize the error for logs and API payloads."""
        return {
            "kind": str(self.kind),
            "code": self.code,
            "provider": self.provider,
            "message": self.message,
            "retryable": self.retryable,
        }


class ConfigurationError(ProviderError):
    """Raised when an adapter is missing required configuration.

    Fatal to the adapter instance; it stays unusable until reconfigured.
    """

    kind = ErrorKind.CONFIGURATION
    code = "CONFIGURATION_ERROR"
    retryable = False


class NetworkError(ProviderError):
    """Raised on connection failures, timeouts and 5xx responses."""

    kind = ErrorKind.NETWORK
    code = "NETWORK_ERROR"
    retryable = True


class RateLimitError(ProviderError):
    """Raised when a provider rejects a call because a quota was exceeded.

    Attributes:
        retry_after: Suggested wait in seconds before calling again.
    """

    kind = ErrorKind.RATE_LIMIT
    code = "RATE_LIMIT_ERROR"
    retryable = True

    def __init__(self, message: str, *, provider: str = "unknown", retry_after: float = 60) -> None:
        """Initialize the exception with the suggested wait.

        Args:
            message: Human readable description of the failure.
            provider: Name of the adapter that raised the error.
            retry_after: Suggested wait in seconds.
        """
        super().__init__(message, provider=provider)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class ValidationError(ProviderError):
    """Raised when a provider response is malformed or a request is invalid."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"
    retryable = False


class NotFoundError(ProviderError):
    """Raised when the requested entity does not exist at the provider."""

    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND_ERROR"
    retryable = False


class FallbackExhaustedError(InvestWorkflowsError):
    """Raised when every candidate in a fallback chain failed.

    Attributes:
        need: Logical data need that was being resolved.
        causes: One message per failed or skipped candidate, in chain order.
    """

    def __init__(self, need: str, causes: list[str]) -> None:
        """Initialize the exception with the collected causes.

        Args:
            need: Logical data need that was being resolved.
            causes: One message per failed or skipped candidate, in chain order.
        """
        self.need = need
        self.causes = causes
        detail = "; ".join(causes) if causes else "no candidates configured"
        super().__init__(f"All data sources failed for '{need}': {detail}")


class SessionNotFoundError(InvestWorkflowsError):
    """Raised when a workflow session does not exist in the store.

    Attributes:
        session_id: The ID of the session that was not found.
    """

    def __init__(self, session_id: str | UUID) -> None:
        """Initialize the exception with session details.

        Args:
            session_id: The ID of the session that was not found.
        """
        self.session_id = session_id
        super().__init__(f"Workflow session '{session_id}' not found")


class StepResultNotFoundError(InvestWorkflowsError):
    """Raised when no result is stored for a step of a session.

    Attributes:
        session_id: The ID of the session.
        step_id: The step whose result was requested.
    """

    def __init__(self, session_id: str | UUID, step_id: int) -> None:
        """Initialize the exception with lookup details.

        Args:
            session_id: The ID of the session.
            step_id: The step whose result was requested.
        """
        self.session_id = session_id
        self.step_id = step_id
        super().__init__(f"No result stored for step {step_id} of session '{session_id}'")


class ProfileNotFoundError(InvestWorkflowsError):
    """Raised when a user has not defined an investment profile yet.

    Attributes:
        user_id: The user whose profile was requested.
    """

    def __init__(self, user_id: str) -> None:
        """Initialize the exception with user details.

        Args:
            user_id: The user whose profile was requested.
        """
        self.user_id = user_id
        super().__init__(f"Investment profile for user '{user_id}' not found")


class WorkflowStepError(InvestWorkflowsError):
    """Raised when an orchestrator call is not valid for the session state.

    Out-of-sequence execution and skipping a mandatory step end up here. The
    web layer reports it as a validation error.

    Attributes:
        step_id: The step the call targeted.
        errors: List of validation error messages.
    """

    def __init__(self, step_id: int, errors: list[str]) -> None:
        """Initialize the exception with validation errors.

        Args:
            step_id: The step the call targeted.
            errors: List of validation error messages.
        """
        self.step_id = step_id
        self.errors = errors
        super().__init__(f"Step {step_id} rejected: {'; '.join(errors)}")


def classify_exception(exc: BaseException, provider: str = "unknown") -> ProviderError:
    """Convert an arbitrary exception into a :class:`ProviderError`.

    Args:
        exc: The exception to classify.
        provider: Name of the adapter the exception came from.

    Returns:
        ``exc`` itself when it already is a provider error, otherwise the best
        matching provider error kind.
    """
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return NetworkError(f"Network failure: {exc}", provider=provider)

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    if "rate limit" in lowered or "429" in lowered:
        return RateLimitError(message, provider=provider)
    if "not found" in lowered or "404" in lowered:
        return NotFoundError(message, provider=provider)
    if any(token in lowered for token in ("timeout", "network", "econnrefused", "connection")):
        return NetworkError(message, provider=provider)
    if "api key" in lowered or "not configured" in lowered:
        return ConfigurationError(message, provider=provider)
    return ValidationError(message, provider=provider)
