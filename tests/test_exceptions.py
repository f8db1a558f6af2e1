"""Tests for exception hierarchy."""

from __future__ import annotations

from uuid import uuid4

import httpx
import pytest

from invest_workflows.exceptions import (
    ConfigurationError,
    FallbackExhaustedError,
    InvestWorkflowsError,
    NetworkError,
    NotFoundError,
    ProfileNotFoundError,
    ProviderError,
    RateLimitError,
    SessionNotFoundError,
    StepResultNotFoundError,
    ValidationError,
    WorkflowStepError,
    classify_exception,
)


@pytest.mark.unit
class TestInvestWorkflowsError:
    """Tests for the base exception."""

    @pytest.mark.parametrize(
        "error_class",
        [ProviderError, FallbackExhaustedError, SessionNotFoundError, WorkflowStepError, ProfileNotFoundError],
    )
    def test_everything_inherits_from_base(self, error_class: type[Exception]) -> None:
        """Test every exception can be caught as InvestWorkflowsError."""
        assert issubclass(error_class, InvestWorkflowsError)

    def test_base_exception_can_be_raised(self) -> None:
        """Test InvestWorkflowsError can be raised and caught."""
        with pytest.raises(InvestWorkflowsError, match="test"):
            raise InvestWorkflowsError("test")


@pytest.mark.unit
class TestProviderErrors:
    """Tests for the provider error kinds."""

    def test_provider_error_attributes(self) -> None:
        """Test the provider and message are kept."""
        error = NotFoundError("No quote for ZZZZ", provider="polygon")

        assert str(error) == "No quote for ZZZZ"
        assert error.provider == "polygon"
        assert error.retryable is False

    def test_only_transient_kinds_are_retryable(self) -> None:
        """Test network and rate limit failures are the retryable kinds."""
        assert NetworkError.retryable is True
        assert RateLimitError.retryable is True
        assert ValidationError.retryable is False
        assert ConfigurationError.retryable is False

    def test_rate_limit_to_dict(self) -> None:
        """Test the suggested wait is serialized with the error."""
        error = RateLimitError("Rate limit exceeded", provider="fmp", retry_after=12)

        assert error.to_dict() == {
            "kind": "rate_limit",
            "code": "RATE_LIMIT_ERROR",
            "provider": "fmp",
            "message": "Rate limit exceeded",
            "retryable": True,
            "retry_after": 12,
        }

    def test_rate_limit_default_wait(self) -> None:
        """Test a rate limit without a hint suggests sixty seconds."""
        assert RateLimitError("slow down").retry_after == 60


@pytest.mark.unit
class TestClassifyException:
    """Tests for :func:`classify_exception`."""

    def test_provider_errors_pass_through(self) -> None:
        """Test an already classified error is returned unchanged."""
        error = NotFoundError("missing", provider="fred")

        assert classify_exception(error, "other") is error

    def test_httpx_errors_are_network_errors(self) -> None:
        """Test transport failures become network errors."""
        error = classify_exception(httpx.ConnectError("refused"), "sec_edgar")

        assert isinstance(error, NetworkError)
        assert error.message == "Network failure: refused"
        assert error.provider == "sec_edgar"

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Rate limit hit", RateLimitError),
            ("HTTP 429", RateLimitError),
            ("Ticker not found", NotFoundError),
            ("connection reset", NetworkError),
            ("Invalid API key", ConfigurationError),
            ("unexpected payload", ValidationError),
        ],
    )
    def test_message_keywords(self, message: str, expected: type[ProviderError]) -> None:
        """Test plain exceptions are classified by their message."""
        assert type(classify_exception(ValueError(message))) is expected

    def test_empty_message_uses_class_name(self) -> None:
        """Test an exception without a message is described by its type."""
        assert classify_exception(KeyError()).message == "KeyError"


@pytest.mark.unit
class TestWorkflowErrors:
    """Tests for session and step errors."""

    def test_session_not_found(self) -> None:
        """Test the missing session id is part of the message."""
        session_id = uuid4()
        error = SessionNotFoundError(session_id)

        assert error.session_id == session_id
        assert str(error) == f"Workflow session '{session_id}' not found"

    def test_step_result_not_found(self) -> None:
        """Test the step and session are named."""
        error = StepResultNotFoundError("abc", 4)

        assert error.step_id == 4
        assert str(error) == "No result stored for step 4 of session 'abc'"

    def test_workflow_step_error(self) -> None:
        """Test every message is joined into the exception text."""
        error = WorkflowStepError(3, ["first", "second"])

        assert error.errors == ["first", "second"]
        assert str(error) == "Step 3 rejected: first; second"

    def test_fallback_exhausted(self) -> None:
        """Test the causes are listed after the need."""
        error = FallbackExhaustedError("stock_quote", ["polygon failed: timeout"])

        assert error.need == "stock_quote"
        assert str(error) == "All data sources failed for 'stock_quote': polygon failed: timeout"
