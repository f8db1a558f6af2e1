"""Tests for ordered multi-source fallback."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from invest_workflows.exceptions import FallbackExhaustedError, NetworkError, NotFoundError
from invest_workflows.providers.fallback import fetch_with_fallback

if TYPE_CHECKING:
    from collections.abc import Callable


def fetch_quote(adapter: Any) -> Any:
    return adapter.fetch("quote", ticker="AAPL")


@pytest.mark.unit
@pytest.mark.asyncio
class TestFetchWithFallback:
    """Tests for :func:`fetch_with_fallback`."""

    async def test_first_candidate_wins(self, make_adapter: Callable[..., Any]) -> None:
        """Test later candidates are not called once one succeeds."""
        primary = make_adapter("polygon", {"quote": 190.0})
        secondary = make_adapter("alpha_vantage", {"quote": 191.0})

        result = await fetch_with_fallback("stock_quote", [primary, secondary], fetch_quote)

        assert result.value == 190.0
        assert result.source == "polygon"
        assert result.warnings == []
        assert result.used_fallback is False
        assert result.fallback_reason is None
        assert secondary.calls == []

    async def test_falls_through_failures_in_order(self, make_adapter: Callable[..., Any]) -> None:
        """Test each failure is recorded before the third source answers."""
        candidates = [
            make_adapter("polygon", {"quote": NetworkError("Server error 503", provider="polygon")}),
            make_adapter("alpha_vantage", {"quote": NotFoundError("No quote for AAPL", provider="alpha_vantage")}),
            make_adapter("yahoo_finance", {"quote": 192.0}),
        ]

        result = await fetch_with_fallback("stock_quote", candidates, fetch_quote)

        assert result.value == 192.0
        assert result.source == "yahoo_finance"
        assert result.warnings == [
            "polygon failed: Server error 503",
            "alpha_vantage failed: No quote for AAPL",
        ]
        assert result.used_fallback is True
        assert result.fallback_reason == "polygon failed: Server error 503"

    async def test_unconfigured_candidates_are_skipped(self, make_adapter: Callable[..., Any]) -> None:
        """Test an unconfigured adapter is reported but never called."""
        missing = make_adapter("polygon", {"quote": 1.0}, configured=False)
        fallback = make_adapter("yahoo_finance", {"quote": 192.0})

        result = await fetch_with_fallback("stock_quote", [missing, fallback], fetch_quote)

        assert result.warnings == ["polygon is not configured, skipping"]
        assert missing.calls == []

    async def test_plain_exceptions_are_classified(self, make_adapter: Callable[..., Any]) -> None:
        """Test parsing mistakes inside an adapter count as a failed source."""

        def broken(**params: Any) -> Any:
            msg = "unexpected payload"
            raise ValueError(msg)

        candidates = [make_adapter("polygon", {"quote": broken}), make_adapter("yahoo_finance", {"quote": 5.0})]

        result = await fetch_with_fallback("stock_quote", candidates, fetch_quote)

        assert result.warnings == ["polygon failed: unexpected payload"]

    async def test_exhausted_chain(self, make_adapter: Callable[..., Any]) -> None:
        """Test every cause is listed when no candidate answers."""
        candidates = [
            make_adapter("tipranks", {"analyst_ratings": NetworkError("timeout", provider="tipranks")}),
            make_adapter("marketbeat", configured=False),
        ]

        with pytest.raises(FallbackExhaustedError) as exc_info:
            await fetch_with_fallback("analyst_ratings", candidates, lambda adapter: adapter.fetch("analyst_ratings"))

        assert exc_info.value.need == "analyst_ratings"
        assert exc_info.value.causes == ["tipranks failed: timeout", "marketbeat is not configured, skipping"]
        assert str(exc_info.value) == (
            "All data sources failed for 'analyst_ratings': "
            "tipranks failed: timeout; marketbeat is not configured, skipping"
        )

    async def test_empty_chain(self) -> None:
        """Test a need with no candidates fails immediately."""
        with pytest.raises(FallbackExhaustedError, match="no candidates configured"):
            await fetch_with_fallback("market_trend", [], fetch_quote)
