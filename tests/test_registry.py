"""Tests for ProviderRegistry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from invest_workflows.exceptions import ConfigurationError, FallbackExhaustedError
from invest_workflows.providers.registry import (
    ADAPTER_PRIORITIES,
    DataNeed,
    ProviderRegistry,
    UnconfiguredAdapter,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from invest_workflows.config import Settings


@pytest.mark.unit
class TestProviderRegistry:
    """Tests for building and querying the registry."""

    def test_from_settings_builds_every_adapter(self, settings: Settings) -> None:
        """Test all fifteen providers are registered."""
        registry = ProviderRegistry.from_settings(settings)

        assert len(registry.names) == 15
        assert {"polygon", "fred", "sec_edgar", "tipranks", "marketbeat"} <= set(registry.names)
        assert all(registry.get(name).is_configured() for name in registry.names)

    def test_missing_key_becomes_placeholder(self, settings: Settings) -> None:
        """Test an adapter without credentials is kept as an unconfigured placeholder."""
        registry = ProviderRegistry.from_settings(settings.model_copy(update={"alpha_vantage_api_key": None}))

        adapter = registry.get("alpha_vantage")
        assert isinstance(adapter, UnconfiguredAdapter)
        assert adapter.is_configured() is False
        assert adapter.reason == "Alpha Vantage API key is required. Set ALPHA_VANTAGE_API_KEY."

    def test_get_unknown_provider(self, make_registry: Callable[..., ProviderRegistry]) -> None:
        """Test looking up an unregistered name raises KeyError."""
        registry = make_registry()

        with pytest.raises(KeyError, match="Provider 'bogus' not found in registry"):
            registry.get("bogus")

    def test_chain_follows_priorities(self, settings: Settings) -> None:
        """Test candidates come back in priority order."""
        registry = ProviderRegistry.from_settings(settings)

        for need, names in ADAPTER_PRIORITIES.items():
            assert [adapter.name for adapter in registry.chain(need)] == list(names)

    def test_chain_skips_unregistered_names(
        self, make_adapter: Callable[..., Any], make_registry: Callable[..., ProviderRegistry]
    ) -> None:
        """Test names missing from the registry are left out of a chain."""
        registry = make_registry(make_adapter("yahoo_finance"))

        assert [adapter.name for adapter in registry.chain(DataNeed.STOCK_QUOTE)] == ["yahoo_finance"]

    def test_rate_limits(self, settings: Settings) -> None:
        """Test every adapter reports its rate limit state."""
        limits = ProviderRegistry.from_settings(settings).rate_limits()

        assert limits["polygon"].requests_per_minute == 5
        assert limits["fmp"].daily_limit == 250
        assert set(limits) == set(ProviderRegistry.from_settings(settings).names)


@pytest.mark.unit
@pytest.mark.asyncio
class TestProviderRegistryResolve:
    """Tests for :meth:`ProviderRegistry.resolve`."""

    async def test_resolve_uses_need_endpoint(
        self, make_adapter: Callable[..., Any], make_registry: Callable[..., ProviderRegistry]
    ) -> None:
        """Test the default endpoint of a need is requested with the given params."""
        adapter = make_adapter("polygon", {"quote": 190.0})
        registry = make_registry(adapter)

        result = await registry.resolve(DataNeed.STOCK_QUOTE, ticker="AAPL")

        assert result.value == 190.0
        assert adapter.calls == [("quote", {"ticker": "AAPL"})]

    async def test_resolve_with_endpoint_override(
        self, make_adapter: Callable[..., Any], make_registry: Callable[..., ProviderRegistry]
    ) -> None:
        """Test a caller can request a different endpoint along the same chain."""
        adapter = make_adapter("fred", {"inflation_rate": 3.1})
        registry = make_registry(adapter)

        result = await registry.resolve("economic_indicators", endpoint="inflation_rate")

        assert result.value == 3.1
        assert result.source == "fred"

    async def test_resolve_custom_priorities(
        self, make_adapter: Callable[..., Any], make_registry: Callable[..., ProviderRegistry]
    ) -> None:
        """Test a custom priority table reorders the chain."""
        registry = make_registry(
            make_adapter("polygon", {"quote": 1.0}),
            make_adapter("yahoo_finance", {"quote": 2.0}),
            priorities={"stock_quote": ["yahoo_finance", "polygon"]},
        )

        result = await registry.resolve(DataNeed.STOCK_QUOTE, ticker="AAPL")

        assert result.source == "yahoo_finance"

    async def test_unconfigured_placeholder_in_chain(self, make_registry: Callable[..., ProviderRegistry]) -> None:
        """Test a placeholder is reported as skipped and refuses direct fetches."""
        placeholder = UnconfiguredAdapter("fred", "FRED API key is required. Set FRED_API_KEY.")
        registry = make_registry(placeholder)

        with pytest.raises(FallbackExhaustedError, match="fred is not configured, skipping"):
            await registry.resolve(DataNeed.ECONOMIC_INDICATORS)
        with pytest.raises(ConfigurationError, match="FRED API key is required"):
            await placeholder.fetch("interest_rate")

    async def test_aclose(self, settings: Settings) -> None:
        """Test closing the registry closes every adapter client."""
        registry = ProviderRegistry.from_settings(settings)

        await registry.aclose()
