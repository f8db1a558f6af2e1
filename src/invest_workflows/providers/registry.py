"""Adapter registry and fallback priorities.

The registry builds one instance of every adapter from :class:`Settings` and
hands out ordered candidate lists per logical data need. Adapters whose
configuration is missing are kept as :class:`UnconfiguredAdapter` placeholders
so fallback chains report them instead of silently dropping them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from invest_workflows.config import get_settings
from invest_workflows.exceptions import ConfigurationError
from invest_workflows.providers.adapters import ADAPTER_CLASSES
from invest_workflows.providers.cache import InMemoryCache
from invest_workflows.providers.fallback import FallbackResult, fetch_with_fallback
from invest_workflows.providers.ratelimit import RateLimitInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache, ProviderAdapter
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["ADAPTER_PRIORITIES", "NEED_ENDPOINTS", "DataNeed", "ProviderRegistry", "UnconfiguredAdapter"]

logger = logging.getLogger(__name__)


class DataNeed(StrEnum):
    """Logical data needs served by fallback chains."""

    STOCK_QUOTE = "stock_quote"
    COMPANY_PROFILE = "company_profile"
    FINANCIAL_STATEMENTS = "financial_statements"
    HISTORICAL_DATA = "historical_data"
    VALUATION_METRICS = "valuation_metrics"
    ECONOMIC_INDICATORS = "economic_indicators"
    SECTOR_DATA = "sector_data"
    MARKET_TREND = "market_trend"
    ANALYST_RATINGS = "analyst_ratings"


ADAPTER_PRIORITIES: dict[DataNeed, tuple[str, ...]] = {
    DataNeed.STOCK_QUOTE: ("polygon", "alpha_vantage", "yahoo_finance"),
    DataNeed.COMPANY_PROFILE: ("alpha_vantage", "fmp", "yahoo_finance"),
    DataNeed.FINANCIAL_STATEMENTS: ("fmp", "yahoo_finance", "morningstar"),
    DataNeed.HISTORICAL_DATA: ("polygon", "yahoo_finance", "tradingview"),
    DataNeed.VALUATION_METRICS: ("fmp", "alpha_vantage", "simplywallst"),
    DataNeed.ECONOMIC_INDICATORS: ("fred",),
    DataNeed.SECTOR_DATA: ("finviz", "yahoo_finance"),
    DataNeed.MARKET_TREND: ("bloomberg", "cnbc"),
    DataNeed.ANALYST_RATINGS: ("tipranks", "marketbeat"),
}
"""Candidate adapters per data need, most preferred first."""

NEED_ENDPOINTS: dict[DataNeed, str] = {
    DataNeed.STOCK_QUOTE: "quote",
    DataNeed.COMPANY_PROFILE: "profile",
    DataNeed.FINANCIAL_STATEMENTS: "fundamentals",
    DataNeed.HISTORICAL_DATA: "history",
    DataNeed.VALUATION_METRICS: "valuation",
    DataNeed.ECONOMIC_INDICATORS: "interest_rate",
    DataNeed.SECTOR_DATA: "sectors",
    DataNeed.MARKET_TREND: "market",
    DataNeed.ANALYST_RATINGS: "analyst_ratings",
}
"""Default logical endpoint requested from every candidate of a need."""


class UnconfiguredAdapter:
    """Placeholder for an adapter that could not be constructed.

    It reports itself as unconfigured, so fallback chains skip it with a
    warning, and refuses every fetch.

    Attributes:
        name: Name of the missing adapter.
        reason: Why construction failed.
    """

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason

    def is_configured(self) -> bool:
        return False

    async def is_available(self) -> bool:
        return False

    def get_rate_limit_info(self) -> RateLimitInfo:
        return RateLimitInfo(requests_per_minute=None, requests_remaining=0, reset_time=datetime.now(timezone.utc))

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        raise ConfigurationError(self.reason, provider=self.name)


class ProviderRegistry:
    """Named adapters plus the priority table that orders them.

    Example:
        >>> registry = ProviderRegistry.from_settings()
        >>> result = await registry.resolve(DataNeed.STOCK_QUOTE, ticker="AAPL")
        >>> result.source
        'polygon'
    """

    def __init__(
        self,
        adapters: Iterable[ProviderAdapter],
        priorities: Mapping[DataNeed | str, Sequence[str]] | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            adapters: Adapter instances, unique by ``name``.
            priorities: Candidate order per need. Defaults to :data:`ADAPTER_PRIORITIES`.
        """
        self._adapters: dict[str, ProviderAdapter] = {adapter.name: adapter for adapter in adapters}
        self._priorities = {
            DataNeed(need): tuple(names) for need, names in (priorities or ADAPTER_PRIORITIES).items()
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> ProviderRegistry:
        """Build every built-in adapter from settings.

        All adapters share one cache. Adapters that raise
        :class:`ConfigurationError` are replaced by an :class:`UnconfiguredAdapter`.

        Args:
            settings: Provider settings. Defaults to :func:`get_settings`.
            cache: Shared response cache. Defaults to a new :class:`InMemoryCache`.
            transport: httpx transport for every adapter, e.g. a mock in tests.
            retry: Retry policy override for every adapter.

        Returns:
            The populated registry.
        """
        settings = settings or get_settings()
        if cache is None:
            cache = InMemoryCache(max_entries_per_category=settings.cache_max_entries_per_category)

        adapters: list[ProviderAdapter] = []
        for adapter_class in ADAPTER_CLASSES:
            try:
                adapters.append(adapter_class(settings, cache=cache, transport=transport, retry=retry))
            except ConfigurationError as exc:
                logger.info("Provider %s is not configured: %s", adapter_class.name, exc.message)
                adapters.append(UnconfiguredAdapter(adapter_class.name, exc.message))
        return cls(adapters)

    @property
    def names(self) -> list[str]:
        return list(self._adapters)

    def get(self, name: str) -> ProviderAdapter:
        """Return the adapter registered under ``name``.

        Raises:
            KeyError: If no adapter has that name.
        """
        if name not in self._adapters:
            msg = f"Provider '{name}' not found in registry"
            raise KeyError(msg)
        return self._adapters[name]

    def chain(self, need: DataNeed | str) -> list[ProviderAdapter]:
        """Candidates for a need in priority order. Unknown names are left out."""
        names = self._priorities.get(DataNeed(need), ())
        return [self._adapters[name] for name in names if name in self._adapters]

    async def resolve(self, need: DataNeed | str, *, endpoint: str | None = None, **params: Any) -> FallbackResult[Any]:
        """Fetch a need through its fallback chain.

        Args:
            need: The data need.
            endpoint: Logical endpoint to request. Defaults to the need's own.
            **params: Endpoint parameters.

        Returns:
            The first successful value and the warnings collected before it.

        Raises:
            FallbackExhaustedError: If every candidate failed.
        """
        need = DataNeed(need)
        endpoint = endpoint or NEED_ENDPOINTS[need]
        return await fetch_with_fallback(need, self.chain(need), lambda adapter: adapter.fetch(endpoint, **params))

    def rate_limits(self) -> dict[str, RateLimitInfo]:
        return {name: adapter.get_rate_limit_info() for name, adapter in self._adapters.items()}

    async def aclose(self) -> None:
        """Close every adapter's HTTP client."""
        for adapter in self._adapters.values():
            client = getattr(adapter, "client", None)
            if client is not None:
                await client.aclose()
