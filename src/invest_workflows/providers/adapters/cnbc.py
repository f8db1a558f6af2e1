"""CNBC adapter: market trend from the quote service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.schemas import MarketIndex, MarketSnapshot, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.core.types import MarketTrend
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["CNBC_INDEX_SYMBOLS", "CNBCAdapter"]

CNBC_INDEX_SYMBOLS = (".SPX", ".DJI", ".IXIC")
"""S&P 500, Dow Jones Industrial Average and Nasdaq Composite."""


class CNBCAdapter:
    """Client for the CNBC quote service.

    The trend follows the same rule as the Bloomberg adapter: the average
    move of the major indices.
    """

    name = "cnbc"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.client = build_client(
            self.name,
            settings.cnbc_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(self.get_market_snapshot)

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {"market": self.get_market_snapshot, "market_trend": self.get_market_trend},
            params,
        )

    async def get_market_snapshot(self) -> MarketSnapshot:
        def parse(data: Any) -> MarketSnapshot:
            quotes = data["FormattedQuoteResult"]["FormattedQuote"]
            if isinstance(quotes, dict):
                quotes = [quotes]
            indices = [
                MarketIndex(
                    name=quote.get("name") or quote["symbol"],
                    value=parse_number(quote.get("last")) or 0.0,
                    change=parse_number(quote.get("change")) or 0.0,
                    change_percent=parse_number(quote.get("change_pct")) or 0.0,
                )
                for quote in quotes
            ]
            if not indices:
                msg = "No index quotes returned"
                raise NotFoundError(msg, provider=self.name)
            return MarketSnapshot.from_indices(indices, source=self.name)

        return await self.client.get_json(
            "/quote-html-webservice/restQuote/symbolType/symbol",
            params={"symbols": "|".join(CNBC_INDEX_SYMBOLS), "requestMethod": "itv", "output": "json"},
            category=CacheCategory.MACRO_DATA,
            cache_key=f"{self.name}:indices",
            parse=parse,
        )

    async def get_market_trend(self) -> MarketTrend:
        return (await self.get_market_snapshot()).trend
