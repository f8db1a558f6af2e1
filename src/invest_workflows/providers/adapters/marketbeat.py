"""MarketBeat adapter: brokerage rating actions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.artifacts import AnalystRating
from invest_workflows.core.types import CacheCategory
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["MarketBeatAdapter"]


class MarketBeatAdapter:
    """Client for MarketBeat rating histories.

    MarketBeat reports ratings per brokerage rather than per analyst, so
    :attr:`AnalystRating.analyst` stays empty.
    """

    name = "marketbeat"

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
            settings.marketbeat_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_analyst_ratings("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(self.name, endpoint, {"analyst_ratings": self.get_analyst_ratings}, params)

    async def get_analyst_ratings(self, ticker: str) -> list[AnalystRating]:
        symbol = ticker.upper()

        def parse(data: Any) -> list[AnalystRating]:
            rows = data.get("ratings") or data.get("analystRatings") or []
            return [
                AnalystRating(
                    rating=str(row.get("rating") or row.get("recommendation") or row.get("action") or ""),
                    price_target=parse_number(row.get("priceTarget") or row.get("target")),
                    firm=row.get("firm") or row.get("brokerage"),
                    date=row.get("date"),
                )
                for row in rows
            ]

        return await self.client.get_json(
            f"/api/stocks/{symbol}/ratings",
            category=CacheCategory.ANALYST_RATINGS,
            cache_key=f"{self.name}:{CacheKeys.analyst_ratings(symbol)}",
            parse=parse,
        )
