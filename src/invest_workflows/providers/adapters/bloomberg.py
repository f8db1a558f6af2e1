"""Bloomberg adapter: major index levels and the market trend."""

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

__all__ = ["BloombergAdapter"]


class BloombergAdapter:
    name = "bloomberg"

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
            settings.bloomberg_base_url,
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
            indices = [
                MarketIndex(
                    name=row["name"],
                    value=parse_number(row.get("value")) or 0.0,
                    change=parse_number(row.get("change")) or 0.0,
                    change_percent=parse_number(row.get("changePercent")) or 0.0,
                )
                for row in data.get("indices") or []
            ]
            if not indices:
                msg = "No index data returned"
                raise NotFoundError(msg, provider=self.name)
            return MarketSnapshot.from_indices(indices, source=self.name)

        return await self.client.get_json(
            "/markets/api/indices",
            category=CacheCategory.MACRO_DATA,
            cache_key=f"{self.name}:indices",
            parse=parse,
        )

    async def get_market_trend(self) -> MarketTrend:
        return (await self.get_market_snapshot()).trend
