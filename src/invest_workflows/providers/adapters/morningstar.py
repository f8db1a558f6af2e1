"""Morningstar adapter: annual financial snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.engine import compound_annual_growth
from invest_workflows.core.artifacts import Fundamentals
from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.schemas import parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["MorningstarAdapter"]


class MorningstarAdapter:
    name = "morningstar"

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
            settings.morningstar_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_fundamentals("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(self.name, endpoint, {"fundamentals": self.get_fundamentals}, params)

    async def get_fundamentals(self, ticker: str) -> Fundamentals:
        """Fundamentals from up to five annual periods, newest first."""
        symbol = ticker.upper()

        def parse(data: Any) -> Fundamentals:
            periods = data.get("financials") or []
            if not periods:
                msg = f"No financial data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            latest = periods[0]
            return Fundamentals(
                ticker=symbol,
                revenue_growth_5y=round(
                    compound_annual_growth([parse_number(p.get("revenue")) or 0.0 for p in periods]), 2
                ),
                earnings_growth_5y=round(
                    compound_annual_growth([parse_number(p.get("netIncome")) or 0.0 for p in periods]), 2
                ),
                profit_margin=round(parse_number(latest.get("profitMargin")) or 0.0, 2),
                debt_to_equity=round(parse_number(latest.get("debtToEquity")) or 0.0, 2),
                free_cash_flow=parse_number(latest.get("freeCashFlow")) or 0.0,
                analyzed_at=datetime.now(timezone.utc),
            )

        return await self.client.get_json(
            f"/v1/stocks/{symbol}/financials",
            params={"period": "annual", "limit": 5},
            category=CacheCategory.FINANCIAL_STATEMENTS,
            cache_key=f"{self.name}:financials-{symbol}",
            parse=parse,
        )
