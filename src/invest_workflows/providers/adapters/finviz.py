"""Finviz adapter: stock screens and sector group performance."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.artifacts import ScreeningFilters
from invest_workflows.core.types import CacheCategory, MarketCapCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import ScreenedStock, SectorPerformance, parse_number

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["FinvizAdapter", "build_filter_codes"]

_MARKET_CAP_CODES = {
    MarketCapCategory.LARGE: "cap_largeover",
    MarketCapCategory.MID: "cap_mid",
    MarketCapCategory.SMALL: "cap_small",
}

_DIVIDEND_CODES = ((5, "fa_div_o5"), (3, "fa_div_o3"), (2, "fa_div_o2"), (1, "fa_div_pos"))
_PE_CODES = ((15, "fa_pe_u15"), (20, "fa_pe_u20"), (25, "fa_pe_u25"), (30, "fa_pe_u30"))


def build_filter_codes(filters: ScreeningFilters) -> list[str]:
    """Translate screening filters into Finviz screener codes.

    Finviz only offers fixed buckets, so the yield floor maps to the highest
    bucket it reaches and the PE ceiling to the tightest bucket above it.
    Price bounds have no bucket and are applied to the returned rows instead.

    Example:
        >>> build_filter_codes(ScreeningFilters(dividend_yield_min=3.5, sector="Real Estate"))
        ['fa_div_o3', 'sec_realestate']
    """
    codes: list[str] = []
    if filters.market_cap is not None:
        codes.append(_MARKET_CAP_CODES[MarketCapCategory(filters.market_cap)])
    if filters.dividend_yield_min is not None:
        codes.extend([code for floor, code in _DIVIDEND_CODES if filters.dividend_yield_min >= floor][:1])
    if filters.pe_ratio_max is not None:
        codes.extend([code for ceiling, code in _PE_CODES if filters.pe_ratio_max <= ceiling][:1])
    if filters.sector:
        codes.append(f"sec_{filters.sector.lower().replace(' ', '')}")
    return codes


class FinvizAdapter:
    """Client for the Finviz screener and group export endpoints. Needs no key."""

    name = "finviz"

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
            settings.finviz_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(self.get_sector_performance)

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {"screen": self.screen_stocks, "sectors": self.get_sector_performance},
            params,
        )

    @staticmethod
    def _rows(data: Any) -> list[Mapping[str, Any]]:
        rows = data.get("data", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            msg = "Expected a list of rows"
            raise TypeError(msg)
        return rows

    async def screen_stocks(self, filters: ScreeningFilters | None = None) -> list[ScreenedStock]:
        """Run the screener. An empty screen is a valid, empty answer."""
        filters = filters or ScreeningFilters()

        def parse(data: Any) -> list[ScreenedStock]:
            return [
                ScreenedStock(
                    ticker=row["Ticker"],
                    company_name=row.get("Company") or row["Ticker"],
                    sector=row.get("Sector") or "Unknown",
                    industry=row.get("Industry") or "",
                    # Finviz exports market cap in millions.
                    market_cap=(parse_number(row.get("Market Cap")) or 0.0) * 1_000_000,
                    pe_ratio=parse_number(row.get("P/E")) or 0.0,
                    dividend_yield=parse_number(row.get("Dividend")) or 0.0,
                    price=parse_number(row.get("Price")) or 0.0,
                )
                for row in self._rows(data)
            ]

        stocks = await self.client.get_json(
            "/export.ashx",
            params={"v": "111", "f": ",".join(build_filter_codes(filters)) or None, "o": "ticker"},
            category=CacheCategory.STOCK_SCREENS,
            cache_key=f"{self.name}:{CacheKeys.stock_screen(filters)}",
            parse=parse,
        )
        return [
            stock
            for stock in stocks
            if (filters.min_price is None or stock.price >= filters.min_price)
            and (filters.max_price is None or stock.price <= filters.max_price)
        ]

    async def get_sector_performance(self) -> list[SectorPerformance]:
        def parse(data: Any) -> list[SectorPerformance]:
            sectors = [
                SectorPerformance(
                    sector_name=row["Name"],
                    performance_1d=parse_number(row.get("Perf Day")) or 0.0,
                    performance_1w=parse_number(row.get("Perf Week")) or 0.0,
                    performance_1m=parse_number(row.get("Perf Month")) or 0.0,
                    performance_3m=parse_number(row.get("Perf Quart")) or 0.0,
                    performance_1y=parse_number(row.get("Perf Year")) or 0.0,
                    market_cap=(parse_number(row.get("Market Cap")) or 0.0) * 1_000_000,
                )
                for row in self._rows(data)
            ]
            if not sectors:
                msg = "No sector performance data returned"
                raise NotFoundError(msg, provider=self.name)
            return sectors

        return await self.client.get_json(
            "/grp_export.ashx",
            params={"g": "sector", "v": "140", "o": "name"},
            category=CacheCategory.SECTOR_DATA,
            cache_key=f"{self.name}:{CacheKeys.SECTOR_DATA}",
            parse=parse,
        )
