"""Yahoo Finance adapter: quotes, company summaries, charts and sector ETFs."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.engine import compound_annual_growth
from invest_workflows.core.artifacts import Fundamentals
from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError, ProviderError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import (
    CompanyProfile,
    HistoricalBar,
    HistoricalData,
    Quote,
    SectorPerformance,
    parse_number,
)

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["SECTOR_ETFS", "YahooFinanceAdapter"]

SECTOR_ETFS: dict[str, str] = {
    "XLK": "Technology",
    "XLF": "Financials",
    "XLV": "Healthcare",
    "XLE": "Energy",
    "XLI": "Industrials",
    "XLY": "Consumer Discretionary",
    "XLP": "Consumer Staples",
    "XLU": "Utilities",
    "XLRE": "Real Estate",
    "XLB": "Materials",
    "XLC": "Communication Services",
}
"""SPDR sector ETFs and the sector each one tracks."""

RETURN_WINDOWS = {"1d": 1, "1w": 5, "1m": 21, "3m": 63, "1y": 252}
"""Trailing return windows, in trading sessions."""

FINANCIAL_MODULES = (
    "financialData",
    "defaultKeyStatistics",
    "incomeStatementHistory",
    "balanceSheetHistory",
    "cashflowStatementHistory",
)


def _trailing_return(closes: list[float], bars: int) -> float:
    if len(closes) <= bars:
        return 0.0
    current, past = closes[-1], closes[-1 - bars]
    return (current - past) / past * 100 if past else 0.0


class YahooFinanceAdapter:
    """Client for the unofficial Yahoo Finance JSON endpoints. Needs no key."""

    name = "yahoo_finance"

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
            settings.yahoo_finance_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_quote("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {
                "quote": self.get_quote,
                "profile": self.get_company_profile,
                "fundamentals": self.get_fundamentals,
                "history": self.get_history,
                "sectors": self.get_sector_performance,
            },
            params,
        )

    async def get_quote(self, ticker: str) -> Quote:
        symbol = ticker.upper()

        def parse(data: Any) -> Quote:
            results = data["quoteResponse"]["result"]
            if not results:
                msg = f"No quote data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            row = results[0]
            dividend_yield = parse_number(row.get("dividendYield"))
            return Quote(
                ticker=row.get("symbol", symbol),
                price=float(row["regularMarketPrice"]),
                change=parse_number(row.get("regularMarketChange")) or 0.0,
                change_percent=parse_number(row.get("regularMarketChangePercent")) or 0.0,
                volume=parse_number(row.get("regularMarketVolume")) or 0.0,
                market_cap=parse_number(row.get("marketCap")),
                pe_ratio=parse_number(row.get("trailingPE")),
                dividend_yield=dividend_yield * 100 if dividend_yield is not None else None,
                timestamp=datetime.now(timezone.utc),
                source=self.name,
            )

        return await self.client.get_json(
            "/v7/finance/quote",
            params={"symbols": symbol},
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:{CacheKeys.quote(symbol)}",
            parse=parse,
        )

    async def _quote_summary(self, symbol: str, modules: tuple[str, ...], category: CacheCategory) -> dict[str, Any]:
        def parse(data: Any) -> dict[str, Any]:
            summary = data["quoteSummary"]
            results = summary.get("result") or []
            if summary.get("error") or not results:
                msg = f"No summary data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            return results[0]

        return await self.client.get_json(
            f"/v10/finance/quoteSummary/{symbol}",
            params={"modules": ",".join(modules)},
            category=category,
            cache_key=f"{self.name}:summary-{symbol}-{'-'.join(modules)}",
            parse=parse,
        )

    async def get_company_profile(self, ticker: str) -> CompanyProfile:
        symbol = ticker.upper()
        result = await self._quote_summary(symbol, ("assetProfile", "summaryProfile"), CacheCategory.COMPANY_PROFILES)
        profile = result.get("assetProfile") or result.get("summaryProfile") or {}
        employees = parse_number(profile.get("fullTimeEmployees"))
        headquarters = ", ".join(part for part in (profile.get("city"), profile.get("state"), profile.get("country")) if part)
        return CompanyProfile(
            ticker=symbol,
            name=profile.get("longName") or result.get("price", {}).get("longName") or symbol,
            sector=profile.get("sector") or "Unknown",
            industry=profile.get("industry") or "Unknown",
            description=profile.get("longBusinessSummary") or "",
            website=profile.get("website"),
            employees=int(employees) if employees is not None else None,
            headquarters=headquarters or None,
            source=self.name,
        )

    async def get_fundamentals(self, ticker: str) -> Fundamentals:
        """Fundamentals from the financial data and statement history modules.

        Reported ratios are preferred; statement values fill the gaps.
        """
        symbol = ticker.upper()
        result = await self._quote_summary(symbol, FINANCIAL_MODULES, CacheCategory.FINANCIAL_STATEMENTS)
        financial = result.get("financialData") or {}
        income = (result.get("incomeStatementHistory") or {}).get("incomeStatementHistory") or []
        balance = (result.get("balanceSheetHistory") or {}).get("balanceSheetStatements") or []
        cash_flow = (result.get("cashflowStatementHistory") or {}).get("cashflowStatements") or []
        if not financial and not income:
            msg = f"No financial data found for {symbol}"
            raise NotFoundError(msg, provider=self.name)

        revenues = [parse_number(row.get("totalRevenue")) or 0.0 for row in income]
        net_incomes = [parse_number(row.get("netIncome")) or 0.0 for row in income]

        margin = parse_number(financial.get("profitMargins"))
        if margin is not None:
            profit_margin = margin * 100
        elif revenues and revenues[0]:
            profit_margin = net_incomes[0] / revenues[0] * 100
        else:
            profit_margin = 0.0

        debt_to_equity = parse_number(financial.get("debtToEquity"))
        if debt_to_equity is not None:
            # Yahoo reports the ratio as a percentage.
            debt_to_equity /= 100
        elif balance:
            liabilities = parse_number(balance[0].get("totalLiab")) or 0.0
            equity = parse_number(balance[0].get("totalStockholderEquity")) or 0.0
            debt_to_equity = liabilities / equity if equity else 0.0
        else:
            debt_to_equity = 0.0

        free_cash_flow = 0.0
        if cash_flow:
            operating = parse_number(cash_flow[0].get("totalCashFromOperatingActivities")) or 0.0
            capex = parse_number(cash_flow[0].get("capitalExpenditures")) or 0.0
            free_cash_flow = operating - abs(capex)
        elif (reported := parse_number(financial.get("freeCashflow"))) is not None:
            free_cash_flow = reported

        return Fundamentals(
            ticker=symbol,
            revenue_growth_5y=round(compound_annual_growth(revenues), 2),
            earnings_growth_5y=round(compound_annual_growth(net_incomes), 2),
            profit_margin=round(profit_margin, 2),
            debt_to_equity=round(debt_to_equity, 2),
            free_cash_flow=free_cash_flow,
            analyzed_at=datetime.now(timezone.utc),
        )

    async def _chart(self, symbol: str, chart_range: str, category: CacheCategory) -> dict[str, Any]:
        def parse(data: Any) -> dict[str, Any]:
            chart = data["chart"]
            results = chart.get("result") or []
            if chart.get("error") or not results:
                msg = f"No chart data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            return results[0]

        return await self.client.get_json(
            f"/v8/finance/chart/{symbol}",
            params={"range": chart_range, "interval": "1d"},
            category=category,
            cache_key=f"{self.name}:chart-{symbol}-{chart_range}",
            parse=parse,
        )

    async def get_history(self, ticker: str, days: int = 200) -> HistoricalData:
        symbol = ticker.upper()
        result = await self._chart(symbol, "1y" if days <= 250 else "2y", CacheCategory.QUOTES)
        quote = result["indicators"]["quote"][0]
        bars = [
            HistoricalBar(
                timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                open=float(opened),
                high=float(high),
                low=float(low),
                close=float(close),
                volume=float(volume or 0),
            )
            for ts, opened, high, low, close, volume in zip(
                result.get("timestamp") or [],
                quote.get("open") or [],
                quote.get("high") or [],
                quote.get("low") or [],
                quote.get("close") or [],
                quote.get("volume") or [],
            )
            if None not in (opened, high, low, close)
        ]
        if not bars:
            msg = f"No historical data found for {symbol}"
            raise NotFoundError(msg, provider=self.name)
        return HistoricalData(ticker=symbol, bars=bars[-days:], source=self.name)

    async def _sector_etf(self, etf: str, sector: str) -> SectorPerformance:
        result = await self._chart(etf, "1y", CacheCategory.SECTOR_DATA)
        closes = [float(close) for close in result["indicators"]["quote"][0].get("close") or [] if close is not None]
        returns = {window: _trailing_return(closes, bars) for window, bars in RETURN_WINDOWS.items()}
        return SectorPerformance(
            sector_name=sector,
            performance_1d=round(returns["1d"], 2),
            performance_1w=round(returns["1w"], 2),
            performance_1m=round(returns["1m"], 2),
            performance_3m=round(returns["3m"], 2),
            performance_1y=round(returns["1y"], 2),
        )

    async def get_sector_performance(self) -> list[SectorPerformance]:
        """Trailing returns of the eleven SPDR sector ETFs.

        ETFs that fail are left out; the call only fails when all of them do.
        """
        outcomes = await asyncio.gather(
            *(self._sector_etf(etf, sector) for etf, sector in SECTOR_ETFS.items()),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, ProviderError):
                raise outcome
        sectors = [outcome for outcome in outcomes if isinstance(outcome, SectorPerformance)]
        if not sectors:
            raise next(outcome for outcome in outcomes if isinstance(outcome, ProviderError))
        return sectors
