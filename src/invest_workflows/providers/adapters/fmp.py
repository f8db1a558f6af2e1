"""Financial Modeling Prep adapter: statements, profiles, key metrics and quotes."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.engine import fundamentals_from_statements
from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import ConfigurationError, NotFoundError, ValidationError
from invest_workflows.providers.adapters._common import build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import CompanyProfile, FinancialStatement, Quote, ValuationSnapshot, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.artifacts import Fundamentals
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["FMPAdapter"]

FMP_RATE_LIMIT_RETRY_AFTER = 3600
"""Seconds suggested after a 429; FMP budgets are daily."""


class FMPAdapter:
    """Client for the Financial Modeling Prep v3 API.

    The free tier allows 250 requests per day, reset at UTC midnight. Once the
    quota is spent the limiter raises before any request is sent.
    """

    name = "fmp"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if not settings.fmp_api_key:
            msg = "Financial Modeling Prep API key is required. Set FMP_API_KEY."
            raise ConfigurationError(msg, provider=self.name)
        self._api_key = settings.fmp_api_key
        self.client = build_client(
            self.name,
            settings.fmp_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            default_params={"apikey": self._api_key},
            rate_limit_retry_after=FMP_RATE_LIMIT_RETRY_AFTER,
        )

    def is_configured(self) -> bool:
        return bool(self._api_key)

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
                "valuation": self.get_valuation,
                "income-statement": self.get_income_statements,
                "balance-sheet-statement": self.get_balance_sheets,
                "cash-flow-statement": self.get_cash_flow_statements,
                "key-metrics": self.get_key_metrics,
            },
            params,
        )

    def _rows(self, data: Any, what: str, symbol: str) -> list[dict[str, Any]]:
        if isinstance(data, dict):
            error = data.get("Error Message") or data.get("Error")
            if error:
                msg = f"FMP API Error: {error}"
                raise ValidationError(msg, provider=self.name)
            msg = f"Unexpected {what} payload for {symbol}"
            raise ValidationError(msg, provider=self.name)
        if not data:
            msg = f"No {what} data found for {symbol}"
            raise NotFoundError(msg, provider=self.name)
        return list(data)

    async def _get_rows(
        self,
        path: str,
        what: str,
        symbol: str,
        *,
        category: CacheCategory,
        cache_key: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return await self.client.get_json(
            path,
            params=params,
            category=category,
            cache_key=f"{self.name}:{cache_key}",
            parse=lambda data: self._rows(data, what, symbol),
        )

    async def get_income_statements(self, ticker: str, limit: int = 5) -> list[FinancialStatement]:
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/income-statement/{symbol}",
            "income statement",
            symbol,
            category=CacheCategory.FINANCIAL_STATEMENTS,
            cache_key=f"income-{symbol}-{limit}",
            params={"period": "annual", "limit": limit},
        )
        return [
            FinancialStatement(
                ticker=symbol,
                date=row.get("date", ""),
                revenue=parse_number(row.get("revenue")) or 0.0,
                net_income=parse_number(row.get("netIncome")) or 0.0,
                eps=parse_number(row.get("eps")) or parse_number(row.get("epsdiluted")) or 0.0,
            )
            for row in rows
        ]

    async def get_balance_sheets(self, ticker: str, limit: int = 1) -> list[FinancialStatement]:
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/balance-sheet-statement/{symbol}",
            "balance sheet",
            symbol,
            category=CacheCategory.FINANCIAL_STATEMENTS,
            cache_key=f"balance-{symbol}-{limit}",
            params={"period": "annual", "limit": limit},
        )
        return [
            FinancialStatement(
                ticker=symbol,
                date=row.get("date", ""),
                assets=parse_number(row.get("totalAssets")) or 0.0,
                liabilities=parse_number(row.get("totalLiabilities")) or 0.0,
                equity=parse_number(row.get("totalStockholdersEquity"))
                or parse_number(row.get("totalEquity"))
                or 0.0,
            )
            for row in rows
        ]

    async def get_cash_flow_statements(self, ticker: str, limit: int = 1) -> list[FinancialStatement]:
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/cash-flow-statement/{symbol}",
            "cash flow",
            symbol,
            category=CacheCategory.FINANCIAL_STATEMENTS,
            cache_key=f"cashflow-{symbol}-{limit}",
            params={"period": "annual", "limit": limit},
        )
        return [
            FinancialStatement(
                ticker=symbol,
                date=row.get("date", ""),
                operating_cash_flow=parse_number(row.get("operatingCashFlow")) or 0.0,
            )
            for row in rows
        ]

    async def get_key_metrics(self, ticker: str, limit: int = 1) -> dict[str, Any]:
        """Return the most recent key-metrics row as reported."""
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/key-metrics/{symbol}",
            "key metrics",
            symbol,
            category=CacheCategory.VALUATION_DATA,
            cache_key=f"key-metrics-{symbol}-{limit}",
            params={"period": "annual", "limit": limit},
        )
        return rows[0]

    async def get_fundamentals(self, ticker: str) -> Fundamentals:
        """Derive fundamentals from five years of annual statements."""
        symbol = ticker.upper()
        income, balance, cash_flow = await asyncio.gather(
            self.get_income_statements(symbol),
            self.get_balance_sheets(symbol),
            self.get_cash_flow_statements(symbol),
        )
        return fundamentals_from_statements(symbol, income, balance[0], cash_flow[0])

    async def get_quote(self, ticker: str) -> Quote:
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/quote/{symbol}",
            "quote",
            symbol,
            category=CacheCategory.QUOTES,
            cache_key=CacheKeys.quote(symbol),
        )
        row = rows[0]
        return Quote(
            ticker=row.get("symbol", symbol),
            price=parse_number(row.get("price")) or 0.0,
            change=parse_number(row.get("change")) or 0.0,
            change_percent=parse_number(row.get("changesPercentage")) or 0.0,
            volume=parse_number(row.get("volume")) or 0.0,
            market_cap=parse_number(row.get("marketCap")),
            pe_ratio=parse_number(row.get("pe")),
            timestamp=datetime.now(timezone.utc),
            source=self.name,
        )

    async def get_company_profile(self, ticker: str) -> CompanyProfile:
        symbol = ticker.upper()
        rows = await self._get_rows(
            f"/profile/{symbol}",
            "profile",
            symbol,
            category=CacheCategory.COMPANY_PROFILES,
            cache_key=CacheKeys.company_profile(symbol),
        )
        row = rows[0]
        employees = parse_number(row.get("fullTimeEmployees"))
        headquarters = ", ".join(part for part in (row.get("city"), row.get("state"), row.get("country")) if part)
        return CompanyProfile(
            ticker=row.get("symbol", symbol),
            name=row.get("companyName") or symbol,
            sector=row.get("sector") or "Unknown",
            industry=row.get("industry") or "Unknown",
            description=row.get("description") or "",
            market_cap=parse_number(row.get("mktCap")),
            website=row.get("website") or None,
            employees=int(employees) if employees is not None else None,
            headquarters=headquarters or None,
            source=self.name,
        )

    async def get_valuation(self, ticker: str) -> ValuationSnapshot:
        """Combine the latest key metrics with the current quote price."""
        symbol = ticker.upper()
        metrics, quote = await asyncio.gather(self.get_key_metrics(symbol), self.get_quote(symbol))
        return ValuationSnapshot(
            ticker=symbol,
            source=self.name,
            pe_ratio=parse_number(metrics.get("peRatio")) or 0.0,
            pb_ratio=parse_number(metrics.get("pbRatio")) or 0.0,
            current_price=quote.price,
            ps_ratio=parse_number(metrics.get("priceToSalesRatio")),
            peg_ratio=parse_number(metrics.get("pegRatio")),
            ev_to_ebitda=parse_number(metrics.get("enterpriseValueOverEBITDA")),
            price_to_free_cash_flow=parse_number(metrics.get("pfcfRatio")),
        )
