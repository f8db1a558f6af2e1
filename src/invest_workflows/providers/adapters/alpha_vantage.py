"""Alpha Vantage adapter: quotes, company overviews and valuation ratios."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import ConfigurationError, NotFoundError, RateLimitError, ValidationError
from invest_workflows.providers.adapters._common import build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import CompanyProfile, Quote, ValuationSnapshot, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["AlphaVantageAdapter"]


class AlphaVantageAdapter:
    """Client for the Alpha Vantage ``/query`` API.

    Alpha Vantage answers errors and throttling with HTTP 200 and a message
    body, so every payload is checked for ``Error Message``, ``Note`` and
    ``Information`` before it is parsed.
    """

    name = "alpha_vantage"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if not settings.alpha_vantage_api_key:
            msg = "Alpha Vantage API key is required. Set ALPHA_VANTAGE_API_KEY."
            raise ConfigurationError(msg, provider=self.name)
        self._api_key = settings.alpha_vantage_api_key
        self.client = build_client(
            self.name,
            settings.alpha_vantage_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            default_params={"apikey": self._api_key},
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
            {"quote": self.get_quote, "profile": self.get_company_profile, "valuation": self.get_valuation},
            params,
        )

    def _check_payload(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            msg = "Unexpected payload type"
            raise ValidationError(msg, provider=self.name)
        if "Error Message" in data:
            msg = f"Alpha Vantage API Error: {data['Error Message']}"
            raise ValidationError(msg, provider=self.name)
        for key in ("Note", "Information"):
            if key in data:
                msg = f"Alpha Vantage rate limit: {data[key]}"
                raise RateLimitError(msg, provider=self.name, retry_after=60)
        return data

    async def get_quote(self, ticker: str) -> Quote:
        symbol = ticker.upper()

        def parse(data: Any) -> Quote:
            quote = self._check_payload(data).get("Global Quote") or {}
            if not quote:
                msg = f"No quote data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            return Quote(
                ticker=quote.get("01. symbol", symbol),
                price=parse_number(quote.get("05. price")) or 0.0,
                change=parse_number(quote.get("09. change")) or 0.0,
                change_percent=parse_number(quote.get("10. change percent")) or 0.0,
                volume=parse_number(quote.get("06. volume")) or 0.0,
                timestamp=datetime.now(timezone.utc),
                source=self.name,
            )

        return await self.client.get_json(
            "/query",
            params={"function": "GLOBAL_QUOTE", "symbol": symbol},
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:{CacheKeys.quote(symbol)}",
            parse=parse,
        )

    async def _overview(self, symbol: str) -> dict[str, Any]:
        def parse(data: Any) -> dict[str, Any]:
            overview = self._check_payload(data)
            if not overview.get("Symbol"):
                msg = f"No company overview data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            return overview

        return await self.client.get_json(
            "/query",
            params={"function": "OVERVIEW", "symbol": symbol},
            category=CacheCategory.COMPANY_PROFILES,
            cache_key=f"{self.name}:overview-{symbol}",
            parse=parse,
        )

    async def get_company_profile(self, ticker: str) -> CompanyProfile:
        symbol = ticker.upper()
        overview = await self._overview(symbol)
        return CompanyProfile(
            ticker=overview.get("Symbol", symbol),
            name=overview.get("Name") or symbol,
            sector=overview.get("Sector") or "Unknown",
            industry=overview.get("Industry") or "Unknown",
            description=overview.get("Description") or "",
            market_cap=parse_number(overview.get("MarketCapitalization")),
            source=self.name,
        )

    async def get_valuation(self, ticker: str) -> ValuationSnapshot:
        symbol = ticker.upper()
        overview = await self._overview(symbol)
        pe = parse_number(overview.get("PERatio")) or 0.0
        eps = parse_number(overview.get("EPS")) or 0.0
        price = pe * eps if pe > 0 and eps > 0 else parse_number(overview.get("50DayMovingAverage")) or 0.0
        return ValuationSnapshot(
            ticker=symbol,
            source=self.name,
            pe_ratio=pe,
            pb_ratio=parse_number(overview.get("PriceToBookRatio")) or 0.0,
            current_price=price,
            ps_ratio=parse_number(overview.get("PriceToSalesRatioTTM")),
            peg_ratio=parse_number(overview.get("PEGRatio")),
            ev_to_ebitda=parse_number(overview.get("EVToEBITDA")),
            fair_value_estimate=parse_number(overview.get("AnalystTargetPrice")),
        )
