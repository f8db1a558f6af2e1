"""Polygon.io adapter: last trades, previous closes and daily aggregates."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import ConfigurationError, NotFoundError, ValidationError
from invest_workflows.providers.adapters._common import build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import HistoricalBar, HistoricalData, Quote, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["PolygonAdapter"]


def _from_millis(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)


class PolygonAdapter:
    """Client for the Polygon.io REST API."""

    name = "polygon"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if not settings.polygon_api_key:
            msg = "Polygon API key is required. Set POLYGON_API_KEY."
            raise ConfigurationError(msg, provider=self.name)
        self._api_key = settings.polygon_api_key
        self.client = build_client(
            self.name,
            settings.polygon_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            default_params={"apiKey": self._api_key},
        )

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_previous_close("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {
                "quote": self.get_quote,
                "last_trade": self.get_last_trade,
                "previous_close": self.get_previous_close,
                "history": self.get_history,
            },
            params,
        )

    def _check_status(self, data: Any, symbol: str) -> dict[str, Any]:
        status = data.get("status")
        if status == "ERROR":
            msg = f"Polygon API Error: {data.get('error') or data.get('message') or 'unknown error'}"
            raise ValidationError(msg, provider=self.name)
        if status == "NOT_FOUND":
            msg = f"No data found for {symbol}"
            raise NotFoundError(msg, provider=self.name)
        return data

    async def get_last_trade(self, ticker: str) -> Quote:
        symbol = ticker.upper()

        def parse(data: Any) -> Quote:
            result = self._check_status(data, symbol).get("results")
            if not result:
                msg = f"No trade data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            return Quote(
                ticker=result.get("T", symbol),
                price=float(result["p"]),
                volume=parse_number(result.get("s")) or 0.0,
                timestamp=_from_millis(result["t"] / 1_000_000) if "t" in result else None,
                source=self.name,
            )

        return await self.client.get_json(
            f"/v2/last/trade/{symbol}",
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:trade-{symbol}",
            parse=parse,
        )

    async def get_previous_close(self, ticker: str) -> Quote:
        """Quote built from the previous session's aggregate bar."""
        symbol = ticker.upper()

        def parse(data: Any) -> Quote:
            results = self._check_status(data, symbol).get("results") or []
            if not results:
                msg = f"No previous close found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            bar = results[0]
            close = float(bar["c"])
            opened = float(bar["o"])
            change = close - opened
            return Quote(
                ticker=symbol,
                price=close,
                change=change,
                change_percent=change / opened * 100 if opened else 0.0,
                volume=parse_number(bar.get("v")) or 0.0,
                timestamp=_from_millis(bar["t"]) if "t" in bar else None,
                source=self.name,
            )

        return await self.client.get_json(
            f"/v2/aggs/ticker/{symbol}/prev",
            params={"adjusted": "true"},
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:{CacheKeys.quote(symbol)}",
            parse=parse,
        )

    async def get_quote(self, ticker: str) -> Quote:
        # The free tier does not include last trades; the previous close is always available.
        return await self.get_previous_close(ticker)

    async def get_history(self, ticker: str, days: int = 200, *, end: date | None = None) -> HistoricalData:
        """Daily bars covering roughly ``days`` trading sessions."""
        symbol = ticker.upper()
        end = end or datetime.now(timezone.utc).date()
        # Calendar span large enough to hold ``days`` trading sessions.
        start = end - timedelta(days=int(days * 1.5) + 7)

        def parse(data: Any) -> HistoricalData:
            results = self._check_status(data, symbol).get("results") or []
            if not results:
                msg = f"No historical data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            bars = [
                HistoricalBar(
                    timestamp=_from_millis(row["t"]),
                    open=float(row["o"]),
                    high=float(row["h"]),
                    low=float(row["l"]),
                    close=float(row["c"]),
                    volume=parse_number(row.get("v")) or 0.0,
                )
                for row in results
            ]
            return HistoricalData(ticker=symbol, bars=bars[-days:], source=self.name)

        return await self.client.get_json(
            f"/v2/aggs/ticker/{symbol}/range/1/day/{start.isoformat()}/{end.isoformat()}",
            params={"adjusted": "true", "sort": "asc"},
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:history-{symbol}-{days}-{end.isoformat()}",
            parse=parse,
        )
