"""TradingView adapter: daily chart bars and the signals derived from them."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.indicators import analyze_signals
from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.schemas import HistoricalBar, HistoricalData, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.artifacts import TechnicalSignals
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["TradingViewAdapter"]


def _timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        # Chart times come in seconds or milliseconds depending on the feed.
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class TradingViewAdapter:
    name = "tradingview"

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
            settings.tradingview_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_history("AAPL", days=1))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {"history": self.get_history, "signals": self.get_signals},
            params,
        )

    async def get_history(self, ticker: str, days: int = 200) -> HistoricalData:
        symbol = ticker.upper()

        def parse(data: Any) -> HistoricalData:
            candles = data.get("bars") or data.get("candles") or []
            if not candles:
                msg = f"No chart data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            bars = [
                HistoricalBar(
                    timestamp=_timestamp(candle["time"]),
                    open=float(candle["open"]),
                    high=float(candle["high"]),
                    low=float(candle["low"]),
                    close=float(candle["close"]),
                    volume=parse_number(candle.get("volume")) or 0.0,
                )
                for candle in candles
            ]
            bars.sort(key=lambda bar: bar.timestamp)
            return HistoricalData(ticker=symbol, bars=bars, source=self.name)

        return await self.client.get_json(
            f"/v1/chart/{symbol}",
            params={"timeframe": "1D", "bars": days},
            category=CacheCategory.QUOTES,
            cache_key=f"{self.name}:chart-{symbol}-{days}",
            parse=parse,
        )

    async def get_signals(self, ticker: str) -> TechnicalSignals:
        """Trend, moving average cross and RSI from 200 daily bars."""
        history = await self.get_history(ticker)
        return analyze_signals(history.ticker, history.closes)
