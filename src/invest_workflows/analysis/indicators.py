"""Technical indicators computed from daily closing prices.

Inputs are closes in chronological order, oldest first. Functions return None
when the series is too short for the requested period instead of guessing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.core.artifacts import TechnicalSignals
from invest_workflows.core.types import PriceTrend

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "BollingerBands",
    "MACD",
    "analyze_signals",
    "bollinger_bands",
    "compute_indicators",
    "detect_ma_cross",
    "determine_trend",
    "ema",
    "macd",
    "rsi",
    "sma",
]

TREND_MIN_BARS = 20
MA_CROSS_TOLERANCE = 0.02


@dataclass(frozen=True)
class MACD:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


def sma(values: Sequence[float], period: int) -> float | None:
    """Simple moving average of the last ``period`` values."""
    if period <= 0 or len(values) < period:
        return None
    return sum(values[-period:]) / period


def _ema_series(values: Sequence[float], period: int) -> list[float]:
    multiplier = 2 / (period + 1)
    series = [values[0]]
    for value in values[1:]:
        series.append((value - series[-1]) * multiplier + series[-1])
    return series


def ema(values: Sequence[float], period: int) -> float | None:
    """Exponential moving average, seeded with the first value."""
    if period <= 0 or len(values) < period:
        return None
    return _ema_series(values, period)[-1]


def rsi(values: Sequence[float], period: int = 14) -> float | None:
    """Relative strength index over the last ``period`` price changes.

    Uses simple averages of gains and losses. A window without losses
    returns 100.
    """
    if len(values) < period + 1:
        return None
    changes = [current - previous for previous, current in zip(values[-period - 1 : -1], values[-period:])]
    avg_gain = sum(change for change in changes if change > 0) / period
    avg_loss = sum(-change for change in changes if change < 0) / period
    if avg_loss == 0:
        return 100.0
    return 100 - 100 / (1 + avg_gain / avg_loss)


def macd(values: Sequence[float], fast: int = 12, slow: int = 26, signal_period: int = 9) -> MACD | None:
    """MACD line, signal line and histogram.

    The signal line is the EMA of the MACD series once ``slow`` values exist.
    With fewer than ``slow + signal_period`` values it falls back to the MACD
    line itself, leaving a zero histogram.
    """
    if len(values) < slow:
        return None
    fast_series = _ema_series(values, fast)
    slow_series = _ema_series(values, slow)
    macd_series = [f - s for f, s in zip(fast_series[slow - 1 :], slow_series[slow - 1 :])]
    line = macd_series[-1]
    signal = _ema_series(macd_series, signal_period)[-1] if len(macd_series) >= signal_period else line
    return MACD(macd=line, signal=signal, histogram=line - signal)


def bollinger_bands(values: Sequence[float], period: int = 20, num_std: float = 2) -> BollingerBands | None:
    """Bands ``num_std`` population standard deviations around the SMA."""
    middle = sma(values, period)
    if middle is None:
        return None
    window = values[-period:]
    deviation = math.sqrt(sum((value - middle) ** 2 for value in window) / period)
    return BollingerBands(upper=middle + num_std * deviation, middle=middle, lower=middle - num_std * deviation)


def determine_trend(closes: Sequence[float], sma20: float | None = None, sma50: float | None = None) -> PriceTrend:
    """Classify the price direction.

    With both moving averages available, price above a rising stack
    (price > SMA20 > SMA50) is upward and the mirror image downward. Without
    them, a move of more than 5% over the last 20 bars decides. Fewer than 20
    bars is always sideways.
    """
    if len(closes) < TREND_MIN_BARS:
        return PriceTrend.SIDEWAYS
    price = closes[-1]
    if not sma20 or not sma50:
        past = closes[-TREND_MIN_BARS]
        change = (price - past) / past * 100 if past else 0.0
        if change > 5:
            return PriceTrend.UPWARD
        if change < -5:
            return PriceTrend.DOWNWARD
        return PriceTrend.SIDEWAYS
    if price > sma20 > sma50:
        return PriceTrend.UPWARD
    if price < sma20 < sma50:
        return PriceTrend.DOWNWARD
    return PriceTrend.SIDEWAYS


def detect_ma_cross(sma20: float | None, sma50: float | None) -> bool:
    """Whether SMA20 sits within 2% of SMA50, i.e. a cross is near."""
    if not sma20 or not sma50:
        return False
    return abs(sma20 - sma50) / sma50 < MA_CROSS_TOLERANCE


def compute_indicators(closes: Sequence[float]) -> dict[str, Any]:
    """Every supported indicator for a close series.

    Indicators the history is too short for are None.
    """
    macd_value = macd(closes)
    bands = bollinger_bands(closes)
    return {
        "sma20": sma(closes, 20),
        "sma50": sma(closes, 50),
        "sma200": sma(closes, 200),
        "ema20": ema(closes, 20),
        "ema50": ema(closes, 50),
        "rsi": rsi(closes),
        "macd": None
        if macd_value is None
        else {"macd": macd_value.macd, "signal": macd_value.signal, "histogram": macd_value.histogram},
        "bollinger_bands": None
        if bands is None
        else {"upper": bands.upper, "middle": bands.middle, "lower": bands.lower},
    }


def analyze_signals(ticker: str, closes: Sequence[float], indicators: dict[str, Any] | None = None) -> TechnicalSignals:
    """Summarize a close series as trend, cross and RSI signals.

    Raises:
        ValueError: If ``closes`` is empty.
    """
    if not closes:
        msg = "No price data available for analysis"
        raise ValueError(msg)
    indicators = indicators if indicators is not None else compute_indicators(closes)
    return TechnicalSignals(
        ticker=ticker,
        trend=determine_trend(closes, indicators.get("sma20"), indicators.get("sma50")),
        ma_cross=detect_ma_cross(indicators.get("sma20"), indicators.get("sma50")),
        rsi=indicators.get("rsi"),
        analyzed_at=datetime.now(timezone.utc),
    )
