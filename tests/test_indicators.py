"""Tests for the technical indicators."""

from __future__ import annotations

import pytest

from invest_workflows.analysis.indicators import (
    analyze_signals,
    bollinger_bands,
    compute_indicators,
    detect_ma_cross,
    determine_trend,
    ema,
    macd,
    rsi,
    sma,
)
from invest_workflows.core.types import PriceTrend


def rising(count: int, start: float = 100.0, step: float = 1.0) -> list[float]:
    return [start + step * index for index in range(count)]


@pytest.mark.unit
class TestMovingAverages:
    """Tests for simple and exponential moving averages."""

    def test_sma_uses_last_values(self) -> None:
        """Test the SMA only averages the trailing window."""
        assert sma([1.0, 2.0, 3.0, 4.0, 5.0], 3) == 4.0

    def test_sma_short_series(self) -> None:
        """Test the SMA is None when the series is shorter than the period."""
        assert sma([1.0, 2.0], 3) is None
        assert sma([1.0, 2.0], 0) is None

    def test_ema_constant_series(self) -> None:
        """Test the EMA of a flat series equals the price."""
        assert ema([10.0] * 30, 20) == pytest.approx(10.0)

    def test_ema_lags_rising_series(self) -> None:
        """Test the EMA of a rising series trails the latest close."""
        closes = rising(50)

        assert closes[0] < ema(closes, 20) < closes[-1]
        assert ema(closes[:10], 20) is None


@pytest.mark.unit
class TestOscillators:
    """Tests for RSI, MACD and Bollinger Bands."""

    def test_rsi_without_losses(self) -> None:
        """Test a window with only gains gives an RSI of 100."""
        assert rsi(rising(20)) == 100.0

    def test_rsi_balanced_moves(self) -> None:
        """Test equal average gains and losses give an RSI of 50."""
        closes = [100.0 + (index % 2) for index in range(15)]

        assert rsi(closes) == pytest.approx(50.0)

    def test_rsi_short_series(self) -> None:
        """Test the RSI needs period plus one closes."""
        assert rsi(rising(14)) is None

    def test_macd_needs_slow_period(self) -> None:
        """Test MACD is None with fewer than 26 closes."""
        assert macd(rising(25)) is None

    def test_macd_rising_series(self) -> None:
        """Test the MACD line is positive on a steady uptrend."""
        result = macd(rising(60))

        assert result is not None
        assert result.macd > 0
        assert result.histogram == pytest.approx(result.macd - result.signal)

    def test_bollinger_bands_flat_series(self) -> None:
        """Test the bands collapse onto the SMA when prices do not move."""
        bands = bollinger_bands([50.0] * 20)

        assert bands is not None
        assert bands.upper == bands.middle == bands.lower == 50.0

    def test_bollinger_bands_short_series(self) -> None:
        """Test the bands are None without a full window."""
        assert bollinger_bands(rising(19)) is None


@pytest.mark.unit
class TestSignals:
    """Tests for trend classification and signal summaries."""

    def test_short_history_is_sideways(self) -> None:
        """Test fewer than 20 bars is always sideways."""
        assert determine_trend(rising(19, step=10.0)) == PriceTrend.SIDEWAYS

    def test_trend_from_moving_averages(self) -> None:
        """Test price above a rising average stack is upward."""
        closes = rising(60)

        assert determine_trend(closes, sma(closes, 20), sma(closes, 50)) == PriceTrend.UPWARD
        falling = list(reversed(closes))
        assert determine_trend(falling, sma(falling, 20), sma(falling, 50)) == PriceTrend.DOWNWARD

    def test_trend_without_moving_averages(self) -> None:
        """Test the 20-bar change decides when averages are missing."""
        assert determine_trend(rising(20, step=1.0)) == PriceTrend.UPWARD
        assert determine_trend(rising(20, step=0.1)) == PriceTrend.SIDEWAYS
        assert determine_trend(rising(20, start=200.0, step=-2.0)) == PriceTrend.DOWNWARD

    def test_ma_cross_tolerance(self) -> None:
        """Test a cross is flagged only within 2% of SMA50."""
        assert detect_ma_cross(101.0, 100.0) is True
        assert detect_ma_cross(103.0, 100.0) is False
        assert detect_ma_cross(None, 100.0) is False

    def test_compute_indicators_keys(self) -> None:
        """Test every indicator is reported, None when history is short."""
        indicators = compute_indicators(rising(60))

        assert set(indicators) == {"sma20", "sma50", "sma200", "ema20", "ema50", "rsi", "macd", "bollinger_bands"}
        assert indicators["sma200"] is None
        assert indicators["sma50"] == pytest.approx(sma(rising(60), 50))
        assert set(indicators["macd"]) == {"macd", "signal", "histogram"}

    def test_analyze_signals(self) -> None:
        """Test the signal summary for a steady uptrend."""
        signals = analyze_signals("ACME", rising(60))

        assert signals.ticker == "ACME"
        assert signals.trend == PriceTrend.UPWARD
        assert signals.rsi == 100.0

    def test_analyze_signals_requires_data(self) -> None:
        """Test an empty close series is rejected."""
        with pytest.raises(ValueError, match="No price data available for analysis"):
            analyze_signals("ACME", [])
