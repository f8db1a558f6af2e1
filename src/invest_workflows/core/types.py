"""Core type definitions for invest-workflows.

This module defines the enums and type aliases shared by the orchestrator, the
step processors, the provider layer and the analysis engine.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum, auto
from typing import Any, TypeAlias

__all__ = [
    "TOTAL_STEPS",
    "CacheCategory",
    "Consensus",
    "ErrorKind",
    "IndicatorName",
    "InvestmentGoal",
    "MarketCapCategory",
    "MarketTrend",
    "OrderType",
    "PriceTrend",
    "ReviewFrequency",
    "RiskModelType",
    "RiskTolerance",
    "StepId",
    "StepInputs",
]


class StepId(IntEnum):
    """Identifiers of the twelve research steps, in workflow order."""

    PROFILE_DEFINITION = 1
    MARKET_CONDITIONS = 2
    SECTOR_IDENTIFICATION = 3
    STOCK_SCREENING = 4
    FUNDAMENTAL_ANALYSIS = 5
    COMPETITIVE_POSITION = 6
    VALUATION_EVALUATION = 7
    TECHNICAL_TRENDS = 8
    ANALYST_SENTIMENT = 9
    POSITION_SIZING = 10
    MOCK_TRADE = 11
    MONITORING_SETUP = 12


TOTAL_STEPS = len(StepId)
"""Number of steps in a research workflow."""


class RiskTolerance(StrEnum):
    """Investor risk tolerance.

    Attributes:
        LOW: Capital preservation first.
        MEDIUM: Balanced risk and return.
        HIGH: Accepts volatility for higher returns.
    """

    LOW = auto()
    MEDIUM = auto()
    HIGH = auto()


class InvestmentGoal(StrEnum):
    """Long-term investment goal of a profile."""

    STEADY_GROWTH = "steady growth"
    DIVIDEND_INCOME = "dividend income"
    CAPITAL_PRESERVATION = "capital preservation"


class MarketTrend(StrEnum):
    """Broad market direction."""

    BULLISH = auto()
    BEARISH = auto()
    NEUTRAL = auto()


class PriceTrend(StrEnum):
    """Price direction of a single instrument."""

    UPWARD = auto()
    DOWNWARD = auto()
    SIDEWAYS = auto()


class MarketCapCategory(StrEnum):
    """Market capitalization bucket.

    Attributes:
        LARGE: At least $10B.
        MID: At least $2B.
        SMALL: Below $2B.
    """

    LARGE = auto()
    MID = auto()
    SMALL = auto()


class Consensus(StrEnum):
    """Aggregated analyst recommendation."""

    STRONG_BUY = "strong buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"


class OrderType(StrEnum):
    """Order type of a buy recommendation."""

    MARKET = auto()
    LIMIT = auto()


class RiskModelType(StrEnum):
    """Named policies bounding per-position portfolio allocation."""

    CONSERVATIVE = auto()
    BALANCED = auto()
    AGGRESSIVE = auto()


class ReviewFrequency(StrEnum):
    """How often a monitored position is reviewed."""

    QUARTERLY = auto()
    YEARLY = auto()


class IndicatorName(StrEnum):
    """Technical indicators that can be requested in the technical trends step."""

    MOVING_AVERAGE = "moving average"
    RSI = "RSI"


class ErrorKind(StrEnum):
    """Closed set of provider failure kinds.

    Attributes:
        CONFIGURATION: Missing key or settings. Fatal for the adapter.
        NETWORK: Transient transport failure. Retried.
        RATE_LIMIT: Quota exceeded. Carries a suggested wait.
        VALIDATION: Malformed response or request. Not retried.
        NOT_FOUND: Entity absent at the provider. Not retried.
    """

    CONFIGURATION = auto()
    NETWORK = auto()
    RATE_LIMIT = auto()
    VALIDATION = auto()
    NOT_FOUND = auto()


class CacheCategory(StrEnum):
    """Cache categories, each with its own freshness window."""

    QUOTES = "quotes"
    COMPANY_PROFILES = "company-profiles"
    SECTOR_DATA = "sector-data"
    MACRO_DATA = "macro-data"
    FINANCIAL_STATEMENTS = "financial-statements"
    VALUATION_DATA = "valuation-data"
    ANALYST_RATINGS = "analyst-ratings"
    STOCK_SCREENS = "stock-screens"


StepInputs: TypeAlias = dict[str, Any]
"""Raw, unvalidated input bag submitted for a step."""
