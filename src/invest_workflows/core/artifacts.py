"""Value objects produced by the research steps.

Artifacts have no identity or lifecycle of their own; they live inside the
:class:`~invest_workflows.core.results.StepResult` that carries them. The
analysis artifacts are frozen because they are fully determined by their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from invest_workflows.core.types import (
    Consensus,
    MarketCapCategory,
    MarketTrend,
    OrderType,
    PriceTrend,
    ReviewFrequency,
    RiskModelType,
)

__all__ = [
    "AlertThresholds",
    "AnalystRating",
    "AnalystSummary",
    "BuyRecommendation",
    "CompanySummary",
    "FilingSummary",
    "Fundamentals",
    "MacroSnapshot",
    "MoatAnalysis",
    "MonitoringPlan",
    "RiskModel",
    "ScreeningFilters",
    "SectorRanking",
    "StockCandidate",
    "TechnicalSignals",
    "TradeConfirmation",
    "ValuationMetrics",
]


@dataclass
class MacroSnapshot:
    """Economic indicators and market direction at a point in time.

    Attributes:
        interest_rate: Effective federal funds rate in percent.
        inflation_rate: Year over year CPI change in percent.
        unemployment_rate: Unemployment rate in percent.
        market_trend: Broad market direction.
        summary: One sentence describing the conditions.
        fetched_at: When the snapshot was assembled.
    """

    interest_rate: float
    inflation_rate: float
    unemployment_rate: float
    market_trend: MarketTrend
    summary: str
    fetched_at: datetime


@dataclass(frozen=True)
class SectorRanking:
    """A scored sector with the reasoning behind its score."""

    sector_name: str
    score: float
    rationale: str
    data_points: dict[str, float] = field(default_factory=dict)


@dataclass
class ScreeningFilters:
    """Criteria used to screen stocks. Every field is optional."""

    market_cap: MarketCapCategory | None = None
    dividend_yield_min: float | None = None
    pe_ratio_max: float | None = None
    sector: str | None = None
    min_price: float | None = None
    max_price: float | None = None

    def as_params(self) -> dict[str, Any]:
        """Return the non-empty filters as a plain dict."""
        return {key: value for key, value in self.__dict__.items() if value is not None}


@dataclass
class StockCandidate:
    """A stock that passed the screen."""

    ticker: str
    company_name: str
    sector: str
    dividend_yield: float
    pe_ratio: float
    market_cap: MarketCapCategory


@dataclass
class Fundamentals:
    """Financial health metrics for one company.

    Growth rates and margins are percentages. Free cash flow is in the
    reporting currency.
    """

    ticker: str
    revenue_growth_5y: float
    earnings_growth_5y: float
    profit_margin: float
    debt_to_equity: float
    free_cash_flow: float
    analyzed_at: datetime


@dataclass
class FilingSummary:
    """Summary of the regulatory filings found for a company."""

    count: int = 0
    latest_form_type: str | None = None
    latest_filing_date: str | None = None
    latest_report_date: str | None = None


@dataclass
class CompanySummary:
    """Basic descriptive company information."""

    name: str
    sector: str
    industry: str
    description: str = ""


@dataclass(frozen=True)
class MoatAnalysis:
    """Qualitative assessment of a company's competitive advantages."""

    ticker: str
    patents: str
    brand_strength: str
    customer_base: str
    cost_leadership: str
    overall_moat_score: int


@dataclass(frozen=True)
class ValuationMetrics:
    """Valuation ratios compared against peers."""

    ticker: str
    pe_ratio: float
    pb_ratio: float
    vs_peers: str
    fair_value_estimate: float | None = None


@dataclass(frozen=True)
class TechnicalSignals:
    """Price trend signals derived from historical bars."""

    ticker: str
    trend: PriceTrend
    ma_cross: bool
    analyzed_at: datetime
    rsi: float | None = None


@dataclass(frozen=True)
class AnalystRating:
    """A single analyst rating as reported by a ratings provider."""

    rating: str
    price_target: float | None = None
    analyst: str | None = None
    firm: str | None = None
    date: str | None = None


@dataclass(frozen=True)
class AnalystSummary:
    """Aggregated analyst sentiment for one ticker."""

    ticker: str
    buy_count: int
    hold_count: int
    sell_count: int
    average_target: float
    consensus: Consensus


@dataclass(frozen=True)
class RiskModel:
    """Policy bounding the size of one position.

    Attributes:
        type: The named policy.
        max_position_size: Maximum share of the portfolio for one position, in percent.
        diversification_min: Minimum number of positions the policy expects.
    """

    type: RiskModelType
    max_position_size: float
    diversification_min: int


@dataclass(frozen=True)
class BuyRecommendation:
    """How much of a stock to buy and how to place the order."""

    ticker: str
    shares_to_buy: int
    entry_price: float
    order_type: OrderType
    total_investment: float
    portfolio_percentage: float


@dataclass
class TradeConfirmation:
    """Confirmation of a simulated trade. ``is_mock`` is always true."""

    ticker: str
    quantity: int
    price: float
    confirmation_id: str
    executed_at: datetime
    is_mock: bool = True


@dataclass
class AlertThresholds:
    """Price move thresholds, in percent, that trigger an alert."""

    price_drop_percent: float | None = None
    price_gain_percent: float | None = None


@dataclass
class MonitoringPlan:
    """Alerts and review schedule for a position."""

    ticker: str
    price_alerts_set: bool
    earnings_review_planned: bool
    review_frequency: ReviewFrequency
    next_review_date: date
    alert_thresholds: AlertThresholds | None = None
