"""Scoring and aggregation algorithms of the research workflow.

Every function here is pure: the output depends only on the arguments, no I/O
is performed and nothing is cached. Step processors gather provider data, shape
it into the small input types below and hand it over.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from invest_workflows.core.artifacts import (
    AnalystSummary,
    BuyRecommendation,
    Fundamentals,
    MoatAnalysis,
    RiskModel,
    SectorRanking,
    ValuationMetrics,
)
from invest_workflows.core.types import (
    Consensus,
    MarketCapCategory,
    MarketTrend,
    OrderType,
    RiskModelType,
    RiskTolerance,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from invest_workflows.core.artifacts import AnalystRating
    from invest_workflows.core.models import InvestmentProfile
    from invest_workflows.providers.schemas import FinancialStatement, SectorPerformance

__all__ = [
    "RISK_MODELS",
    "CompetitiveProfile",
    "IndustryReport",
    "PeerRatios",
    "SectorMetrics",
    "ValuationInputs",
    "aggregate_analyst_sentiment",
    "analyze_moat",
    "build_risk_model",
    "calculate_valuations",
    "categorize_market_cap",
    "compound_annual_growth",
    "determine_position_size",
    "fundamentals_from_statements",
    "industry_outlook",
    "score_sectors",
    "sector_momentum",
    "summarize_market_conditions",
]

RISK_MODELS: dict[RiskModelType, RiskModel] = {
    RiskModelType.CONSERVATIVE: RiskModel(RiskModelType.CONSERVATIVE, max_position_size=5, diversification_min=20),
    RiskModelType.BALANCED: RiskModel(RiskModelType.BALANCED, max_position_size=10, diversification_min=10),
    RiskModelType.AGGRESSIVE: RiskModel(RiskModelType.AGGRESSIVE, max_position_size=15, diversification_min=7),
}
"""Preset position policies by name."""

_BUY_TERMS = ("buy", "outperform", "overweight")
_HOLD_TERMS = ("hold", "neutral", "equal")
_SELL_TERMS = ("sell", "underperform", "underweight")

_TREND_PHRASES = {
    MarketTrend.BULLISH: "Markets are showing positive momentum",
    MarketTrend.BEARISH: "Markets are experiencing downward pressure",
    MarketTrend.NEUTRAL: "Markets are trading sideways",
}


@dataclass(frozen=True)
class SectorMetrics:
    """Inputs of :func:`score_sectors` for one sector.

    Attributes:
        sector_name: Display name, also used to match industry reports.
        growth_rate: Growth proxy in percent.
        market_cap: Aggregate market capitalization.
        momentum: Normalized momentum between 0 and 1.
    """

    sector_name: str
    growth_rate: float = 0.0
    market_cap: float = 0.0
    momentum: float = 0.0


@dataclass(frozen=True)
class IndustryReport:
    sector: str
    outlook: str


@dataclass(frozen=True)
class ValuationInputs:
    """Ratios and per-share values of the company being valued.

    Reported ratios win; missing ones are derived from price and the
    per-share figures.
    """

    ticker: str
    price: float = 0.0
    pe_ratio: float | None = None
    pb_ratio: float | None = None
    earnings_per_share: float | None = None
    book_value_per_share: float | None = None


@dataclass(frozen=True)
class PeerRatios:
    ticker: str
    pe_ratio: float | None = None
    pb_ratio: float | None = None


@dataclass(frozen=True)
class CompetitiveProfile:
    """Raw competitive position data used by :func:`analyze_moat`.

    A None field means the source did not report it. Ratios such as
    ``retention_rate`` and ``operating_margin`` are fractions between 0 and 1.
    """

    ticker: str
    patent_count: int | None = None
    brand_value: float | None = None
    brand_recognition: float | None = None
    customer_count: int | None = None
    retention_rate: float | None = None
    customer_concentration: float | None = None
    operating_margin: float | None = None
    cost_efficiency: float | None = None
    has_customer_data: bool = field(default=False, compare=False)
    has_cost_data: bool = field(default=False, compare=False)

    @classmethod
    def from_raw(cls, ticker: str, raw: Mapping[str, object]) -> CompetitiveProfile:
        """Build the profile from a provider's nested competitive payload.

        Expects the shape ``{"patents": {"count": ...}, "brandValue": ...,
        "brandRecognition": ..., "customers": {"count", "retentionRate",
        "concentration"}, "costStructure": {"operatingMargin", "efficiency"}}``.
        Every key is optional.
        """
        patents = raw.get("patents")
        customers = raw.get("customers")
        costs = raw.get("costStructure")

        def number(source: object, key: str) -> float | None:
            if not isinstance(source, dict):
                return None
            value = source.get(key)
            return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None

        patent_count = number(patents, "count")
        customer_count = number(customers, "count")
        brand_value = raw.get("brandValue")
        brand_recognition = raw.get("brandRecognition")
        return cls(
            ticker=ticker,
            patent_count=int(patent_count) if patent_count is not None else (0 if patents else None),
            brand_value=float(brand_value) if isinstance(brand_value, (int, float)) else None,
            brand_recognition=float(brand_recognition) if isinstance(brand_recognition, (int, float)) else None,
            customer_count=int(customer_count) if customer_count is not None else None,
            retention_rate=number(customers, "retentionRate"),
            customer_concentration=number(customers, "concentration"),
            operating_margin=number(costs, "operatingMargin"),
            cost_efficiency=number(costs, "efficiency"),
            has_customer_data=bool(customers),
            has_cost_data=bool(costs),
        )


def score_sectors(
    sector_data: Iterable[SectorMetrics],
    industry_reports: Iterable[IndustryReport] = (),
) -> list[SectorRanking]:
    """Score and rank sectors.

    The score weighs growth at 50%, market cap in billions at 30% and
    momentum at 20%, rounded to two decimals. Sectors are returned best
    first; equal scores keep their input order.

    Args:
        sector_data: Metrics of each sector.
        industry_reports: Optional outlooks, matched on sector name.

    Returns:
        The ranked sectors.
    """
    outlooks = {}
    for report in industry_reports:
        outlooks.setdefault(report.sector, report.outlook)

    rankings = []
    for sector in sector_data:
        score = sector.growth_rate * 0.5 + (sector.market_cap / 1e9) * 0.3 + sector.momentum * 0.2

        if sector.growth_rate > 10:
            growth = f"strong growth ({sector.growth_rate:.1f}%)"
        elif sector.growth_rate > 5:
            growth = f"moderate growth ({sector.growth_rate:.1f}%)"
        else:
            growth = f"limited growth ({sector.growth_rate:.1f}%)"

        if sector.momentum > 0.7:
            momentum = "positive momentum"
        elif sector.momentum > 0.4:
            momentum = "neutral momentum"
        else:
            momentum = "weak momentum"

        rationale = f"Sector shows {growth} and {momentum}."
        if outlooks.get(sector.sector_name):
            rationale += f" Industry outlook: {outlooks[sector.sector_name]}."

        rankings.append(
            SectorRanking(
                sector_name=sector.sector_name,
                score=round(score, 2),
                rationale=rationale,
                data_points={
                    "growth_rate": sector.growth_rate,
                    "market_cap": sector.market_cap,
                    "momentum": sector.momentum,
                },
            )
        )

    # sorted() is stable, so ties keep their input order.
    return sorted(rankings, key=lambda ranking: ranking.score, reverse=True)


def sector_momentum(performance: SectorPerformance) -> float:
    """Weighted recent performance normalized to 0..1.

    Weights are 0.1 for one day, 0.2 for one week, 0.3 for one month and 0.4
    for three months. A weighted move of -20% maps to 0 and +20% to 1.
    """
    weighted = (
        performance.performance_1d * 0.1
        + performance.performance_1w * 0.2
        + performance.performance_1m * 0.3
        + performance.performance_3m * 0.4
    )
    return max(0.0, min(1.0, (weighted + 20) / 40))


def industry_outlook(performance_1y: float) -> str:
    """Outlook sentence derived from one-year performance."""
    if performance_1y > 15:
        return "Strong growth expected with favorable market conditions"
    if performance_1y > 5:
        return "Moderate growth with stable fundamentals"
    if performance_1y > -5:
        return "Neutral outlook with mixed indicators"
    return "Challenging conditions with headwinds"


def summarize_market_conditions(
    interest_rate: float,
    inflation_rate: float,
    unemployment_rate: float,
    market_trend: MarketTrend,
) -> str:
    """One sentence describing the macro environment.

    Example:
        >>> summarize_market_conditions(5.5, 3.0, 3.8, MarketTrend.BULLISH)
        'Interest rates are elevated at 5.50%, inflation is moderate at 3.00%, unemployment is low at 3.8%, Markets are showing positive momentum.'
    """
    if interest_rate > 5:
        rate = f"Interest rates are elevated at {interest_rate:.2f}%"
    elif interest_rate > 2:
        rate = f"Interest rates are moderate at {interest_rate:.2f}%"
    else:
        rate = f"Interest rates are low at {interest_rate:.2f}%"

    if inflation_rate > 4:
        inflation = f"inflation is high at {inflation_rate:.2f}%"
    elif inflation_rate > 2:
        inflation = f"inflation is moderate at {inflation_rate:.2f}%"
    else:
        inflation = f"inflation is low at {inflation_rate:.2f}%"

    if unemployment_rate > 6:
        unemployment = f"unemployment is elevated at {unemployment_rate:.1f}%"
    elif unemployment_rate > 4:
        unemployment = f"unemployment is moderate at {unemployment_rate:.1f}%"
    else:
        unemployment = f"unemployment is low at {unemployment_rate:.1f}%"

    return ", ".join((rate, inflation, unemployment, _TREND_PHRASES[MarketTrend(market_trend)])) + "."


def categorize_market_cap(market_cap: float) -> MarketCapCategory:
    """Bucket a market capitalization: large from $10B, mid from $2B."""
    if market_cap >= 10e9:
        return MarketCapCategory.LARGE
    if market_cap >= 2e9:
        return MarketCapCategory.MID
    return MarketCapCategory.SMALL


def compound_annual_growth(values: Sequence[float]) -> float:
    """Compound annual growth rate of a series, in percent.

    Args:
        values: One value per year, newest first. Zero and negative values are
            ignored because growth between them is undefined.

    Returns:
        The CAGR between the oldest and newest positive values, or 0 when
        fewer than two remain.
    """
    positive = [value for value in values if value > 0]
    if len(positive) < 2:
        return 0.0
    newest, oldest = positive[0], positive[-1]
    return ((newest / oldest) ** (1 / (len(positive) - 1)) - 1) * 100


def fundamentals_from_statements(
    ticker: str,
    income: Sequence[FinancialStatement],
    balance: FinancialStatement,
    cash_flow: FinancialStatement,
) -> Fundamentals:
    """Derive fundamentals from annual statements.

    Args:
        ticker: The company.
        income: Income statements, newest first.
        balance: Latest balance sheet.
        cash_flow: Latest cash flow statement.

    Returns:
        Growth over the income statements, plus margin, leverage and cash flow
        of the latest year.
    """
    latest = income[0]
    return Fundamentals(
        ticker=ticker.upper(),
        revenue_growth_5y=round(compound_annual_growth([row.revenue for row in income]), 2),
        earnings_growth_5y=round(compound_annual_growth([row.net_income for row in income]), 2),
        profit_margin=round(latest.net_income / latest.revenue * 100, 2) if latest.revenue > 0 else 0.0,
        debt_to_equity=round(balance.liabilities / balance.equity, 2) if balance.equity > 0 else 0.0,
        free_cash_flow=cash_flow.operating_cash_flow,
        analyzed_at=datetime.now(timezone.utc),
    )


def _compare(value: float, average: float) -> str:
    if value <= 0 or average <= 0:
        return "N/A"
    if value < average * 0.9:
        return "undervalued"
    if value > average * 1.1:
        return "overvalued"
    return "fairly valued"


def _positive_average(values: Iterable[float | None]) -> float:
    positive = [value for value in values if value is not None and value > 0]
    return sum(positive) / len(positive) if positive else 0.0


def calculate_valuations(fundamentals: ValuationInputs, peers: Sequence[PeerRatios]) -> ValuationMetrics:
    """Value a company against its peers.

    A ratio more than 10% below the peer average reads as undervalued, more
    than 10% above as overvalued. Only peers reporting a positive ratio count
    towards each average. The fair value estimate applies the average peer PE
    to the company's earnings per share.

    Args:
        fundamentals: The company's ratios and per-share values.
        peers: Ratios of comparable companies.

    Returns:
        The ratios, rounded to two decimals, with the peer comparison.
    """
    price = fundamentals.price
    eps = fundamentals.earnings_per_share or 0.0
    bvps = fundamentals.book_value_per_share or 0.0

    pe_ratio = fundamentals.pe_ratio or (price / eps if price and eps else 0.0)
    pb_ratio = fundamentals.pb_ratio or (price / bvps if price and bvps else 0.0)

    fair_value = None
    if peers:
        avg_pe = _positive_average(peer.pe_ratio for peer in peers)
        avg_pb = _positive_average(peer.pb_ratio for peer in peers)
        vs_peers = (
            f"PE ratio is {_compare(pe_ratio, avg_pe)} vs peers (avg: {avg_pe:.2f}). "
            f"PB ratio is {_compare(pb_ratio, avg_pb)} vs peers (avg: {avg_pb:.2f})."
        )
        if avg_pe > 0 and eps > 0:
            fair_value = round(avg_pe * eps, 2)
    else:
        vs_peers = "No peer data available for comparison."

    return ValuationMetrics(
        ticker=fundamentals.ticker,
        pe_ratio=round(pe_ratio, 2),
        pb_ratio=round(pb_ratio, 2),
        vs_peers=vs_peers,
        fair_value_estimate=fair_value,
    )


def analyze_moat(company_profile: CompetitiveProfile) -> MoatAnalysis:
    """Rate patents, brand, customers and cost position from 0 to 3 each.

    The overall score is the sum as a percentage of the maximum of 12.
    Dimensions the profile has no data for score 0.
    """
    profile = company_profile

    patents, patent_score = "No patent information available.", 0
    count = profile.patent_count or 0
    if count > 100:
        patents, patent_score = f"Strong patent portfolio with {count}+ patents providing significant IP protection.", 3
    elif count > 20:
        patents, patent_score = f"Moderate patent portfolio with {count} patents.", 2
    elif count > 0:
        patents, patent_score = f"Limited patent portfolio with {count} patents.", 1

    brand, brand_score = "Brand strength not assessed.", 0
    if profile.brand_value or profile.brand_recognition:
        value = profile.brand_value or 0.0
        recognition = profile.brand_recognition or 0.0
        if value > 10e9 or recognition > 0.8:
            brand, brand_score = "Exceptional brand with global recognition and strong customer loyalty.", 3
        elif value > 1e9 or recognition > 0.5:
            brand, brand_score = "Strong brand with significant market presence.", 2
        else:
            brand, brand_score = "Developing brand with limited recognition.", 1

    customers, customer_score = "Customer base information not available.", 0
    if profile.has_customer_data or profile.customer_count is not None:
        customer_count = profile.customer_count or 0
        retention = profile.retention_rate or 0.0
        concentration = profile.customer_concentration or 0.0
        if customer_count > 1_000_000 and retention > 0.9:
            customers = (
                f"Large, loyal customer base with {customer_count:,}+ customers "
                f"and {retention * 100:.0f}% retention rate."
            )
            customer_score = 3
        elif customer_count > 100_000 and retention > 0.7:
            customers = f"Solid customer base with {customer_count:,} customers and {retention * 100:.0f}% retention."
            customer_score = 2
        elif concentration < 0.3:
            customers, customer_score = "Diversified customer base with low concentration risk.", 2
        else:
            customers, customer_score = f"Growing customer base with {customer_count:,} customers.", 1

    cost, cost_score = "Cost position not assessed.", 0
    if profile.has_cost_data or profile.operating_margin is not None or profile.cost_efficiency is not None:
        margin = profile.operating_margin or 0.0
        efficiency = profile.cost_efficiency or 0.0
        if margin > 0.25 or efficiency > 0.8:
            cost, cost_score = "Strong cost leadership with industry-leading margins and operational efficiency.", 3
        elif margin > 0.15 or efficiency > 0.6:
            cost, cost_score = "Competitive cost structure with above-average margins.", 2
        else:
            cost, cost_score = "Average cost position relative to peers.", 1

    total = patent_score + brand_score + customer_score + cost_score
    return MoatAnalysis(
        ticker=profile.ticker,
        patents=patents,
        brand_strength=brand,
        customer_base=customers,
        cost_leadership=cost,
        overall_moat_score=round(total / 12 * 100),
    )


def _classify_rating(label: str) -> str | None:
    lowered = label.lower()
    for bucket, terms in (("buy", _BUY_TERMS), ("hold", _HOLD_TERMS), ("sell", _SELL_TERMS)):
        if any(term in lowered for term in terms):
            return bucket
    return None


def aggregate_analyst_sentiment(ratings: Iterable[AnalystRating], ticker: str) -> AnalystSummary:
    """Count ratings and derive the consensus.

    Labels are matched case-insensitively by substring, checking buy terms
    first, then hold, then sell, so "Strong Buy" counts as a buy. Labels that
    match nothing are left out of the counts, but their price targets still
    count towards the average.

    The consensus is strong buy from 70% buys, buy from 50% buys, sell from
    50% sells, and hold otherwise.

    Args:
        ratings: Individual analyst ratings.
        ticker: The rated company.

    Returns:
        The aggregated sentiment.
    """
    counts = {"buy": 0, "hold": 0, "sell": 0}
    targets = []
    for rating in ratings:
        bucket = _classify_rating(rating.rating or "")
        if bucket is not None:
            counts[bucket] += 1
        if rating.price_target is not None and rating.price_target > 0:
            targets.append(rating.price_target)

    total = sum(counts.values())
    consensus = Consensus.HOLD
    if total:
        buy_pct = counts["buy"] / total * 100
        sell_pct = counts["sell"] / total * 100
        if buy_pct >= 70:
            consensus = Consensus.STRONG_BUY
        elif buy_pct >= 50:
            consensus = Consensus.BUY
        elif sell_pct >= 50:
            consensus = Consensus.SELL

    return AnalystSummary(
        ticker=ticker,
        buy_count=counts["buy"],
        hold_count=counts["hold"],
        sell_count=counts["sell"],
        average_target=round(sum(targets) / len(targets), 2) if targets else 0.0,
        consensus=consensus,
    )


def build_risk_model(risk_model_type: RiskModelType | str) -> RiskModel:
    """Return the preset policy for a risk model name.

    Raises:
        ValueError: If the name is not a known preset.
    """
    return RISK_MODELS[RiskModelType(risk_model_type)]


def determine_position_size(
    profile: InvestmentProfile,
    price: float,
    risk_model: RiskModel,
    ticker: str,
) -> BuyRecommendation:
    """Size a position within the risk model's allocation ceiling.

    The allocation is the smaller of the preset ceiling for the model type
    and the model's own ``max_position_size``. Only whole shares are bought,
    so the invested amount can fall short of the allocation and may be zero
    for expensive stocks.

    Args:
        profile: The investor; supplies capital and risk tolerance.
        price: Entry price per share. Must be positive.
        risk_model: The position policy.
        ticker: The stock being bought.

    Returns:
        The recommended order.
    """
    capital = profile.capital_available
    ceiling = RISK_MODELS[RiskModelType(risk_model.type)].max_position_size
    percentage = min(ceiling, risk_model.max_position_size)

    shares = math.floor(capital * percentage / 100 / price)
    invested = shares * price

    return BuyRecommendation(
        ticker=ticker,
        shares_to_buy=shares,
        entry_price=price,
        order_type=OrderType.MARKET if profile.risk_tolerance == RiskTolerance.HIGH else OrderType.LIMIT,
        total_investment=round(invested, 2),
        portfolio_percentage=round(invested / capital * 100, 2) if capital else 0.0,
    )
