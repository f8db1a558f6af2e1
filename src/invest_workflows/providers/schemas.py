"""Normalized provider payloads.

Adapters answering the same logical endpoint return the same type, which is
what makes them interchangeable inside a fallback chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from invest_workflows.core.types import MarketTrend

__all__ = [
    "CompanyProfile",
    "Filing",
    "FinancialStatement",
    "HistoricalBar",
    "HistoricalData",
    "MarketIndex",
    "MarketSnapshot",
    "Quote",
    "ScreenedStock",
    "SectorPerformance",
    "ValuationSnapshot",
    "parse_number",
]


def parse_number(value: Any) -> float | None:
    """Coerce a provider value to float.

    Handles the placeholders providers use for missing data (``"-"``,
    ``"None"``, ``"."``, empty strings) and Yahoo's ``{"raw": ...}`` wrappers.

    Returns:
        The number, or None when the value is missing or not numeric.
    """
    if isinstance(value, dict):
        value = value.get("raw")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "").rstrip("%")
    if text in ("", "-", ".", "None", "N/A"):
        return None
    try:
        return float(text)
    except ValueError:
        return None


@dataclass
class Quote:
    """Latest price of one instrument."""

    ticker: str
    price: float
    source: str
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    market_cap: float | None = None
    pe_ratio: float | None = None
    dividend_yield: float | None = None
    timestamp: datetime | None = None


@dataclass
class CompanyProfile:
    """Descriptive company information.

    ``competitive`` carries the raw moat inputs (patents, brand, customers,
    cost structure) for providers that report them.
    """

    ticker: str
    name: str
    source: str
    sector: str = "Unknown"
    industry: str = "Unknown"
    description: str = ""
    market_cap: float | None = None
    website: str | None = None
    employees: int | None = None
    headquarters: str | None = None
    competitive: dict[str, Any] = field(default_factory=dict)


@dataclass
class FinancialStatement:
    """One annual statement row. Fields a statement does not report stay 0."""

    ticker: str
    date: str
    revenue: float = 0.0
    net_income: float = 0.0
    eps: float = 0.0
    assets: float = 0.0
    liabilities: float = 0.0
    equity: float = 0.0
    operating_cash_flow: float = 0.0


@dataclass
class HistoricalBar:
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass
class HistoricalData:
    """Daily bars in chronological order."""

    ticker: str
    bars: list[HistoricalBar]
    source: str

    @property
    def closes(self) -> list[float]:
        return [bar.close for bar in self.bars]


@dataclass
class SectorPerformance:
    """Trailing returns of a sector, in percent."""

    sector_name: str
    performance_1d: float = 0.0
    performance_1w: float = 0.0
    performance_1m: float = 0.0
    performance_3m: float = 0.0
    performance_1y: float = 0.0
    market_cap: float = 0.0


@dataclass
class ScreenedStock:
    """A row returned by a stock screener."""

    ticker: str
    company_name: str
    sector: str
    industry: str = ""
    market_cap: float = 0.0
    pe_ratio: float = 0.0
    dividend_yield: float = 0.0
    price: float = 0.0


@dataclass
class Filing:
    """A regulatory filing."""

    accession_number: str
    form_type: str
    filing_date: str
    report_date: str
    primary_document: str | None = None


@dataclass
class ValuationSnapshot:
    """Valuation ratios of one company as reported by a provider."""

    ticker: str
    source: str
    pe_ratio: float = 0.0
    pb_ratio: float = 0.0
    current_price: float = 0.0
    ps_ratio: float | None = None
    peg_ratio: float | None = None
    ev_to_ebitda: float | None = None
    price_to_free_cash_flow: float | None = None
    fair_value_estimate: float | None = None
    upside: float | None = None
    valuation_score: float | None = None

    @property
    def earnings_per_share(self) -> float:
        return self.current_price / self.pe_ratio if self.pe_ratio > 0 else 0.0

    @property
    def book_value_per_share(self) -> float:
        return self.current_price / self.pb_ratio if self.pb_ratio > 0 else 0.0


@dataclass
class MarketIndex:
    name: str
    value: float
    change: float
    change_percent: float


@dataclass
class MarketSnapshot:
    """Major index moves and the broad trend derived from them."""

    indices: list[MarketIndex]
    trend: MarketTrend
    source: str

    @classmethod
    def from_indices(cls, indices: list[MarketIndex], source: str) -> MarketSnapshot:
        """Derive the trend from the average index move.

        An average change above 0.5% is bullish, below -0.5% bearish, and
        anything in between neutral.
        """
        average = sum(index.change_percent for index in indices) / len(indices) if indices else 0.0
        if average > 0.5:
            trend = MarketTrend.BULLISH
        elif average < -0.5:
            trend = MarketTrend.BEARISH
        else:
            trend = MarketTrend.NEUTRAL
        return cls(indices=indices, trend=trend, source=source)
