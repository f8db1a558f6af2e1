"""Pure analysis functions: scoring, valuation, sentiment, sizing and indicators."""

from __future__ import annotations

from invest_workflows.analysis.engine import (
    RISK_MODELS,
    CompetitiveProfile,
    IndustryReport,
    PeerRatios,
    SectorMetrics,
    ValuationInputs,
    aggregate_analyst_sentiment,
    analyze_moat,
    build_risk_model,
    calculate_valuations,
    determine_position_size,
    score_sectors,
)
from invest_workflows.analysis.indicators import analyze_signals, compute_indicators

__all__ = [
    "RISK_MODELS",
    "CompetitiveProfile",
    "IndustryReport",
    "PeerRatios",
    "SectorMetrics",
    "ValuationInputs",
    "aggregate_analyst_sentiment",
    "analyze_moat",
    "analyze_signals",
    "build_risk_model",
    "calculate_valuations",
    "compute_indicators",
    "determine_position_size",
    "score_sectors",
]
