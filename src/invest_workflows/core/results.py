"""Step results as a tagged union.

Every research step has one concrete result class. The ``step_id`` class
attribute is the tag: it selects the class when a stored payload is loaded
back, so each step's artifacts come back fully typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeAlias

from invest_workflows.core.artifacts import (
    AnalystSummary,
    BuyRecommendation,
    CompanySummary,
    FilingSummary,
    Fundamentals,
    MacroSnapshot,
    MoatAnalysis,
    MonitoringPlan,
    ScreeningFilters,
    SectorRanking,
    StockCandidate,
    TechnicalSignals,
    TradeConfirmation,
    ValuationMetrics,
)
from invest_workflows.core.models import InvestmentProfile
from invest_workflows.core.serialization import from_jsonable, to_jsonable
from invest_workflows.core.types import StepId

__all__ = [
    "SKIPPED_WARNING",
    "AnalystSentimentResult",
    "AnyStepResult",
    "CompetitivePositionResult",
    "FundamentalAnalysisResult",
    "MarketConditionsResult",
    "MockTradeResult",
    "MonitoringSetupResult",
    "PositionSizingResult",
    "ProfileResult",
    "SectorIdentificationResult",
    "StepResult",
    "StockScreeningResult",
    "TechnicalTrendsResult",
    "ValuationResult",
    "result_class_for",
    "step_result_from_dict",
]

SKIPPED_WARNING = "This optional step was skipped"


@dataclass
class StepResult:
    """Fields shared by every step result.

    Attributes:
        success: Whether the step produced its artifacts.
        errors: Ordered reasons the step failed. Empty on success.
        warnings: Ordered non-fatal notices, such as a provider that failed
            while another one answered.
        skipped: True only for the marker stored when an optional step is skipped.
    """

    step_id: ClassVar[StepId]

    success: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: bool = False

    @classmethod
    def failure(cls, errors: list[str], warnings: list[str] | None = None) -> StepResult:
        """Build a failed result of this step's type.

        Args:
            errors: Reasons the step failed.
            warnings: Notices collected before the failure.

        Returns:
            A result with ``success`` set to False and no artifacts.
        """
        return cls(success=False, errors=list(errors), warnings=list(warnings or []))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the result, including its ``step_id`` tag."""
        data = to_jsonable(self)
        data["step_id"] = int(self.step_id)
        return data

    def artifacts(self) -> dict[str, Any]:
        """Return only the step-specific fields of the serialized result."""
        data = self.to_dict()
        for key in ("step_id", "success", "errors", "warnings", "skipped"):
            data.pop(key, None)
        return data


@dataclass
class ProfileResult(StepResult):
    step_id: ClassVar[StepId] = StepId.PROFILE_DEFINITION

    profile: InvestmentProfile | None = None


@dataclass
class MarketConditionsResult(StepResult):
    step_id: ClassVar[StepId] = StepId.MARKET_CONDITIONS

    macro_snapshot: MacroSnapshot | None = None


@dataclass
class SectorIdentificationResult(StepResult):
    step_id: ClassVar[StepId] = StepId.SECTOR_IDENTIFICATION

    sector_rankings: list[SectorRanking] | None = None


@dataclass
class StockScreeningResult(StepResult):
    step_id: ClassVar[StepId] = StepId.STOCK_SCREENING

    stock_shortlist: list[StockCandidate] | None = None
    filters: ScreeningFilters | None = None


@dataclass
class FundamentalAnalysisResult(StepResult):
    step_id: ClassVar[StepId] = StepId.FUNDAMENTAL_ANALYSIS

    fundamentals: Fundamentals | None = None
    filings: FilingSummary | None = None
    source: str | None = None


@dataclass
class CompetitivePositionResult(StepResult):
    step_id: ClassVar[StepId] = StepId.COMPETITIVE_POSITION

    moat_analysis: MoatAnalysis | None = None
    company_profile: CompanySummary | None = None


@dataclass
class ValuationResult(StepResult):
    step_id: ClassVar[StepId] = StepId.VALUATION_EVALUATION

    valuation_metrics: ValuationMetrics | None = None
    additional_metrics: dict[str, float | None] | None = None


@dataclass
class TechnicalTrendsResult(StepResult):
    step_id: ClassVar[StepId] = StepId.TECHNICAL_TRENDS

    technical_signals: TechnicalSignals | None = None
    indicator_data: dict[str, Any] | None = None

    @classmethod
    def skipped_marker(cls) -> TechnicalTrendsResult:
        """The placeholder stored when the optional step is skipped."""
        return cls(success=True, skipped=True, warnings=[SKIPPED_WARNING])


@dataclass
class AnalystSentimentResult(StepResult):
    step_id: ClassVar[StepId] = StepId.ANALYST_SENTIMENT

    analyst_summary: AnalystSummary | None = None


@dataclass
class PositionSizingResult(StepResult):
    step_id: ClassVar[StepId] = StepId.POSITION_SIZING

    buy_recommendation: BuyRecommendation | None = None


@dataclass
class MockTradeResult(StepResult):
    step_id: ClassVar[StepId] = StepId.MOCK_TRADE

    trade_confirmation: TradeConfirmation | None = None


@dataclass
class MonitoringSetupResult(StepResult):
    step_id: ClassVar[StepId] = StepId.MONITORING_SETUP

    monitoring_plan: MonitoringPlan | None = None


AnyStepResult: TypeAlias = (
    ProfileResult
    | MarketConditionsResult
    | SectorIdentificationResult
    | StockScreeningResult
    | FundamentalAnalysisResult
    | CompetitivePositionResult
    | ValuationResult
    | TechnicalTrendsResult
    | AnalystSentimentResult
    | PositionSizingResult
    | MockTradeResult
    | MonitoringSetupResult
)
"""Union of every concrete step result."""

_RESULT_CLASSES: dict[int, type[StepResult]] = {
    cls.step_id: cls
    for cls in (
        ProfileResult,
        MarketConditionsResult,
        SectorIdentificationResult,
        StockScreeningResult,
        FundamentalAnalysisResult,
        CompetitivePositionResult,
        ValuationResult,
        TechnicalTrendsResult,
        AnalystSentimentResult,
        PositionSizingResult,
        MockTradeResult,
        MonitoringSetupResult,
    )
}


def result_class_for(step_id: int) -> type[StepResult]:
    """Look up the result class tagged with ``step_id``.

    Raises:
        KeyError: If no step has that id.
    """
    return _RESULT_CLASSES[int(step_id)]


def step_result_from_dict(data: dict[str, Any], step_id: int | None = None) -> StepResult:
    """Load a stored payload back into its concrete result class.

    Args:
        data: A dict produced by :meth:`StepResult.to_dict`.
        step_id: Tag to use when the payload does not carry one.

    Returns:
        The typed step result.

    Raises:
        KeyError: If the tag does not name a step.
        pydantic.ValidationError: If an artifact does not match its declared shape.
    """
    payload = dict(data)
    tag = payload.pop("step_id", step_id)
    if tag is None:
        msg = "Step result payload has no step_id"
        raise KeyError(msg)
    return from_jsonable(result_class_for(tag), payload)
