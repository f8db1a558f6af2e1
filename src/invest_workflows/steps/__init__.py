"""Step processors for the twelve research steps."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled
from invest_workflows.steps.competitive import CompetitivePositionProcessor
from invest_workflows.steps.fundamentals import FundamentalAnalysisProcessor
from invest_workflows.steps.market import MarketConditionsProcessor
from invest_workflows.steps.monitoring import MonitoringSetupProcessor
from invest_workflows.steps.profile import ProfileDefinitionProcessor
from invest_workflows.steps.screening import StockScreeningProcessor
from invest_workflows.steps.sectors import SectorIdentificationProcessor
from invest_workflows.steps.sentiment import AnalystSentimentProcessor
from invest_workflows.steps.sizing import PositionSizingProcessor
from invest_workflows.steps.technical import TechnicalTrendsProcessor
from invest_workflows.steps.trade import MockTradeProcessor
from invest_workflows.steps.validation import InputField, ValidationResult
from invest_workflows.steps.valuation import ValuationEvaluationProcessor

if TYPE_CHECKING:
    from invest_workflows.core.protocols import SessionStore, StepProcessor
    from invest_workflows.providers.registry import ProviderRegistry

__all__ = [
    "AnalystSentimentProcessor",
    "BaseStepProcessor",
    "CompetitivePositionProcessor",
    "FundamentalAnalysisProcessor",
    "InputField",
    "MarketConditionsProcessor",
    "MockTradeProcessor",
    "MonitoringSetupProcessor",
    "PositionSizingProcessor",
    "ProfileDefinitionProcessor",
    "SectorIdentificationProcessor",
    "StockScreeningProcessor",
    "TechnicalTrendsProcessor",
    "ValidationResult",
    "ValuationEvaluationProcessor",
    "build_default_processors",
    "describe_error",
    "gather_settled",
]


def build_default_processors(registry: ProviderRegistry, store: SessionStore) -> list[StepProcessor]:
    """Instantiate the built-in processor of every step, in step order.

    Args:
        registry: Provider adapters shared by the data-fetching steps.
        store: Store the profile step saves to.

    Returns:
        Twelve processors, one per step.
    """
    return [
        ProfileDefinitionProcessor(store),
        MarketConditionsProcessor(registry),
        SectorIdentificationProcessor(registry),
        StockScreeningProcessor(registry),
        FundamentalAnalysisProcessor(registry),
        CompetitivePositionProcessor(registry),
        ValuationEvaluationProcessor(registry),
        TechnicalTrendsProcessor(registry),
        AnalystSentimentProcessor(registry),
        PositionSizingProcessor(registry),
        MockTradeProcessor(),
        MonitoringSetupProcessor(),
    ]
