"""Step 2: macro-economic market conditions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import summarize_market_conditions
from invest_workflows.core.artifacts import MacroSnapshot
from invest_workflows.core.results import MarketConditionsResult
from invest_workflows.core.types import MarketTrend, StepId
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["MarketConditionsProcessor"]

logger = logging.getLogger(__name__)

_INDICATORS = (
    ("interest_rate", "interest rate"),
    ("inflation_rate", "inflation rate"),
    ("unemployment_rate", "unemployment rate"),
)


class MarketConditionsProcessor(BaseStepProcessor):
    """Snapshot of rates, inflation, unemployment and the market trend.

    The step never fails on provider errors: an indicator that cannot be
    fetched is reported as 0 with a warning, and the trend falls back to
    neutral.
    """

    step_id = StepId.MARKET_CONDITIONS
    step_name = "Market Conditions"
    result_class = MarketConditionsResult
    outputs = {
        "macro_snapshot": {
            "type": "MacroSnapshot",
            "description": "Economic indicators and market conditions snapshot",
        }
    }

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> MarketConditionsResult:
        registry = self.providers
        outcomes = await gather_settled(
            *(registry.resolve(DataNeed.ECONOMIC_INDICATORS, endpoint=endpoint) for endpoint, _ in _INDICATORS),
            registry.resolve(DataNeed.MARKET_TREND, endpoint="market_trend"),
        )

        warnings: list[str] = []
        values: dict[str, float] = {}
        for (endpoint, label), outcome in zip(_INDICATORS, outcomes):
            if isinstance(outcome, BaseException):
                warnings.append(f"Failed to fetch {label}: {describe_error(outcome)}")
                values[endpoint] = 0.0
            else:
                values[endpoint] = float(outcome.value)

        trend_outcome = outcomes[-1]
        if isinstance(trend_outcome, BaseException):
            warnings.append(f"Failed to fetch market trend: {describe_error(trend_outcome)}")
            trend = MarketTrend.NEUTRAL
        else:
            trend = MarketTrend(trend_outcome.value)

        logger.debug("Market conditions for session %s: %s, trend %s", context.session_id, values, trend)
        snapshot = MacroSnapshot(
            interest_rate=values["interest_rate"],
            inflation_rate=values["inflation_rate"],
            unemployment_rate=values["unemployment_rate"],
            market_trend=trend,
            summary=summarize_market_conditions(
                values["interest_rate"], values["inflation_rate"], values["unemployment_rate"], trend
            ),
            fetched_at=datetime.now(timezone.utc),
        )
        return MarketConditionsResult(macro_snapshot=snapshot, warnings=warnings)
