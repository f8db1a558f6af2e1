"""Step 8 (optional): technical trends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.indicators import analyze_signals, compute_indicators
from invest_workflows.core.results import TechnicalTrendsResult
from invest_workflows.core.types import IndicatorName, StepId
from invest_workflows.exceptions import FallbackExhaustedError
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import InputField, ValidationResult, validate_symbol

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["TechnicalTrendsProcessor"]

HISTORY_DAYS = 200
"""Daily bars requested, enough for the 200-day moving average."""

_INDICATOR_KEYS: dict[IndicatorName, tuple[str, ...]] = {
    IndicatorName.MOVING_AVERAGE: ("sma20", "sma50", "sma200", "ema20", "ema50"),
    IndicatorName.RSI: ("rsi",),
}


class TechnicalTrendsProcessor(BaseStepProcessor):
    """Price trend, moving average crossover and RSI of a stock.

    Only price history is fetched; every indicator is computed locally from
    the closes, whichever provider served them.
    """

    step_id = StepId.TECHNICAL_TRENDS
    step_name = "Technical Trends"
    is_optional = True
    result_class = TechnicalTrendsResult
    inputs = (
        InputField("ticker", "string", True, "Stock ticker symbol to analyze"),
        InputField("indicator", "string", False, "Technical indicator to focus on: 'moving average' or 'RSI'"),
    )
    outputs = {
        "technical_signals": {
            "type": "TechnicalSignals",
            "description": "Price trend, moving average crossover and RSI",
        },
        "indicator_data": {"type": "object", "description": "Values of the requested indicator"},
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        errors = list(validate_symbol(inputs.get("ticker")).errors)
        indicator = inputs.get("indicator")
        if indicator and indicator not in {name.value for name in IndicatorName}:
            errors.append(f"Invalid indicator. Must be one of: {', '.join(name.value for name in IndicatorName)}")
        return ValidationResult.from_errors(errors)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> TechnicalTrendsResult:
        ticker = inputs["ticker"].upper()
        try:
            resolved = await self.providers.resolve(DataNeed.HISTORICAL_DATA, ticker=ticker, days=HISTORY_DAYS)
        except FallbackExhaustedError as exc:
            return TechnicalTrendsResult.failure([f"Failed to fetch price history: {exc}"])

        warnings = list(resolved.warnings)
        closes = resolved.value.closes
        if not closes:
            return TechnicalTrendsResult.failure(["No price data available for analysis"], warnings)

        indicators = compute_indicators(closes)
        indicator_data: dict[str, Any] | None = None
        if inputs.get("indicator"):
            indicator = IndicatorName(inputs["indicator"])
            values = {key: indicators[key] for key in _INDICATOR_KEYS[indicator]}
            if all(value is None for value in values.values()):
                warnings.append(
                    f"Not enough price history to compute {indicator} for {ticker} ({len(closes)} bars available)"
                )
            else:
                indicator_data = {"indicator": indicator.value, **values}

        return TechnicalTrendsResult(
            technical_signals=analyze_signals(ticker, closes, indicators),
            indicator_data=indicator_data,
            warnings=warnings,
        )
