"""Step 10: position sizing."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import build_risk_model, determine_position_size
from invest_workflows.core.results import PositionSizingResult
from invest_workflows.core.types import StepId
from invest_workflows.exceptions import FallbackExhaustedError
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import (
    InputField,
    ValidationResult,
    validate_portfolio_size,
    validate_positive_number,
    validate_risk_model,
    validate_symbol,
)

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["ZERO_SHARES_WARNING", "PositionSizingProcessor"]

ZERO_SHARES_WARNING = (
    "Position size calculation resulted in 0 shares. "
    "Consider increasing portfolio size or choosing a lower-priced stock."
)


class PositionSizingProcessor(BaseStepProcessor):
    """How many shares to buy within a risk model's allocation ceiling.

    The portfolio size entered here replaces the profile's capital for the
    calculation; the stored profile itself is left unchanged. When no entry
    price is given, the current quote is used.
    """

    step_id = StepId.POSITION_SIZING
    step_name = "Position Sizing"
    result_class = PositionSizingResult
    inputs = (
        InputField("portfolio_size", "number", True, "Total portfolio size in dollars"),
        InputField("risk_model", "string", True, "Risk model: 'conservative', 'balanced', or 'aggressive'"),
        InputField("ticker", "string", True, "Stock ticker symbol"),
        InputField("entry_price", "number", False, "Entry price per share; defaults to the current price"),
    )
    outputs = {
        "buy_recommendation": {
            "type": "BuyRecommendation",
            "description": "Position sizing recommendation with shares, price, and order type",
        }
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        result = validate_portfolio_size(inputs.get("portfolio_size")).merge(
            validate_risk_model(inputs.get("risk_model")),
            validate_symbol(inputs.get("ticker")),
        )
        if inputs.get("entry_price") is not None:
            result = result.merge(validate_positive_number(inputs["entry_price"], "Entry price"))
        return result

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> PositionSizingResult:
        if context.profile is None:
            return PositionSizingResult.failure(["User profile not found in context"])

        ticker = inputs["ticker"].upper()
        warnings: list[str] = []
        price = inputs.get("entry_price")
        if price is None:
            try:
                resolved = await self.providers.resolve(DataNeed.STOCK_QUOTE, ticker=ticker)
            except FallbackExhaustedError as exc:
                return PositionSizingResult.failure([f"Failed to fetch current price for {ticker}: {exc}"])
            warnings.extend(resolved.warnings)
            price = resolved.value.price
            if price <= 0:
                return PositionSizingResult.failure([f"No valid current price for {ticker} from {resolved.source}"], warnings)
            warnings.append(f"Using current price {price:.2f} from {resolved.source} as entry price")

        profile = replace(context.profile, capital_available=float(inputs["portfolio_size"]))
        recommendation = determine_position_size(profile, float(price), build_risk_model(inputs["risk_model"]), ticker)
        if recommendation.shares_to_buy == 0:
            warnings.append(ZERO_SHARES_WARNING)
        return PositionSizingResult(buy_recommendation=recommendation, warnings=warnings)
