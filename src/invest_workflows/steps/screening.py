"""Step 4: stock screening."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import categorize_market_cap
from invest_workflows.core.artifacts import ScreeningFilters, StockCandidate
from invest_workflows.core.results import StockScreeningResult
from invest_workflows.core.types import MarketCapCategory, StepId
from invest_workflows.exceptions import ProviderError
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import InputField, validate_screening_filters

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs
    from invest_workflows.providers.schemas import ScreenedStock
    from invest_workflows.steps.validation import ValidationResult

__all__ = ["StockScreeningProcessor", "filters_from_inputs"]


def filters_from_inputs(inputs: StepInputs) -> ScreeningFilters:
    """Build screener filters from a validated input bag."""
    market_cap = inputs.get("market_cap")
    sector = inputs.get("sector")
    return ScreeningFilters(
        market_cap=MarketCapCategory(market_cap) if market_cap is not None else None,
        dividend_yield_min=inputs.get("dividend_yield_min"),
        pe_ratio_max=inputs.get("pe_ratio_max"),
        sector=sector.strip() if sector is not None else None,
        min_price=inputs.get("min_price"),
        max_price=inputs.get("max_price"),
    )


def _candidate(stock: ScreenedStock) -> StockCandidate:
    return StockCandidate(
        ticker=stock.ticker,
        company_name=stock.company_name,
        sector=stock.sector,
        dividend_yield=stock.dividend_yield,
        pe_ratio=stock.pe_ratio,
        market_cap=categorize_market_cap(stock.market_cap),
    )


class StockScreeningProcessor(BaseStepProcessor):
    """Filter the market down to a shortlist of candidate stocks."""

    step_id = StepId.STOCK_SCREENING
    step_name = "Stock Screening"
    result_class = StockScreeningResult
    inputs = (
        InputField("market_cap", "string", False, "Market capitalization filter: large, mid, or small"),
        InputField("dividend_yield_min", "number", False, "Minimum dividend yield percentage"),
        InputField("pe_ratio_max", "number", False, "Maximum price-to-earnings ratio"),
        InputField("sector", "string", False, "Sector name to filter by"),
        InputField("min_price", "number", False, "Minimum stock price"),
        InputField("max_price", "number", False, "Maximum stock price"),
    )
    outputs = {
        "stock_shortlist": {
            "type": "StockCandidate[]",
            "description": "Filtered list of stock candidates matching criteria",
        },
        "filters": {"type": "ScreeningFilters", "description": "The filters that were applied"},
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        return validate_screening_filters(inputs)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> StockScreeningResult:
        filters = filters_from_inputs(inputs)
        try:
            stocks = await self.providers.get("finviz").fetch("screen", filters=filters)
        except ProviderError as exc:
            return StockScreeningResult.failure([f"Failed to screen stocks: {exc.message}"])

        warnings = [] if stocks else ["No stocks found matching the specified criteria"]
        return StockScreeningResult(
            stock_shortlist=[_candidate(stock) for stock in stocks],
            filters=filters,
            warnings=warnings,
        )
