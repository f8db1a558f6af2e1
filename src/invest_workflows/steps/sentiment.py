"""Step 9: analyst sentiment."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import aggregate_analyst_sentiment
from invest_workflows.core.results import AnalystSentimentResult
from invest_workflows.core.types import StepId
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled
from invest_workflows.steps.validation import InputField, validate_symbol

if TYPE_CHECKING:
    from invest_workflows.core.artifacts import AnalystRating
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs
    from invest_workflows.steps.validation import ValidationResult

__all__ = ["AnalystSentimentProcessor"]


class AnalystSentimentProcessor(BaseStepProcessor):
    """Consensus of analyst ratings merged from every ratings source.

    Unlike the other chains, ratings sources are not alternatives: all of
    them are queried concurrently and their ratings pooled.
    """

    step_id = StepId.ANALYST_SENTIMENT
    step_name = "Analyst Sentiment"
    result_class = AnalystSentimentResult
    inputs = (InputField("ticker", "string", True, "Stock ticker symbol to analyze"),)
    outputs = {
        "analyst_summary": {
            "type": "AnalystSummary",
            "description": "Buy, hold and sell counts with the average price target and consensus",
        }
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        return validate_symbol(inputs.get("ticker"))

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> AnalystSentimentResult:
        ticker = inputs["ticker"].upper()
        sources = self.providers.chain(DataNeed.ANALYST_RATINGS)
        outcomes = await gather_settled(*(source.fetch("analyst_ratings", ticker=ticker) for source in sources))

        warnings: list[str] = []
        ratings: list[AnalystRating] = []
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                warnings.append(f"Failed to fetch {source.name} data: {describe_error(outcome)}")
            else:
                ratings.extend(outcome)

        if not ratings:
            return AnalystSentimentResult.failure(["No analyst ratings available from any source"], warnings)
        return AnalystSentimentResult(analyst_summary=aggregate_analyst_sentiment(ratings, ticker), warnings=warnings)
