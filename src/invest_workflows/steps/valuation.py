"""Step 7: valuation against peers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.analysis.engine import PeerRatios, ValuationInputs, calculate_valuations
from invest_workflows.core.results import ValuationResult
from invest_workflows.core.types import StepId
from invest_workflows.exceptions import FallbackExhaustedError
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled
from invest_workflows.steps.validation import InputField, ValidationResult, validate_symbol

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs
    from invest_workflows.providers.schemas import ValuationSnapshot

__all__ = ["ValuationEvaluationProcessor"]


class ValuationEvaluationProcessor(BaseStepProcessor):
    """PE and PB ratios of a stock compared with its peers."""

    step_id = StepId.VALUATION_EVALUATION
    step_name = "Valuation Evaluation"
    result_class = ValuationResult
    inputs = (
        InputField("ticker", "string", True, "Stock ticker symbol to analyze"),
        InputField("peer_tickers", "array", False, "Array of peer ticker symbols for comparison"),
    )
    outputs = {
        "valuation_metrics": {
            "type": "ValuationMetrics",
            "description": "PE and PB ratios with peer comparison analysis",
        },
        "additional_metrics": {
            "type": "object",
            "description": "Additional valuation metrics (PS, PEG, EV/EBITDA, etc.)",
        },
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        errors = list(validate_symbol(inputs.get("ticker")).errors)
        peers = inputs.get("peer_tickers")
        if peers:
            if not isinstance(peers, list):
                errors.append("Peer tickers must be an array")
            else:
                errors.extend(
                    f"Invalid peer ticker: {peer}" for peer in peers if not isinstance(peer, str) or len(peer) > 10
                )
        return ValidationResult.from_errors(errors)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> ValuationResult:
        ticker = inputs["ticker"].upper()
        peers = [peer.upper() for peer in inputs.get("peer_tickers") or []]
        registry = self.providers

        try:
            resolved = await registry.resolve(DataNeed.VALUATION_METRICS, ticker=ticker)
        except FallbackExhaustedError as exc:
            return ValuationResult.failure([f"Failed to fetch valuation data: {exc}"])
        subject: ValuationSnapshot = resolved.value
        warnings = list(resolved.warnings)

        peer_ratios: list[PeerRatios] = []
        outcomes = await gather_settled(*(registry.resolve(DataNeed.VALUATION_METRICS, ticker=peer) for peer in peers))
        for peer, outcome in zip(peers, outcomes):
            if isinstance(outcome, BaseException):
                warnings.append(f"Failed to fetch peer data for {peer}: {describe_error(outcome)}")
                continue
            peer_ratios.append(PeerRatios(ticker=peer, pe_ratio=outcome.value.pe_ratio, pb_ratio=outcome.value.pb_ratio))

        metrics = calculate_valuations(
            ValuationInputs(
                ticker=ticker,
                price=subject.current_price,
                pe_ratio=subject.pe_ratio,
                pb_ratio=subject.pb_ratio,
                earnings_per_share=subject.earnings_per_share,
                book_value_per_share=subject.book_value_per_share,
            ),
            peer_ratios,
        )
        return ValuationResult(
            valuation_metrics=metrics,
            additional_metrics=_additional_metrics(subject),
            warnings=warnings,
        )


def _additional_metrics(snapshot: ValuationSnapshot) -> dict[str, Any]:
    return {
        "ps_ratio": snapshot.ps_ratio,
        "peg_ratio": snapshot.peg_ratio,
        "ev_to_ebitda": snapshot.ev_to_ebitda,
        "price_to_free_cash_flow": snapshot.price_to_free_cash_flow,
        "current_price": snapshot.current_price,
        "upside": snapshot.upside,
        "valuation_score": snapshot.valuation_score,
    }
