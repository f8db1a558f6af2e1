"""Step 5: fundamental analysis."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.core.artifacts import FilingSummary
from invest_workflows.core.results import FundamentalAnalysisResult
from invest_workflows.core.types import StepId
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled
from invest_workflows.steps.validation import InputField, validate_symbol

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs
    from invest_workflows.providers.schemas import Filing
    from invest_workflows.steps.validation import ValidationResult

__all__ = ["FundamentalAnalysisProcessor"]

ANNUAL_REPORT_FORM = "10-K"


class FundamentalAnalysisProcessor(BaseStepProcessor):
    """Growth, profitability and leverage of one company.

    Fundamentals come from the financial statements chain (FMP, then Yahoo
    Finance, then Morningstar). Annual report filings from SEC EDGAR are
    fetched alongside; they are informational and never fail the step.
    """

    step_id = StepId.FUNDAMENTAL_ANALYSIS
    step_name = "Fundamental Analysis"
    result_class = FundamentalAnalysisResult
    inputs = (InputField("ticker", "string", True, "Stock ticker symbol to analyze"),)
    outputs = {
        "fundamentals": {
            "type": "Fundamentals",
            "description": "Revenue and earnings growth, margins, leverage and free cash flow",
        },
        "filings": {"type": "FilingSummary", "description": "Latest annual report filed with the SEC"},
        "source": {"type": "string", "description": "Provider the fundamentals came from"},
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        return validate_symbol(inputs.get("ticker"))

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> FundamentalAnalysisResult:
        ticker = inputs["ticker"].upper()
        registry = self.providers
        resolved, filings = await gather_settled(
            registry.resolve(DataNeed.FINANCIAL_STATEMENTS, ticker=ticker),
            registry.get("sec_edgar").fetch("filings", ticker=ticker, form_type=ANNUAL_REPORT_FORM),
        )

        if isinstance(resolved, BaseException):
            return FundamentalAnalysisResult.failure(
                [f"Failed to fetch fundamentals from all sources: {describe_error(resolved)}"]
            )

        warnings = [*resolved.warnings, f"Using {resolved.source} for {ticker}"]
        if isinstance(filings, BaseException):
            warnings.append(f"Failed to fetch SEC filings: {describe_error(filings)}")
            filings = []
        elif not filings:
            warnings.append(f"No {ANNUAL_REPORT_FORM} filings found for {ticker} in SEC EDGAR")

        return FundamentalAnalysisResult(
            fundamentals=resolved.value,
            filings=_summarize_filings(filings),
            source=resolved.source,
            warnings=warnings,
        )


def _summarize_filings(filings: list[Filing]) -> FilingSummary:
    if not filings:
        return FilingSummary()
    latest = filings[0]
    return FilingSummary(
        count=len(filings),
        latest_form_type=latest.form_type,
        latest_filing_date=latest.filing_date,
        latest_report_date=latest.report_date,
    )
