"""Step 6: competitive position (economic moat)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import CompetitiveProfile, analyze_moat
from invest_workflows.core.artifacts import CompanySummary
from invest_workflows.core.results import CompetitivePositionResult
from invest_workflows.core.types import StepId
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor, describe_error, gather_settled
from invest_workflows.steps.validation import InputField, validate_symbol

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs
    from invest_workflows.providers.schemas import CompanyProfile
    from invest_workflows.steps.validation import ValidationResult

__all__ = ["CompetitivePositionProcessor", "merge_profiles"]

_UNKNOWN = "Unknown"


def merge_profiles(ticker: str, primary: CompanyProfile | None, secondary: CompanyProfile | None) -> CompanySummary:
    """Combine two profiles field by field, preferring ``primary``.

    Placeholder values (``"Unknown"`` or empty) never win over real ones.
    """
    profiles = [profile for profile in (primary, secondary) if profile is not None]

    def pick(field_name: str, default: str) -> str:
        for profile in profiles:
            value = getattr(profile, field_name)
            if value and value != _UNKNOWN:
                return value
        return default

    return CompanySummary(
        name=pick("name", ticker),
        sector=pick("sector", _UNKNOWN),
        industry=pick("industry", _UNKNOWN),
        description=pick("description", ""),
    )


class CompetitivePositionProcessor(BaseStepProcessor):
    """Assess patents, brand, customers and cost structure of a company.

    Reuters is the only source that reports the moat inputs; the
    company_profile chain fills in the descriptive fields when Reuters is
    down or incomplete.
    """

    step_id = StepId.COMPETITIVE_POSITION
    step_name = "Competitive Position"
    result_class = CompetitivePositionResult
    inputs = (InputField("ticker", "string", True, "Stock ticker symbol to analyze"),)
    outputs = {
        "moat_analysis": {
            "type": "MoatAnalysis",
            "description": "Analysis of competitive advantages and moat strength",
        },
        "company_profile": {"type": "CompanySummary", "description": "Basic company information"},
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        return validate_symbol(inputs.get("ticker"))

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> CompetitivePositionResult:
        ticker = inputs["ticker"].upper()
        registry = self.providers
        reuters, resolved = await gather_settled(
            registry.get("reuters").fetch("profile", ticker=ticker),
            registry.resolve(DataNeed.COMPANY_PROFILE, ticker=ticker),
        )

        warnings: list[str] = []
        primary: CompanyProfile | None = None
        secondary: CompanyProfile | None = None
        if isinstance(reuters, BaseException):
            warnings.append(f"Failed to fetch Reuters profile: {describe_error(reuters)}")
        else:
            primary = reuters
        if isinstance(resolved, BaseException):
            warnings.append(f"Failed to fetch company profile: {describe_error(resolved)}")
        else:
            warnings.extend(resolved.warnings)
            secondary = resolved.value

        if primary is None and secondary is None:
            return CompetitivePositionResult.failure(["Failed to fetch company profile from any data source"], warnings)

        competitive = {**(secondary.competitive if secondary else {}), **(primary.competitive if primary else {})}
        return CompetitivePositionResult(
            moat_analysis=analyze_moat(CompetitiveProfile.from_raw(ticker, competitive)),
            company_profile=merge_profiles(ticker, primary, secondary),
            warnings=warnings,
        )
