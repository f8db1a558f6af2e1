"""Step 1: investment profile definition."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.core.models import InvestmentProfile
from invest_workflows.core.results import ProfileResult
from invest_workflows.core.types import InvestmentGoal, RiskTolerance, StepId
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import InputField, validate_investment_profile

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.protocols import SessionStore
    from invest_workflows.core.types import StepInputs
    from invest_workflows.steps.validation import ValidationResult

__all__ = ["ProfileDefinitionProcessor"]


class ProfileDefinitionProcessor(BaseStepProcessor):
    """Validate the investor's profile and store it for later steps."""

    step_id = StepId.PROFILE_DEFINITION
    step_name = "Profile Definition"
    result_class = ProfileResult
    inputs = (
        InputField("risk_tolerance", "string", True, "Risk tolerance level: low, medium, or high"),
        InputField("investment_horizon_years", "number", True, "Investment horizon in years"),
        InputField("capital_available", "number", True, "Capital available for investment"),
        InputField(
            "long_term_goals",
            "string",
            True,
            "Investment goals: steady growth, dividend income, or capital preservation",
        ),
    )
    outputs = {"profile": {"type": "InvestmentProfile", "description": "The created investment profile"}}

    def __init__(self, store: SessionStore) -> None:
        """Initialize the processor.

        Args:
            store: Where the profile is saved, keyed by user.
        """
        super().__init__()
        self.store = store

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        return validate_investment_profile(inputs)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> ProfileResult:
        profile = InvestmentProfile(
            user_id=context.user_id,
            risk_tolerance=RiskTolerance(inputs["risk_tolerance"]),
            investment_horizon_years=int(inputs["investment_horizon_years"]),
            capital_available=float(inputs["capital_available"]),
            long_term_goals=InvestmentGoal(inputs["long_term_goals"]),
        )
        await self.store.save_profile(context.user_id, profile)
        return ProfileResult(profile=profile)
