"""Base step processor implementation for invest-workflows."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, ClassVar

from invest_workflows.exceptions import FallbackExhaustedError, ProviderError
from invest_workflows.steps.validation import InputField, ValidationResult

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.results import StepResult
    from invest_workflows.core.types import StepId, StepInputs
    from invest_workflows.providers.registry import ProviderRegistry

__all__ = ["BaseStepProcessor", "describe_error", "gather_settled"]


def describe_error(exc: BaseException) -> str:
    """Message of an expected failure, without the exception class name."""
    if isinstance(exc, ProviderError):
        return exc.message
    return str(exc) or exc.__class__.__name__


async def gather_settled(*calls: Awaitable[Any]) -> list[Any]:
    """Run provider calls concurrently and collect each outcome.

    Provider failures and exhausted fallback chains are returned in place of
    the value so the caller can degrade gracefully. Any other exception is a
    bug and is re-raised.

    Returns:
        One entry per call, either its value or the exception it raised.
    """
    outcomes = await asyncio.gather(*calls, return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, BaseException) and not isinstance(outcome, (ProviderError, FallbackExhaustedError)):
            raise outcome
    return outcomes


class BaseStepProcessor:
    """Base implementation with common functionality for all step processors.

    Subclasses declare their identity and input schema as class attributes and
    implement :meth:`process`. :meth:`execute` validates the input bag first,
    so ``process`` only ever sees inputs that passed :meth:`validate_inputs`.
    """

    step_id: ClassVar[StepId]
    """Position of the step in the workflow."""

    step_name: ClassVar[str]
    """Human-readable step name."""

    is_optional: ClassVar[bool] = False
    """Whether the step may be skipped."""

    result_class: ClassVar[type[StepResult]]
    """Result type the step produces."""

    inputs: ClassVar[tuple[InputField, ...]] = ()
    """Inputs the step accepts, required ones first."""

    outputs: ClassVar[dict[str, dict[str, str]]] = {}
    """Artifacts the step produces, keyed by result field."""

    def __init__(self, registry: ProviderRegistry | None = None) -> None:
        """Initialize the processor.

        Args:
            registry: Provider adapters the step fetches data through. Steps that
                perform no provider I/O accept None.
        """
        self.registry = registry

    @property
    def providers(self) -> ProviderRegistry:
        if self.registry is None:
            msg = f"Step {self.step_name} needs a provider registry"
            raise RuntimeError(msg)
        return self.registry

    @property
    def required_inputs(self) -> list[InputField]:
        return list(self.inputs)

    @property
    def output_schema(self) -> dict[str, dict[str, str]]:
        return {name: dict(schema) for name, schema in self.outputs.items()}

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        """Check the raw input bag. Steps without inputs accept anything.

        Args:
            inputs: The raw input bag submitted for the step.

        Returns:
            The validation outcome.
        """
        return ValidationResult.ok()

    async def execute(self, inputs: StepInputs, context: WorkflowContext) -> StepResult:
        """Validate the inputs and run the step.

        Args:
            inputs: The raw input bag submitted for the step.
            context: Session state visible to the step.

        Returns:
            The step's result, failed with the validation errors when the
            inputs are invalid.
        """
        validation = self.validate_inputs(inputs)
        if not validation.is_valid:
            return self.result_class.failure(validation.errors)
        return await self.process(inputs, context)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> StepResult:
        """Run the step on validated inputs.

        Override this method to implement step logic.

        Args:
            inputs: The validated input bag.
            context: Session state visible to the step.

        Returns:
            The step's result.

        Raises:
            NotImplementedError: Must be implemented by subclasses.
        """
        msg = f"Step {self.step_name} must implement process()"
        raise NotImplementedError(msg)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} step_id={int(self.step_id)} name={self.step_name!r}>"
