"""Core protocols for invest-workflows.

This module defines the Protocol-based interfaces the orchestrator, the step
processors and the provider layer depend on. Using Protocol keeps every seam
structural: a fake adapter or an alternative store only has to provide the
methods, not inherit from anything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.models import InvestmentProfile, SessionPatch, WorkflowSession
    from invest_workflows.core.results import StepResult
    from invest_workflows.core.types import CacheCategory, StepInputs
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.steps.validation import InputField, ValidationResult


__all__ = ["Cache", "ProviderAdapter", "SessionStore", "StepProcessor"]


@runtime_checkable
class StepProcessor(Protocol):
    """Protocol for the unit of work behind one workflow step.

    Attributes:
        step_id: Position of the step in the workflow, 1 to 12.
        step_name: Human-readable step name.
        is_optional: Whether the step may be skipped.

    Example:
        >>> class EchoStep:
        ...     step_id = 1
        ...     step_name = "Echo"
        ...     is_optional = False
        ...     required_inputs = []
        ...     output_schema = {}
        ...
        ...     def validate_inputs(self, inputs):
        ...         return ValidationResult.ok()
        ...
        ...     async def execute(self, inputs, context):
        ...         return ProfileResult()
    """

    step_id: int
    step_name: str
    is_optional: bool

    @property
    def required_inputs(self) -> list[InputField]:
        """Describe the inputs the step accepts."""
        ...

    @property
    def output_schema(self) -> dict[str, dict[str, str]]:
        """Describe the artifacts the step produces."""
        ...

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        """Check the raw input bag before execution.

        Args:
            inputs: The raw input bag submitted for the step.

        Returns:
            The validation outcome with every problem found.
        """
        ...

    async def execute(self, inputs: StepInputs, context: WorkflowContext) -> StepResult:
        """Run the step.

        Expected failures, such as a provider being down, are reported in the
        returned result's ``errors`` and ``warnings``. Only unexpected
        programming errors propagate.

        Args:
            inputs: The raw input bag submitted for the step.
            context: Session state visible to the step.

        Returns:
            The step's result.
        """
        ...


@runtime_checkable
class ProviderAdapter(Protocol):
    """Capability interface every external data provider adapter implements.

    Adapters are independent classes; shared mechanics such as rate limiting,
    caching and retry are composed in, not inherited.

    Attributes:
        name: Stable adapter name used in fallback chains and warnings.
    """

    name: str

    def is_configured(self) -> bool:
        """Whether the adapter has everything it needs to issue calls."""
        ...

    async def is_available(self) -> bool:
        """Probe the provider cheaply. Never raises."""
        ...

    def get_rate_limit_info(self) -> RateLimitInfo:
        """Snapshot of the adapter's request budget."""
        ...

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        """Fetch a logical endpoint.

        Args:
            endpoint: Logical endpoint name, e.g. ``"quote"``.
            **params: Endpoint parameters such as ``ticker``.

        Returns:
            The parsed, normalized response.

        Raises:
            ProviderError: A classified provider failure.
        """
        ...


@runtime_checkable
class Cache(Protocol):
    """Category-keyed response cache with per-category expiry."""

    def get(self, category: CacheCategory, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss or an expired entry."""
        ...

    def set(self, category: CacheCategory, key: str, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Storage contract the orchestrator depends on.

    Implementations raise :class:`~invest_workflows.exceptions.SessionNotFoundError`,
    :class:`~invest_workflows.exceptions.StepResultNotFoundError` and
    :class:`~invest_workflows.exceptions.ProfileNotFoundError` for missing records.
    """

    async def create(self, user_id: str) -> WorkflowSession:
        """Create a session at step 1 for ``user_id``."""
        ...

    async def get(self, session_id: UUID) -> WorkflowSession:
        """Load a session together with its stored step results."""
        ...

    async def update(self, session_id: UUID, patch: SessionPatch) -> WorkflowSession:
        """Apply a partial update and return the updated session."""
        ...

    async def list_by_user(self, user_id: str) -> list[WorkflowSession]:
        """List a user's sessions, newest first."""
        ...

    async def save_step_result(self, session_id: UUID, step_id: int, result: StepResult) -> None:
        """Store a step result, overwriting any previous one for the step."""
        ...

    async def get_step_result(self, session_id: UUID, step_id: int) -> StepResult:
        """Load the stored result of one step."""
        ...

    async def delete_step_results(self, session_id: UUID) -> None:
        """Remove every stored step result of a session."""
        ...

    async def save_profile(self, user_id: str, profile: InvestmentProfile) -> None:
        """Store the user's profile, replacing any previous one."""
        ...

    async def get_profile(self, user_id: str) -> InvestmentProfile:
        """Load the user's profile."""
        ...
