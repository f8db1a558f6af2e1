"""Step sequencing rules of the research workflow.

The state machine knows the twelve steps, which of them are optional and
which earlier steps each one depends on. It is pure: every method inspects a
:class:`WorkflowSession` and never changes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import TOTAL_STEPS, StepId

if TYPE_CHECKING:
    from collections.abc import Iterable

    from invest_workflows.core.models import WorkflowSession

__all__ = [
    "COMPLETE_STEP",
    "STEP_DEFINITIONS",
    "StepDefinition",
    "StepTransition",
    "WorkflowStateMachine",
    "first_open_step",
]

COMPLETE_STEP = TOTAL_STEPS + 1
"""``current_step`` of a session once every step is covered."""


@dataclass(frozen=True)
class StepDefinition:
    """Static description of one workflow step.

    Attributes:
        id: Position in the workflow.
        name: Human-readable name.
        is_optional: Whether the step may be skipped.
        dependencies: Steps that must be covered before this one.
    """

    id: StepId
    name: str
    is_optional: bool = False
    dependencies: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "name": self.name,
            "is_optional": self.is_optional,
            "dependencies": list(self.dependencies),
        }


STEP_DEFINITIONS: dict[int, StepDefinition] = {
    definition.id: definition
    for definition in (
        StepDefinition(StepId.PROFILE_DEFINITION, "Profile Definition"),
        StepDefinition(StepId.MARKET_CONDITIONS, "Market Conditions", dependencies=(1,)),
        StepDefinition(StepId.SECTOR_IDENTIFICATION, "Sector Identification", dependencies=(1, 2)),
        StepDefinition(StepId.STOCK_SCREENING, "Stock Screening", dependencies=(1, 2, 3)),
        StepDefinition(StepId.FUNDAMENTAL_ANALYSIS, "Fundamental Analysis", dependencies=(4,)),
        StepDefinition(StepId.COMPETITIVE_POSITION, "Competitive Position", dependencies=(4, 5)),
        StepDefinition(StepId.VALUATION_EVALUATION, "Valuation Evaluation", dependencies=(5, 6)),
        StepDefinition(StepId.TECHNICAL_TRENDS, "Technical Trends", is_optional=True, dependencies=(4,)),
        StepDefinition(StepId.ANALYST_SENTIMENT, "Analyst Sentiment", dependencies=(4,)),
        StepDefinition(StepId.POSITION_SIZING, "Position Sizing", dependencies=(1, 5, 7, 9)),
        StepDefinition(StepId.MOCK_TRADE, "Mock Trade", dependencies=(10,)),
        StepDefinition(StepId.MONITORING_SETUP, "Monitoring Setup", dependencies=(11,)),
    )
}
"""Every step keyed by id, in workflow order."""


def first_open_step(completed: Iterable[int]) -> int:
    """Smallest step not yet covered, or :data:`COMPLETE_STEP`.

    Example:
        >>> first_open_step({1, 2, 4})
        3
        >>> first_open_step(range(1, 13))
        13
    """
    covered = set(completed)
    return next((step for step in range(1, TOTAL_STEPS + 1) if step not in covered), COMPLETE_STEP)


@dataclass(frozen=True)
class StepTransition:
    """Whether a session may run a given step, and why not."""

    from_step: int
    to_step: int
    is_valid: bool
    reason: str | None = None


class WorkflowStateMachine:
    """Sequencing and dependency rules for research sessions.

    A step may run only when it is the session's current step and every
    mandatory dependency is covered. The one exception is an optional step
    that was skipped earlier: it may be executed later on to replace the
    skip marker.
    """

    def __init__(self, definitions: dict[int, StepDefinition] | None = None) -> None:
        self.definitions = definitions or STEP_DEFINITIONS

    def get_step_definition(self, step_id: int) -> StepDefinition | None:
        return self.definitions.get(int(step_id))

    def is_valid_step(self, step_id: int) -> bool:
        return 1 <= step_id <= TOTAL_STEPS

    def is_step_optional(self, step_id: int) -> bool:
        definition = self.get_step_definition(step_id)
        return definition is not None and definition.is_optional

    def unmet_dependencies(self, session: WorkflowSession, step_id: int) -> list[int]:
        """Mandatory dependencies of ``step_id`` the session has not covered."""
        definition = self.get_step_definition(step_id)
        if definition is None:
            return []
        return [
            dependency
            for dependency in definition.dependencies
            if dependency not in session.completed_steps and not self.is_step_optional(dependency)
        ]

    def validate_transition(self, session: WorkflowSession, step_id: int, *, retrying_skipped: bool = False) -> StepTransition:
        """Check whether ``session`` may execute ``step_id`` now.

        Args:
            session: The session to check.
            step_id: The step about to run.
            retrying_skipped: True when ``step_id`` is an optional step whose
                stored result is the skip marker.

        Returns:
            The verdict, with a reason when the step may not run.
        """
        current = session.current_step
        if not self.is_valid_step(step_id):
            return StepTransition(current, step_id, False, f"Invalid step ID: {step_id}. Must be between 1 and {TOTAL_STEPS}")

        if step_id != current and not (retrying_skipped and self.is_step_optional(step_id)):
            if current > TOTAL_STEPS:
                reason = f"Cannot execute step {step_id}. Workflow is complete"
            else:
                reason = f"Cannot execute step {step_id}. Current step is {current}"
            return StepTransition(current, step_id, False, reason)

        unmet = self.unmet_dependencies(session, step_id)
        if unmet:
            return StepTransition(current, step_id, False, f"Missing required steps: {', '.join(map(str, unmet))}")
        return StepTransition(current, step_id, True)

    def get_available_steps(self, session: WorkflowSession) -> list[int]:
        """Uncovered steps whose mandatory dependencies are all covered."""
        return [
            step_id
            for step_id in self.definitions
            if step_id not in session.completed_steps and not self.unmet_dependencies(session, step_id)
        ]

    def calculate_progress(self, session: WorkflowSession) -> int:
        """Percentage of covered steps, rounded to a whole number."""
        return round(len(session.completed_steps) / TOTAL_STEPS * 100)

    def is_workflow_complete(self, session: WorkflowSession) -> bool:
        return all(step_id in session.completed_steps for step_id in self.definitions)

    def get_workflow_summary(self, session: WorkflowSession) -> dict[str, Any]:
        """Counts and names describing where the session stands."""
        definition = self.get_step_definition(session.current_step)
        completed = len(session.completed_steps)
        return {
            "total_steps": TOTAL_STEPS,
            "completed_steps": completed,
            "remaining_steps": TOTAL_STEPS - completed,
            "current_step_name": definition.name if definition else "Complete",
            "is_complete": self.is_workflow_complete(session),
            "progress": self.calculate_progress(session),
        }
