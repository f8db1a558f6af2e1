"""Session and profile data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from invest_workflows.core.types import TOTAL_STEPS, InvestmentGoal, RiskTolerance

if TYPE_CHECKING:
    from invest_workflows.core.results import StepResult

__all__ = ["InvestmentProfile", "SessionPatch", "WorkflowSession", "WorkflowStatusView"]


@dataclass
class InvestmentProfile:
    """Investor profile defined in the first step.

    Attributes:
        user_id: Owner of the profile.
        risk_tolerance: How much volatility the investor accepts.
        investment_horizon_years: Holding horizon in whole years.
        capital_available: Capital available for investment.
        long_term_goals: The investor's primary goal.
        created_at: When the profile was defined.
    """

    user_id: str
    risk_tolerance: RiskTolerance
    investment_horizon_years: int
    capital_available: float
    long_term_goals: InvestmentGoal
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WorkflowSession:
    """Persisted state of one user's pass through the research workflow.

    ``current_step`` is the smallest step not in ``completed_steps``, or
    ``TOTAL_STEPS + 1`` once every step is covered. ``step_results`` only holds
    entries for completed or skipped steps.

    Attributes:
        session_id: Opaque unique identifier.
        user_id: Owner of the session.
        current_step: The step the session is waiting on.
        completed_steps: Steps executed successfully or skipped.
        step_results: Stored result per completed step.
        created_at: When the session was started.
        updated_at: When the session last changed.
    """

    session_id: UUID
    user_id: str
    current_step: int = 1
    completed_steps: set[int] = field(default_factory=set)
    step_results: dict[int, StepResult] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_complete(self) -> bool:
        """Whether every step has been executed or skipped."""
        return len(self.completed_steps) >= TOTAL_STEPS


@dataclass
class SessionPatch:
    """Partial update applied to a session by :meth:`SessionStore.update`.

    Fields left as ``None`` are not touched.
    """

    current_step: int | None = None
    completed_steps: set[int] | None = None

    def apply(self, session: WorkflowSession) -> WorkflowSession:
        """Apply the patch in place and bump ``updated_at``.

        Args:
            session: The session to mutate.

        Returns:
            The same session, for chaining.
        """
        if self.current_step is not None:
            session.current_step = self.current_step
        if self.completed_steps is not None:
            session.completed_steps = set(self.completed_steps)
        session.updated_at = datetime.now(timezone.utc)
        return session


@dataclass
class WorkflowStatusView:
    """Read-only projection of a session's progress.

    Attributes:
        session_id: The session being described.
        current_step: The step the session is waiting on.
        completed_steps: Sorted list of covered steps.
        total_steps: Always twelve.
        progress: Completion percentage, 0 to 100.
        can_proceed: Whether another step can still be executed.
        is_complete: Whether every step is covered.
        next_step_requirements: What the next step needs from the user.
    """

    session_id: UUID
    current_step: int
    completed_steps: list[int]
    total_steps: int
    progress: int
    can_proceed: bool
    is_complete: bool
    next_step_requirements: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": str(self.session_id),
            "current_step": self.current_step,
            "completed_steps": self.completed_steps,
            "total_steps": self.total_steps,
            "progress": self.progress,
            "can_proceed": self.can_proceed,
            "is_complete": self.is_complete,
            "next_step_requirements": self.next_step_requirements,
        }
