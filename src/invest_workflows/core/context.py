"""Workflow execution context.

This module provides the WorkflowContext dataclass handed to every step
processor. It carries the session identity, the investor profile when one has
been defined, and the results of the steps completed so far.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from invest_workflows.core.models import InvestmentProfile, WorkflowSession
    from invest_workflows.core.results import StepResult

__all__ = ["WorkflowContext"]


@dataclass
class WorkflowContext:
    """Read-only state passed to a step processor.

    Attributes:
        session_id: The session the step runs in.
        user_id: Owner of the session.
        profile: The user's investment profile, if step 1 has been completed.
        previous_results: Results of steps completed before this one.

    Example:
        >>> from uuid import uuid4
        >>> context = WorkflowContext(session_id=uuid4(), user_id="user-1")
        >>> context.get_result(1) is None
        True
    """

    session_id: UUID
    user_id: str
    profile: InvestmentProfile | None = None
    previous_results: dict[int, StepResult] = field(default_factory=dict)

    @classmethod
    def from_session(
        cls,
        session: WorkflowSession,
        profile: InvestmentProfile | None = None,
    ) -> WorkflowContext:
        """Build a context from a stored session.

        Args:
            session: The session the step runs in.
            profile: The user's profile, if one exists.

        Returns:
            A new context sharing the session's stored results.
        """
        return cls(
            session_id=session.session_id,
            user_id=session.user_id,
            profile=profile,
            previous_results=dict(session.step_results),
        )

    def get_result(self, step_id: int) -> StepResult | None:
        """Return the stored result of a previous step, if any.

        Args:
            step_id: The step to look up.

        Returns:
            The stored result, or None when the step has not completed.
        """
        return self.previous_results.get(int(step_id))

    def has_completed(self, step_id: int) -> bool:
        """Check whether a previous step left a result in this session."""
        return int(step_id) in self.previous_results
