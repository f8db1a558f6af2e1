"""Data Transfer Objects for the research web API.

This module defines DTOs for serializing and deserializing research sessions
in REST API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from invest_workflows.core.models import WorkflowSession

__all__ = [
    "ExecuteStepDTO",
    "SessionDTO",
    "SessionSummaryDTO",
    "StartSessionDTO",
]


@dataclass
class StartSessionDTO:
    """DTO for starting a new research session.

    Attributes:
        user_id: Owner of the new session.
    """

    user_id: str


@dataclass
class ExecuteStepDTO:
    """DTO for executing one step.

    Attributes:
        inputs: Raw step inputs, keyed by input name.
    """

    inputs: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionSummaryDTO:
    """DTO for a session in a user's history.

    Attributes:
        id: Session ID.
        user_id: Owner of the session.
        current_step: The step the session is waiting on.
        completed_steps: Sorted covered steps.
        is_complete: Whether every step is covered.
        created_at: When the session was started.
        updated_at: When the session last changed.
    """

    id: UUID
    user_id: str
    current_step: int
    completed_steps: list[int]
    is_complete: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: WorkflowSession) -> SessionSummaryDTO:
        return cls(
            id=session.session_id,
            user_id=session.user_id,
            current_step=session.current_step,
            completed_steps=sorted(session.completed_steps),
            is_complete=session.is_complete,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


@dataclass
class SessionDTO:
    """DTO for a session with its stored step results.

    Attributes:
        id: Session ID.
        user_id: Owner of the session.
        current_step: The step the session is waiting on.
        completed_steps: Sorted covered steps.
        is_complete: Whether every step is covered.
        step_results: Serialized stored result per step ID.
        created_at: When the session was started.
        updated_at: When the session last changed.
    """

    id: UUID
    user_id: str
    current_step: int
    completed_steps: list[int]
    is_complete: bool
    step_results: dict[str, dict[str, Any]]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: WorkflowSession) -> SessionDTO:
        return cls(
            id=session.session_id,
            user_id=session.user_id,
            current_step=session.current_step,
            completed_steps=sorted(session.completed_steps),
            is_complete=session.is_complete,
            step_results={str(step_id): result.to_dict() for step_id, result in sorted(session.step_results.items())},
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
