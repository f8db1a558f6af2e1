"""In-memory session store.

Keeps sessions, step results and profiles in plain dictionaries. It suits
tests and single-process development; everything is lost on restart.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from invest_workflows.core.models import WorkflowSession
from invest_workflows.exceptions import ProfileNotFoundError, SessionNotFoundError, StepResultNotFoundError

if TYPE_CHECKING:
    from invest_workflows.core.models import InvestmentProfile, SessionPatch
    from invest_workflows.core.results import StepResult

__all__ = ["InMemorySessionStore"]


class InMemorySessionStore:
    """Dictionary-backed implementation of the session store protocol.

    Every read returns a deep copy so callers cannot change stored state
    without going through the store.

    Attributes:
        _sessions: Stored sessions keyed by id, without their step results.
        _results: Stored step results keyed by session id, then step id.
        _profiles: Stored profiles keyed by user id.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, WorkflowSession] = {}
        self._results: dict[UUID, dict[int, StepResult]] = {}
        self._profiles: dict[str, InvestmentProfile] = {}

    def _require(self, session_id: UUID) -> WorkflowSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def _snapshot(self, session: WorkflowSession) -> WorkflowSession:
        snapshot = copy.deepcopy(session)
        snapshot.step_results = copy.deepcopy(self._results.get(session.session_id, {}))
        return snapshot

    async def create(self, user_id: str) -> WorkflowSession:
        session = WorkflowSession(session_id=uuid4(), user_id=user_id)
        self._sessions[session.session_id] = session
        self._results[session.session_id] = {}
        return self._snapshot(session)

    async def get(self, session_id: UUID) -> WorkflowSession:
        return self._snapshot(self._require(session_id))

    async def update(self, session_id: UUID, patch: SessionPatch) -> WorkflowSession:
        return self._snapshot(patch.apply(self._require(session_id)))

    async def list_by_user(self, user_id: str) -> list[WorkflowSession]:
        sessions = [session for session in self._sessions.values() if session.user_id == user_id]
        sessions.sort(key=lambda session: session.created_at, reverse=True)
        return [self._snapshot(session) for session in sessions]

    async def save_step_result(self, session_id: UUID, step_id: int, result: StepResult) -> None:
        session = self._require(session_id)
        self._results[session_id][int(step_id)] = copy.deepcopy(result)
        session.updated_at = datetime.now(timezone.utc)

    async def get_step_result(self, session_id: UUID, step_id: int) -> StepResult:
        self._require(session_id)
        try:
            return copy.deepcopy(self._results[session_id][int(step_id)])
        except KeyError:
            raise StepResultNotFoundError(session_id, step_id) from None

    async def delete_step_results(self, session_id: UUID) -> None:
        self._require(session_id)
        self._results[session_id] = {}

    async def save_profile(self, user_id: str, profile: InvestmentProfile) -> None:
        self._profiles[user_id] = copy.deepcopy(profile)

    async def get_profile(self, user_id: str) -> InvestmentProfile:
        try:
            return copy.deepcopy(self._profiles[user_id])
        except KeyError:
            raise ProfileNotFoundError(user_id) from None
