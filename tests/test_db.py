"""Integration tests for the database persistence layer.

Tests the SQLAlchemy models, repositories, and SQLAlchemySessionStore
using an async SQLite in-memory database.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from invest_workflows.core.artifacts import Fundamentals
from invest_workflows.core.models import SessionPatch
from invest_workflows.core.results import (
    SKIPPED_WARNING,
    FundamentalAnalysisResult,
    MarketConditionsResult,
    TechnicalTrendsResult,
)
from invest_workflows.core.types import InvestmentGoal, RiskTolerance
from invest_workflows.db.repositories import StepResultRepository, WorkflowSessionRepository
from invest_workflows.exceptions import ProfileNotFoundError, SessionNotFoundError, StepResultNotFoundError

if TYPE_CHECKING:
    from invest_workflows.core.models import InvestmentProfile
    from invest_workflows.db.store import SQLAlchemySessionStore


@pytest.mark.integration
@pytest.mark.asyncio
class TestSessions:
    """Tests for storing and updating research sessions."""

    async def test_create_and_get(self, db_store: SQLAlchemySessionStore) -> None:
        """Test a new session is stored at step 1."""
        session = await db_store.create("user-1")

        loaded = await db_store.get(session.session_id)

        assert loaded.session_id == session.session_id
        assert loaded.user_id == "user-1"
        assert loaded.current_step == 1
        assert loaded.completed_steps == set()
        assert loaded.step_results == {}
        assert loaded.created_at is not None

    async def test_get_missing_session(self, db_store: SQLAlchemySessionStore) -> None:
        """Test loading an unknown id raises SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            await db_store.get(uuid4())

    async def test_update_applies_patch(self, db_store: SQLAlchemySessionStore) -> None:
        """Test the patch fields are written and the rest left alone."""
        session = await db_store.create("user-1")

        await db_store.update(session.session_id, SessionPatch(current_step=3, completed_steps={2, 1}))
        updated = await db_store.update(session.session_id, SessionPatch(current_step=4))

        assert updated.current_step == 4
        assert updated.completed_steps == {1, 2}

    async def test_update_missing_session(self, db_store: SQLAlchemySessionStore) -> None:
        """Test updating an unknown id raises SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            await db_store.update(uuid4(), SessionPatch(current_step=2))

    async def test_list_by_user(self, db_store: SQLAlchemySessionStore) -> None:
        """Test only the user's sessions are listed, newest first."""
        first = await db_store.create("user-1")
        second = await db_store.create("user-1")
        await db_store.create("user-2")

        sessions = await db_store.list_by_user("user-1")

        assert {session.session_id for session in sessions} == {first.session_id, second.session_id}
        assert sessions[0].created_at >= sessions[1].created_at


@pytest.mark.integration
@pytest.mark.asyncio
class TestStepResults:
    """Tests for storing step results."""

    async def test_result_round_trip(self, db_store: SQLAlchemySessionStore) -> None:
        """Test artifacts and notices come back as the step's result type."""
        session = await db_store.create("user-1")
        fundamentals = Fundamentals(
            ticker="AAPL",
            revenue_growth_5y=8.5,
            earnings_growth_5y=12.0,
            profit_margin=25.3,
            debt_to_equity=1.8,
            free_cash_flow=110e9,
            analyzed_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
        result = FundamentalAnalysisResult(fundamentals=fundamentals, source="fmp", warnings=["Using fmp for AAPL"])

        await db_store.save_step_result(session.session_id, 5, result)
        loaded = await db_store.get_step_result(session.session_id, 5)

        assert isinstance(loaded, FundamentalAnalysisResult)
        assert loaded.success is True
        assert loaded.source == "fmp"
        assert loaded.warnings == ["Using fmp for AAPL"]
        assert loaded.fundamentals.free_cash_flow == 110e9
        assert loaded.fundamentals.analyzed_at == fundamentals.analyzed_at

    async def test_saving_twice_replaces(self, db_store: SQLAlchemySessionStore) -> None:
        """Test a step keeps only its latest result."""
        session = await db_store.create("user-1")
        await db_store.save_step_result(session.session_id, 8, TechnicalTrendsResult.skipped_marker())

        await db_store.save_step_result(session.session_id, 8, TechnicalTrendsResult(warnings=["recomputed"]))

        async with db_store.session_maker() as db:
            rows = await StepResultRepository(session=db).find_by_session(session.session_id)
        assert len(rows) == 1
        loaded = await db_store.get_step_result(session.session_id, 8)
        assert loaded.skipped is False
        assert loaded.warnings == ["recomputed"]

    async def test_skipped_marker(self, db_store: SQLAlchemySessionStore) -> None:
        """Test the skip flag is kept in its own column."""
        session = await db_store.create("user-1")

        await db_store.save_step_result(session.session_id, 8, TechnicalTrendsResult.skipped_marker())

        loaded = (await db_store.get(session.session_id)).step_results[8]
        assert loaded.skipped is True
        assert loaded.warnings == [SKIPPED_WARNING]

    async def test_missing_result(self, db_store: SQLAlchemySessionStore) -> None:
        """Test a step without a stored result raises StepResultNotFoundError."""
        session = await db_store.create("user-1")

        with pytest.raises(StepResultNotFoundError):
            await db_store.get_step_result(session.session_id, 2)

    async def test_delete_results(self, db_store: SQLAlchemySessionStore) -> None:
        """Test every result of a session is removed and others are kept."""
        session = await db_store.create("user-1")
        other = await db_store.create("user-1")
        await db_store.save_step_result(session.session_id, 2, MarketConditionsResult())
        await db_store.save_step_result(other.session_id, 2, MarketConditionsResult())

        await db_store.delete_step_results(session.session_id)

        assert (await db_store.get(session.session_id)).step_results == {}
        assert 2 in (await db_store.get(other.session_id)).step_results

    async def test_save_for_missing_session(self, db_store: SQLAlchemySessionStore) -> None:
        """Test a result cannot be stored for an unknown session."""
        with pytest.raises(SessionNotFoundError):
            await db_store.save_step_result(uuid4(), 2, MarketConditionsResult())


@pytest.mark.integration
@pytest.mark.asyncio
class TestProfiles:
    """Tests for storing investor profiles."""

    async def test_profile_round_trip(
        self, db_store: SQLAlchemySessionStore, sample_profile: InvestmentProfile
    ) -> None:
        """Test a saved profile is loaded with its enum values."""
        await db_store.save_profile("user-1", sample_profile)

        loaded = await db_store.get_profile("user-1")

        assert loaded.risk_tolerance == RiskTolerance.MEDIUM
        assert loaded.long_term_goals == InvestmentGoal.STEADY_GROWTH
        assert loaded.capital_available == 100_000.0

    async def test_saving_again_updates(
        self, db_store: SQLAlchemySessionStore, sample_profile: InvestmentProfile
    ) -> None:
        """Test a user keeps a single profile."""
        from dataclasses import replace

        await db_store.save_profile("user-1", sample_profile)
        await db_store.save_profile("user-1", replace(sample_profile, risk_tolerance=RiskTolerance.HIGH))

        assert (await db_store.get_profile("user-1")).risk_tolerance == RiskTolerance.HIGH

    async def test_missing_profile(self, db_store: SQLAlchemySessionStore) -> None:
        """Test an unknown user raises ProfileNotFoundError."""
        with pytest.raises(ProfileNotFoundError):
            await db_store.get_profile("nobody")


@pytest.mark.integration
@pytest.mark.asyncio
class TestRepositories:
    """Tests for the repository helpers."""

    async def test_find_by_user(self, db_store: SQLAlchemySessionStore) -> None:
        """Test sessions are filtered by owner."""
        await db_store.create("user-1")
        await db_store.create("user-2")

        async with db_store.session_maker() as db:
            models = await WorkflowSessionRepository(session=db).find_by_user("user-2")

        assert [model.user_id for model in models] == ["user-2"]

    async def test_results_ordered_by_step(self, db_store: SQLAlchemySessionStore) -> None:
        """Test results of a session come back in step order."""
        session = await db_store.create("user-1")
        await db_store.save_step_result(session.session_id, 8, TechnicalTrendsResult.skipped_marker())
        await db_store.save_step_result(session.session_id, 2, MarketConditionsResult())

        async with db_store.session_maker() as db:
            rows = await StepResultRepository(session=db).find_by_session(session.session_id)

        assert [row.step_id for row in rows] == [2, 8]
