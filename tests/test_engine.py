"""Tests for the workflow orchestrator and the in-memory store."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import pytest

from invest_workflows.core.models import SessionPatch
from invest_workflows.core.results import SKIPPED_WARNING, MarketConditionsResult, ProfileResult
from invest_workflows.core.types import RiskTolerance
from invest_workflows.engine.orchestrator import WorkflowOrchestrator
from invest_workflows.exceptions import (
    ProfileNotFoundError,
    SessionNotFoundError,
    StepResultNotFoundError,
    WorkflowStepError,
)

if TYPE_CHECKING:
    from invest_workflows.core.models import InvestmentProfile
    from invest_workflows.engine.memory import InMemorySessionStore


async def advance(orchestrator: WorkflowOrchestrator, session_id: UUID, through: int, profile: dict[str, Any]) -> None:
    """Run steps 1 to ``through`` in order."""
    for step_id in range(1, through + 1):
        result = await orchestrator.execute_step(session_id, step_id, profile if step_id == 1 else {})
        assert result.success, result.errors


@pytest.mark.unit
@pytest.mark.asyncio
class TestExecuteStep:
    """Tests for :meth:`WorkflowOrchestrator.execute_step`."""

    async def test_start_workflow(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test a new session starts at step 1 with nothing completed."""
        session = await orchestrator.start_workflow("user-1")

        assert session.user_id == "user-1"
        assert session.current_step == 1
        assert session.completed_steps == set()
        assert session.step_results == {}

    async def test_profile_step_advances_session(
        self, orchestrator: WorkflowOrchestrator, memory_store: InMemorySessionStore, profile_inputs: dict[str, Any]
    ) -> None:
        """Test a successful step is stored and the session moves on."""
        session = await orchestrator.start_workflow("user-1")

        result = await orchestrator.execute_step(session.session_id, 1, profile_inputs)

        assert isinstance(result, ProfileResult)
        assert result.success is True
        assert result.profile.risk_tolerance is RiskTolerance.MEDIUM
        updated = await orchestrator.get_session(session.session_id)
        assert updated.current_step == 2
        assert updated.completed_steps == {1}
        assert updated.step_results[1].profile.capital_available == 100_000.0
        profile = await memory_store.get_profile("user-1")
        assert profile.investment_horizon_years == 10

    async def test_invalid_inputs_are_not_stored(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test validation errors come back as a failed result."""
        session = await orchestrator.start_workflow("user-1")

        result = await orchestrator.execute_step(session.session_id, 1, {"risk_tolerance": "medium"})

        assert result.success is False
        assert "Investment horizon is required" in result.errors
        with pytest.raises(StepResultNotFoundError):
            await orchestrator.step_result(session.session_id, 1)

    async def test_out_of_sequence(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test a later step is refused and the session is untouched."""
        session = await orchestrator.start_workflow("user-1")

        result = await orchestrator.execute_step(session.session_id, 3, {})

        assert result.success is False
        assert result.errors == ["Cannot execute step 3. Current step is 1"]
        unchanged = await orchestrator.get_session(session.session_id)
        assert unchanged.current_step == 1
        assert unchanged.completed_steps == set()

    @pytest.mark.parametrize("step_id", [0, 13])
    async def test_invalid_step_id_raises(self, orchestrator: WorkflowOrchestrator, step_id: int) -> None:
        """Test step ids outside 1 to 12 are rejected outright."""
        session = await orchestrator.start_workflow("user-1")

        with pytest.raises(WorkflowStepError, match=f"Invalid step ID: {step_id}. Must be between 1 and 12"):
            await orchestrator.execute_step(session.session_id, step_id, {})

    async def test_failed_result_is_not_stored(
        self,
        memory_store: InMemorySessionStore,
        stub_step: type,
        profile_inputs: dict[str, Any],
    ) -> None:
        """Test a processor failure is returned without moving the session."""
        from invest_workflows.steps.profile import ProfileDefinitionProcessor

        orchestrator = WorkflowOrchestrator(
            memory_store, [ProfileDefinitionProcessor(memory_store), stub_step(2, errors=["no data"])]
        )
        session = await orchestrator.start_workflow("user-1")
        await orchestrator.execute_step(session.session_id, 1, profile_inputs)

        result = await orchestrator.execute_step(session.session_id, 2, {})

        assert isinstance(result, MarketConditionsResult)
        assert result.errors == ["no data"]
        with pytest.raises(StepResultNotFoundError):
            await orchestrator.step_result(session.session_id, 2)
        assert (await orchestrator.get_session(session.session_id)).current_step == 2

    async def test_processor_exception_is_reported(
        self,
        memory_store: InMemorySessionStore,
        stub_step: type,
        profile_inputs: dict[str, Any],
    ) -> None:
        """Test an unexpected exception becomes a failed result."""
        from invest_workflows.steps.profile import ProfileDefinitionProcessor

        orchestrator = WorkflowOrchestrator(
            memory_store, [ProfileDefinitionProcessor(memory_store), stub_step(2, raises=RuntimeError("boom"))]
        )
        session = await orchestrator.start_workflow("user-1")
        await orchestrator.execute_step(session.session_id, 1, profile_inputs)

        result = await orchestrator.execute_step(session.session_id, 2, {})

        assert result.success is False
        assert result.errors == ["Step execution failed: boom"]

    async def test_missing_processor(self, memory_store: InMemorySessionStore) -> None:
        """Test a step without a registered processor fails cleanly."""
        orchestrator = WorkflowOrchestrator(memory_store)
        session = await orchestrator.start_workflow("user-1")

        result = await orchestrator.execute_step(session.session_id, 1, {})

        assert result.errors == ["No processor registered for step 1"]

    async def test_context_carries_profile_and_results(
        self, memory_store: InMemorySessionStore, stub_step: type, profile_inputs: dict[str, Any]
    ) -> None:
        """Test later steps see the stored profile and earlier results."""
        from invest_workflows.steps.profile import ProfileDefinitionProcessor

        market = stub_step(2)
        orchestrator = WorkflowOrchestrator(memory_store, [ProfileDefinitionProcessor(memory_store), market])
        session = await orchestrator.start_workflow("user-1")
        await orchestrator.execute_step(session.session_id, 1, profile_inputs)

        await orchestrator.execute_step(session.session_id, 2, {})

        (context,) = market.contexts
        assert context.session_id == session.session_id
        assert context.profile.user_id == "user-1"
        assert context.has_completed(1)
        assert not context.has_completed(2)

    async def test_concurrent_calls_on_one_session(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test only one of two simultaneous executions of a step succeeds."""
        session = await orchestrator.start_workflow("user-1")

        first, second = await asyncio.gather(
            orchestrator.execute_step(session.session_id, 1, profile_inputs),
            orchestrator.execute_step(session.session_id, 1, profile_inputs),
        )

        assert sorted([first.success, second.success]) == [False, True]
        failed = second if first.success else first
        assert failed.errors == ["Cannot execute step 1. Current step is 2"]

    async def test_unknown_session(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test executing against a missing session raises."""
        session_id = uuid4()

        with pytest.raises(SessionNotFoundError, match=f"Workflow session '{session_id}' not found"):
            await orchestrator.execute_step(session_id, 1, {})


@pytest.mark.unit
@pytest.mark.asyncio
class TestSessionLocks:
    """Tests for the per-session locks."""

    async def test_locks_are_released_after_use(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test no lock outlives the calls that used it."""
        for _ in range(50):
            session = await orchestrator.start_workflow("user-1")
            await orchestrator.execute_step(session.session_id, 1, profile_inputs)
            await orchestrator.reset_workflow(session.session_id)

        assert len(orchestrator._locks) == 0

    async def test_unknown_session_creates_no_lock(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test calls against missing sessions leave no lock behind."""
        for _ in range(10):
            with pytest.raises(SessionNotFoundError):
                await orchestrator.execute_step(uuid4(), 1, {})
            with pytest.raises(SessionNotFoundError):
                await orchestrator.skip_optional_step(uuid4(), 8)
            with pytest.raises(SessionNotFoundError):
                await orchestrator.reset_workflow(uuid4())

        assert len(orchestrator._locks) == 0

    async def test_concurrent_calls_share_one_lock(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test simultaneous calls on one session still run one at a time."""
        session = await orchestrator.start_workflow("user-1")

        results = await asyncio.gather(
            *(orchestrator.execute_step(session.session_id, 1, profile_inputs) for _ in range(5))
        )

        assert [result.success for result in results].count(True) == 1
        assert len(orchestrator._locks) == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestSkipAndReset:
    """Tests for skipping the optional step and resetting a session."""

    async def test_skip_technical_trends(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test skipping step 8 stores a marker and advances to step 9."""
        session = await orchestrator.start_workflow("user-1")
        await advance(orchestrator, session.session_id, 7, profile_inputs)

        marker = await orchestrator.skip_optional_step(session.session_id, 8)

        assert marker.skipped is True
        assert marker.warnings == [SKIPPED_WARNING]
        updated = await orchestrator.get_session(session.session_id)
        assert updated.current_step == 9
        assert 8 in updated.completed_steps
        assert updated.step_results[8].skipped is True

    async def test_mandatory_step_cannot_be_skipped(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test only optional steps may be skipped."""
        session = await orchestrator.start_workflow("user-1")

        with pytest.raises(WorkflowStepError, match="Step 1 is not optional and cannot be skipped"):
            await orchestrator.skip_optional_step(session.session_id, 1)

    async def test_skip_must_target_current_step(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test the optional step cannot be skipped ahead of time."""
        session = await orchestrator.start_workflow("user-1")
        await advance(orchestrator, session.session_id, 4, profile_inputs)

        with pytest.raises(WorkflowStepError, match="Cannot skip step 8. Current step is 5"):
            await orchestrator.skip_optional_step(session.session_id, 8)

    async def test_skipped_step_can_be_run_later(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test a skipped step 8 may still be executed after moving on."""
        session = await orchestrator.start_workflow("user-1")
        await advance(orchestrator, session.session_id, 7, profile_inputs)
        await orchestrator.skip_optional_step(session.session_id, 8)
        await orchestrator.execute_step(session.session_id, 9, {})

        result = await orchestrator.execute_step(session.session_id, 8, {})

        assert result.success is True
        assert result.skipped is False
        stored = await orchestrator.step_result(session.session_id, 8)
        assert stored.skipped is False
        assert (await orchestrator.get_session(session.session_id)).current_step == 10

    async def test_reset_keeps_profile(
        self,
        orchestrator: WorkflowOrchestrator,
        memory_store: InMemorySessionStore,
        profile_inputs: dict[str, Any],
    ) -> None:
        """Test resetting clears results but keeps the session and profile."""
        session = await orchestrator.start_workflow("user-1")
        await advance(orchestrator, session.session_id, 3, profile_inputs)

        reset = await orchestrator.reset_workflow(session.session_id)

        assert reset.session_id == session.session_id
        assert reset.current_step == 1
        assert reset.completed_steps == set()
        assert reset.step_results == {}
        assert (await memory_store.get_profile("user-1")).risk_tolerance is RiskTolerance.MEDIUM


@pytest.mark.unit
@pytest.mark.asyncio
class TestWorkflowStatus:
    """Tests for status reporting and the step catalogue."""

    async def test_status_of_new_session(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test a new session asks for the profile inputs."""
        session = await orchestrator.start_workflow("user-1")

        status = await orchestrator.get_workflow_status(session.session_id)

        assert status.current_step == 1
        assert status.progress == 0
        assert status.can_proceed is True
        assert status.is_complete is False
        assert status.next_step_requirements == [
            "Risk tolerance level: low, medium, or high",
            "Investment horizon in years",
            "Capital available for investment",
            "Investment goals: steady growth, dividend income, or capital preservation",
        ]

    async def test_status_of_complete_session(
        self, orchestrator: WorkflowOrchestrator, profile_inputs: dict[str, Any]
    ) -> None:
        """Test a finished session cannot proceed."""
        session = await orchestrator.start_workflow("user-1")
        await advance(orchestrator, session.session_id, 12, profile_inputs)

        status = await orchestrator.get_workflow_status(session.session_id)

        assert status.is_complete is True
        assert status.can_proceed is False
        assert status.progress == 100
        assert status.current_step == 13
        assert status.completed_steps == list(range(1, 13))
        assert status.next_step_requirements == ["Workflow complete"]

    async def test_status_without_processor(self, memory_store: InMemorySessionStore) -> None:
        """Test a missing processor blocks progress."""
        orchestrator = WorkflowOrchestrator(memory_store)
        session = await orchestrator.start_workflow("user-1")

        status = await orchestrator.get_workflow_status(session.session_id)

        assert status.can_proceed is False
        assert status.next_step_requirements == ["Complete step 1"]

    async def test_list_sessions(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test sessions are listed per user, newest first."""
        first = await orchestrator.start_workflow("user-1")
        second = await orchestrator.start_workflow("user-1")
        await orchestrator.start_workflow("user-2")

        sessions = await orchestrator.list_sessions("user-1")

        assert {session.session_id for session in sessions} == {first.session_id, second.session_id}
        assert sessions[0].created_at >= sessions[1].created_at


@pytest.mark.unit
class TestOrchestratorSetup:
    """Tests for processor registration and the step catalogue."""

    def test_describe_steps(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test every step is described with its inputs."""
        catalogue = orchestrator.describe_steps()

        assert [entry["id"] for entry in catalogue] == list(range(1, 13))
        assert catalogue[0]["name"] == "Profile Definition"
        assert [field["name"] for field in catalogue[0]["inputs"]] == [
            "risk_tolerance",
            "investment_horizon_years",
            "capital_available",
            "long_term_goals",
        ]
        assert catalogue[0]["outputs"]["profile"]["type"] == "InvestmentProfile"
        assert catalogue[7]["is_optional"] is True

    def test_register_rejects_unknown_step(self, memory_store: InMemorySessionStore) -> None:
        """Test a processor for a step outside 1 to 12 is refused."""
        orchestrator = WorkflowOrchestrator(memory_store)

        with pytest.raises(ValueError, match="Invalid step ID: 13"):
            orchestrator.register_processor(SimpleNamespace(step_id=13, step_name="Bogus"))

    def test_register_replaces_processor(self, memory_store: InMemorySessionStore, stub_step: type) -> None:
        """Test registering a step twice keeps the latest processor."""
        orchestrator = WorkflowOrchestrator(memory_store, [stub_step(2)])
        replacement = stub_step(2)

        orchestrator.register_processor(replacement)

        assert orchestrator.get_processor(2) is replacement


@pytest.mark.unit
@pytest.mark.asyncio
class TestInMemorySessionStore:
    """Tests for :class:`InMemorySessionStore`."""

    async def test_reads_are_copies(self, memory_store: InMemorySessionStore) -> None:
        """Test changing a returned session does not change the store."""
        session = await memory_store.create("user-1")
        session.completed_steps.add(5)
        session.current_step = 6

        stored = await memory_store.get(session.session_id)

        assert stored.completed_steps == set()
        assert stored.current_step == 1

    async def test_update_applies_patch(self, memory_store: InMemorySessionStore) -> None:
        """Test only the fields present in the patch change."""
        session = await memory_store.create("user-1")

        updated = await memory_store.update(session.session_id, SessionPatch(current_step=2))

        assert updated.current_step == 2
        assert updated.completed_steps == set()
        assert updated.updated_at >= session.updated_at

    async def test_step_results_round_trip(self, memory_store: InMemorySessionStore) -> None:
        """Test stored results come back and can be deleted together."""
        session = await memory_store.create("user-1")
        await memory_store.save_step_result(session.session_id, 2, MarketConditionsResult(warnings=["stale"]))

        stored = await memory_store.get_step_result(session.session_id, 2)
        assert stored.warnings == ["stale"]

        await memory_store.delete_step_results(session.session_id)
        with pytest.raises(StepResultNotFoundError):
            await memory_store.get_step_result(session.session_id, 2)

    async def test_profiles(self, memory_store: InMemorySessionStore, sample_profile: InvestmentProfile) -> None:
        """Test profiles are stored per user."""
        await memory_store.save_profile("user-1", sample_profile)

        assert (await memory_store.get_profile("user-1")).capital_available == 100_000.0
        with pytest.raises(ProfileNotFoundError, match="Investment profile for user 'user-2' not found"):
            await memory_store.get_profile("user-2")

    async def test_unknown_session(self, memory_store: InMemorySessionStore) -> None:
        """Test every session-scoped call checks the session exists."""
        with pytest.raises(SessionNotFoundError):
            await memory_store.get(uuid4())
        with pytest.raises(SessionNotFoundError):
            await memory_store.update(uuid4(), SessionPatch(current_step=2))
