"""Workflow orchestrator.

The orchestrator is the single entry point for driving a research session. It
checks sequencing with the :class:`WorkflowStateMachine`, hands inputs to the
step processor, persists successful results and advances the session.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from invest_workflows.core.context import WorkflowContext
from invest_workflows.core.models import SessionPatch, WorkflowStatusView
from invest_workflows.core.results import TechnicalTrendsResult, result_class_for
from invest_workflows.core.types import TOTAL_STEPS
from invest_workflows.engine.state_machine import WorkflowStateMachine, first_open_step
from invest_workflows.exceptions import ProfileNotFoundError, WorkflowStepError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from uuid import UUID

    from invest_workflows.core.models import InvestmentProfile, WorkflowSession
    from invest_workflows.core.protocols import SessionStore, StepProcessor
    from invest_workflows.core.results import StepResult
    from invest_workflows.core.types import StepInputs

__all__ = ["WorkflowOrchestrator"]

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
    """Drive research sessions through their twelve steps.

    Calls on the same session are serialized with a per-session lock so two
    concurrent executions cannot both advance it. Calls on different sessions
    run independently. A lock lives only while a call holds or awaits it.

    Attributes:
        store: Persistence for sessions, step results and profiles.
        processors: Registered step processors keyed by step id.
        state_machine: Sequencing and dependency rules.

    Example:
        >>> from invest_workflows.engine.memory import InMemorySessionStore
        >>> store = InMemorySessionStore()
        >>> orchestrator = WorkflowOrchestrator(store)
        >>> sorted(orchestrator.processors)
        []
    """

    def __init__(
        self,
        store: SessionStore,
        processors: Iterable[StepProcessor] = (),
        state_machine: WorkflowStateMachine | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Persistence for sessions, step results and profiles.
            processors: Step processors to register.
            state_machine: Sequencing rules. Defaults to the standard twelve steps.
        """
        self.store = store
        self.state_machine = state_machine or WorkflowStateMachine()
        self.processors: dict[int, StepProcessor] = {}
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = weakref.WeakValueDictionary()
        for processor in processors:
            self.register_processor(processor)

    def register_processor(self, processor: StepProcessor) -> None:
        """Register the processor of a step, replacing any previous one.

        Args:
            processor: The processor. Its ``step_id`` selects the step.

        Raises:
            ValueError: If the processor's step id is outside 1 to 12.
        """
        step_id = int(processor.step_id)
        if not self.state_machine.is_valid_step(step_id):
            msg = f"Invalid step ID: {step_id}. Must be between 1 and {TOTAL_STEPS}"
            raise ValueError(msg)
        self.processors[step_id] = processor
        logger.debug("Registered processor %s for step %d", processor.step_name, step_id)

    def get_processor(self, step_id: int) -> StepProcessor | None:
        return self.processors.get(int(step_id))

    async def start_workflow(self, user_id: str) -> WorkflowSession:
        """Create a new session at step 1.

        Args:
            user_id: Owner of the session.

        Returns:
            The newly created session.
        """
        session = await self.store.create(user_id)
        logger.info("Started workflow session %s for user %s", session.session_id, user_id)
        return session

    async def get_session(self, session_id: UUID) -> WorkflowSession:
        """Load a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        return await self.store.get(session_id)

    async def list_sessions(self, user_id: str) -> list[WorkflowSession]:
        """List a user's sessions, newest first."""
        return await self.store.list_by_user(user_id)

    @asynccontextmanager
    async def _locked_session(self, session_id: UUID) -> AsyncIterator[WorkflowSession]:
        """Hold the session's lock and yield the session as read under it.

        Raises:
            SessionNotFoundError: If the session does not exist. No lock is
                created in that case.
        """
        await self.store.get(session_id)
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        async with lock:
            yield await self.store.get(session_id)

    async def step_result(self, session_id: UUID, step_id: int) -> StepResult:
        """Load the stored result of one step.

        Raises:
            SessionNotFoundError: If the session does not exist.
            StepResultNotFoundError: If the step has no stored result.
        """
        await self.store.get(session_id)
        return await self.store.get_step_result(session_id, step_id)

    async def execute_step(self, session_id: UUID, step_id: int, inputs: StepInputs) -> StepResult:
        """Execute one step of a session.

        Sequencing problems, invalid inputs and processor failures come back
        as a result with ``success=False``. Such results are returned to the
        caller but never stored, and the session does not move.

        Args:
            session_id: The session to advance.
            step_id: The step to run.
            inputs: Raw inputs for the step.

        Returns:
            The step's result.

        Raises:
            SessionNotFoundError: If the session does not exist.
            WorkflowStepError: If ``step_id`` is outside 1 to 12.
        """
        if not self.state_machine.is_valid_step(step_id):
            raise WorkflowStepError(step_id, [f"Invalid step ID: {step_id}. Must be between 1 and {TOTAL_STEPS}"])

        async with self._locked_session(session_id) as session:
            previous = session.step_results.get(step_id)
            transition = self.state_machine.validate_transition(
                session,
                step_id,
                retrying_skipped=previous is not None and previous.skipped,
            )
            if not transition.is_valid:
                return self._failed(step_id, [transition.reason or f"Cannot execute step {step_id}"])

            processor = self.get_processor(step_id)
            if processor is None:
                return self._failed(step_id, [f"No processor registered for step {step_id}"])

            validation = processor.validate_inputs(inputs)
            if not validation.is_valid:
                return self._failed(step_id, validation.errors)

            context = WorkflowContext.from_session(session, await self._load_profile(session.user_id))
            try:
                result = await processor.execute(inputs, context)
            except Exception as exc:
                logger.exception("Step %d of session %s raised", step_id, session_id)
                return self._failed(step_id, [f"Step execution failed: {exc}"])

            if not result.success:
                logger.warning("Step %d of session %s failed: %s", step_id, session_id, "; ".join(result.errors))
                return result

            await self.store.save_step_result(session_id, step_id, result)
            completed = session.completed_steps | {step_id}
            await self.store.update(
                session_id,
                SessionPatch(current_step=first_open_step(completed), completed_steps=completed),
            )
            logger.info("Completed step %d (%s) of session %s", step_id, processor.step_name, session_id)
            return result

    async def skip_optional_step(self, session_id: UUID, step_id: int) -> StepResult:
        """Skip the session's current step if it is optional.

        Args:
            session_id: The session to advance.
            step_id: The step to skip. Must be the current step.

        Returns:
            The stored skip marker.

        Raises:
            SessionNotFoundError: If the session does not exist.
            WorkflowStepError: If the step is mandatory or not the current step.
        """
        async with self._locked_session(session_id) as session:
            if not self.state_machine.is_valid_step(step_id):
                raise WorkflowStepError(step_id, [f"Invalid step ID: {step_id}. Must be between 1 and {TOTAL_STEPS}"])
            if not self.state_machine.is_step_optional(step_id):
                raise WorkflowStepError(step_id, [f"Step {step_id} is not optional and cannot be skipped"])
            if step_id != session.current_step:
                raise WorkflowStepError(
                    step_id, [f"Cannot skip step {step_id}. Current step is {session.current_step}"]
                )

            marker = TechnicalTrendsResult.skipped_marker()
            await self.store.save_step_result(session_id, step_id, marker)
            completed = session.completed_steps | {step_id}
            await self.store.update(
                session_id,
                SessionPatch(current_step=first_open_step(completed), completed_steps=completed),
            )
            logger.info("Skipped step %d of session %s", step_id, session_id)
            return marker

    async def reset_workflow(self, session_id: UUID) -> WorkflowSession:
        """Discard every step result and return the session to step 1.

        The user's profile is kept.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        async with self._locked_session(session_id):
            await self.store.delete_step_results(session_id)
            session = await self.store.update(session_id, SessionPatch(current_step=1, completed_steps=set()))
            logger.info("Reset workflow session %s", session_id)
            return session

    async def get_workflow_status(self, session_id: UUID) -> WorkflowStatusView:
        """Describe where a session stands and what it needs next.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = await self.store.get(session_id)
        is_complete = self.state_machine.is_workflow_complete(session)
        current = session.current_step
        processor = None if is_complete else self.get_processor(current)
        can_proceed = (
            not is_complete
            and processor is not None
            and not self.state_machine.unmet_dependencies(session, current)
        )
        return WorkflowStatusView(
            session_id=session.session_id,
            current_step=current,
            completed_steps=sorted(session.completed_steps),
            total_steps=TOTAL_STEPS,
            progress=self.state_machine.calculate_progress(session),
            can_proceed=can_proceed,
            is_complete=is_complete,
            next_step_requirements=self._requirements(current, processor, is_complete),
        )

    def describe_steps(self) -> list[dict[str, Any]]:
        """Catalogue of every step with its inputs and outputs."""
        catalogue = []
        for step_id, definition in self.state_machine.definitions.items():
            entry = definition.to_dict()
            processor = self.get_processor(step_id)
            entry["inputs"] = [field.to_dict() for field in processor.required_inputs] if processor else []
            entry["outputs"] = processor.output_schema if processor else {}
            catalogue.append(entry)
        return catalogue

    @staticmethod
    def _requirements(step_id: int, processor: StepProcessor | None, is_complete: bool) -> list[str]:
        if is_complete:
            return ["Workflow complete"]
        if processor is None:
            return [f"Complete step {step_id}"]
        return [field.description for field in processor.required_inputs if field.required]

    @staticmethod
    def _failed(step_id: int, errors: list[str]) -> StepResult:
        return result_class_for(step_id).failure(errors)

    async def _load_profile(self, user_id: str) -> InvestmentProfile | None:
        try:
            return await self.store.get_profile(user_id)
        except ProfileNotFoundError:
            return None
