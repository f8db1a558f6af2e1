"""REST API controller for research sessions.

Every endpoint maps to one orchestrator call:
- Start a session and read it back
- Inspect progress and the stored result of a step
- Execute, skip and reset steps
- List a user's sessions and the step catalogue
"""

from __future__ import annotations

from typing import Any, ClassVar
from uuid import UUID

from litestar import Controller, Response, get, post
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED, HTTP_400_BAD_REQUEST

from invest_workflows.engine.orchestrator import WorkflowOrchestrator  # noqa: TC001 - needed for DI
from invest_workflows.exceptions import WorkflowStepError
from invest_workflows.web.dto import ExecuteStepDTO, SessionDTO, SessionSummaryDTO, StartSessionDTO
from invest_workflows.web.exceptions import NOT_FOUND_ERRORS, to_http_exception

__all__ = ["ResearchController"]


class ResearchController(Controller):
    """API controller for research sessions.

    Tags: Research Sessions
    """

    path = "/"
    tags: ClassVar[list[str]] = ["Research Sessions"]

    @post("/sessions", status_code=HTTP_201_CREATED)
    async def start_session(
        self,
        data: StartSessionDTO,
        research_orchestrator: WorkflowOrchestrator,
    ) -> SessionDTO:
        """Start a new research session at step 1.

        Args:
            data: The owner of the session.
            research_orchestrator: Injected orchestrator.

        Returns:
            The new session.
        """
        session = await research_orchestrator.start_workflow(data.user_id)
        return SessionDTO.from_session(session)

    @get("/sessions/{session_id:uuid}")
    async def get_session(
        self,
        session_id: UUID,
        research_orchestrator: WorkflowOrchestrator,
    ) -> SessionDTO:
        """Get a session with its stored step results.

        Raises:
            NotFoundException: If the session does not exist.
        """
        try:
            session = await research_orchestrator.get_session(session_id)
        except NOT_FOUND_ERRORS as e:
            raise to_http_exception(e) from e
        return SessionDTO.from_session(session)

    @get("/sessions/{session_id:uuid}/status")
    async def get_status(
        self,
        session_id: UUID,
        research_orchestrator: WorkflowOrchestrator,
    ) -> dict[str, Any]:
        """Get the progress of a session and what its next step needs.

        Raises:
            NotFoundException: If the session does not exist.
        """
        try:
            status = await research_orchestrator.get_workflow_status(session_id)
        except NOT_FOUND_ERRORS as e:
            raise to_http_exception(e) from e
        return status.to_dict()

    @post("/sessions/{session_id:uuid}/steps/{step_id:int}", status_code=HTTP_200_OK)
    async def execute_step(
        self,
        session_id: UUID,
        step_id: int,
        data: ExecuteStepDTO,
        research_orchestrator: WorkflowOrchestrator,
    ) -> Response[dict[str, Any]]:
        """Execute one step of a session.

        A step that ran but failed, or was called out of sequence, is
        returned with status 400 and ``success`` set to false in the body.

        Args:
            session_id: The session to advance.
            step_id: The step to run.
            data: Raw inputs for the step.
            research_orchestrator: Injected orchestrator.

        Returns:
            The serialized step result.

        Raises:
            NotFoundException: If the session does not exist.
            ValidationException: If the step ID is out of range.
        """
        try:
            result = await research_orchestrator.execute_step(session_id, step_id, data.inputs)
        except (*NOT_FOUND_ERRORS, WorkflowStepError) as e:
            raise to_http_exception(e) from e
        status_code = HTTP_200_OK if result.success else HTTP_400_BAD_REQUEST
        return Response(content=result.to_dict(), status_code=status_code)

    @post("/sessions/{session_id:uuid}/steps/{step_id:int}/skip", status_code=HTTP_200_OK)
    async def skip_step(
        self,
        session_id: UUID,
        step_id: int,
        research_orchestrator: WorkflowOrchestrator,
    ) -> dict[str, Any]:
        """Skip the current step of a session if it is optional.

        Raises:
            NotFoundException: If the session does not exist.
            ValidationException: If the step is mandatory or not current.
        """
        try:
            result = await research_orchestrator.skip_optional_step(session_id, step_id)
        except (*NOT_FOUND_ERRORS, WorkflowStepError) as e:
            raise to_http_exception(e) from e
        return result.to_dict()

    @post("/sessions/{session_id:uuid}/reset", status_code=HTTP_200_OK)
    async def reset_session(
        self,
        session_id: UUID,
        research_orchestrator: WorkflowOrchestrator,
    ) -> SessionDTO:
        """Discard every step result and return the session to step 1.

        Raises:
            NotFoundException: If the session does not exist.
        """
        try:
            session = await research_orchestrator.reset_workflow(session_id)
        except NOT_FOUND_ERRORS as e:
            raise to_http_exception(e) from e
        return SessionDTO.from_session(session)

    @get("/sessions/{session_id:uuid}/steps/{step_id:int}")
    async def get_step_result(
        self,
        session_id: UUID,
        step_id: int,
        research_orchestrator: WorkflowOrchestrator,
    ) -> dict[str, Any]:
        """Get the stored result of one step.

        Raises:
            NotFoundException: If the session or the step result does not exist.
        """
        try:
            result = await research_orchestrator.step_result(session_id, step_id)
        except NOT_FOUND_ERRORS as e:
            raise to_http_exception(e) from e
        return result.to_dict()

    @get("/users/{user_id:str}/sessions")
    async def list_user_sessions(
        self,
        user_id: str,
        research_orchestrator: WorkflowOrchestrator,
    ) -> list[SessionSummaryDTO]:
        """List a user's sessions, newest first."""
        sessions = await research_orchestrator.list_sessions(user_id)
        return [SessionSummaryDTO.from_session(session) for session in sessions]

    @get("/steps")
    async def list_steps(self, research_orchestrator: WorkflowOrchestrator) -> list[dict[str, Any]]:
        """List every step with its dependencies, inputs and outputs."""
        return research_orchestrator.describe_steps()
