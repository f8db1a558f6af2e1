"""Example of invest-workflows integration.

This example mounts the research API with the built-in step processors and
adds one application route that uses the injected orchestrator.

Provider keys are read from the environment or a ``.env`` file:
    ALPHA_VANTAGE_API_KEY, FMP_API_KEY, POLYGON_API_KEY, FRED_API_KEY

Run with:
    cd examples
    litestar run

Or:
    uvicorn app:app --reload

Example API Usage:
    # Start a research session
    curl -X POST http://localhost:8000/research/sessions \\
        -H "Content-Type: application/json" \\
        -d '{"user_id": "alice"}'

    # Define the investment profile (step 1)
    curl -X POST http://localhost:8000/research/sessions/{session_id}/steps/1 \\
        -H "Content-Type: application/json" \\
        -d '{"inputs": {"risk_tolerance": "medium", "investment_horizon_years": 10,
             "capital_available": 50000, "long_term_goals": "steady growth"}}'

    # Check progress
    curl http://localhost:8000/research/sessions/{session_id}/status
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from litestar import Litestar, get

from invest_workflows import InvestWorkflowPlugin, InvestWorkflowPluginConfig, WorkflowOrchestrator

logging.basicConfig(level=logging.INFO)

# =============================================================================
# Application Routes
# =============================================================================


@get("/summary/{session_id:uuid}")
async def session_summary(session_id: UUID, research_orchestrator: WorkflowOrchestrator) -> dict[str, Any]:
    """Short progress summary for a dashboard."""
    session = await research_orchestrator.get_session(session_id)
    return research_orchestrator.state_machine.get_workflow_summary(session)


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# =============================================================================
# Application
# =============================================================================

plugin_config = InvestWorkflowPluginConfig(use_database=True)

app = Litestar(
    route_handlers=[session_summary, health_check],
    plugins=[InvestWorkflowPlugin(config=plugin_config)],
    debug=True,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
