"""Workflow execution for invest-workflows.

This module provides the orchestrator that drives research sessions, the state
machine holding the step sequencing rules, and an in-memory session store.
"""

from __future__ import annotations

from invest_workflows.engine.memory import InMemorySessionStore
from invest_workflows.engine.orchestrator import WorkflowOrchestrator
from invest_workflows.engine.state_machine import (
    COMPLETE_STEP,
    STEP_DEFINITIONS,
    StepDefinition,
    StepTransition,
    WorkflowStateMachine,
    first_open_step,
)

__all__ = [
    "COMPLETE_STEP",
    "STEP_DEFINITIONS",
    "InMemorySessionStore",
    "StepDefinition",
    "StepTransition",
    "WorkflowOrchestrator",
    "WorkflowStateMachine",
    "first_open_step",
]
