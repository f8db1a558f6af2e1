"""Invest Workflows - Guided investment research sessions for Litestar.

This package walks an investor through a twelve-step research workflow, from
defining a profile to setting up monitoring for a mock position, pulling data
from public financial providers along the way.

Key Features:
    - Sequenced twelve-step workflow with dependency checks
    - Provider adapters with rate limiting, retry, caching and fallback chains
    - Pure analysis functions for sectors, valuation, moat, sentiment and sizing
    - In-memory and SQLAlchemy session stores
    - Litestar plugin exposing a REST API

Example:
    >>> from invest_workflows import InMemorySessionStore, WorkflowOrchestrator
    >>> orchestrator = WorkflowOrchestrator(InMemorySessionStore())
"""

from __future__ import annotations

from invest_workflows.__metadata__ import __project__, __version__
from invest_workflows.config import Settings, get_settings
from invest_workflows.engine import InMemorySessionStore, WorkflowOrchestrator, WorkflowStateMachine
from invest_workflows.exceptions import (
    ConfigurationError,
    FallbackExhaustedError,
    InvestWorkflowsError,
    NetworkError,
    NotFoundError,
    ProfileNotFoundError,
    ProviderError,
    RateLimitError,
    SessionNotFoundError,
    StepResultNotFoundError,
    ValidationError,
    WorkflowStepError,
)
from invest_workflows.plugin import InvestWorkflowPlugin, InvestWorkflowPluginConfig
from invest_workflows.providers import ProviderRegistry
from invest_workflows.steps import build_default_processors

__all__ = (
    "ConfigurationError",
    "FallbackExhaustedError",
    "InMemorySessionStore",
    "InvestWorkflowPlugin",
    "InvestWorkflowPluginConfig",
    "InvestWorkflowsError",
    "NetworkError",
    "NotFoundError",
    "ProfileNotFoundError",
    "ProviderError",
    "ProviderRegistry",
    "RateLimitError",
    "SessionNotFoundError",
    "Settings",
    "StepResultNotFoundError",
    "ValidationError",
    "WorkflowOrchestrator",
    "WorkflowStateMachine",
    "WorkflowStepError",
    "__project__",
    "__version__",
    "build_default_processors",
    "get_settings",
)
