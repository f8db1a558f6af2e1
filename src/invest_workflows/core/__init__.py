"""Core domain types, models and protocols for invest-workflows."""

from __future__ import annotations

from invest_workflows.core.context import WorkflowContext
from invest_workflows.core.models import InvestmentProfile, SessionPatch, WorkflowSession, WorkflowStatusView
from invest_workflows.core.protocols import Cache, ProviderAdapter, SessionStore, StepProcessor
from invest_workflows.core.results import SKIPPED_WARNING, StepResult, step_result_from_dict
from invest_workflows.core.types import (
    TOTAL_STEPS,
    CacheCategory,
    Consensus,
    ErrorKind,
    InvestmentGoal,
    MarketCapCategory,
    MarketTrend,
    OrderType,
    PriceTrend,
    ReviewFrequency,
    RiskModelType,
    RiskTolerance,
    StepId,
    StepInputs,
)

__all__ = [
    "SKIPPED_WARNING",
    "TOTAL_STEPS",
    "Cache",
    "CacheCategory",
    "Consensus",
    "ErrorKind",
    "InvestmentGoal",
    "InvestmentProfile",
    "MarketCapCategory",
    "MarketTrend",
    "OrderType",
    "PriceTrend",
    "ProviderAdapter",
    "ReviewFrequency",
    "RiskModelType",
    "RiskTolerance",
    "SessionPatch",
    "SessionStore",
    "StepId",
    "StepInputs",
    "StepProcessor",
    "StepResult",
    "WorkflowContext",
    "WorkflowSession",
    "WorkflowStatusView",
    "step_result_from_dict",
]
