"""Database persistence layer for invest-workflows.

This module provides SQLAlchemy models, repositories and a session store for
persisting research sessions, step results and investor profiles.
"""

from __future__ import annotations

from invest_workflows.db.models import InvestmentProfileModel, StepResultModel, WorkflowSessionModel
from invest_workflows.db.repositories import (
    InvestmentProfileRepository,
    StepResultRepository,
    WorkflowSessionRepository,
)
from invest_workflows.db.store import SQLAlchemySessionStore

__all__ = [
    "InvestmentProfileModel",
    "InvestmentProfileRepository",
    "SQLAlchemySessionStore",
    "StepResultModel",
    "StepResultRepository",
    "WorkflowSessionModel",
    "WorkflowSessionRepository",
]
