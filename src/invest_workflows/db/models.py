"""SQLAlchemy models for research session persistence.

This module defines the database models behind :class:`SQLAlchemySessionStore`:
- WorkflowSessionModel: One user's pass through the research workflow
- StepResultModel: The stored result of one completed or skipped step
- InvestmentProfileModel: The investor profile defined in the first step
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import JSON, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from invest_workflows.core.types import InvestmentGoal, RiskTolerance

__all__ = [
    "InvestmentProfileModel",
    "StepResultModel",
    "WorkflowSessionModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class WorkflowSessionModel(UUIDAuditBase):
    """Persisted research session.

    Attributes:
        user_id: Owner of the session.
        current_step: The step the session is waiting on, 13 once complete.
        completed_steps: Sorted list of executed or skipped steps.
        step_results: Related stored step results.
    """

    __tablename__ = "research_sessions"
    __table_args__ = (Index("ix_research_sessions_user_id", "user_id"),)

    user_id: Mapped[str] = mapped_column(String(255))
    current_step: Mapped[int] = mapped_column(Integer, default=1)
    completed_steps: Mapped[list[int]] = mapped_column(JSONType, default=list)

    # Relationships
    step_results: Mapped[list[StepResultModel]] = relationship(
        back_populates="session",
        lazy="noload",
        order_by="StepResultModel.step_id",
    )


class StepResultModel(UUIDAuditBase):
    """Stored result of one step of a research session.

    Step-specific artifacts live in ``data``; the fields shared by every
    result are kept in their own columns.

    Attributes:
        session_id: Foreign key to the research session.
        step_id: The step the result belongs to.
        success: Whether the step produced its artifacts.
        skipped: True for the marker stored when an optional step is skipped.
        data: Serialized step artifacts.
        errors: Reasons the step failed.
        warnings: Non-fatal notices raised while running the step.
    """

    __tablename__ = "research_step_results"
    __table_args__ = (
        UniqueConstraint("session_id", "step_id", name="uq_research_step_results_session_step"),
        Index("ix_research_step_results_session_id", "session_id"),
    )

    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("research_sessions.id", ondelete="CASCADE"),
    )
    step_id: Mapped[int] = mapped_column(Integer)
    success: Mapped[bool] = mapped_column(default=True)
    skipped: Mapped[bool] = mapped_column(default=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    errors: Mapped[list[str]] = mapped_column(JSONType, default=list)
    warnings: Mapped[list[str]] = mapped_column(JSONType, default=list)

    # Relationships
    session: Mapped[WorkflowSessionModel] = relationship(
        back_populates="step_results",
        lazy="noload",
    )


class InvestmentProfileModel(UUIDAuditBase):
    """Persisted investor profile, one per user.

    Attributes:
        user_id: Owner of the profile.
        risk_tolerance: How much volatility the investor accepts.
        investment_horizon_years: Holding horizon in whole years.
        capital_available: Capital available for investment.
        long_term_goals: The investor's primary goal.
    """

    __tablename__ = "investment_profiles"

    user_id: Mapped[str] = mapped_column(String(255), unique=True)
    risk_tolerance: Mapped[RiskTolerance] = mapped_column(
        Enum(RiskTolerance, native_enum=False, length=50, values_callable=lambda enum: [e.value for e in enum]),
    )
    investment_horizon_years: Mapped[int] = mapped_column(Integer)
    capital_available: Mapped[float] = mapped_column(Float)
    long_term_goals: Mapped[InvestmentGoal] = mapped_column(
        Enum(InvestmentGoal, native_enum=False, length=50, values_callable=lambda enum: [e.value for e in enum]),
    )
