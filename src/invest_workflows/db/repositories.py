"""Repository implementations for research session persistence.

This module provides async repositories for CRUD operations on the session,
step result and profile models using advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from advanced_alchemy.filters import OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, delete, select

from invest_workflows.db.models import InvestmentProfileModel, StepResultModel, WorkflowSessionModel

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "InvestmentProfileRepository",
    "StepResultRepository",
    "WorkflowSessionRepository",
]


class WorkflowSessionRepository(SQLAlchemyAsyncRepository[WorkflowSessionModel]):
    """Repository for research session CRUD operations."""

    model_type = WorkflowSessionModel

    async def find_by_user(self, user_id: str) -> Sequence[WorkflowSessionModel]:
        """Find every session owned by a user.

        Args:
            user_id: The user ID to filter by.

        Returns:
            The user's sessions, newest first.
        """
        return await self.list(
            WorkflowSessionModel.user_id == user_id,
            OrderBy(field_name="created_at", sort_order="desc"),
        )


class StepResultRepository(SQLAlchemyAsyncRepository[StepResultModel]):
    """Repository for stored step results.

    A session holds at most one result per step; :meth:`upsert_step` replaces
    any previous row for the same step.
    """

    model_type = StepResultModel

    async def find_by_session(self, session_id: UUID) -> Sequence[StepResultModel]:
        """Find all stored results of a session.

        Args:
            session_id: The research session ID.

        Returns:
            Step results ordered by step ID.
        """
        stmt = select(StepResultModel).where(StepResultModel.session_id == session_id).order_by(StepResultModel.step_id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_step(self, session_id: UUID, step_id: int) -> StepResultModel | None:
        """Find the stored result of one step.

        Args:
            session_id: The research session ID.
            step_id: The step ID.

        Returns:
            The step result or None.
        """
        stmt = select(StepResultModel).where(
            and_(
                StepResultModel.session_id == session_id,
                StepResultModel.step_id == step_id,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_step(self, session_id: UUID, step_id: int, values: dict[str, Any]) -> StepResultModel:
        """Insert or replace the stored result of one step.

        Args:
            session_id: The research session ID.
            step_id: The step ID.
            values: Column values for ``success``, ``skipped``, ``data``,
                ``errors`` and ``warnings``.

        Returns:
            The stored row.
        """
        existing = await self.find_step(session_id, step_id)
        if existing is None:
            return await self.add(StepResultModel(session_id=session_id, step_id=step_id, **values))
        for key, value in values.items():
            setattr(existing, key, value)
        return await self.update(existing)

    async def delete_by_session(self, session_id: UUID) -> None:
        """Remove every stored result of a session.

        Args:
            session_id: The research session ID.
        """
        await self.session.execute(delete(StepResultModel).where(StepResultModel.session_id == session_id))
        await self.session.flush()


class InvestmentProfileRepository(SQLAlchemyAsyncRepository[InvestmentProfileModel]):
    """Repository for investor profiles, one per user."""

    model_type = InvestmentProfileModel

    async def get_by_user(self, user_id: str) -> InvestmentProfileModel | None:
        """Get a user's profile.

        Args:
            user_id: The profile owner.

        Returns:
            The profile or None if the user has not defined one.
        """
        return await self.get_one_or_none(user_id=user_id)
