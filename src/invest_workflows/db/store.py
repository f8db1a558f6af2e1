"""Database-backed session store.

This module provides :class:`SQLAlchemySessionStore`, the persistent
implementation of the session store protocol. Each call runs in its own
transaction taken from an ``async_sessionmaker``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from invest_workflows.core.models import InvestmentProfile, WorkflowSession
from invest_workflows.core.results import step_result_from_dict
from invest_workflows.db.models import InvestmentProfileModel, StepResultModel, WorkflowSessionModel
from invest_workflows.db.repositories import (
    InvestmentProfileRepository,
    StepResultRepository,
    WorkflowSessionRepository,
)
from invest_workflows.exceptions import ProfileNotFoundError, SessionNotFoundError, StepResultNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from invest_workflows.core.models import SessionPatch
    from invest_workflows.core.results import StepResult

__all__ = ["SQLAlchemySessionStore"]


def _load_result(model: StepResultModel) -> StepResult:
    payload = {
        **model.data,
        "success": model.success,
        "skipped": model.skipped,
        "errors": list(model.errors),
        "warnings": list(model.warnings),
    }
    return step_result_from_dict(payload, model.step_id)


def _to_session(model: WorkflowSessionModel, results: Sequence[StepResultModel]) -> WorkflowSession:
    return WorkflowSession(
        session_id=model.id,
        user_id=model.user_id,
        current_step=model.current_step,
        completed_steps=set(model.completed_steps),
        step_results={row.step_id: _load_result(row) for row in results},
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class SQLAlchemySessionStore:
    """Session store persisting to a relational database.

    Attributes:
        session_maker: Factory for the async sessions each call runs in.

    Example:
        >>> from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
        >>> engine = create_async_engine("sqlite+aiosqlite:///:memory:")
        >>> store = SQLAlchemySessionStore(async_sessionmaker(engine, expire_on_commit=False))
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], engine: AsyncEngine | None = None) -> None:
        """Initialize the store.

        Args:
            session_maker: Factory for async sessions. It should be created
                with ``expire_on_commit=False``.
            engine: The engine behind ``session_maker``. Defaults to the
                factory's bind.
        """
        self.session_maker = session_maker
        self.engine: AsyncEngine | None = engine or session_maker.kw.get("bind")

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SQLAlchemySessionStore:
        """Create a store with its own engine.

        Args:
            url: SQLAlchemy async database URL.
            **engine_kwargs: Extra arguments for ``create_async_engine``.

        Returns:
            A store owning the new engine.
        """
        engine = create_async_engine(url, **engine_kwargs)
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine)

    async def create_all(self) -> None:
        """Create the research tables if they do not exist."""
        if self.engine is None:
            msg = "SQLAlchemySessionStore has no engine to create tables with"
            raise RuntimeError(msg)
        async with self.engine.begin() as conn:
            await conn.run_sync(WorkflowSessionModel.metadata.create_all)

    async def dispose(self) -> None:
        """Release the engine's connection pool."""
        if self.engine is not None:
            await self.engine.dispose()

    @staticmethod
    async def _require(repo: WorkflowSessionRepository, session_id: UUID) -> WorkflowSessionModel:
        model = await repo.get_one_or_none(id=session_id)
        if model is None:
            raise SessionNotFoundError(session_id)
        return model

    async def create(self, user_id: str) -> WorkflowSession:
        async with self.session_maker.begin() as db:
            model = await WorkflowSessionRepository(session=db).add(
                WorkflowSessionModel(user_id=user_id, current_step=1, completed_steps=[])
            )
            return _to_session(model, [])

    async def get(self, session_id: UUID) -> WorkflowSession:
        async with self.session_maker() as db:
            model = await self._require(WorkflowSessionRepository(session=db), session_id)
            results = await StepResultRepository(session=db).find_by_session(session_id)
            return _to_session(model, results)

    async def update(self, session_id: UUID, patch: SessionPatch) -> WorkflowSession:
        async with self.session_maker.begin() as db:
            repo = WorkflowSessionRepository(session=db)
            model = await self._require(repo, session_id)
            if patch.current_step is not None:
                model.current_step = patch.current_step
            if patch.completed_steps is not None:
                model.completed_steps = sorted(patch.completed_steps)
            model.updated_at = datetime.now(timezone.utc)
            model = await repo.update(model)
            results = await StepResultRepository(session=db).find_by_session(session_id)
            return _to_session(model, results)

    async def list_by_user(self, user_id: str) -> list[WorkflowSession]:
        async with self.session_maker() as db:
            result_repo = StepResultRepository(session=db)
            return [
                _to_session(model, await result_repo.find_by_session(model.id))
                for model in await WorkflowSessionRepository(session=db).find_by_user(user_id)
            ]

    async def save_step_result(self, session_id: UUID, step_id: int, result: StepResult) -> None:
        async with self.session_maker.begin() as db:
            repo = WorkflowSessionRepository(session=db)
            model = await self._require(repo, session_id)
            await StepResultRepository(session=db).upsert_step(
                session_id,
                int(step_id),
                {
                    "success": result.success,
                    "skipped": result.skipped,
                    "data": result.artifacts(),
                    "errors": list(result.errors),
                    "warnings": list(result.warnings),
                },
            )
            model.updated_at = datetime.now(timezone.utc)
            await repo.update(model)

    async def get_step_result(self, session_id: UUID, step_id: int) -> StepResult:
        async with self.session_maker() as db:
            await self._require(WorkflowSessionRepository(session=db), session_id)
            row = await StepResultRepository(session=db).find_step(session_id, int(step_id))
            if row is None:
                raise StepResultNotFoundError(session_id, step_id)
            return _load_result(row)

    async def delete_step_results(self, session_id: UUID) -> None:
        async with self.session_maker.begin() as db:
            await self._require(WorkflowSessionRepository(session=db), session_id)
            await StepResultRepository(session=db).delete_by_session(session_id)

    async def save_profile(self, user_id: str, profile: InvestmentProfile) -> None:
        async with self.session_maker.begin() as db:
            repo = InvestmentProfileRepository(session=db)
            values = {
                "risk_tolerance": profile.risk_tolerance,
                "investment_horizon_years": profile.investment_horizon_years,
                "capital_available": profile.capital_available,
                "long_term_goals": profile.long_term_goals,
            }
            existing = await repo.get_by_user(user_id)
            if existing is None:
                await repo.add(InvestmentProfileModel(user_id=user_id, **values))
                return
            for key, value in values.items():
                setattr(existing, key, value)
            await repo.update(existing)

    async def get_profile(self, user_id: str) -> InvestmentProfile:
        async with self.session_maker() as db:
            model = await InvestmentProfileRepository(session=db).get_by_user(user_id)
            if model is None:
                raise ProfileNotFoundError(user_id)
            return InvestmentProfile(
                user_id=model.user_id,
                risk_tolerance=model.risk_tolerance,
                investment_horizon_years=model.investment_horizon_years,
                capital_available=model.capital_available,
                long_term_goals=model.long_term_goals,
                created_at=model.created_at,
            )
