"""Shared test fixtures for invest-workflows test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from invest_workflows.config import Settings
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.models import InvestmentProfile
    from invest_workflows.db.store import SQLAlchemySessionStore
    from invest_workflows.engine.memory import InMemorySessionStore
    from invest_workflows.engine.orchestrator import WorkflowOrchestrator
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.registry import ProviderRegistry
    from invest_workflows.providers.retry import RetryPolicy


class FakeAdapter:
    """Provider adapter double answering from a table of canned responses.

    Each response is either a value to return, an exception to raise, or a
    callable invoked with the fetch parameters.
    """

    def __init__(self, name: str, responses: dict[str, Any] | None = None, *, configured: bool = True) -> None:
        self.name = name
        self.responses = dict(responses or {})
        self.configured = configured
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def is_configured(self) -> bool:
        return self.configured

    async def is_available(self) -> bool:
        return self.configured

    def get_rate_limit_info(self) -> RateLimitInfo:
        from invest_workflows.providers.ratelimit import RateLimitInfo

        return RateLimitInfo(requests_per_minute=60, requests_remaining=60, reset_time=datetime.now(timezone.utc))

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        from invest_workflows.exceptions import ValidationError

        self.calls.append((endpoint, params))
        if endpoint not in self.responses:
            msg = f"Unsupported endpoint '{endpoint}'"
            raise ValidationError(msg, provider=self.name)
        response = self.responses[endpoint]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(**params)
        return response


@pytest.fixture
def make_adapter() -> Callable[..., FakeAdapter]:
    """Factory for fake provider adapters."""
    return FakeAdapter


@pytest.fixture
def make_registry() -> Callable[..., ProviderRegistry]:
    """Factory building a registry from fake adapters.

    Returns:
        Callable taking adapters and an optional priority table.
    """
    from invest_workflows.providers.registry import ProviderRegistry

    def factory(*adapters: Any, priorities: dict[str, list[str]] | None = None) -> ProviderRegistry:
        return ProviderRegistry(adapters, priorities)

    return factory


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested from the fake sleep, in call order."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """Coroutine recording delays instead of waiting."""

    async def sleep(delay: float) -> None:
        sleeps.append(delay)

    return sleep


@pytest.fixture
def retry_policy(fake_sleep: Callable[[float], Any]) -> RetryPolicy:
    """Three-attempt retry policy that never actually waits."""
    from invest_workflows.providers.retry import RetryPolicy

    return RetryPolicy(max_attempts=3, base_delay=1.0, sleep=fake_sleep)


@pytest.fixture
def settings() -> Settings:
    """Settings with every provider key filled in and no .env lookup."""
    from invest_workflows.config import Settings

    return Settings(
        _env_file=None,
        alpha_vantage_api_key="test-alpha",
        fmp_api_key="test-fmp",
        polygon_api_key="test-polygon",
        fred_api_key="test-fred",
        retry_base_delay=0.0,
    )


@pytest.fixture
def memory_store() -> InMemorySessionStore:
    """Fresh in-memory session store."""
    from invest_workflows.engine.memory import InMemorySessionStore

    return InMemorySessionStore()


@pytest.fixture
def sample_profile() -> InvestmentProfile:
    """Balanced investor with $100,000 to invest."""
    from invest_workflows.core.models import InvestmentProfile
    from invest_workflows.core.types import InvestmentGoal, RiskTolerance

    return InvestmentProfile(
        user_id="user-1",
        risk_tolerance=RiskTolerance.MEDIUM,
        investment_horizon_years=10,
        capital_available=100_000.0,
        long_term_goals=InvestmentGoal.STEADY_GROWTH,
    )


@pytest.fixture
def make_context(sample_profile: InvestmentProfile) -> Callable[..., WorkflowContext]:
    """Factory for step contexts, carrying the sample profile by default."""
    from invest_workflows.core.context import WorkflowContext

    def factory(
        profile: InvestmentProfile | None = sample_profile,
        previous_results: dict[int, Any] | None = None,
    ) -> WorkflowContext:
        return WorkflowContext(
            session_id=uuid4(),
            user_id="user-1",
            profile=profile,
            previous_results=dict(previous_results or {}),
        )

    return factory


@pytest.fixture
async def db_store() -> AsyncIterator[SQLAlchemySessionStore]:
    """SQLAlchemy store backed by an in-memory SQLite database."""
    from sqlalchemy import event
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from invest_workflows.db.store import SQLAlchemySessionStore

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    store = SQLAlchemySessionStore(
        async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False),
        engine,
    )
    await store.create_all()
    yield store
    await store.dispose()


@pytest.fixture
def stub_step() -> type:
    """Step processor double that succeeds with an empty result.

    Pass ``errors`` to make it fail, or ``raises`` to make it raise.
    """
    from invest_workflows.core.results import result_class_for
    from invest_workflows.core.types import StepId
    from invest_workflows.steps.base import BaseStepProcessor

    class StubStep(BaseStepProcessor):
        def __init__(self, step_id: int, *, errors: list[str] | None = None, raises: Exception | None = None) -> None:
            super().__init__()
            self.step_id = StepId(step_id)
            self.step_name = f"Stub {step_id}"
            self.is_optional = step_id == StepId.TECHNICAL_TRENDS
            self.result_class = result_class_for(step_id)
            self.errors = errors or []
            self.raises = raises
            self.contexts: list[WorkflowContext] = []

        async def process(self, inputs: dict[str, Any], context: WorkflowContext) -> Any:
            self.contexts.append(context)
            if self.raises is not None:
                raise self.raises
            if self.errors:
                return self.result_class.failure(self.errors)
            return self.result_class()

    return StubStep


@pytest.fixture
def orchestrator(memory_store: InMemorySessionStore, stub_step: type) -> WorkflowOrchestrator:
    """Orchestrator with the real profile step and stubs for steps 2 to 12."""
    from invest_workflows.engine.orchestrator import WorkflowOrchestrator
    from invest_workflows.steps.profile import ProfileDefinitionProcessor

    return WorkflowOrchestrator(
        memory_store,
        [ProfileDefinitionProcessor(memory_store), *(stub_step(step_id) for step_id in range(2, 13))],
    )


@pytest.fixture
def profile_inputs() -> dict[str, Any]:
    """Valid inputs for the profile step."""
    return {
        "risk_tolerance": "medium",
        "investment_horizon_years": 10,
        "capital_available": 100_000,
        "long_term_goals": "steady growth",
    }
