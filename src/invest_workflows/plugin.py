"""Litestar plugin for research workflow integration.

This module provides the InvestWorkflowPlugin, which builds the provider
registry, session store and orchestrator, exposes the orchestrator through
dependency injection and mounts the research REST API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar import Router
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from invest_workflows.config import Settings, get_settings
from invest_workflows.engine.memory import InMemorySessionStore
from invest_workflows.engine.orchestrator import WorkflowOrchestrator
from invest_workflows.providers.registry import ProviderRegistry
from invest_workflows.steps import build_default_processors

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from invest_workflows.core.protocols import SessionStore

__all__ = ["InvestWorkflowPlugin", "InvestWorkflowPluginConfig"]

logger = logging.getLogger(__name__)


@dataclass
class InvestWorkflowPluginConfig:
    """Configuration for the InvestWorkflowPlugin.

    Attributes:
        orchestrator: Optional pre-configured orchestrator. If provided,
            ``store``, ``settings`` and ``use_database`` are ignored.
        store: Optional session store. Defaults to an in-memory store, or a
            database store when ``use_database`` is set.
        settings: Provider credentials and tuning. Defaults to the
            environment-backed settings.
        use_database: Persist sessions with SQLAlchemy at
            ``settings.database_url``. Tables are created on startup.
        dependency_key_orchestrator: The key used for dependency injection of
            the orchestrator. Defaults to "research_orchestrator".
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all research endpoints.
            Defaults to "/research".
        api_guards: List of Litestar guards to apply to all research endpoints.
        api_tags: OpenAPI tags to apply to research endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    orchestrator: WorkflowOrchestrator | None = None
    store: SessionStore | None = None
    settings: Settings | None = None
    use_database: bool = False
    dependency_key_orchestrator: str = "research_orchestrator"
    enable_api: bool = True
    api_path_prefix: str = "/research"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Investment Research"])
    include_api_in_schema: bool = True


class InvestWorkflowPlugin(InitPluginProtocol):
    """Litestar plugin for investment research sessions.

    Example:
        Basic usage with the in-memory store::

            from litestar import Litestar
            from invest_workflows import InvestWorkflowPlugin

            app = Litestar(plugins=[InvestWorkflowPlugin()])

        Using the orchestrator in a route handler::

            from litestar import get
            from invest_workflows import WorkflowOrchestrator


            @get("/progress/{session_id:uuid}")
            async def progress(session_id: UUID, research_orchestrator: WorkflowOrchestrator) -> dict:
                status = await research_orchestrator.get_workflow_status(session_id)
                return {"progress": status.progress}
    """

    __slots__ = ("_config", "_orchestrator", "_registry")

    def __init__(self, config: InvestWorkflowPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or InvestWorkflowPluginConfig()
        self._orchestrator: WorkflowOrchestrator | None = None
        self._registry: ProviderRegistry | None = None

    @property
    def orchestrator(self) -> WorkflowOrchestrator:
        """Get the orchestrator.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._orchestrator is None:
            msg = "InvestWorkflowPlugin has not been initialized. Access orchestrator after app startup."
            raise RuntimeError(msg)
        return self._orchestrator

    def _build_store(self, settings: Settings) -> SessionStore:
        if self._config.store is not None:
            return self._config.store
        if not self._config.use_database:
            return InMemorySessionStore()

        from invest_workflows.db.store import SQLAlchemySessionStore

        return SQLAlchemySessionStore.from_url(settings.database_url)

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Creates or uses the provided orchestrator
        2. Adds the orchestrator dependency provider
        3. Registers startup and shutdown hooks for the store and HTTP clients
        4. Optionally mounts the REST API under ``api_path_prefix``

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        if self._config.orchestrator is not None:
            self._orchestrator = self._config.orchestrator
        else:
            settings = self._config.settings or get_settings()
            self._registry = ProviderRegistry.from_settings(settings)
            store = self._build_store(settings)
            self._orchestrator = WorkflowOrchestrator(store, build_default_processors(self._registry, store))
            logger.info("Research orchestrator ready with %s", type(store).__name__)

        def provide_orchestrator() -> WorkflowOrchestrator:
            return self._orchestrator  # type: ignore[return-value]

        app_config.dependencies[self._config.dependency_key_orchestrator] = Provide(
            provide_orchestrator,
            sync_to_thread=False,
        )

        store = self._orchestrator.store
        if hasattr(store, "create_all"):
            app_config.on_startup.append(store.create_all)
        if hasattr(store, "dispose"):
            app_config.on_shutdown.append(store.dispose)
        if self._registry is not None:
            app_config.on_shutdown.append(self._registry.aclose)

        if self._config.enable_api:
            from invest_workflows.web.controllers import ResearchController

            research_router = Router(
                path=self._config.api_path_prefix,
                route_handlers=[ResearchController],
                guards=self._config.api_guards,
                tags=self._config.api_tags,
                include_in_schema=self._config.include_api_in_schema,
            )
            app_config.route_handlers.append(research_router)

        return app_config
