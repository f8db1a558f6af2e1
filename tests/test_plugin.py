"""Tests for the InvestWorkflowPlugin integration with Litestar.

These tests verify that the plugin correctly integrates with Litestar
applications and provides dependency injection for the orchestrator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

import pytest
from litestar import Litestar, get
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED, HTTP_404_NOT_FOUND
from litestar.testing import TestClient

from invest_workflows import InvestWorkflowPlugin, InvestWorkflowPluginConfig, WorkflowOrchestrator
from invest_workflows.engine.memory import InMemorySessionStore

if TYPE_CHECKING:
    from pathlib import Path

    from invest_workflows.config import Settings


@get("/progress/{session_id:uuid}")
async def progress(session_id: UUID, research_orchestrator: WorkflowOrchestrator) -> dict[str, Any]:
    status = await research_orchestrator.get_workflow_status(session_id)
    return {"progress": status.progress}


# =============================================================================
# Plugin Configuration Tests
# =============================================================================


@pytest.mark.unit
class TestPluginConfig:
    """Tests for InvestWorkflowPluginConfig."""

    def test_default_values(self) -> None:
        """Config uses default configuration values."""
        config = InvestWorkflowPluginConfig()

        assert config.orchestrator is None
        assert config.use_database is False
        assert config.dependency_key_orchestrator == "research_orchestrator"
        assert config.enable_api is True
        assert config.api_path_prefix == "/research"
        assert config.api_guards == []
        assert config.api_tags == ["Investment Research"]


# =============================================================================
# Plugin Initialization Tests
# =============================================================================


@pytest.mark.unit
class TestPluginInitialization:
    """Tests for plugin initialization."""

    def test_plugin_builds_default_orchestrator(self, settings: Settings) -> None:
        """Plugin wires all twelve processors over an in-memory store."""
        plugin = InvestWorkflowPlugin(InvestWorkflowPluginConfig(settings=settings))
        Litestar(plugins=[plugin])

        assert isinstance(plugin.orchestrator.store, InMemorySessionStore)
        assert sorted(plugin.orchestrator.processors) == list(range(1, 13))

    def test_plugin_uses_provided_orchestrator(self, orchestrator: WorkflowOrchestrator) -> None:
        """Plugin uses the provided orchestrator."""
        plugin = InvestWorkflowPlugin(InvestWorkflowPluginConfig(orchestrator=orchestrator))
        Litestar(plugins=[plugin])

        assert plugin.orchestrator is orchestrator

    def test_plugin_uses_provided_store(self, settings: Settings) -> None:
        """Plugin builds its orchestrator around the provided store."""
        store = InMemorySessionStore()
        plugin = InvestWorkflowPlugin(InvestWorkflowPluginConfig(settings=settings, store=store))
        Litestar(plugins=[plugin])

        assert plugin.orchestrator.store is store

    def test_custom_dependency_key(self, orchestrator: WorkflowOrchestrator) -> None:
        """Plugin uses a custom dependency key when configured."""
        config = InvestWorkflowPluginConfig(orchestrator=orchestrator, dependency_key_orchestrator="research")
        app = Litestar(plugins=[InvestWorkflowPlugin(config)])

        assert "research" in app.dependencies

    def test_orchestrator_before_init_raises(self) -> None:
        """Accessing the orchestrator before init raises RuntimeError."""
        plugin = InvestWorkflowPlugin()

        with pytest.raises(RuntimeError, match="not been initialized"):
            _ = plugin.orchestrator


# =============================================================================
# Integration Tests
# =============================================================================


@pytest.mark.integration
class TestPluginIntegration:
    """Integration tests for the plugin inside an application."""

    def test_orchestrator_injection(self, orchestrator: WorkflowOrchestrator) -> None:
        """The orchestrator is injected into application route handlers."""
        app = Litestar(
            route_handlers=[progress],
            plugins=[InvestWorkflowPlugin(InvestWorkflowPluginConfig(orchestrator=orchestrator))],
        )

        with TestClient(app) as client:
            session_id = client.post("/research/sessions", json={"user_id": "user-1"}).json()["id"]
            response = client.get(f"/progress/{session_id}")

            assert response.status_code == HTTP_200_OK
            assert response.json() == {"progress": 0}

    def test_api_can_be_disabled(self, orchestrator: WorkflowOrchestrator) -> None:
        """No research routes are mounted when the API is disabled."""
        config = InvestWorkflowPluginConfig(orchestrator=orchestrator, enable_api=False)
        app = Litestar(plugins=[InvestWorkflowPlugin(config)])

        with TestClient(app) as client:
            response = client.get("/research/steps")

            assert response.status_code == HTTP_404_NOT_FOUND

    def test_custom_path_prefix(self, orchestrator: WorkflowOrchestrator) -> None:
        """The research API is mounted under the configured prefix."""
        config = InvestWorkflowPluginConfig(orchestrator=orchestrator, api_path_prefix="/api/v1/research")
        app = Litestar(plugins=[InvestWorkflowPlugin(config)])

        with TestClient(app) as client:
            response = client.get("/api/v1/research/steps")

            assert response.status_code == HTTP_200_OK
            assert len(response.json()) == 12

    def test_database_store_created_on_startup(self, settings: Settings, tmp_path: Path) -> None:
        """Tables are created at startup when the database store is enabled."""
        database_url = f"sqlite+aiosqlite:///{tmp_path / 'research.db'}"
        config = InvestWorkflowPluginConfig(
            settings=settings.model_copy(update={"database_url": database_url}),
            use_database=True,
        )
        app = Litestar(plugins=[InvestWorkflowPlugin(config)])

        with TestClient(app) as client:
            response = client.post("/research/sessions", json={"user_id": "user-1"})
            assert response.status_code == HTTP_201_CREATED

            session_id = response.json()["id"]
            response = client.get(f"/research/sessions/{session_id}")
            assert response.status_code == HTTP_200_OK
            assert response.json()["current_step"] == 1
