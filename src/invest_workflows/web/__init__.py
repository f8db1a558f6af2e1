"""Web API for invest-workflows.

This module provides the REST controller, DTOs and HTTP error mapping that
expose research sessions over HTTP. It is mounted by
:class:`~invest_workflows.plugin.InvestWorkflowPlugin`.
"""

from __future__ import annotations

from invest_workflows.web.controllers import ResearchController
from invest_workflows.web.dto import ExecuteStepDTO, SessionDTO, SessionSummaryDTO, StartSessionDTO
from invest_workflows.web.exceptions import to_http_exception

__all__ = [
    "ExecuteStepDTO",
    "ResearchController",
    "SessionDTO",
    "SessionSummaryDTO",
    "StartSessionDTO",
    "to_http_exception",
]
