"""Step 3: sector identification and ranking."""

from __future__ import annotations

from typing import TYPE_CHECKING

from invest_workflows.analysis.engine import IndustryReport, SectorMetrics, industry_outlook, score_sectors, sector_momentum
from invest_workflows.core.results import SectorIdentificationResult
from invest_workflows.core.types import StepId
from invest_workflows.exceptions import FallbackExhaustedError
from invest_workflows.providers.registry import DataNeed
from invest_workflows.steps.base import BaseStepProcessor

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["SectorIdentificationProcessor"]


class SectorIdentificationProcessor(BaseStepProcessor):
    """Rank sectors on growth, size and recent momentum.

    One-year performance stands in for growth, and the industry outlook is
    derived from it as well.
    """

    step_id = StepId.SECTOR_IDENTIFICATION
    step_name = "Sector Identification"
    result_class = SectorIdentificationResult
    outputs = {
        "sector_rankings": {
            "type": "SectorRanking[]",
            "description": "Ranked list of sectors with scores and rationale",
        }
    }

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> SectorIdentificationResult:
        try:
            resolved = await self.providers.resolve(DataNeed.SECTOR_DATA)
        except FallbackExhaustedError as exc:
            return SectorIdentificationResult.failure([f"Failed to fetch sector data: {exc}"])

        sectors = resolved.value
        if not sectors:
            return SectorIdentificationResult.failure(["No sector data available"], resolved.warnings)

        rankings = score_sectors(
            [
                SectorMetrics(
                    sector_name=sector.sector_name,
                    growth_rate=sector.performance_1y,
                    market_cap=sector.market_cap,
                    momentum=sector_momentum(sector),
                )
                for sector in sectors
            ],
            [IndustryReport(sector=sector.sector_name, outlook=industry_outlook(sector.performance_1y)) for sector in sectors],
        )
        return SectorIdentificationResult(sector_rankings=rankings, warnings=resolved.warnings)
