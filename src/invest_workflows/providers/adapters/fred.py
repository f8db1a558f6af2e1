"""FRED adapter: macroeconomic series from the St. Louis Fed."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import ConfigurationError, NotFoundError, ValidationError
from invest_workflows.providers.adapters._common import build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["FREDAdapter", "FRED_SERIES"]

FRED_SERIES = {
    "interest_rate": "FEDFUNDS",
    "inflation_rate": "CPIAUCSL",
    "unemployment_rate": "UNRATE",
}
"""Series backing each macro indicator."""

MONTHS_FOR_YEAR_OVER_YEAR = 13


class FREDAdapter:
    """Client for the FRED ``/series/observations`` API.

    Observations are requested newest first. FRED marks missing values with
    ``"."``; those are dropped before any calculation.
    """

    name = "fred"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if not settings.fred_api_key:
            msg = "FRED API key is required. Set FRED_API_KEY."
            raise ConfigurationError(msg, provider=self.name)
        self._api_key = settings.fred_api_key
        self.client = build_client(
            self.name,
            settings.fred_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            default_params={"api_key": self._api_key, "file_type": "json"},
        )

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def is_available(self) -> bool:
        return await probe(self.get_interest_rate)

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(
            self.name,
            endpoint,
            {
                "interest_rate": self.get_interest_rate,
                "inflation_rate": self.get_inflation_rate,
                "unemployment_rate": self.get_unemployment_rate,
                "series": self.get_series,
            },
            params,
        )

    async def get_series(self, series_id: str, limit: int = 1) -> list[float]:
        """Return up to ``limit`` observation values, newest first."""

        def parse(data: Any) -> list[float]:
            if "error_message" in data:
                msg = f"FRED API Error: {data['error_message']}"
                raise ValidationError(msg, provider=self.name)
            values = [float(obs["value"]) for obs in data.get("observations", []) if obs.get("value") != "."]
            if not values:
                msg = f"No observations found for series {series_id}"
                raise NotFoundError(msg, provider=self.name)
            return values

        return await self.client.get_json(
            "/series/observations",
            params={"series_id": series_id, "sort_order": "desc", "limit": limit},
            category=CacheCategory.MACRO_DATA,
            cache_key=f"{self.name}:{CacheKeys.MACRO_DATA}-{series_id}-{limit}",
            parse=parse,
        )

    async def get_interest_rate(self) -> float:
        """Latest effective federal funds rate, in percent."""
        return (await self.get_series(FRED_SERIES["interest_rate"]))[0]

    async def get_unemployment_rate(self) -> float:
        """Latest civilian unemployment rate, in percent."""
        return (await self.get_series(FRED_SERIES["unemployment_rate"]))[0]

    async def get_inflation_rate(self) -> float:
        """Year over year CPI change, in percent.

        Compares the newest observation with the one twelve months before it.

        Raises:
            NotFoundError: If fewer than 13 monthly observations are available.
        """
        values = await self.get_series(FRED_SERIES["inflation_rate"], limit=MONTHS_FOR_YEAR_OVER_YEAR)
        if len(values) < MONTHS_FOR_YEAR_OVER_YEAR:
            msg = "Not enough CPI observations to compute inflation"
            raise NotFoundError(msg, provider=self.name)
        latest, year_ago = values[0], values[MONTHS_FOR_YEAR_OVER_YEAR - 1]
        return round((latest - year_ago) / year_ago * 100, 2)
