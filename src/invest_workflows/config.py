"""Application configuration loaded from the environment.

Provider credentials, base URLs, request budgets and the database URL are read
through pydantic-settings, so every value can be overridden with an environment
variable (``ALPHA_VANTAGE_API_KEY=...``) or a ``.env`` file.

Usage::

    from invest_workflows.config import get_settings

    settings = get_settings()
    settings.request_timeout_seconds
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["ProviderLimit", "Settings", "get_settings"]


class ProviderLimit(BaseModel):
    """Request budget of one provider.

    Attributes:
        requests_per_minute: Rolling one-minute ceiling. None for providers
            limited only by a daily quota.
        requests_per_day: Daily quota reset at UTC midnight, if any.
    """

    requests_per_minute: int | None = None
    requests_per_day: int | None = None


def _default_limits() -> dict[str, ProviderLimit]:
    return {
        "alpha_vantage": ProviderLimit(requests_per_minute=5),
        "fmp": ProviderLimit(requests_per_day=250),
        "polygon": ProviderLimit(requests_per_minute=5),
        "fred": ProviderLimit(requests_per_minute=120),
        "sec_edgar": ProviderLimit(requests_per_minute=10),
        "yahoo_finance": ProviderLimit(requests_per_minute=120),
        "finviz": ProviderLimit(requests_per_minute=30),
        "cnbc": ProviderLimit(requests_per_minute=60),
        "bloomberg": ProviderLimit(requests_per_minute=30),
        "morningstar": ProviderLimit(requests_per_minute=30),
        "reuters": ProviderLimit(requests_per_minute=30),
        "simplywallst": ProviderLimit(requests_per_minute=30),
        "tradingview": ProviderLimit(requests_per_minute=30),
        "tipranks": ProviderLimit(requests_per_minute=30),
        "marketbeat": ProviderLimit(requests_per_minute=30),
    }


class Settings(BaseSettings):
    """Settings for the provider layer, persistence and web surface.

    Adapters that need an API key refuse to start without one; leaving a key
    unset simply removes that provider from its fallback chains.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Provider credentials
    alpha_vantage_api_key: str | None = None
    fmp_api_key: str | None = None
    polygon_api_key: str | None = None
    fred_api_key: str | None = None

    # Provider endpoints
    alpha_vantage_base_url: str = "https://www.alphavantage.co"
    fmp_base_url: str = "https://financialmodelingprep.com/api/v3"
    polygon_base_url: str = "https://api.polygon.io"
    fred_base_url: str = "https://api.stlouisfed.org/fred"
    sec_edgar_base_url: str = "https://data.sec.gov"
    sec_tickers_url: str = "https://www.sec.gov/files/company_tickers.json"
    sec_user_agent: str = "invest-workflows research-bot contact@example.com"
    yahoo_finance_base_url: str = "https://query1.finance.yahoo.com"
    finviz_base_url: str = "https://finviz.com"
    cnbc_base_url: str = "https://quote.cnbc.com"
    bloomberg_base_url: str = "https://www.bloomberg.com"
    morningstar_base_url: str = "https://api.morningstar.com"
    reuters_base_url: str = "https://www.reuters.com"
    simplywallst_base_url: str = "https://api.simplywall.st"
    tradingview_base_url: str = "https://scanner.tradingview.com"
    tipranks_base_url: str = "https://www.tipranks.com"
    marketbeat_base_url: str = "https://www.marketbeat.com"

    # Request policy
    request_timeout_seconds: float = 30.0
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    rate_limits: dict[str, ProviderLimit] = Field(default_factory=_default_limits)
    cache_max_entries_per_category: int | None = None

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./invest_workflows.db"

    def limit_for(self, provider: str) -> ProviderLimit:
        """Return the configured request budget for a provider.

        Args:
            provider: Adapter name, e.g. ``"polygon"``.

        Returns:
            The provider's limit, or a 60 requests per minute default.
        """
        return self.rate_limits.get(provider, ProviderLimit(requests_per_minute=60))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings()
