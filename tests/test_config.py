"""Tests for environment-backed settings."""

from __future__ import annotations

import pytest

from invest_workflows.config import ProviderLimit, Settings


@pytest.mark.unit
class TestSettings:
    """Tests for :class:`Settings`."""

    def test_defaults(self) -> None:
        """Test keys are unset and the request policy has defaults."""
        settings = Settings(_env_file=None)

        assert settings.fmp_api_key is None
        assert settings.retry_max_attempts == 3
        assert settings.request_timeout_seconds == 30.0
        assert settings.sec_tickers_url == "https://www.sec.gov/files/company_tickers.json"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from environment variables."""
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "from-env")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")

        settings = Settings(_env_file=None)

        assert settings.alpha_vantage_api_key == "from-env"
        assert settings.retry_max_attempts == 5

    def test_limit_for_known_provider(self) -> None:
        """Test the built-in budgets of quota-limited providers."""
        settings = Settings(_env_file=None)

        assert settings.limit_for("fmp") == ProviderLimit(requests_per_day=250)
        assert settings.limit_for("polygon").requests_per_minute == 5

    def test_limit_for_unknown_provider(self) -> None:
        """Test providers without a budget get sixty requests per minute."""
        assert Settings(_env_file=None).limit_for("acme").requests_per_minute == 60
