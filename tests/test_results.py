"""Tests for step results and their stored form."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from invest_workflows.core.artifacts import AlertThresholds, MonitoringPlan
from invest_workflows.core.models import InvestmentProfile
from invest_workflows.core.results import (
    SKIPPED_WARNING,
    MonitoringSetupResult,
    ProfileResult,
    StockScreeningResult,
    TechnicalTrendsResult,
    result_class_for,
    step_result_from_dict,
)
from invest_workflows.core.types import InvestmentGoal, ReviewFrequency, RiskTolerance


@pytest.mark.unit
class TestStepResult:
    """Tests for the shared result behaviour."""

    def test_failure(self) -> None:
        """Test a failure keeps its errors and carries no artifacts."""
        result = StockScreeningResult.failure(["Failed to screen stocks: timeout"], ["partial"])

        assert result.success is False
        assert result.errors == ["Failed to screen stocks: timeout"]
        assert result.warnings == ["partial"]
        assert result.stock_shortlist is None

    def test_to_dict_is_tagged(self) -> None:
        """Test the serialized result names its step."""
        data = TechnicalTrendsResult.skipped_marker().to_dict()

        assert data["step_id"] == 8
        assert data["skipped"] is True
        assert data["warnings"] == [SKIPPED_WARNING]

    def test_artifacts_drop_shared_fields(self) -> None:
        """Test artifacts hold only the step-specific fields."""
        assert TechnicalTrendsResult().artifacts() == {"technical_signals": None, "indicator_data": None}

    def test_result_class_for(self) -> None:
        """Test each step id maps to its result class."""
        assert result_class_for(1) is ProfileResult
        assert result_class_for(12) is MonitoringSetupResult
        with pytest.raises(KeyError):
            result_class_for(13)


@pytest.mark.unit
class TestStepResultFromDict:
    """Tests for loading stored payloads."""

    def test_profile_round_trip(self) -> None:
        """Test enums and timestamps are rebuilt."""
        profile = InvestmentProfile(
            user_id="user-1",
            risk_tolerance=RiskTolerance.LOW,
            investment_horizon_years=3,
            capital_available=5_000.0,
            long_term_goals=InvestmentGoal.DIVIDEND_INCOME,
            created_at=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
        )

        loaded = step_result_from_dict(ProfileResult(profile=profile).to_dict())

        assert isinstance(loaded, ProfileResult)
        assert loaded.profile == profile
        assert loaded.profile.risk_tolerance is RiskTolerance.LOW

    def test_nested_dataclasses_and_dates(self) -> None:
        """Test nested artifacts and plain dates survive the round trip."""
        plan = MonitoringPlan(
            ticker="AAPL",
            price_alerts_set=True,
            earnings_review_planned=True,
            review_frequency=ReviewFrequency.YEARLY,
            next_review_date=date(2025, 2, 28),
            alert_thresholds=AlertThresholds(price_drop_percent=10.0),
        )

        loaded = step_result_from_dict(MonitoringSetupResult(monitoring_plan=plan).to_dict())

        assert loaded.monitoring_plan == plan

    def test_tag_from_argument(self) -> None:
        """Test an untagged payload uses the given step id."""
        loaded = step_result_from_dict({"success": False, "errors": ["x"]}, 4)

        assert isinstance(loaded, StockScreeningResult)
        assert loaded.errors == ["x"]

    def test_missing_tag(self) -> None:
        """Test a payload without any tag is refused."""
        with pytest.raises(KeyError):
            step_result_from_dict({"success": True})

    def test_invalid_enum_value_rejected(self) -> None:
        """Test a stored value outside its vocabulary fails validation."""
        data = {
            "monitoring_plan": {
                "ticker": "AAPL",
                "price_alerts_set": True,
                "earnings_review_planned": False,
                "review_frequency": "weekly",
                "next_review_date": "2025-02-28",
            }
        }

        with pytest.raises(ValidationError):
            step_result_from_dict(data, 12)

    def test_optional_field_is_validated(self) -> None:
        """Test a value in an optional field is checked against its type."""
        data = {
            "monitoring_plan": {
                "ticker": "AAPL",
                "price_alerts_set": True,
                "earnings_review_planned": False,
                "review_frequency": "quarterly",
                "next_review_date": "2025-02-28",
                "alert_thresholds": {"price_drop_percent": "abc"},
            }
        }

        with pytest.raises(ValidationError):
            step_result_from_dict(data, 12)

    def test_integer_amounts_load_as_floats(self) -> None:
        """Test whole-number amounts come back as floats."""
        data = {
            "profile": {
                "user_id": "user-1",
                "risk_tolerance": "high",
                "investment_horizon_years": 5,
                "capital_available": 20000,
                "long_term_goals": "steady growth",
                "created_at": "2024-05-01T12:00:00+00:00",
            }
        }

        loaded = step_result_from_dict(data, 1)

        assert loaded.profile.capital_available == 20_000.0
        assert isinstance(loaded.profile.capital_available, float)
        assert loaded.profile.created_at == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
