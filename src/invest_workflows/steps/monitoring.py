"""Step 12: monitoring setup."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from invest_workflows.core.artifacts import AlertThresholds, MonitoringPlan
from invest_workflows.core.results import MonitoringSetupResult
from invest_workflows.core.types import ReviewFrequency, StepId
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import (
    InputField,
    ValidationResult,
    validate_alert_app,
    validate_review_frequency,
    validate_symbol,
)

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["MonitoringSetupProcessor", "next_review_date"]


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(start.day, calendar.monthrange(year, month)[1]))


def next_review_date(frequency: ReviewFrequency | str, today: date | None = None) -> date:
    """Date of the next scheduled review.

    Quarterly reviews are three months out and yearly ones a year out. Days
    past the end of the target month are clamped to its last day.

    Example:
        >>> next_review_date("quarterly", date(2024, 11, 30))
        datetime.date(2025, 2, 28)
    """
    today = today or datetime.now(timezone.utc).date()
    months = 3 if ReviewFrequency(frequency) is ReviewFrequency.QUARTERLY else 12
    return _add_months(today, months)


def _validate_threshold(value: Any, label: str, upper: float) -> list[str]:
    if value is None:
        return []
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return [f"{label} must be a number"]
    if value <= 0 or value > upper:
        return [f"{label} must be between 0 and {upper:g}"]
    return []


class MonitoringSetupProcessor(BaseStepProcessor):
    """Configure price alerts and schedule periodic earnings reviews."""

    step_id = StepId.MONITORING_SETUP
    step_name = "Monitoring Setup"
    result_class = MonitoringSetupResult
    inputs = (
        InputField("alert_app", "string", True, "Name of the alert application (e.g., 'Yahoo Finance', 'Robinhood')"),
        InputField("review_frequency", "string", True, "Review frequency: 'quarterly' or 'yearly'"),
        InputField("ticker", "string", True, "Stock ticker symbol to monitor"),
        InputField("price_drop_percent", "number", False, "Alert threshold for price drops (percentage)"),
        InputField("price_gain_percent", "number", False, "Alert threshold for price gains (percentage)"),
    )
    outputs = {
        "monitoring_plan": {
            "type": "MonitoringPlan",
            "description": "Monitoring configuration with alerts and review schedule",
        }
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        errors = [
            *validate_alert_app(inputs.get("alert_app")).errors,
            *validate_review_frequency(inputs.get("review_frequency")).errors,
            *validate_symbol(inputs.get("ticker")).errors,
            *_validate_threshold(inputs.get("price_drop_percent"), "Price drop percent", 100),
            *_validate_threshold(inputs.get("price_gain_percent"), "Price gain percent", 1000),
        ]
        return ValidationResult.from_errors(errors)

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> MonitoringSetupResult:
        ticker = inputs["ticker"].upper()
        frequency = ReviewFrequency(inputs["review_frequency"])
        review_date = next_review_date(frequency)

        drop = inputs.get("price_drop_percent")
        gain = inputs.get("price_gain_percent")
        thresholds = None
        if drop is not None or gain is not None:
            thresholds = AlertThresholds(price_drop_percent=drop, price_gain_percent=gain)

        plan = MonitoringPlan(
            ticker=ticker,
            price_alerts_set=True,
            earnings_review_planned=True,
            review_frequency=frequency,
            next_review_date=review_date,
            alert_thresholds=thresholds,
        )
        message = (
            f"Monitoring configured for {ticker} using {inputs['alert_app'].strip()}. "
            f"Next review scheduled for {review_date.isoformat()}."
        )
        return MonitoringSetupResult(monitoring_plan=plan, warnings=[message])
