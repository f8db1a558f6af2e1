"""Input validation for the research steps.

Validators take the raw value submitted by the user and return a
:class:`ValidationResult` listing every problem found. They never raise, so a
processor can combine several of them and report all errors at once.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from invest_workflows.core.types import InvestmentGoal, MarketCapCategory, ReviewFrequency, RiskModelType, RiskTolerance

__all__ = [
    "InputField",
    "ValidationResult",
    "validate_alert_app",
    "validate_broker_platform",
    "validate_capital_available",
    "validate_dividend_yield",
    "validate_investment_goals",
    "validate_investment_horizon",
    "validate_investment_profile",
    "validate_market_cap",
    "validate_pe_ratio",
    "validate_portfolio_size",
    "validate_positive_number",
    "validate_review_frequency",
    "validate_risk_model",
    "validate_risk_tolerance",
    "validate_screening_filters",
    "validate_sector",
    "validate_symbol",
    "validate_ticker",
]

_TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}$")


@dataclass
class ValidationResult:
    """Outcome of validating a step's inputs.

    Attributes:
        is_valid: True when no errors were found.
        errors: Every problem found, in input order.
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls()

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=list(errors))

    def merge(self, *others: ValidationResult) -> ValidationResult:
        """Combine this result with others, keeping error order."""
        errors = list(self.errors)
        for other in others:
            errors.extend(other.errors)
        return ValidationResult.from_errors(errors)


@dataclass(frozen=True)
class InputField:
    """Description of one input a step accepts.

    Attributes:
        name: Key of the input in the submitted input bag.
        type: JSON type of the value, such as ``"string"`` or ``"number"``.
        required: Whether the step refuses to run without it.
        description: Human-readable hint shown to the user.
    """

    name: str
    type: str
    required: bool
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "required": self.required, "description": self.description}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _choices(enum: type) -> list[str]:
    return [member.value for member in enum]


def _validate_choice(value: Any, enum: type, label: str, *, required: bool = True, plural: bool = False) -> ValidationResult:
    valid = _choices(enum)
    if value is None:
        if not required:
            return ValidationResult.ok()
        return ValidationResult.from_errors([f"{label} {'are' if plural else 'is'} required"])
    if value not in valid:
        return ValidationResult.from_errors([f"{label} must be one of: {', '.join(valid)}"])
    return ValidationResult.ok()


def _validate_name(value: Any, label: str) -> ValidationResult:
    if value is None:
        return ValidationResult.from_errors([f"{label} is required"])
    if not isinstance(value, str):
        return ValidationResult.from_errors([f"{label} must be a string"])
    if not value.strip():
        return ValidationResult.from_errors([f"{label} cannot be empty"])
    return ValidationResult.ok()


def validate_positive_number(value: Any, label: str) -> ValidationResult:
    """Required number that must be strictly positive."""
    if value is None:
        return ValidationResult.from_errors([f"{label} is required"])
    if not _is_number(value):
        return ValidationResult.from_errors([f"{label} must be a number"])
    if value <= 0:
        return ValidationResult.from_errors([f"{label} must be greater than 0"])
    return ValidationResult.ok()


def validate_risk_tolerance(value: Any) -> ValidationResult:
    return _validate_choice(value, RiskTolerance, "Risk tolerance")


def validate_investment_horizon(value: Any) -> ValidationResult:
    """Horizon must be a whole number of years between 1 and 100."""
    if value is None:
        return ValidationResult.from_errors(["Investment horizon is required"])
    if isinstance(value, bool) or not isinstance(value, int):
        return ValidationResult.from_errors(["Investment horizon must be an integer"])
    if value <= 0:
        return ValidationResult.from_errors(["Investment horizon must be greater than 0 years"])
    if value > 100:
        return ValidationResult.from_errors(["Investment horizon must be 100 years or less"])
    return ValidationResult.ok()


def validate_capital_available(value: Any) -> ValidationResult:
    return validate_positive_number(value, "Capital available")


def validate_investment_goals(value: Any) -> ValidationResult:
    return _validate_choice(value, InvestmentGoal, "Investment goals", plural=True)


def validate_investment_profile(inputs: dict[str, Any]) -> ValidationResult:
    """Validate every field of an investment profile.

    Example:
        >>> validate_investment_profile(
        ...     {
        ...         "risk_tolerance": "medium",
        ...         "investment_horizon_years": 10,
        ...         "capital_available": 50000,
        ...         "long_term_goals": "steady growth",
        ...     }
        ... ).is_valid
        True
    """
    return validate_risk_tolerance(inputs.get("risk_tolerance")).merge(
        validate_investment_horizon(inputs.get("investment_horizon_years")),
        validate_capital_available(inputs.get("capital_available")),
        validate_investment_goals(inputs.get("long_term_goals")),
    )


def validate_market_cap(value: Any) -> ValidationResult:
    return _validate_choice(value, MarketCapCategory, "Market cap", required=False)


def validate_dividend_yield(value: Any) -> ValidationResult:
    if value is None:
        return ValidationResult.ok()
    if not _is_number(value):
        return ValidationResult.from_errors(["Dividend yield must be a number"])
    if value < 0:
        return ValidationResult.from_errors(["Dividend yield cannot be negative"])
    if value > 100:
        return ValidationResult.from_errors(["Dividend yield cannot exceed 100%"])
    return ValidationResult.ok()


def validate_pe_ratio(value: Any) -> ValidationResult:
    if value is None:
        return ValidationResult.ok()
    if not _is_number(value):
        return ValidationResult.from_errors(["PE ratio must be a number"])
    if value < 0:
        return ValidationResult.from_errors(["PE ratio cannot be negative"])
    return ValidationResult.ok()


def validate_sector(value: Any) -> ValidationResult:
    if value is None:
        return ValidationResult.ok()
    if not isinstance(value, str):
        return ValidationResult.from_errors(["Sector must be a string"])
    if not value.strip():
        return ValidationResult.from_errors(["Sector cannot be empty"])
    return ValidationResult.ok()


def _validate_price_bound(value: Any, label: str) -> list[str]:
    if value is None:
        return []
    if not _is_number(value):
        return [f"{label} price must be a number"]
    if value < 0:
        return [f"{label} price cannot be negative"]
    return []


def validate_screening_filters(filters: dict[str, Any]) -> ValidationResult:
    """Validate the optional screener filters.

    Every filter may be omitted. When both price bounds are given the minimum
    may not exceed the maximum.
    """
    errors: list[str] = []
    for result in (
        validate_market_cap(filters.get("market_cap")),
        validate_dividend_yield(filters.get("dividend_yield_min")),
        validate_pe_ratio(filters.get("pe_ratio_max")),
        validate_sector(filters.get("sector")),
    ):
        errors.extend(result.errors)

    min_price = filters.get("min_price")
    max_price = filters.get("max_price")
    errors.extend(_validate_price_bound(min_price, "Minimum"))
    errors.extend(_validate_price_bound(max_price, "Maximum"))
    if _is_number(min_price) and _is_number(max_price) and min_price > max_price:
        errors.append("Minimum price cannot be greater than maximum price")
    return ValidationResult.from_errors(errors)


def validate_portfolio_size(value: Any) -> ValidationResult:
    return validate_positive_number(value, "Portfolio size")


def validate_risk_model(value: Any) -> ValidationResult:
    return _validate_choice(value, RiskModelType, "Risk model")


def validate_review_frequency(value: Any) -> ValidationResult:
    return _validate_choice(value, ReviewFrequency, "Review frequency")


def validate_alert_app(value: Any) -> ValidationResult:
    return _validate_name(value, "Alert application name")


def validate_broker_platform(value: Any) -> ValidationResult:
    return _validate_name(value, "Broker platform name")


def validate_ticker(value: Any) -> ValidationResult:
    """Tickers are one to five uppercase letters.

    Example:
        >>> validate_ticker("aapl").errors
        ['Ticker symbol must be 1-5 uppercase letters']
    """
    result = _validate_name(value, "Ticker symbol")
    if not result.is_valid:
        return result
    if not _TICKER_PATTERN.match(value.strip()):
        return ValidationResult.from_errors(["Ticker symbol must be 1-5 uppercase letters"])
    return ValidationResult.ok()


def validate_symbol(value: Any, max_length: int = 10) -> ValidationResult:
    """Looser ticker check used by the analysis steps.

    Accepts any non-empty string up to ``max_length`` characters, so share
    classes such as ``BRK.B`` pass.
    """
    if not value or not isinstance(value, str):
        return ValidationResult.from_errors(["Ticker symbol is required"])
    if len(value) > max_length:
        return ValidationResult.from_errors([f"Ticker symbol must be {max_length} characters or less"])
    return ValidationResult.ok()
