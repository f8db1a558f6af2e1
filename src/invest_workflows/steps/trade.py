"""Step 11: mock trade execution."""

from __future__ import annotations

import re
import secrets
import string
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from invest_workflows.core.artifacts import TradeConfirmation
from invest_workflows.core.results import MockTradeResult
from invest_workflows.core.types import StepId
from invest_workflows.steps.base import BaseStepProcessor
from invest_workflows.steps.validation import (
    InputField,
    ValidationResult,
    validate_broker_platform,
    validate_positive_number,
    validate_symbol,
)

if TYPE_CHECKING:
    from invest_workflows.core.context import WorkflowContext
    from invest_workflows.core.types import StepInputs

__all__ = ["MOCK_TRADE_WARNING", "MockTradeProcessor", "generate_confirmation_id"]

MOCK_TRADE_WARNING = "This is a MOCK trade for educational purposes only. No actual trade has been executed."

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def _base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
        if not value:
            return "".join(reversed(digits))


def generate_confirmation_id(broker_platform: str, *, now_ms: int | None = None) -> str:
    """Build a unique ``MOCK-{BROKER}-{TIMESTAMP}-{RANDOM}`` identifier.

    The broker prefix is the first three characters of the platform name,
    uppercased, with anything that is not a letter replaced by ``X``. The
    timestamp is milliseconds since the epoch in base 36, followed by eight
    random hex digits.

    Example:
        >>> generate_confirmation_id("e*trade", now_ms=0)[:11]
        'MOCK-EXT-0-'
    """
    prefix = re.sub(r"[^A-Z]", "X", broker_platform[:3].upper())
    timestamp = _base36(now_ms if now_ms is not None else time.time_ns() // 1_000_000)
    return f"MOCK-{prefix}-{timestamp}-{secrets.token_hex(4).upper()}"


class MockTradeProcessor(BaseStepProcessor):
    """Simulate a buy order. Nothing is ever sent to a broker."""

    step_id = StepId.MOCK_TRADE
    step_name = "Mock Trade Execution"
    result_class = MockTradeResult
    inputs = (
        InputField("broker_platform", "string", True, "Name of the broker platform"),
        InputField("ticker", "string", True, "Stock ticker symbol to trade"),
        InputField("quantity", "number", True, "Number of shares to buy"),
        InputField("price", "number", True, "Price per share"),
    )
    outputs = {
        "trade_confirmation": {
            "type": "TradeConfirmation",
            "description": "Mock trade confirmation with a unique identifier",
        }
    }

    def validate_inputs(self, inputs: StepInputs) -> ValidationResult:
        quantity = inputs.get("quantity")
        result = validate_broker_platform(inputs.get("broker_platform")).merge(
            validate_symbol(inputs.get("ticker")),
            validate_positive_number(quantity, "Quantity"),
            validate_positive_number(inputs.get("price"), "Price"),
        )
        if isinstance(quantity, float) and not quantity.is_integer():
            result = result.merge(ValidationResult.from_errors(["Quantity must be a whole number"]))
        return result

    async def process(self, inputs: StepInputs, context: WorkflowContext) -> MockTradeResult:
        confirmation = TradeConfirmation(
            ticker=inputs["ticker"].upper(),
            quantity=int(inputs["quantity"]),
            price=float(inputs["price"]),
            confirmation_id=generate_confirmation_id(inputs["broker_platform"]),
            executed_at=datetime.now(timezone.utc),
            is_mock=True,
        )
        return MockTradeResult(trade_confirmation=confirmation, warnings=[MOCK_TRADE_WARNING])
