"""Ordered multi-source fallback for one logical data need."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from invest_workflows.exceptions import FallbackExhaustedError, ProviderError, classify_exception

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from invest_workflows.core.protocols import ProviderAdapter

__all__ = ["FallbackResult", "fetch_with_fallback"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FallbackResult(Generic[T]):
    """Value returned by the first candidate that answered.

    Attributes:
        value: The parsed value.
        source: Name of the adapter that produced it.
        warnings: One message per candidate tried before it, in order.
        used_fallback: True when the first candidate did not answer.
        fallback_reason: Why the first candidate was passed over.
    """

    value: T
    source: str
    warnings: list[str] = field(default_factory=list)
    used_fallback: bool = False
    fallback_reason: str | None = None


async def fetch_with_fallback(
    need: str,
    candidates: Sequence[ProviderAdapter],
    call: Callable[[ProviderAdapter], Awaitable[T]],
) -> FallbackResult[T]:
    """Try each candidate in order and return the first success.

    Candidates run one at a time so the order in which providers are charged
    against their quotas stays deterministic.

    Args:
        need: Logical data need, used in logs and the exhaustion error.
        candidates: Adapters in priority order.
        call: Performs the fetch against one adapter.

    Returns:
        The first successful value with the warnings collected on the way.

    Raises:
        FallbackExhaustedError: If no candidate succeeded.
    """
    warnings: list[str] = []
    for adapter in candidates:
        if not adapter.is_configured():
            warnings.append(f"{adapter.name} is not configured, skipping")
            continue
        try:
            value = await call(adapter)
        except ProviderError as exc:
            message = f"{adapter.name} failed: {exc.message}"
        except (ValueError, TypeError, KeyError) as exc:
            message = f"{adapter.name} failed: {classify_exception(exc, adapter.name).message}"
        else:
            if warnings:
                logger.info("Resolved %s from %s after %d failed source(s)", need, adapter.name, len(warnings))
            return FallbackResult(
                value=value,
                source=adapter.name,
                warnings=warnings,
                used_fallback=bool(warnings),
                fallback_reason=warnings[0] if warnings else None,
            )
        logger.warning("%s: %s", need, message)
        warnings.append(message)
    raise FallbackExhaustedError(need, warnings)
