"""Exponential backoff for transient provider failures."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from invest_workflows.exceptions import NetworkError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

__all__ = ["RetryPolicy"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry only :class:`NetworkError`, doubling the delay each time.

    With the defaults a call is attempted at most three times, waiting one
    second before the second attempt and two seconds before the third. Any
    other error is raised at once.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Delay before the first retry, in seconds.
        sleep: Coroutine used to wait between attempts.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        return self.base_delay * 2 ** (attempt - 1)

    async def run(self, call: Callable[[], Awaitable[T]], *, provider: str = "unknown") -> T:
        """Run ``call`` until it succeeds, fails permanently, or attempts run out.

        Args:
            call: Zero-argument coroutine factory performing one attempt.
            provider: Adapter name, for log messages.

        Returns:
            The value of the first successful attempt.

        Raises:
            NetworkError: The last network failure once all attempts are used.
            ProviderError: Any non-network failure, immediately.
        """
        attempt = 1
        while True:
            try:
                return await call()
            except NetworkError as exc:
                if attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%s), retrying in %.1fs",
                    provider,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await self.sleep(delay)
                attempt += 1
