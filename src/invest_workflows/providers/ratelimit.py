"""Per-adapter request budgets.

Two limiter flavours exist. :class:`SlidingWindowRateLimiter` keeps the
timestamps of recent calls and makes callers wait until the oldest one leaves
the window. :class:`DailyQuotaRateLimiter` counts calls per UTC day and rejects
calls past the quota with a :class:`RateLimitError`.

A limiter instance is shared by every session that uses the adapter, so its
state is only touched under an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from invest_workflows.exceptions import RateLimitError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from invest_workflows.config import ProviderLimit

__all__ = [
    "DailyQuotaRateLimiter",
    "RateLimitInfo",
    "RateLimiter",
    "SlidingWindowRateLimiter",
    "build_rate_limiter",
]

logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """Snapshot of an adapter's request budget.

    Attributes:
        requests_per_minute: Configured ceiling, or None for daily-only limits.
        requests_remaining: Calls that can be made right now without waiting.
        reset_time: When the budget next frees up.
        daily_request_count: Calls made today, for daily quotas.
        daily_limit: The daily quota, if any.
    """

    requests_per_minute: int | None
    requests_remaining: int
    reset_time: datetime
    daily_request_count: int | None = None
    daily_limit: int | None = None


class RateLimiter(Protocol):
    """Anything that can gate a provider call."""

    async def acquire(self) -> None:
        """Wait for, or refuse, permission to issue one call."""
        ...

    def info(self) -> RateLimitInfo:
        """Return the current budget."""
        ...


class SlidingWindowRateLimiter:
    """Rolling-window limiter that queues callers instead of exceeding the limit.

    Attributes:
        requests_per_minute: Maximum calls inside one window.
        window_seconds: Length of the rolling window.
    """

    def __init__(
        self,
        requests_per_minute: int,
        *,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            requests_per_minute: Maximum calls inside one window.
            window_seconds: Length of the rolling window.
            clock: Monotonic time source, injectable for tests.
            sleep: Coroutine used to wait, injectable for tests.
        """
        if requests_per_minute <= 0:
            msg = "requests_per_minute must be positive"
            raise ValueError(msg)
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    async def acquire(self) -> None:
        """Reserve a slot, waiting for the window to slide when it is full."""
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._calls) < self.requests_per_minute:
                    self._calls.append(now)
                    return
                wait = self._calls[0] + self.window_seconds - now
                logger.debug("Rate limit reached, waiting %.2fs for a free slot", wait)
                await self._sleep(max(wait, 0.0))

    def info(self) -> RateLimitInfo:
        now = self._clock()
        self._prune(now)
        remaining = self.requests_per_minute - len(self._calls)
        seconds_to_reset = self._calls[0] + self.window_seconds - now if self._calls else 0.0
        return RateLimitInfo(
            requests_per_minute=self.requests_per_minute,
            requests_remaining=max(remaining, 0),
            reset_time=datetime.now(timezone.utc) + timedelta(seconds=max(seconds_to_reset, 0.0)),
        )


def _next_utc_midnight(now: datetime) -> datetime:
    return datetime(now.year, now.month, now.day, tzinfo=timezone.utc) + timedelta(days=1)


class DailyQuotaRateLimiter:
    """Daily quota that resets at UTC midnight.

    Calls past the quota are refused immediately with a :class:`RateLimitError`
    whose ``retry_after`` is the number of seconds until the reset.
    """

    def __init__(
        self,
        daily_limit: int,
        *,
        provider: str,
        requests_per_minute: int | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """Initialize the quota.

        Args:
            daily_limit: Calls allowed per UTC day.
            provider: Adapter name, used in error messages.
            requests_per_minute: Optional additional per-minute ceiling.
            now: Wall clock, injectable for tests.
        """
        self.daily_limit = daily_limit
        self.provider = provider
        self._now = now
        self._minute = SlidingWindowRateLimiter(requests_per_minute) if requests_per_minute else None
        self._count = 0
        self._reset_at = _next_utc_midnight(now())
        self._lock = asyncio.Lock()

    @property
    def daily_request_count(self) -> int:
        return self._count

    def _roll_day(self, now: datetime) -> None:
        if now >= self._reset_at:
            self._count = 0
            self._reset_at = _next_utc_midnight(now)

    async def acquire(self) -> None:
        """Count one call against today's quota.

        Raises:
            RateLimitError: If the quota is exhausted.
        """
        async with self._lock:
            now = self._now()
            self._roll_day(now)
            if self._count >= self.daily_limit:
                retry_after = (self._reset_at - now).total_seconds()
                msg = f"Daily quota of {self.daily_limit} requests exhausted"
                raise RateLimitError(msg, provider=self.provider, retry_after=retry_after)
            self._count += 1
        if self._minute is not None:
            await self._minute.acquire()

    def info(self) -> RateLimitInfo:
        self._roll_day(self._now())
        return RateLimitInfo(
            requests_per_minute=self._minute.requests_per_minute if self._minute else None,
            requests_remaining=max(self.daily_limit - self._count, 0),
            reset_time=self._reset_at,
            daily_request_count=self._count,
            daily_limit=self.daily_limit,
        )


def build_rate_limiter(limit: ProviderLimit, provider: str) -> RateLimiter:
    """Create the limiter matching a configured provider budget.

    Args:
        limit: The configured budget.
        provider: Adapter name.

    Returns:
        A daily quota when ``requests_per_day`` is set, otherwise a sliding window.
    """
    if limit.requests_per_day:
        return DailyQuotaRateLimiter(
            limit.requests_per_day,
            provider=provider,
            requests_per_minute=limit.requests_per_minute,
        )
    return SlidingWindowRateLimiter(limit.requests_per_minute or 60)
