"""Provider layer: adapters, rate limiting, retry, caching and fallback."""

from __future__ import annotations

from invest_workflows.providers.cache import CACHE_TTLS, CacheKeys, InMemoryCache
from invest_workflows.providers.fallback import FallbackResult, fetch_with_fallback
from invest_workflows.providers.http import ProviderClient
from invest_workflows.providers.ratelimit import (
    DailyQuotaRateLimiter,
    RateLimitInfo,
    SlidingWindowRateLimiter,
    build_rate_limiter,
)
from invest_workflows.providers.registry import ADAPTER_PRIORITIES, DataNeed, ProviderRegistry, UnconfiguredAdapter
from invest_workflows.providers.retry import RetryPolicy

__all__ = [
    "ADAPTER_PRIORITIES",
    "CACHE_TTLS",
    "CacheKeys",
    "DailyQuotaRateLimiter",
    "DataNeed",
    "FallbackResult",
    "InMemoryCache",
    "ProviderClient",
    "ProviderRegistry",
    "RateLimitInfo",
    "RetryPolicy",
    "SlidingWindowRateLimiter",
    "UnconfiguredAdapter",
    "build_rate_limiter",
    "fetch_with_fallback",
]
