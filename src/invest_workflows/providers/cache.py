"""In-memory response cache with per-category freshness windows."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from invest_workflows.core.artifacts import ScreeningFilters

__all__ = ["CACHE_TTLS", "CacheEntry", "CacheKeys", "InMemoryCache", "hash_screening_filters"]

logger = logging.getLogger(__name__)

CACHE_TTLS: dict[CacheCategory, int] = {
    CacheCategory.QUOTES: 900,
    CacheCategory.SECTOR_DATA: 86400,
    CacheCategory.MACRO_DATA: 3600,
    CacheCategory.COMPANY_PROFILES: 604800,
    CacheCategory.FINANCIAL_STATEMENTS: 86400,
    CacheCategory.VALUATION_DATA: 86400,
    CacheCategory.ANALYST_RATINGS: 86400,
    CacheCategory.STOCK_SCREENS: 3600,
}
"""Seconds an entry of each category stays fresh."""


@dataclass
class CacheEntry:
    """A cached value and the moment it stops being fresh."""

    key: str
    value: Any
    category: CacheCategory
    expires_at: float


def hash_screening_filters(filters: ScreeningFilters | Mapping[str, Any]) -> str:
    """Build a deterministic key fragment from screening filters.

    Empty fields are dropped and the rest are joined as ``k:v`` pairs in key
    order, so equal filters always hash the same.
    """
    params = filters if isinstance(filters, dict) else filters.as_params()
    return "|".join(f"{key}:{params[key]}" for key in sorted(params) if params[key] not in (None, ""))


class CacheKeys:
    """Builders for the cache keys used by the adapters."""

    SECTOR_DATA = "sector-data"
    MACRO_DATA = "macro-data"

    @staticmethod
    def quote(ticker: str) -> str:
        return f"quote-{ticker.upper()}"

    @staticmethod
    def company_profile(ticker: str) -> str:
        return f"company-profile-{ticker.upper()}"

    @staticmethod
    def filings(ticker: str, form_type: str) -> str:
        return f"filings-{ticker.upper()}-{form_type}"

    @staticmethod
    def analyst_ratings(ticker: str) -> str:
        return f"analyst-ratings-{ticker.upper()}"

    @staticmethod
    def valuation(ticker: str) -> str:
        return f"valuation-{ticker.upper()}"

    @staticmethod
    def stock_screen(filters: ScreeningFilters | Mapping[str, Any]) -> str:
        return f"stock-screen-{hash_screening_filters(filters)}"


class InMemoryCache:
    """Dict-backed :class:`~invest_workflows.core.protocols.Cache`.

    Entries only leave the cache by expiring, by explicit invalidation, or by
    eviction when a category grows past ``max_entries_per_category``. Eviction
    drops the entry closest to expiry.

    Example:
        >>> cache = InMemoryCache()
        >>> cache.set(CacheCategory.QUOTES, "quote-AAPL", {"price": 190.0})
        >>> cache.get(CacheCategory.QUOTES, "quote-AAPL")
        {'price': 190.0}
    """

    def __init__(
        self,
        ttls: Mapping[CacheCategory, int] | None = None,
        *,
        max_entries_per_category: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttls: Override of the default freshness windows.
            max_entries_per_category: Optional size cap per category.
            clock: Monotonic time source, injectable for tests.
        """
        self.ttls: dict[CacheCategory, int] = {**CACHE_TTLS, **(ttls or {})}
        self.max_entries_per_category = max_entries_per_category
        self._clock = clock
        self._entries: dict[CacheCategory, dict[str, CacheEntry]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, category: CacheCategory, key: str, default: Any = None) -> Any:
        bucket = self._entries.get(category, {})
        entry = bucket.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache miss for %s/%s", category, key)
            return default
        if self._clock() >= entry.expires_at:
            del bucket[key]
            self._misses += 1
            logger.debug("Cache entry %s/%s expired", category, key)
            return default
        self._hits += 1
        logger.debug("Cache hit for %s/%s", category, key)
        return entry.value

    def set(self, category: CacheCategory, key: str, value: Any) -> None:
        bucket = self._entries.setdefault(category, {})
        bucket[key] = CacheEntry(
            key=key,
            value=value,
            category=category,
            expires_at=self._clock() + self.ttls[category],
        )
        if self.max_entries_per_category is not None and len(bucket) > self.max_entries_per_category:
            oldest = min(bucket.values(), key=lambda item: item.expires_at)
            del bucket[oldest.key]

    def invalidate(self, category: CacheCategory, key: str) -> None:
        """Drop one entry if present."""
        self._entries.get(category, {}).pop(key, None)

    def clear(self, category: CacheCategory | None = None) -> None:
        """Drop every entry, or every entry of one category."""
        if category is None:
            self._entries.clear()
        else:
            self._entries.pop(category, None)

    def stats(self) -> dict[str, Any]:
        """Return hit and miss counters plus the entry count per category."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "entries": {str(category): len(bucket) for category, bucket in self._entries.items()},
        }
