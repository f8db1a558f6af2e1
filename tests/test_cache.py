"""Tests for the in-memory response cache."""

from __future__ import annotations

import pytest

from invest_workflows.core.artifacts import ScreeningFilters
from invest_workflows.core.types import CacheCategory, MarketCapCategory
from invest_workflows.providers.cache import CACHE_TTLS, CacheKeys, InMemoryCache, hash_screening_filters


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced monotonic clock."""
    return FakeClock()


@pytest.mark.unit
class TestInMemoryCache:
    """Tests for cache freshness, eviction and statistics."""

    def test_get_missing_entry(self, clock: FakeClock) -> None:
        """Test a miss returns None and is counted."""
        cache = InMemoryCache(clock=clock)

        assert cache.get(CacheCategory.QUOTES, "quote-AAPL") is None
        assert cache.stats()["misses"] == 1

    def test_default_distinguishes_miss_from_stored_none(self, clock: FakeClock) -> None:
        """Test a stored None is returned while a miss returns the default."""
        cache = InMemoryCache(clock=clock)
        missing = object()
        cache.set(CacheCategory.VALUATION_DATA, "dividend-AAPL", None)

        assert cache.get(CacheCategory.VALUATION_DATA, "dividend-AAPL", missing) is None
        assert cache.get(CacheCategory.VALUATION_DATA, "dividend-MSFT", missing) is missing

        clock.now = CACHE_TTLS[CacheCategory.VALUATION_DATA]
        assert cache.get(CacheCategory.VALUATION_DATA, "dividend-AAPL", missing) is missing

    def test_entry_fresh_until_ttl(self, clock: FakeClock) -> None:
        """Test an entry is served until its category's TTL elapses."""
        cache = InMemoryCache(clock=clock)
        cache.set(CacheCategory.QUOTES, "quote-AAPL", {"price": 190.0})

        clock.now = CACHE_TTLS[CacheCategory.QUOTES] - 1
        assert cache.get(CacheCategory.QUOTES, "quote-AAPL") == {"price": 190.0}

        clock.now = CACHE_TTLS[CacheCategory.QUOTES]
        assert cache.get(CacheCategory.QUOTES, "quote-AAPL") is None
        assert cache.stats()["entries"] == {"quotes": 0}

    def test_ttl_override(self, clock: FakeClock) -> None:
        """Test a per-category TTL override."""
        cache = InMemoryCache({CacheCategory.MACRO_DATA: 10}, clock=clock)
        cache.set(CacheCategory.MACRO_DATA, "fred:FEDFUNDS", 5.33)

        clock.now = 11
        assert cache.get(CacheCategory.MACRO_DATA, "fred:FEDFUNDS") is None

    def test_categories_are_isolated(self, clock: FakeClock) -> None:
        """Test the same key in two categories holds two values."""
        cache = InMemoryCache(clock=clock)
        cache.set(CacheCategory.QUOTES, "AAPL", 1)
        cache.set(CacheCategory.COMPANY_PROFILES, "AAPL", 2)

        assert cache.get(CacheCategory.QUOTES, "AAPL") == 1
        assert cache.get(CacheCategory.COMPANY_PROFILES, "AAPL") == 2

    def test_eviction_drops_entry_closest_to_expiry(self, clock: FakeClock) -> None:
        """Test a full category evicts its oldest entry."""
        cache = InMemoryCache(max_entries_per_category=2, clock=clock)
        cache.set(CacheCategory.QUOTES, "a", 1)
        clock.now = 1
        cache.set(CacheCategory.QUOTES, "b", 2)
        clock.now = 2
        cache.set(CacheCategory.QUOTES, "c", 3)

        assert cache.get(CacheCategory.QUOTES, "a") is None
        assert cache.get(CacheCategory.QUOTES, "b") == 2
        assert cache.get(CacheCategory.QUOTES, "c") == 3

    def test_invalidate_and_clear(self, clock: FakeClock) -> None:
        """Test explicit invalidation of one entry and of a category."""
        cache = InMemoryCache(clock=clock)
        cache.set(CacheCategory.QUOTES, "a", 1)
        cache.set(CacheCategory.QUOTES, "b", 2)
        cache.set(CacheCategory.SECTOR_DATA, "sectors", [])

        cache.invalidate(CacheCategory.QUOTES, "a")
        assert cache.get(CacheCategory.QUOTES, "a") is None

        cache.clear(CacheCategory.QUOTES)
        assert cache.get(CacheCategory.QUOTES, "b") is None
        assert cache.get(CacheCategory.SECTOR_DATA, "sectors") == []

        cache.clear()
        assert cache.stats()["entries"] == {}

    def test_stats_counts_hits(self, clock: FakeClock) -> None:
        """Test hits and misses are tracked separately."""
        cache = InMemoryCache(clock=clock)
        cache.set(CacheCategory.QUOTES, "a", 1)
        cache.get(CacheCategory.QUOTES, "a")
        cache.get(CacheCategory.QUOTES, "a")
        cache.get(CacheCategory.QUOTES, "missing")

        assert cache.stats() == {"hits": 2, "misses": 1, "entries": {"quotes": 1}}


@pytest.mark.unit
class TestCacheKeys:
    """Tests for cache key builders."""

    def test_keys_are_uppercased(self) -> None:
        """Test ticker keys are case-insensitive."""
        assert CacheKeys.quote("aapl") == "quote-AAPL"
        assert CacheKeys.filings("msft", "10-K") == "filings-MSFT-10-K"
        assert CacheKeys.analyst_ratings("nvda") == "analyst-ratings-NVDA"

    def test_screening_hash_is_deterministic(self) -> None:
        """Test equal filters hash the same and empty fields are dropped."""
        filters = ScreeningFilters(market_cap=MarketCapCategory.LARGE, pe_ratio_max=25.0)

        assert hash_screening_filters(filters) == "market_cap:large|pe_ratio_max:25.0"
        assert CacheKeys.stock_screen(filters) == CacheKeys.stock_screen(
            {"pe_ratio_max": 25.0, "market_cap": MarketCapCategory.LARGE, "sector": None}
        )
