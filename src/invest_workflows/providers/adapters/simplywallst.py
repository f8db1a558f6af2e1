"""Simply Wall St adapter: valuation ratios, fair value and a peer-relative score."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import ValuationSnapshot, parse_number

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["SimplyWallStAdapter", "valuation_score"]

DEFAULT_PEER_PE = 20.0
DEFAULT_PEER_PB = 3.0


def _ratio_points(value: float, peer_average: float) -> int:
    if value <= 0 or peer_average <= 0:
        return 0
    if value < peer_average * 0.8:
        return 20
    if value < peer_average:
        return 10
    if value > peer_average * 1.2:
        return -20
    if value > peer_average:
        return -10
    return 0


def valuation_score(pe: float, pb: float, peer_pe: float = DEFAULT_PEER_PE, peer_pb: float = DEFAULT_PEER_PB) -> int:
    """Score a company's cheapness relative to peers, from 0 to 100.

    Starts at a neutral 50. Each of PE and PB moves the score by 20 points
    when more than 20% away from the peer average, or by 10 points when on
    the near side of it. Cheaper is better.
    """
    score = 50 + _ratio_points(pe, peer_pe) + _ratio_points(pb, peer_pb)
    return max(0, min(100, score))


def _first(source: Mapping[str, Any], *keys: str) -> float | None:
    for key in keys:
        value = parse_number(source.get(key))
        if value:
            return value
    return None


class SimplyWallStAdapter:
    name = "simplywallst"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.client = build_client(
            self.name,
            settings.simplywallst_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_valuation("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(self.name, endpoint, {"valuation": self.get_valuation}, params)

    async def get_valuation(self, ticker: str) -> ValuationSnapshot:
        """Valuation snapshot including fair value upside and a 0..100 score.

        When the provider reports no score, one is derived from PE and PB
        against the peer averages it reports, or market-wide defaults.
        """
        symbol = ticker.upper()

        def parse(data: Any) -> ValuationSnapshot:
            valuation = data.get("valuation") or data
            ratios = valuation.get("ratios") or {}
            if not ratios:
                msg = f"No valuation data found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            fair_value = valuation.get("fairValue") or {}
            peer_averages = (valuation.get("peers") or {}).get("averages") or {}

            price = _first(valuation, "currentPrice") or _first(ratios, "price") or 0.0
            estimate = _first(fair_value, "estimate", "value")
            pe = _first(ratios, "pe", "priceToEarnings") or 0.0
            pb = _first(ratios, "pb", "priceToBook") or 0.0
            score = parse_number(valuation.get("score"))
            if score is None:
                score = valuation_score(
                    pe,
                    pb,
                    _first(peer_averages, "pe") or DEFAULT_PEER_PE,
                    _first(peer_averages, "pb") or DEFAULT_PEER_PB,
                )
            return ValuationSnapshot(
                ticker=symbol,
                source=self.name,
                pe_ratio=pe,
                pb_ratio=pb,
                current_price=price,
                ps_ratio=_first(ratios, "ps", "priceToSales"),
                peg_ratio=_first(ratios, "peg", "pegRatio"),
                ev_to_ebitda=_first(ratios, "evToEbitda", "enterpriseValueToEbitda"),
                price_to_free_cash_flow=_first(ratios, "priceToFreeCashFlow", "pfcf"),
                fair_value_estimate=estimate,
                upside=(estimate - price) / price * 100 if estimate and price else None,
                valuation_score=score,
            )

        return await self.client.get_json(
            f"/api/company/{symbol}/valuation",
            params={"include": "peers,ratios,fairvalue"},
            category=CacheCategory.VALUATION_DATA,
            cache_key=f"{self.name}:{CacheKeys.valuation(symbol)}",
            parse=parse,
        )
