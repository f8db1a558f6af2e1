"""Reuters adapter: company overviews with competitive position data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import NotFoundError
from invest_workflows.providers.adapters._common import BROWSER_USER_AGENT, build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import CompanyProfile, parse_number

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["COMPETITIVE_KEYS", "ReutersAdapter"]

COMPETITIVE_KEYS = ("patents", "brandValue", "brandRecognition", "customers", "costStructure")
"""Overview keys copied verbatim into :attr:`CompanyProfile.competitive`."""


class ReutersAdapter:
    """Client for the Reuters company overview endpoint.

    Besides the descriptive profile, Reuters reports the raw inputs of the
    moat analysis (patent counts, brand value, customer metrics and cost
    structure), which no other profile source carries.
    """

    name = "reuters"

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
            settings.reuters_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_company_profile("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(self.name, endpoint, {"profile": self.get_company_profile}, params)

    async def get_company_profile(self, ticker: str) -> CompanyProfile:
        symbol = ticker.upper()

        def parse(data: Any) -> CompanyProfile:
            company = data.get("profile") or data.get("company") or data.get("data") or {}
            if not company:
                msg = f"No company profile found for {symbol}"
                raise NotFoundError(msg, provider=self.name)
            headquarters = company.get("headquarters")
            if not headquarters:
                headquarters = ", ".join(
                    part for part in (company.get("city"), company.get("state"), company.get("country")) if part
                )
            employees = parse_number(company.get("employees"))
            return CompanyProfile(
                ticker=symbol,
                name=company.get("name") or company.get("companyName") or symbol,
                sector=company.get("sector") or "Unknown",
                industry=company.get("industry") or "Unknown",
                description=company.get("description") or company.get("businessSummary") or "",
                market_cap=parse_number(company.get("marketCap")),
                website=company.get("website"),
                employees=int(employees) if employees is not None else None,
                headquarters=headquarters or None,
                competitive={key: company[key] for key in COMPETITIVE_KEYS if company.get(key) is not None},
                source=self.name,
            )

        return await self.client.get_json(
            f"/companies/{symbol}",
            params={"view": "overview"},
            category=CacheCategory.COMPANY_PROFILES,
            cache_key=f"{self.name}:{CacheKeys.company_profile(symbol)}",
            parse=parse,
        )
