"""SEC EDGAR adapter: CIK lookup and company filings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.core.types import CacheCategory
from invest_workflows.exceptions import ConfigurationError, NotFoundError
from invest_workflows.providers.adapters._common import build_client, dispatch, probe
from invest_workflows.providers.cache import CacheKeys
from invest_workflows.providers.schemas import Filing

if TYPE_CHECKING:
    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache
    from invest_workflows.providers.ratelimit import RateLimitInfo
    from invest_workflows.providers.retry import RetryPolicy

__all__ = ["SECEdgarAdapter"]


class SECEdgarAdapter:
    """Client for the EDGAR submissions API.

    EDGAR needs no key but rejects requests without a descriptive
    ``User-Agent``, so one must be configured.
    """

    name = "sec_edgar"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Cache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if not settings.sec_user_agent:
            msg = "SEC EDGAR requires a User-Agent. Set SEC_USER_AGENT."
            raise ConfigurationError(msg, provider=self.name)
        self._tickers_url = settings.sec_tickers_url
        self.client = build_client(
            self.name,
            settings.sec_edgar_base_url,
            settings,
            cache=cache,
            transport=transport,
            retry=retry,
            headers={"User-Agent": settings.sec_user_agent},
        )

    def is_configured(self) -> bool:
        return True

    async def is_available(self) -> bool:
        return await probe(lambda: self.get_cik("AAPL"))

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.rate_limit_info()

    async def fetch(self, endpoint: str, **params: Any) -> Any:
        return await dispatch(self.name, endpoint, {"cik": self.get_cik, "filings": self.get_filings}, params)

    async def get_cik(self, ticker: str) -> str:
        """Look up the zero-padded ten digit CIK of a ticker."""
        symbol = ticker.upper()
        entries = await self.client.get_json(
            self._tickers_url,
            category=CacheCategory.COMPANY_PROFILES,
            cache_key=f"{self.name}:company-tickers",
            parse=lambda data: [dict(entry) for entry in (data.values() if isinstance(data, dict) else data)],
        )
        for entry in entries:
            if str(entry.get("ticker", "")).upper() == symbol:
                return str(entry["cik_str"]).zfill(10)
        msg = f"CIK not found for ticker {symbol}"
        raise NotFoundError(msg, provider=self.name)

    async def get_filings(self, ticker: str, form_type: str = "10-K", limit: int = 10) -> list[Filing]:
        """Most recent filings of ``form_type``, newest first."""
        symbol = ticker.upper()
        cik = await self.get_cik(symbol)

        def parse(data: Any) -> list[Filing]:
            recent = data["filings"]["recent"]
            filings = [
                Filing(
                    accession_number=accession,
                    form_type=form,
                    filing_date=filed,
                    report_date=reported,
                    primary_document=document or None,
                )
                for accession, filed, reported, form, document in zip(
                    recent.get("accessionNumber", []),
                    recent.get("filingDate", []),
                    recent.get("reportDate", []),
                    recent.get("form", []),
                    recent.get("primaryDocument", []),
                )
                if form == form_type
            ]
            return filings[:limit]

        return await self.client.get_json(
            f"/submissions/CIK{cik}.json",
            category=CacheCategory.FINANCIAL_STATEMENTS,
            cache_key=f"{self.name}:{CacheKeys.filings(symbol, form_type)}-{limit}",
            parse=parse,
        )
