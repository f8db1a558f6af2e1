"""Shared HTTP mechanics composed into every provider adapter.

A :class:`ProviderClient` owns one ``httpx.AsyncClient`` and runs each request
through the same pipeline: cache lookup, rate limiter, retry, status
classification, JSON decoding, parsing, cache store. Adapters hold a client
instead of inheriting from a base class.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from invest_workflows.exceptions import (
    NetworkError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ValidationError,
    classify_exception,
)
from invest_workflows.providers.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from invest_workflows.core.protocols import Cache
    from invest_workflows.core.types import CacheCategory
    from invest_workflows.providers.ratelimit import RateLimiter, RateLimitInfo

__all__ = ["ProviderClient", "raise_for_status"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISS = object()


def _retry_after(response: httpx.Response, default: float) -> float:
    header = response.headers.get("Retry-After")
    if header is None:
        return default
    try:
        return float(header)
    except ValueError:
        return default


def raise_for_status(response: httpx.Response, provider: str, *, rate_limit_retry_after: float = 60) -> None:
    """Translate an HTTP error status into the matching provider error.

    Args:
        response: The received response.
        provider: Adapter name for the raised error.
        rate_limit_retry_after: Wait suggested when a 429 carries no
            ``Retry-After`` header.

    Raises:
        RateLimitError: On 429.
        NotFoundError: On 404.
        NetworkError: On any 5xx.
        ValidationError: On any other 4xx.
    """
    status = response.status_code
    if status < 400:
        return
    if status == 429:
        msg = "Rate limit exceeded"
        raise RateLimitError(msg, provider=provider, retry_after=_retry_after(response, rate_limit_retry_after))
    if status == 404:
        msg = f"Resource not found: {response.request.url.path}"
        raise NotFoundError(msg, provider=provider)
    if status >= 500:
        msg = f"Server error {status}"
        raise NetworkError(msg, provider=provider)
    msg = f"Request rejected with status {status}"
    raise ValidationError(msg, provider=provider)


class ProviderClient:
    """Rate-limited, cached, retrying JSON client for one provider.

    Attributes:
        name: Adapter name used in errors and logs.
        base_url: Root URL relative paths are resolved against.
        limiter: The adapter's request budget, shared process-wide.
        cache: Response cache, or None to disable caching.
        retry: Backoff policy applied to network failures.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        limiter: RateLimiter,
        cache: Cache | None = None,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        default_params: Mapping[str, Any] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limit_retry_after: float = 60,
    ) -> None:
        """Initialize the client.

        Args:
            name: Adapter name used in errors and logs.
            base_url: Root URL relative paths are resolved against.
            limiter: The adapter's request budget.
            cache: Response cache, or None to disable caching.
            retry: Backoff policy. Defaults to three attempts.
            timeout: Per-request timeout in seconds.
            headers: Headers sent with every request.
            default_params: Query parameters sent with every request, such as an API key.
            transport: Custom httpx transport, e.g. ``httpx.MockTransport`` in tests.
            rate_limit_retry_after: Wait suggested on a 429 without ``Retry-After``.
        """
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.limiter = limiter
        self.cache = cache
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self.default_params = dict(default_params or {})
        self.rate_limit_retry_after = rate_limit_retry_after
        self._headers = dict(headers or {})
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def rate_limit_info(self) -> RateLimitInfo:
        return self.limiter.info()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request_once(self, path: str, params: dict[str, Any]) -> Any:
        await self.limiter.acquire()
        try:
            response = await self.client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise classify_exception(exc, self.name) from exc
        raise_for_status(response, self.name, rate_limit_retry_after=self.rate_limit_retry_after)
        try:
            return response.json()
        except ValueError as exc:
            msg = "Response body is not valid JSON"
            raise ValidationError(msg, provider=self.name) from exc

    async def get_json(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        category: CacheCategory | None = None,
        cache_key: str | None = None,
        parse: Callable[[Any], T] | None = None,
    ) -> T | Any:
        """GET a JSON resource through the full request pipeline.

        Args:
            path: Path relative to ``base_url``, or an absolute URL.
            params: Query parameters, merged over ``default_params``.
            category: Cache category. Caching is skipped when omitted.
            cache_key: Cache key within ``category``.
            parse: Turns the decoded body into the value to return and cache.
                Exceptions it raises are classified and nothing is cached.

        Returns:
            The parsed value, or the decoded JSON when ``parse`` is omitted.

        Raises:
            ProviderError: A classified failure.
        """
        use_cache = self.cache is not None and category is not None and cache_key is not None
        if use_cache:
            cached = self.cache.get(category, cache_key, _MISS)  # type: ignore[union-attr,arg-type]
            if cached is not _MISS:
                return cached

        query = {**self.default_params, **{k: v for k, v in (params or {}).items() if v is not None}}
        body = await self.retry.run(lambda: self._request_once(path, query), provider=self.name)

        if parse is None:
            value = body
        else:
            try:
                value = parse(body)
            except ProviderError:
                raise
            except (AttributeError, KeyError, TypeError, ValueError, IndexError) as exc:
                msg = f"Unexpected response shape: {exc}"
                raise ValidationError(msg, provider=self.name) from exc

        if use_cache:
            self.cache.set(category, cache_key, value)  # type: ignore[union-attr,arg-type]
        return value
