"""Helpers shared by the adapter modules."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from invest_workflows.exceptions import ProviderError, ValidationError
from invest_workflows.providers.http import ProviderClient
from invest_workflows.providers.ratelimit import build_rate_limiter
from invest_workflows.providers.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    import httpx

    from invest_workflows.config import Settings
    from invest_workflows.core.protocols import Cache

__all__ = ["BROWSER_USER_AGENT", "build_client", "dispatch", "probe"]

BROWSER_USER_AGENT = "Mozilla/5.0 (compatible; invest-workflows/0.1)"


def build_client(
    name: str,
    base_url: str,
    settings: Settings,
    *,
    cache: Cache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    retry: RetryPolicy | None = None,
    headers: Mapping[str, str] | None = None,
    default_params: Mapping[str, Any] | None = None,
    rate_limit_retry_after: float = 60,
) -> ProviderClient:
    """Create the :class:`ProviderClient` for one adapter from settings."""
    return ProviderClient(
        name,
        base_url,
        limiter=build_rate_limiter(settings.limit_for(name), name),
        cache=cache,
        retry=retry or RetryPolicy(max_attempts=settings.retry_max_attempts, base_delay=settings.retry_base_delay),
        timeout=settings.request_timeout_seconds,
        headers={"Accept": "application/json", **(headers or {})},
        default_params=default_params,
        transport=transport,
        rate_limit_retry_after=rate_limit_retry_after,
    )


async def dispatch(
    provider: str,
    endpoint: str,
    handlers: Mapping[str, Callable[..., Awaitable[Any]]],
    params: Mapping[str, Any],
) -> Any:
    """Route a logical endpoint name to the adapter coroutine serving it.

    Raises:
        ValidationError: If the adapter does not serve ``endpoint``.
    """
    handler = handlers.get(endpoint)
    if handler is None:
        msg = f"Unsupported endpoint '{endpoint}'"
        raise ValidationError(msg, provider=provider)
    return await handler(**params)


async def probe(call: Callable[[], Awaitable[Any]]) -> bool:
    """Run a cheap availability check, turning provider errors into False."""
    try:
        await call()
    except ProviderError:
        return False
    return True
