"""Bounded retry loop and error classification for provider calls."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from loguru import logger

from prompt_router.errors import ErrorKind, ProviderError
from prompt_router.tracing import RouteEvent, TraceHook, emit

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

_STATUS_KINDS = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMITED,
}


def status_kind(status: int | None) -> ErrorKind:
    return _STATUS_KINDS.get(status or 0, ErrorKind.UNKNOWN)


def classify_error(error: Exception, provider: str) -> ProviderError:
    """Normalize any exception from a provider call into a ProviderError."""
    if isinstance(error, ProviderError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return ProviderError(provider, f"HTTP {status}", kind=status_kind(status), status_code=status)

    # ConnectError, DNS failures, timeouts, dropped connections
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError)):
        return ProviderError(provider, str(error) or type(error).__name__, kind=ErrorKind.NETWORK)

    return ProviderError(provider, str(error) or type(error).__name__)


def backoff_delay(attempt: int, base_s: float) -> float:
    """Linear backoff: attempt 1 waits base, attempt 2 waits 2*base, ..."""
    return attempt * base_s


async def with_retries(
    call: Callable[[], Awaitable[T]],
    *,
    provider: str,
    model: str = "",
    max_retries: int = 3,
    backoff_base_s: float = 1.0,
    sleep: Sleep = asyncio.sleep,
    on_event: TraceHook | None = None,
) -> T:
    """Run ``call`` up to ``max_retries`` times, sleeping between attempts.

    The error kind is reported but never changes retry behaviour. The last
    error is raised as a ProviderError once attempts are exhausted.

    Raises:
        ProviderError: If every attempt fails.
    """
    attempts = max(1, max_retries)
    attempt = 0
    while True:
        attempt += 1
        start = time.monotonic()
        try:
            result = await call()
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            err = classify_error(e, provider)
            logger.warning(
                f"{provider} ({model}) attempt {attempt}/{attempts} failed "
                f"in {latency_ms}ms [{err.kind.value}]: {err.message}"
            )
            emit(on_event, RouteEvent(
                "provider.attempt", provider=provider, model=model,
                attempt=attempt, outcome="failure", detail=err.kind.value,
            ))
            if attempt == attempts:
                if err is e:
                    raise
                raise err from e
            await sleep(backoff_delay(attempt, backoff_base_s))
            continue

        emit(on_event, RouteEvent(
            "provider.attempt", provider=provider, model=model,
            attempt=attempt, outcome="success",
        ))
        return result
