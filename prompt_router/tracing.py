"""Structured route/attempt events for an external observability hook."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger


@dataclass(frozen=True)
class RouteEvent:
    """One step of a routing decision.

    name is one of ``route.classified``, ``route.dispatched``,
    ``provider.attempt``, ``route.fallback`` or ``route.completed``.
    """

    name: str
    category: str = ""
    provider: str = ""
    model: str = ""
    attempt: int = 0
    outcome: str = ""   # "success", "failure", or a route tag
    detail: str = ""


TraceHook = Callable[[RouteEvent], None]


def emit(hook: TraceHook | None, event: RouteEvent) -> None:
    """Deliver an event without letting a broken hook fail the request."""
    if hook is None:
        return
    try:
        hook(event)
    except Exception as e:
        logger.warning(f"Trace hook failed on {event.name}: {e}")
