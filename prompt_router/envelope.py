"""Response envelopes returned by PromptRouter.route().

Three shapes, discriminated by ``kind``:

* ``TextEnvelope``  - one provider answered (route tag ``single:<name>`` or ``fallback``)
* ``DualEnvelope``  - both providers were asked; one result per provider
* ``ErrorEnvelope`` - primary route and fallback both failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from prompt_router.errors import AllProvidersFailedError
from prompt_router.models import InvocationResult

DUAL = "dual"
FALLBACK = "fallback"
ERROR = "error"

ALL_FAILED_MESSAGE = "All models failed. Please try again later."


@dataclass(frozen=True)
class TextEnvelope:
    route_tag: str
    provider: str
    model: str
    text: str
    category: str = ""
    kind: Literal["text"] = "text"

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route_tag,
            "category": self.category,
            "provider": self.provider,
            "model": self.model,
            "response": self.text,
        }


@dataclass(frozen=True)
class DualEnvelope:
    results: dict[str, InvocationResult] = field(default_factory=dict)
    category: str = ""
    route_tag: str = DUAL
    kind: Literal["dual"] = "dual"

    @property
    def responses(self) -> dict[str, str]:
        """Provider name → reply text, or ``"Error: <message>"`` for a failed call."""
        return {
            name: r.text if r.ok else f"Error: {r.error}"
            for name, r in self.results.items()
        }

    def to_dict(self) -> dict[str, Any]:
        return {"route": self.route_tag, "category": self.category, "responses": self.responses}


@dataclass(frozen=True)
class ErrorEnvelope:
    message: str
    error: str = ""
    category: str = ""
    route_tag: str = ERROR
    kind: Literal["error"] = "error"

    def raise_for_error(self) -> None:
        raise AllProvidersFailedError(self.message, self.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route_tag,
            "category": self.category,
            "response": self.message,
            "error": self.error,
        }


ResponseEnvelope = Union[TextEnvelope, DualEnvelope, ErrorEnvelope]


def single(provider: str, model: str, text: str, category: str = "") -> TextEnvelope:
    return TextEnvelope(f"single:{provider}", provider, model, text, category)


def fallback(provider: str, model: str, text: str, category: str = "") -> TextEnvelope:
    return TextEnvelope(FALLBACK, provider, model, text, category)


def dual(results: list[InvocationResult], category: str = "") -> DualEnvelope:
    """Key each settled result by provider name, preserving call order."""
    return DualEnvelope({r.provider: r for r in results}, category)


def terminal(error: str, category: str = "") -> ErrorEnvelope:
    return ErrorEnvelope(ALL_FAILED_MESSAGE, error, category)
