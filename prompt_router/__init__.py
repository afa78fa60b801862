"""prompt-router: content-based LLM routing with retries and a fallback model."""

from prompt_router.config import RouterSettings
from prompt_router.envelope import DualEnvelope, ErrorEnvelope, ResponseEnvelope, TextEnvelope
from prompt_router.errors import (
    AllProvidersFailedError,
    ErrorKind,
    InvalidInputError,
    PromptTooLongError,
    ProviderError,
    RouterError,
)
from prompt_router.heuristics import classify
from prompt_router.models import Category, InvocationResult, LLMProvider, Message, ProviderSpec
from prompt_router.providers import GeminiProvider, OpenRouterProvider
from prompt_router.router import PromptRouter
from prompt_router.tracing import RouteEvent

__all__ = [
    "AllProvidersFailedError",
    "Category",
    "DualEnvelope",
    "ErrorEnvelope",
    "ErrorKind",
    "GeminiProvider",
    "InvalidInputError",
    "InvocationResult",
    "LLMProvider",
    "Message",
    "OpenRouterProvider",
    "PromptRouter",
    "PromptTooLongError",
    "ProviderError",
    "ProviderSpec",
    "ResponseEnvelope",
    "RouteEvent",
    "RouterError",
    "RouterSettings",
    "TextEnvelope",
    "classify",
]
