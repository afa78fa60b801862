"""PromptRouter — content-based routing with a single fallback model."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from prompt_router import envelope
from prompt_router.aliases import CODING, FALLBACK, GENERAL, REGIONAL, SCIENCE
from prompt_router.envelope import ResponseEnvelope
from prompt_router.errors import PromptTooLongError, ProviderError
from prompt_router.heuristics import classify
from prompt_router.models import (
    Category,
    Conversation,
    ConversationInput,
    InvocationResult,
    LLMProvider,
    TokenCallback,
    normalize_conversation,
)
from prompt_router.tracing import RouteEvent, TraceHook, emit

if TYPE_CHECKING:
    from prompt_router.config import RouterSettings


def _error_text(error: BaseException) -> str:
    if isinstance(error, ProviderError):
        return error.message
    return str(error) or type(error).__name__


class PromptRouter:
    """Routes one prompt or conversation to a provider chosen by content.

    Routing:
      1. Regional language / general → ``general`` provider
      2. Coding → ``specialist`` provider, coding model
      3. Science/math → both providers concurrently, both results kept

    If a single-provider route fails after its retries, one fallback call is
    made on the ``specialist`` provider with its fallback model. If that
    fails too, an error envelope is returned instead of raising.
    """

    def __init__(
        self,
        general: LLMProvider,
        specialist: LLMProvider,
        *,
        max_prompt_chars: int | None = 6000,
        on_event: TraceHook | None = None,
    ):
        if general.name == specialist.name:
            raise ValueError(f"providers need distinct names, both are {general.name!r}")
        self._general = general
        self._specialist = specialist
        self._max_prompt_chars = max_prompt_chars
        self._on_event = on_event

    @classmethod
    def from_settings(
        cls,
        settings: RouterSettings,
        *,
        client: httpx.AsyncClient | None = None,
        on_event: TraceHook | None = None,
    ) -> PromptRouter:
        """Wire the Gemini and OpenRouter adapters from settings."""
        from prompt_router.providers import GeminiProvider, OpenRouterProvider

        settings.warn_missing_credentials()
        general = GeminiProvider(
            settings.gemini_spec(), settings.gemini_api_key, settings.gemini_api_base,
            client=client, timeout_s=settings.http_timeout_s, on_event=on_event,
        )
        specialist = OpenRouterProvider(
            settings.openrouter_spec(), settings.openrouter_api_key, settings.openrouter_api_base,
            referer=settings.openrouter_referer, title=settings.openrouter_title,
            client=client, timeout_s=settings.http_timeout_s, on_event=on_event,
        )
        return cls(general, specialist, max_prompt_chars=settings.max_prompt_chars, on_event=on_event)

    async def route(
        self,
        conversation: ConversationInput,
        on_token: TokenCallback | None = None,
    ) -> ResponseEnvelope:
        """Route a prompt string or message list and return a response envelope.

        ``on_token`` receives text chunks as they arrive on single-provider
        and fallback routes. The dual route does not stream.

        Raises:
            InvalidInputError: If the conversation is empty or malformed.
            PromptTooLongError: If the conversation exceeds max_prompt_chars.
        """
        messages = normalize_conversation(conversation)
        self._check_length(messages)

        category = classify(messages[-1].content)
        logger.info(f"Route: {category.value} | messages={len(messages)}")
        emit(self._on_event, RouteEvent("route.classified", category=category.value))

        try:
            result = await self._dispatch(category, messages, on_token)
        except Exception as e:
            logger.error(f"Primary route ({category.value}) failed: {e} → trying fallback model")
            result = await self._fallback(category, messages, on_token)

        emit(self._on_event, RouteEvent(
            "route.completed", category=category.value, outcome=result.route_tag,
        ))
        return result

    def _check_length(self, messages: Conversation) -> None:
        if not self._max_prompt_chars:
            return
        length = sum(len(m.content) for m in messages)
        if length > self._max_prompt_chars:
            raise PromptTooLongError(length, self._max_prompt_chars)

    async def _dispatch(
        self, category: Category, messages: Conversation, on_token: TokenCallback | None,
    ) -> ResponseEnvelope:
        if category is Category.SCIENCE_DUAL:
            return await self._dual(messages)

        if category is Category.CODING:
            provider, key = self._specialist, CODING
        elif category is Category.REGIONAL:
            provider, key = self._general, REGIONAL
        else:
            provider, key = self._general, GENERAL

        model = provider.spec.model_for(key)
        logger.info(f"Route: {category.value} → {provider.name} ({model})")
        emit(self._on_event, RouteEvent(
            "route.dispatched", category=category.value, provider=provider.name, model=model,
        ))
        text = await provider.invoke(messages, model=model, on_token=on_token)
        return envelope.single(provider.name, model, text, category.value)

    async def _dual(self, messages: Conversation) -> ResponseEnvelope:
        """Ask both providers at once; a failed call becomes an error entry."""
        calls = [
            (self._specialist, self._specialist.spec.model_for(SCIENCE)),
            (self._general, self._general.spec.model_for(SCIENCE)),
        ]
        logger.info(
            "Route: science-dual → " + ", ".join(f"{p.name} ({m})" for p, m in calls)
        )
        for provider, model in calls:
            emit(self._on_event, RouteEvent(
                "route.dispatched", category=Category.SCIENCE_DUAL.value,
                provider=provider.name, model=model,
            ))
        settled = await asyncio.gather(
            *(provider.invoke(messages, model=model) for provider, model in calls),
            return_exceptions=True,
        )

        results = []
        for (provider, _), outcome in zip(calls, settled):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"Dual route: {provider.name} failed: {outcome}")
                kind = outcome.kind.value if isinstance(outcome, ProviderError) else None
                results.append(InvocationResult(
                    provider.name, error=_error_text(outcome), error_kind=kind,
                ))
            else:
                results.append(InvocationResult(provider.name, text=outcome))
        return envelope.dual(results, Category.SCIENCE_DUAL.value)

    async def _fallback(
        self, category: Category, messages: Conversation, on_token: TokenCallback | None,
    ) -> ResponseEnvelope:
        provider = self._specialist
        model = provider.spec.model_for(FALLBACK)
        emit(self._on_event, RouteEvent(
            "route.fallback", category=category.value, provider=provider.name, model=model,
        ))
        try:
            text = await provider.invoke(messages, model=model, on_token=on_token)
        except Exception as e:
            logger.error(f"Fallback {provider.name} ({model}) failed: {e}")
            return envelope.terminal(_error_text(e), category.value)

        logger.info(f"Fallback served by {provider.name} ({model})")
        return envelope.fallback(provider.name, model, text, category.value)
