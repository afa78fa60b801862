"""HTTP adapters for the two LLM backends.

Both adapters share the same contract (``invoke(conversation) -> text``)
and the same bounded retry loop; they differ in request shaping and in
which model table they draw identifiers from.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from prompt_router.aliases import GEMINI_MODELS, GENERAL, OPENROUTER_MODELS
from prompt_router.errors import ErrorKind, ProviderError
from prompt_router.failover import Sleep, status_kind, with_retries
from prompt_router.models import Conversation, LLMProvider, ProviderSpec, TokenCallback
from prompt_router.tracing import TraceHook

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"


class HTTPProvider(LLMProvider):
    """Base adapter: credential check, retries, plain and SSE transport."""

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str | None = None,
        api_base: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 60.0,
        sleep: Sleep = asyncio.sleep,
        on_event: TraceHook | None = None,
    ):
        super().__init__(spec)
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self._client = client
        self._timeout_s = timeout_s
        self._sleep = sleep
        self._on_event = on_event

    async def invoke(
        self,
        conversation: Conversation,
        model: str | None = None,
        on_token: TokenCallback | None = None,
    ) -> str:
        model = model or self.spec.model
        return await with_retries(
            lambda: self._attempt(conversation, model, on_token),
            provider=self.name,
            model=model,
            max_retries=self.spec.max_retries,
            backoff_base_s=self.spec.backoff_base_s,
            sleep=self._sleep,
            on_event=self._on_event,
        )

    async def _attempt(
        self, conversation: Conversation, model: str, on_token: TokenCallback | None,
    ) -> str:
        if not self.api_key:
            raise ProviderError(self.name, "API key is not configured", kind=ErrorKind.UNAUTHORIZED)
        if self._client is not None:
            return await self._send(self._client, conversation, model, on_token)
        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_s)) as client:
            return await self._send(client, conversation, model, on_token)

    async def _send(
        self,
        client: httpx.AsyncClient,
        conversation: Conversation,
        model: str,
        on_token: TokenCallback | None,
    ) -> str:
        stream = on_token is not None
        url = self._url(model, stream)
        kwargs: dict[str, Any] = {
            "headers": self._headers(),
            "params": self._params(stream),
            "json": self._payload(conversation, model, stream),
        }

        if not stream:
            response = await client.post(url, **kwargs)
            response.raise_for_status()
            try:
                return self._parse_response(response.json())
            except (KeyError, IndexError, TypeError, ValueError) as e:
                raise ProviderError(self.name, f"unexpected response shape: {e!r}") from e

        collected: list[str] = []
        async with client.stream("POST", url, **kwargs) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                if not data:
                    continue
                try:
                    text = self._parse_chunk(json.loads(data))
                except (KeyError, IndexError, TypeError, ValueError) as e:
                    raise ProviderError(self.name, f"unexpected stream chunk: {e!r}") from e
                if text:
                    collected.append(text)
                    on_token(text)
        return "".join(collected)

    # --- request shaping, per backend ---

    def _url(self, model: str, stream: bool) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _params(self, stream: bool) -> dict[str, str]:
        return {}

    def _payload(self, conversation: Conversation, model: str, stream: bool) -> dict[str, Any]:
        raise NotImplementedError

    def _parse_response(self, data: dict[str, Any]) -> str:
        raise NotImplementedError

    def _parse_chunk(self, data: dict[str, Any]) -> str:
        raise NotImplementedError

    def _raise_for_error_body(self, data: dict[str, Any]) -> None:
        """Raise for an ``error`` object sent with a 200 body or inside a stream."""
        if "error" not in data:
            return
        err = data["error"]
        if isinstance(err, dict):
            code = err.get("code")
            status = code if isinstance(code, int) else None
            raise ProviderError(
                self.name, str(err.get("message", err)), kind=status_kind(status), status_code=status,
            )
        raise ProviderError(self.name, str(err))


def to_gemini_contents(conversation: Conversation) -> list[dict[str, Any]]:
    """Convert messages to Gemini turns.

    ``assistant`` becomes ``model``; consecutive messages with the same role
    are merged into one turn so roles alternate. Empty messages are dropped.
    """
    contents: list[dict[str, Any]] = []
    for msg in conversation:
        if not msg.content:
            continue
        role = "model" if msg.role == "assistant" else "user"
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].append({"text": msg.content})
        else:
            contents.append({"role": role, "parts": [{"text": msg.content}]})
    return contents


class GeminiProvider(HTTPProvider):
    """Google Gemini ``generateContent`` adapter (primary general-purpose backend)."""

    def __init__(self, spec: ProviderSpec | None = None, api_key: str | None = None,
                 api_base: str = GEMINI_API_BASE, **kwargs: Any):
        spec = spec or ProviderSpec("gemini", GEMINI_MODELS[GENERAL], GEMINI_MODELS)
        super().__init__(spec, api_key, api_base, **kwargs)

    def _url(self, model: str, stream: bool) -> str:
        method = "streamGenerateContent" if stream else "generateContent"
        return f"{self.api_base}/models/{model}:{method}"

    def _params(self, stream: bool) -> dict[str, str]:
        params = {"key": self.api_key or ""}
        if stream:
            params["alt"] = "sse"
        return params

    def _payload(self, conversation: Conversation, model: str, stream: bool) -> dict[str, Any]:
        return {"contents": to_gemini_contents(conversation)}

    def _parse_response(self, data: dict[str, Any]) -> str:
        self._raise_for_error_body(data)
        candidates = data.get("candidates")
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise ProviderError(self.name, f"no candidates returned: {feedback}")
        return "".join(p.get("text", "") for p in candidates[0]["content"]["parts"])

    def _parse_chunk(self, data: dict[str, Any]) -> str:
        self._raise_for_error_body(data)
        # Trailing SSE chunks may carry only finishReason/usage metadata.
        if not data.get("candidates"):
            return ""
        return "".join(p.get("text", "") for p in data["candidates"][0].get("content", {}).get("parts", []))


class OpenRouterProvider(HTTPProvider):
    """OpenRouter chat-completions adapter (code-specialised and fallback backend)."""

    def __init__(self, spec: ProviderSpec | None = None, api_key: str | None = None,
                 api_base: str = OPENROUTER_API_BASE, *, referer: str | None = None,
                 title: str | None = None, **kwargs: Any):
        spec = spec or ProviderSpec("openrouter", OPENROUTER_MODELS[GENERAL], OPENROUTER_MODELS)
        super().__init__(spec, api_key, api_base, **kwargs)
        self.referer = referer
        self.title = title

    def _url(self, model: str, stream: bool) -> str:
        return f"{self.api_base}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.title:
            headers["X-Title"] = self.title
        return headers

    def _payload(self, conversation: Conversation, model: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in conversation],
        }
        if stream:
            payload["stream"] = True
        return payload

    def _parse_response(self, data: dict[str, Any]) -> str:
        self._raise_for_error_body(data)
        return data["choices"][0]["message"]["content"] or ""

    def _parse_chunk(self, data: dict[str, Any]) -> str:
        self._raise_for_error_body(data)
        choices = data.get("choices") or []
        if not choices:
            return ""
        if choices[0].get("finish_reason") == "error":
            raise ProviderError(self.name, "stream ended with finish_reason=error")
        return choices[0].get("delta", {}).get("content") or ""
