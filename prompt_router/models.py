"""Core data models for prompt-router."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from prompt_router.errors import InvalidInputError

ROLES = ("user", "assistant")

TokenCallback = Callable[[str], None]


class Category(str, Enum):
    """Routing category derived from the last message of a conversation."""

    REGIONAL = "regional-language"
    CODING = "coding"
    SCIENCE_DUAL = "science-dual"
    GENERAL = "general"


@dataclass(frozen=True)
class Message:
    """A single conversation turn."""
    role: str
    content: str


Conversation = list[Message]
ConversationInput = Union[str, Sequence[Union[Message, Mapping[str, Any]]]]


def _content_text(content: Any) -> str:
    """Flatten string or multi-part content into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return " ".join(parts)
    return ""


def normalize_conversation(raw: ConversationInput) -> Conversation:
    """Turn a prompt string or a list of messages into a Conversation.

    A bare string becomes a one-message conversation with role ``user``.
    Raises InvalidInputError for an empty conversation, an unknown role or
    a last message without any text.
    """
    if isinstance(raw, str):
        raw = [Message("user", raw)]
    if not isinstance(raw, Sequence) or not raw:
        raise InvalidInputError("conversation must contain at least one message")

    conversation: Conversation = []
    for i, item in enumerate(raw):
        if isinstance(item, Message):
            role, content = item.role, item.content
        elif isinstance(item, Mapping):
            role, content = item.get("role"), _content_text(item.get("content"))
        else:
            raise InvalidInputError(f"message {i} is not a mapping: {type(item).__name__}")
        if role not in ROLES:
            raise InvalidInputError(f"message {i} has unsupported role {role!r}")
        if not isinstance(content, str):
            raise InvalidInputError(f"message {i} content is not text")
        conversation.append(Message(role, content))

    if not conversation[-1].content.strip():
        raise InvalidInputError("last message has no text to route")
    return conversation


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one LLM backend.

    ``models`` maps a route key ("general", "coding", "science",
    "fallback", ...) to the model identifier used for that route.
    """
    name: str
    model: str
    models: Mapping[str, str] = field(default_factory=dict)
    max_retries: int = 3
    backoff_base_s: float = 1.0

    def model_for(self, key: str) -> str:
        return self.models.get(key, self.model)


@dataclass(frozen=True)
class InvocationResult:
    """Settled outcome of one adapter call (after its retries)."""
    provider: str
    text: str | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LLMProvider(ABC):
    """Abstract base class for LLM provider adapters."""

    def __init__(self, spec: ProviderSpec):
        self.spec = spec

    @abstractmethod
    async def invoke(
        self,
        conversation: Conversation,
        model: str | None = None,
        on_token: TokenCallback | None = None,
    ) -> str:
        """Send the conversation and return the reply text.

        Raises ProviderError once all retries are exhausted.
        """
        ...

    @property
    def name(self) -> str:
        return self.spec.name
