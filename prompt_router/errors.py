"""Exception types raised by prompt-router."""

from __future__ import annotations

from enum import Enum


class RouterError(Exception):
    """Base class for all prompt-router errors."""


class InvalidInputError(RouterError, ValueError):
    """Conversation is empty or malformed. Never retried."""


class PromptTooLongError(RouterError, ValueError):
    """Conversation exceeds the configured character limit. Never retried."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Prompt is {length} characters, limit is {limit}")


class ErrorKind(str, Enum):
    """Diagnostic category of a provider failure."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ProviderError(RouterError):
    """A provider call failed (after the adapter's retries, when raised by invoke)."""

    def __init__(
        self,
        provider: str,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: int | None = None,
    ):
        self.provider = provider
        self.message = message
        self.kind = kind
        self.status_code = status_code
        super().__init__(f"{provider} {kind.value}: {message}")


class AllProvidersFailedError(RouterError):
    """Primary route and fallback both failed."""

    def __init__(self, message: str, error: str = ""):
        self.message = message
        self.error = error
        super().__init__(f"{message} ({error})" if error else message)
