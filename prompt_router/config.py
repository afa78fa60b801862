"""Environment-driven settings for prompt-router."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv
from loguru import logger

from prompt_router.aliases import (
    CODING,
    FALLBACK,
    GEMINI_MODELS,
    GENERAL,
    OPENROUTER_MODELS,
    REGIONAL,
    SCIENCE,
    resolve_model,
)
from prompt_router.models import ProviderSpec
from prompt_router.providers import GEMINI_API_BASE, OPENROUTER_API_BASE

DEFAULT_MAX_PROMPT_CHARS = 6000


def _int(env: dict[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float(env: dict[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _model(env: dict[str, str], name: str, default: str) -> str:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return resolve_model(raw)
    except ValueError as e:
        raise ValueError(f"{name}: {e}") from None


@dataclass
class RouterSettings:
    """API credentials, limits and model tables for one router instance."""

    gemini_api_key: str | None = None
    openrouter_api_key: str | None = None
    gemini_api_base: str = GEMINI_API_BASE
    openrouter_api_base: str = OPENROUTER_API_BASE
    openrouter_referer: str | None = None
    openrouter_title: str | None = "AI Router"
    max_prompt_chars: int | None = DEFAULT_MAX_PROMPT_CHARS
    max_retries: int = 3
    backoff_base_s: float = 1.0
    http_timeout_s: float = 60.0
    gemini_models: dict[str, str] = field(default_factory=lambda: dict(GEMINI_MODELS))
    openrouter_models: dict[str, str] = field(default_factory=lambda: dict(OPENROUTER_MODELS))

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None, dotenv: bool = True) -> RouterSettings:
        """Build settings from ``env`` (default: ``os.environ`` after loading ``.env``).

        Raises:
            ValueError: If a numeric setting or model override is invalid.
        """
        if env is None:
            if dotenv:
                load_dotenv()
            env = dict(os.environ)

        max_chars = _int(env, "ROUTER_MAX_PROMPT_CHARS", DEFAULT_MAX_PROMPT_CHARS)
        max_retries = _int(env, "ROUTER_MAX_RETRIES", 3)
        if max_retries < 1:
            raise ValueError(f"ROUTER_MAX_RETRIES must be at least 1, got {max_retries}")

        gemini_model = env.get("GEMINI_MODEL", "").strip()
        gemini_models = dict(GEMINI_MODELS)
        if gemini_model:
            gemini_models = {key: gemini_model for key in (GENERAL, REGIONAL, SCIENCE)}

        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            openrouter_api_key=env.get("OPEN_ROUTER_API_KEY") or None,
            gemini_api_base=env.get("GEMINI_API_BASE") or GEMINI_API_BASE,
            openrouter_api_base=env.get("OPENROUTER_API_BASE") or OPENROUTER_API_BASE,
            openrouter_referer=env.get("OPENROUTER_REFERER") or None,
            openrouter_title=env.get("OPENROUTER_TITLE", "AI Router") or None,
            max_prompt_chars=max_chars if max_chars > 0 else None,
            max_retries=max_retries,
            backoff_base_s=_float(env, "ROUTER_BACKOFF_BASE_S", 1.0),
            http_timeout_s=_float(env, "ROUTER_HTTP_TIMEOUT_S", 60.0),
            gemini_models=gemini_models,
            openrouter_models={
                CODING: _model(env, "OPENROUTER_CODING_MODEL", OPENROUTER_MODELS[CODING]),
                GENERAL: _model(env, "OPENROUTER_GENERAL_MODEL", OPENROUTER_MODELS[GENERAL]),
                SCIENCE: _model(env, "OPENROUTER_SCIENCE_MODEL", OPENROUTER_MODELS[SCIENCE]),
                FALLBACK: _model(env, "OPENROUTER_FALLBACK_MODEL", OPENROUTER_MODELS[FALLBACK]),
            },
        )

    def gemini_spec(self) -> ProviderSpec:
        return ProviderSpec(
            "gemini", self.gemini_models[GENERAL], dict(self.gemini_models),
            max_retries=self.max_retries, backoff_base_s=self.backoff_base_s,
        )

    def openrouter_spec(self) -> ProviderSpec:
        return ProviderSpec(
            "openrouter", self.openrouter_models[GENERAL], dict(self.openrouter_models),
            max_retries=self.max_retries, backoff_base_s=self.backoff_base_s,
        )

    def warn_missing_credentials(self) -> list[str]:
        """Log a warning per missing API key. Calls to that provider will fail."""
        missing = []
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if not self.openrouter_api_key:
            missing.append("OPEN_ROUTER_API_KEY")
        for name in missing:
            logger.warning(f"{name} is not set; requests to that provider will fail")
        return missing
