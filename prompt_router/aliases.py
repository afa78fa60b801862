"""Model tables per provider and short-name alias resolution.

The tables map a route key to the model identifier each provider uses
for that route. Config overrides may use the short names below.
"""

from __future__ import annotations

# Route keys used by the router when asking a provider for a model.
GENERAL = "general"
REGIONAL = "regional"
CODING = "coding"
SCIENCE = "science"
FALLBACK = "fallback"

OPENROUTER_MODELS: dict[str, str] = {
    CODING: "deepseek/deepseek-coder",
    GENERAL: "google/gemma-2-9b-it:free",
    SCIENCE: "meta-llama/llama-3.1-8b-instruct:free",
    FALLBACK: "mistralai/mistral-7b-instruct:free",
}

GEMINI_MODELS: dict[str, str] = {
    GENERAL: "gemini-pro",
    REGIONAL: "gemini-pro",
    SCIENCE: "gemini-pro",
}

# Short name → full OpenRouter model identifier.
# Keep sorted by short name for readability.
MODEL_ALIASES: dict[str, str] = {
    "deepseek": "deepseek/deepseek-chat",
    "deepseek-coder": "deepseek/deepseek-coder",
    "gemma": "google/gemma-2-9b-it:free",
    "gpt4mini": "openai/gpt-4o-mini",
    "llama": "meta-llama/llama-3.1-8b-instruct:free",
    "mistral": "mistralai/mistral-7b-instruct:free",
    "qwen-coder": "qwen/qwen-2.5-coder-32b-instruct",
}


def _normalize(s: str) -> str:
    """Strip hyphens, underscores, spaces, dots and lowercase."""
    return s.lower().replace("-", "").replace("_", "").replace(" ", "").replace(".", "")


_BY_NORMALIZED = {_normalize(key): key for key in MODEL_ALIASES}


def resolve_model(raw: str) -> str:
    """Expand a configured model name into a full OpenRouter identifier.

    Names containing '/' are full ids and pass through unchanged. Otherwise
    the name must be a short alias, compared without case or separators.

    Raises:
        ValueError: If the name is neither a full id nor a known alias.
    """
    raw = raw.strip()
    if "/" in raw:
        return raw
    key = _BY_NORMALIZED.get(_normalize(raw))
    if key is None:
        valid = ", ".join(sorted(MODEL_ALIASES))
        raise ValueError(f"Unknown model '{raw}'. Use a full id like 'vendor/model' or one of: {valid}")
    return MODEL_ALIASES[key]
