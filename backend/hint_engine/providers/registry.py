from __future__ import annotations

import logging
from typing import Callable

from core import config
from hint_engine.providers.anthropic_provider import AnthropicProvider
from hint_engine.providers.base import LLMProvider
from hint_engine.providers.gemini_provider import GeminiProvider
from hint_engine.providers.openai_provider import OpenAIProvider

logger = logging.getLogger("hint_engine.providers.registry")

ProviderFactory = Callable[[], LLMProvider]

PROVIDER_FACTORIES: dict[str, ProviderFactory] = {
    "openai": lambda: OpenAIProvider(api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL),
    "anthropic": lambda: AnthropicProvider(api_key=config.ANTHROPIC_API_KEY, model=config.ANTHROPIC_MODEL),
    "gemini": lambda: GeminiProvider(api_key=config.GEMINI_API_KEY, model=config.GEMINI_MODEL),
}

_ALIASES = {
    "claude": "anthropic",
    "google": "gemini",
}


def build_provider(name: str | None = None) -> LLMProvider | None:
    """Look up the configured provider; None when nothing usable is configured."""
    key = str(name or config.LLM_PROVIDER or "").strip().lower()
    key = _ALIASES.get(key, key)
    factory = PROVIDER_FACTORIES.get(key)
    if factory is None:
        logger.warning("unknown LLM provider %r", key)
        return None

    provider = factory()
    if not provider.configured:
        logger.warning("LLM provider %s has no API key", key)
        return None
    return provider
