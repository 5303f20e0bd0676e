"""Provider factory: the configured vision provider, or the mock when it cannot be used."""

from __future__ import annotations

import logging

from app.core.config import get_settings

from .base import BaseProvider, ImageInput, ProviderError, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "BaseProvider",
    "ImageInput",
    "ProviderError",
    "ProviderResult",
    "MockProvider",
]

# provider -> settings attribute holding its API key
_API_KEY_SETTINGS = {
    "openai": "openai_api_key",
    "claude": "anthropic_api_key",
}


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    Falls back to ``MockProvider`` (with a warning) when the provider is not
    allow-listed, unknown, or has no API key. Production startup refuses a
    mock configuration, so the fallback only ever serves development.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name == "mock":
        return MockProvider()
    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist - falling back to mock", name)
        return MockProvider()
    if name not in _API_KEY_SETTINGS:
        logger.warning("Unknown provider %r - falling back to mock", name)
        return MockProvider()

    api_key = getattr(settings, _API_KEY_SETTINGS[name])
    if not api_key:
        logger.warning("No API key for provider %r - falling back to mock", name)
        return MockProvider()

    if name == "claude":
        from .claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key)

    from .openai import OpenAIProvider

    return OpenAIProvider(api_key=api_key)
