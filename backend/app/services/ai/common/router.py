"""Per-scope provider selection from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.core.config import Settings, get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)

# scope -> (provider setting, model setting)
SCOPE_SETTINGS: dict[str, tuple[str, str]] = {
    "critique": ("ai_critique_provider", "ai_critique_model"),
}


@dataclass(frozen=True)
class ResolvedConfig:
    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def _pick_model(settings: Settings, provider_name: str, requested: str) -> str:
    """Keep *requested* if the provider has no model allowlist or it is on it."""
    allowed = settings.ai_allowed_models.get(provider_name)
    if not allowed:
        return requested
    if requested in allowed:
        return requested
    if requested:
        logger.warning("Model %r not allowed for %r, using %r", requested, provider_name, allowed[0])
    return allowed[0]


def resolve(scope: str) -> ResolvedConfig:
    """Build the provider and call parameters for *scope*.

    Unknown scopes and empty provider settings resolve to the mock provider.
    """
    settings = get_settings()
    provider_attr, model_attr = SCOPE_SETTINGS.get(scope, ("", ""))
    provider_name = (getattr(settings, provider_attr, "") if provider_attr else "").lower().strip() or "mock"
    requested_model = (getattr(settings, model_attr, "") if model_attr else "").strip()

    return ResolvedConfig(
        provider=get_provider(provider_name),
        model=_pick_model(settings, provider_name, requested_model),
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
    )
