"""AI run audit: one structured log line per successful provider call.

Prompt and response are hashed so runs can be correlated without keeping the
text. Raw text is added only when ``AI_DEBUG_STORE_RAW=true``.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from app.core.config import get_settings

from .providers.base import ProviderResult

logger = logging.getLogger("app.audit.ai")

SCOPE_ACTIONS: dict[str, str] = {
    "critique": "AI_CRITIQUE_GENERATED",
}


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_ai_run_metadata(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    result = provider_result
    metadata: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": result.provider,
        "model": result.model,
        "tokens": {"prompt": result.prompt_tokens, "completion": result.completion_tokens},
        "latency_ms": result.latency_ms,
        "prompt_hash": _sha256(prompt_text),
        "response_hash": _sha256(result.raw_text),
        **(extra_meta or {}),
    }
    if get_settings().ai_debug_store_raw:
        metadata.update(prompt_raw=prompt_text, response_raw=result.raw_text)
    return metadata


def log_ai_run(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    metadata = build_ai_run_metadata(
        scope=scope,
        provider_result=provider_result,
        prompt_text=prompt_text,
        extra_meta=extra_meta,
    )
    logger.info(
        "%s provider=%s model=%s latency_ms=%.0f tokens=%s",
        metadata["action"],
        metadata["provider"],
        metadata["model"],
        metadata["latency_ms"],
        metadata["tokens"],
        extra={"ai_run": metadata},
    )
    return metadata
