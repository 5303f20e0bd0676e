"""Critique generation: one schema-constrained vision request, validated locally.

The provider's strict-schema flag is treated as a hint. Every response is
decoded and validated against ``CritiqueResult`` here; any failure becomes a
``GenerationFailure`` whose cause goes to the log only. No retries.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from app.core.errors import GenerationFailure

from ..common import router as ai_router
from ..common.audit import log_ai_run
from ..common.json_tools import JSONDecodeFailure, decode_json_object
from ..common.providers.base import BaseProvider, ImageInput, ProviderError, ProviderResult
from .contracts import CRITIQUE_JSON_SCHEMA, CRITIQUE_SCHEMA_NAME, CritiqueResult

logger = logging.getLogger(__name__)

CRITIQUE_PROMPT = (
    "You are a witty and sarcastic web design expert. Produce a witty, sarcastic, but "
    "constructive critique of this website screenshot and return it in the specified JSON "
    "format. Your roast should be funny but your advice must be genuinely helpful. "
    "Cover design, content, usability and lead conversion."
)


class CritiqueGenerator:
    """Turns screenshot bytes into a validated ``CritiqueResult``."""

    def __init__(
        self,
        provider: BaseProvider,
        *,
        model: str = "",
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls) -> "CritiqueGenerator":
        config = ai_router.resolve("critique")
        return cls(
            config.provider,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_seconds=config.timeout_seconds,
        )

    async def analyze(self, image_bytes: bytes, *, media_type: str = "image/jpeg") -> CritiqueResult:
        try:
            provider_result = await self.provider.generate(
                CRITIQUE_PROMPT,
                image=ImageInput(data=image_bytes, media_type=media_type),
                json_schema=CRITIQUE_JSON_SCHEMA,
                schema_name=CRITIQUE_SCHEMA_NAME,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_seconds=self.timeout_seconds,
            )
        except ProviderError as exc:
            logger.error(
                "Critique provider %s failed with HTTP %s: %s",
                exc.provider,
                exc.status_code,
                exc.body,
            )
            raise GenerationFailure(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Critique provider %s transport error: %r", self.provider.name, exc)
            raise GenerationFailure(f"transport error: {exc!r}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.exception("Critique provider %s returned an unexpected envelope", self.provider.name)
            raise GenerationFailure(f"unexpected provider envelope: {exc!r}") from exc

        critique = self.validate(provider_result)

        log_ai_run(
            scope="critique",
            provider_result=provider_result,
            prompt_text=CRITIQUE_PROMPT,
            extra_meta={"image_bytes": len(image_bytes)},
        )
        return critique

    def validate(self, provider_result: ProviderResult) -> CritiqueResult:
        """Decode and schema-check the raw model output."""
        try:
            parsed = decode_json_object(provider_result.raw_text)
        except JSONDecodeFailure as exc:
            logger.error(
                "Critique from %s/%s is not JSON: %s",
                provider_result.provider,
                provider_result.model,
                exc,
            )
            raise GenerationFailure(str(exc)) from exc

        try:
            return CritiqueResult.model_validate(parsed)
        except ValidationError as exc:
            logger.error(
                "Critique from %s/%s failed schema validation: %s",
                provider_result.provider,
                provider_result.model,
                exc,
            )
            raise GenerationFailure("critique failed schema validation") from exc
