"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


@dataclass(frozen=True)
class ImageInput:
    """Image attached to a generation request."""

    data: bytes
    media_type: str = "image/jpeg"


class ProviderError(Exception):
    """A provider answered with a non-success status.

    ``body`` keeps the provider's response text for the operational log; it is
    never shown to API callers.
    """

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"{provider} returned HTTP {status_code}")


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        image: ImageInput | None = None,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "Result",
        model: str = "",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout_seconds: float = 8.0,
    ) -> ProviderResult:
        """Send *prompt* (and optional *image*) and return a ``ProviderResult``.

        When *json_schema* is given the provider asks the model for output
        constrained to it. That constraint is best effort; callers validate.
        """
