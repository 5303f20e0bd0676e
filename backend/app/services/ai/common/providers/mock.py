"""Mock provider: deterministic responses for tests and fallback."""

from __future__ import annotations

import json
import time
from typing import Any

from .base import BaseProvider, ImageInput, ProviderResult

MOCK_CRITIQUE: dict[str, Any] = {
    "verdict": 42,
    "mayhemMeter": 7,
    "profile": "The Carousel Kingpin",
    "openingStatement": "This homepage greets visitors with three competing headlines and no clear way forward.",
    "caseFiles": (
        "Exhibit A is the hero section, where a rotating carousel cycles through five slides faster "
        "than anyone can read them. Exhibit B is the navigation bar, which hides the single most "
        "important action behind a hamburger menu on a desktop screen. Exhibit C is the body copy, "
        "set in light grey on a slightly lighter grey, as if the text were ashamed of itself. "
        "The testimonials are stock photos with names that are clearly placeholders, and the footer "
        "repeats the entire navigation twice for reasons known only to the defendant."
    ),
    "spiritAnimal": "A caffeinated squirrel running a slideshow",
    "rehabilitationProgram": {
        "priorityDirective": (
            "Replace the carousel with one static hero that states what the site offers and shows a "
            "single primary call to action above the fold."
        ),
        "correctiveActions": [
            {"offense": "Auto-rotating hero carousel", "remedy": "Use one static hero with one message."},
            {"offense": "Low-contrast body text", "remedy": "Raise text contrast to at least WCAG AA."},
            {"offense": "Hidden primary navigation on desktop", "remedy": "Show the main links inline."},
            {"offense": "Placeholder testimonials", "remedy": "Use real customer quotes with photos."},
        ],
    },
}


class MockProvider(BaseProvider):
    name = "mock"

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = payload if payload is not None else MOCK_CRITIQUE

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
        t0 = time.monotonic()
        text = json.dumps(self._payload)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
