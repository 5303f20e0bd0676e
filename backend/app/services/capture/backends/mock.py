"""Mock backend: deterministic screenshots for tests and local development."""

from __future__ import annotations

import io
import time

from PIL import Image, ImageDraw

from .base import BaseCaptureBackend, CaptureResult


class MockBackend(BaseCaptureBackend):
    name = "mock"

    def __init__(self, *, page_height: int = 2400) -> None:
        self._page_height = page_height

    async def capture(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        delay_seconds: float = 0.0,
        viewport_width: int = 1440,
        viewport_height: int = 900,
    ) -> CaptureResult:
        t0 = time.monotonic()
        img = Image.new("RGB", (viewport_width, max(viewport_height, self._page_height)), (245, 245, 245))
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, 0, viewport_width, 80), fill=(30, 30, 30))
        draw.text((24, 30), url[:120], fill=(255, 255, 255))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        elapsed = (time.monotonic() - t0) * 1000
        return CaptureResult(
            data=buf.getvalue(),
            content_type="image/png",
            backend=self.name,
            latency_ms=round(elapsed, 2),
        )
