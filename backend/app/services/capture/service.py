"""Screenshot acquisition: capture through a backend, classify failures, recompress."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.core.config import Settings, get_settings
from app.core.errors import CaptureFailure, CaptureFailureKind
from app.core.image_processing import ImageDecodeError, ProcessedImage, recompress_screenshot

from .backends import BaseCaptureBackend

logger = logging.getLogger(__name__)

# Extra time on top of the navigation timeout for browser launch and the screenshot itself.
DEADLINE_GRACE_SECONDS = 15.0


@dataclass
class CaptureOptions:
    timeout_seconds: float = 30.0
    delay_seconds: float = 2.0
    viewport_width: int = 1440
    viewport_height: int = 900
    max_width: int = 1280
    max_height: int = 8000
    quality: int = 80

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CaptureOptions":
        settings = settings or get_settings()
        return cls(
            timeout_seconds=settings.capture_timeout_seconds,
            delay_seconds=settings.capture_delay_seconds,
            viewport_width=settings.capture_viewport_width,
            viewport_height=settings.capture_viewport_height,
            max_width=settings.screenshot_max_width,
            max_height=settings.screenshot_max_height,
            quality=settings.screenshot_quality,
        )


class ScreenshotAcquirer:
    """Wraps one backend. Every failure leaves as a ``CaptureFailure``."""

    def __init__(self, backend: BaseCaptureBackend, options: CaptureOptions | None = None) -> None:
        self.backend = backend
        self.options = options or CaptureOptions()

    async def capture(self, url: str) -> ProcessedImage:
        opts = self.options
        try:
            result = await asyncio.wait_for(
                self.backend.capture(
                    url,
                    timeout_seconds=opts.timeout_seconds,
                    delay_seconds=opts.delay_seconds,
                    viewport_width=opts.viewport_width,
                    viewport_height=opts.viewport_height,
                ),
                timeout=opts.timeout_seconds + DEADLINE_GRACE_SECONDS,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Capture deadline exceeded for %s (backend=%s)", url, self.backend.name)
            raise CaptureFailure(CaptureFailureKind.TIMEOUT, "capture deadline exceeded") from exc
        except Exception as exc:
            kind = self.backend.classify(exc)
            logger.warning(
                "Capture failed for %s (backend=%s, kind=%s): %s",
                url,
                self.backend.name,
                kind.value,
                exc,
            )
            raise CaptureFailure(kind, str(exc)) from exc

        try:
            return await asyncio.to_thread(
                recompress_screenshot,
                result.data,
                max_width=opts.max_width,
                max_height=opts.max_height,
                quality=opts.quality,
            )
        except ImageDecodeError as exc:
            logger.warning("Backend %s returned an undecodable image for %s", self.backend.name, url)
            raise CaptureFailure(CaptureFailureKind.BLOCKED, str(exc)) from exc
