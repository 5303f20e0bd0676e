"""Headless Chromium backend driven by Playwright."""

from __future__ import annotations

import logging
import time

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from app.core.errors import CaptureFailureKind

from .base import BaseCaptureBackend, CaptureResult

logger = logging.getLogger(__name__)

_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
]


class PlaywrightBackend(BaseCaptureBackend):
    name = "playwright"

    def __init__(self, *, user_agent: str | None = None) -> None:
        self._user_agent = user_agent

    async def capture(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        delay_seconds: float = 0.0,
        viewport_width: int = 1440,
        viewport_height: int = 900,
    ) -> CaptureResult:
        timeout_ms = timeout_seconds * 1000
        t0 = time.monotonic()

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=_LAUNCH_ARGS)
            try:
                context = await browser.new_context(
                    viewport={"width": viewport_width, "height": viewport_height},
                    user_agent=self._user_agent,
                    reduced_motion="reduce",
                )
                page = await context.new_page()
                await page.goto(url, wait_until="load", timeout=timeout_ms)
                if delay_seconds > 0:
                    await page.wait_for_timeout(delay_seconds * 1000)
                data = await page.screenshot(
                    full_page=True,
                    type="png",
                    animations="disabled",
                    timeout=timeout_ms,
                )
            finally:
                await browser.close()

        elapsed = (time.monotonic() - t0) * 1000
        logger.info("Captured %s in %.0f ms (%d bytes)", url, elapsed, len(data))
        return CaptureResult(
            data=data,
            content_type="image/png",
            backend=self.name,
            latency_ms=round(elapsed, 2),
        )

    def classify(self, exc: BaseException) -> CaptureFailureKind:
        if isinstance(exc, PlaywrightTimeoutError) and "ERR_NAME" not in str(exc):
            return CaptureFailureKind.TIMEOUT
        return super().classify(exc)
