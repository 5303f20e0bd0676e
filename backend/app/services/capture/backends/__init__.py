"""Backend factory: returns the configured screenshot backend or falls back to mock."""

from __future__ import annotations

import logging

from app.core.config import get_settings

from .base import BaseCaptureBackend, CaptureResult
from .mock import MockBackend

logger = logging.getLogger(__name__)

__all__ = ["get_capture_backend", "BaseCaptureBackend", "CaptureResult", "MockBackend"]


def get_capture_backend(backend_name: str | None = None) -> BaseCaptureBackend:
    """Return a backend instance for *backend_name* (default: ``CAPTURE_BACKEND``)."""
    name = (backend_name or get_settings().capture_backend).lower().strip()

    if name == "mock":
        return MockBackend()

    if name == "playwright":
        from .chromium import PlaywrightBackend

        return PlaywrightBackend()

    logger.warning("Unknown capture backend %r - falling back to mock", name)
    return MockBackend()
