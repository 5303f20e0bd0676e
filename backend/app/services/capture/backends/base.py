"""Abstract base for all screenshot backends."""

from __future__ import annotations

import abc
from dataclasses import dataclass

from app.core.errors import CaptureFailureKind

_UNRESOLVABLE_MARKERS = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_NAME_RESOLUTION_FAILED",
    "NS_ERROR_UNKNOWN_HOST",
)
_TIMEOUT_MARKERS = (
    "Navigation timeout",
    "Timeout",
    "ERR_TIMED_OUT",
)


@dataclass(frozen=True)
class CaptureResult:
    """Immutable result returned by every backend."""

    data: bytes
    content_type: str
    backend: str
    latency_ms: float = 0.0


class BaseCaptureBackend(abc.ABC):
    """Contract that every screenshot backend must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def capture(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        delay_seconds: float = 0.0,
        viewport_width: int = 1440,
        viewport_height: int = 900,
    ) -> CaptureResult:
        """Take a full-page screenshot of *url* with animations disabled."""

    def classify(self, exc: BaseException) -> CaptureFailureKind:
        """Map a backend-specific error to one of the three capture failure kinds."""
        message = str(exc)
        if any(marker in message for marker in _UNRESOLVABLE_MARKERS):
            return CaptureFailureKind.UNRESOLVABLE
        if isinstance(exc, TimeoutError) or any(marker in message for marker in _TIMEOUT_MARKERS):
            return CaptureFailureKind.TIMEOUT
        return CaptureFailureKind.BLOCKED
