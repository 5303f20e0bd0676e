"""Fixed-window rate limiting keyed by client IP.

Counters reset at fixed window boundaries, so a client can get up to twice
the nominal limit through by straddling a boundary. Counters live in this
process only; with several workers the limit applies per worker.
"""

import ipaddress
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from fastapi import Request

from app.core.config import get_settings

_MAX_BUCKETS = 50_000
_PRUNE_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        """Standard ``RateLimit-*`` response headers."""
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_seconds)
        return headers


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        max_buckets: int = _MAX_BUCKETS,
        prune_interval_seconds: int = _PRUNE_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # key -> (window_start, count)
        self._buckets: dict[str, tuple[float, int]] = {}
        self._lock = Lock()
        self._max_buckets = max_buckets
        self._prune_interval_seconds = max(1, int(prune_interval_seconds))
        self._last_prune_at = 0.0
        self._clock = clock

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Count one request for *key* and say whether it is admitted."""
        if limit <= 0 or window_seconds <= 0:
            return RateLimitDecision(allowed=True, limit=max(limit, 0), remaining=0, reset_seconds=0)
        now = self._clock()
        with self._lock:
            if len(self._buckets) > self._max_buckets or (now - self._last_prune_at) >= self._prune_interval_seconds:
                self._prune_stale(now, window_seconds)
                self._last_prune_at = now

            window_start, count = self._buckets.get(key, (now, 0))
            if now - window_start >= window_seconds:
                window_start, count = now, 0

            reset = max(0, math.ceil(window_start + window_seconds - now))
            if count >= limit:
                self._buckets[key] = (window_start, count)
                return RateLimitDecision(allowed=False, limit=limit, remaining=0, reset_seconds=reset)

            count += 1
            self._buckets[key] = (window_start, count)
            return RateLimitDecision(allowed=True, limit=limit, remaining=limit - count, reset_seconds=reset)

    def _prune_stale(self, now: float, window_seconds: int) -> None:
        """Remove buckets whose window has ended (called under lock)."""
        stale_keys = [key for key, (start, _) in self._buckets.items() if now - start >= window_seconds]
        for key in stale_keys:
            del self._buckets[key]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_prune_at = 0.0


rate_limiter = FixedWindowRateLimiter()


def ip_in_allowlist(ip: str, allowlist: list[str]) -> bool:
    if not ip:
        return False
    if ip in allowlist:
        return True
    try:
        ip_obj = ipaddress.ip_address(ip)
    except ValueError:
        return False
    for entry in allowlist:
        try:
            if ip_obj in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def is_trusted_proxy_peer(request: Request, trusted_proxy_cidrs: Optional[list[str]] = None) -> bool:
    """Return True when the direct peer IP is in trusted proxy CIDRs."""
    peer_ip = request.client.host if request.client else None
    trusted = trusted_proxy_cidrs
    if trusted is None:
        trusted = get_settings().trusted_proxy_cidrs
    if not (peer_ip and trusted):
        return False
    return ip_in_allowlist(peer_ip, trusted)


def get_client_ip(request: Request, trusted_proxy_cidrs: Optional[list[str]] = None) -> Optional[str]:
    """Extract client IP from request.

    SECURITY: ``X-Real-IP`` and ``X-Forwarded-For`` are trusted only when
    the direct peer (``request.client.host``) is in ``TRUSTED_PROXY_CIDRS``.
    Otherwise forwarded headers are ignored to prevent spoofing.
    """
    peer_ip = request.client.host if request.client else None
    trusted = trusted_proxy_cidrs
    if trusted is None:
        trusted = get_settings().trusted_proxy_cidrs

    if is_trusted_proxy_peer(request, trusted):
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # Rightmost IP is the one added by the first trusted reverse proxy.
            parts = [p.strip() for p in forwarded.split(",") if p.strip()]
            if parts:
                return parts[-1]

    return peer_ip


def check_roast_rate_limit(request: Request) -> Optional[RateLimitDecision]:
    """Apply the ``POST /roast`` limit. ``None`` means the limit does not apply."""
    settings = get_settings()
    if not settings.rate_limit_roast_enabled:
        return None
    ip = get_client_ip(request) or "unknown"
    if ip_in_allowlist(ip, settings.rate_limit_allowlist):
        return None
    return rate_limiter.hit(
        f"roast:ip:{ip}",
        settings.rate_limit_roast_max,
        settings.rate_limit_roast_window_seconds,
    )
