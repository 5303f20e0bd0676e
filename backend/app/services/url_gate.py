"""URL gate: syntactic validation plus SSRF checks on the resolved address.

Residual risk: the address checked here is resolved again by the capture
backend, so a host that changes its DNS answer between the two lookups
(rebinding) is not caught. The capture backend must run network-restricted.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
from collections.abc import Awaitable, Callable
from urllib.parse import urlsplit

from app.core.errors import (
    URL_REQUIRED_MESSAGE,
    InputValidationError,
    PrivacyViolationError,
)

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = frozenset({"http", "https"})

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)
_TLD_RE = re.compile(r"^(?:[^\W\d_]{2,63}|xn--[a-z0-9-]{1,59})$", re.IGNORECASE)

Resolver = Callable[[str], Awaitable[list[str]]]


async def resolve_host(hostname: str) -> list[str]:
    """Resolve *hostname* to every address it maps to, without blocking the loop."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _is_valid_hostname(host: str) -> bool:
    if len(host) > 253:
        return False
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    tld = labels[-1]
    if not _TLD_RE.match(tld):
        return False
    try:
        ascii_labels = [label.encode("idna").decode("ascii") for label in labels[:-1]]
    except UnicodeError:
        return False
    return all(_LABEL_RE.match(label) for label in ascii_labels)


def parse_target_url(raw: object) -> str:
    """Check URL syntax only. Returns the hostname; raises ``InputValidationError``."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InputValidationError("empty url", public_message=URL_REQUIRED_MESSAGE)
    if not isinstance(raw, str):
        raise InputValidationError("url is not a string")
    if len(raw) > MAX_URL_LENGTH:
        raise InputValidationError(f"url longer than {MAX_URL_LENGTH} characters")
    if any(ch.isspace() for ch in raw):
        raise InputValidationError("url contains whitespace")

    try:
        parts = urlsplit(raw)
        host = parts.hostname
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as exc:
        raise InputValidationError(f"unparseable url: {exc}") from exc

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InputValidationError(f"scheme {parts.scheme!r} not allowed")
    if not host:
        raise InputValidationError("url has no host")
    if parts.username is not None or parts.password is not None:
        raise InputValidationError("credentials in url")
    if not (_is_ip_literal(host) or _is_valid_hostname(host)):
        raise InputValidationError(f"invalid host {host!r}")
    return host


def is_public_address(address: str) -> bool:
    """True only for globally routable unicast addresses.

    IPv4-mapped and 6to4 IPv6 addresses are judged by the IPv4 address they
    carry. Shared address space (100.64.0.0/10) is not global.
    """
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address):
        embedded = ip.ipv4_mapped or ip.sixtofour
        if embedded is not None:
            ip = embedded
    return ip.is_global and not (
        ip.is_unspecified
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_private
        or ip.is_reserved
    )


async def validate_target_url(raw: object, *, resolver: Resolver = resolve_host) -> str:
    """Validate *raw* and return it unchanged when it is safe to capture.

    Raises ``InputValidationError`` before any network call for bad syntax,
    and ``PrivacyViolationError`` when the host does not resolve or resolves
    to a non-public address.
    """
    host = parse_target_url(raw)

    try:
        addresses = await resolver(host)
    except (OSError, UnicodeError) as exc:
        logger.warning("URL gate: resolution failed for host=%s: %s", host, exc)
        raise PrivacyViolationError(f"resolution failed for {host}") from exc

    if not addresses:
        logger.warning("URL gate: no addresses for host=%s", host)
        raise PrivacyViolationError(f"no addresses for {host}")

    blocked = [addr for addr in addresses if not is_public_address(addr)]
    if blocked:
        logger.warning("URL gate: host=%s resolves to non-public %s", host, blocked)
        raise PrivacyViolationError(f"{host} resolves to non-public address")

    return str(raw)
