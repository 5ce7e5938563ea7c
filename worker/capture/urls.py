"""
URL normalization and cache-key derivation for captures.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from shared.errors import InvalidURL
from worker.capture.models import CaptureOptions

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}


def _netloc(parts) -> str:
    host = (parts.hostname or "").lower()
    if ":" in host:
        # IPv6 literal
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError as e:
        raise InvalidURL("Invalid URL") from e
    if port is not None and port != DEFAULT_PORTS[parts.scheme.lower()]:
        host = f"{host}:{port}"
    userinfo = ""
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        userinfo += "@"
    return userinfo + host


def normalize_url(raw: str) -> str:
    """
    Canonicalize a URL for capture and cache lookup.

    - Requires an absolute http(s) URL with a host (InvalidURL otherwise)
    - Drops the fragment, lowercases scheme and host, drops default ports
    - A bare root with no query collapses to the origin (no trailing slash)

    Examples:
        https://Example.com/#top -> https://example.com
        https://example.com/a/?b=1 -> https://example.com/a/?b=1
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURL("Invalid URL")

    try:
        parts = urlsplit(raw.strip())
    except ValueError as e:
        raise InvalidURL("Invalid URL") from e

    scheme = parts.scheme.lower()
    if not scheme or not parts.netloc:
        raise InvalidURL("Invalid URL")
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURL("URL protocol must be http or https")
    if not parts.hostname:
        raise InvalidURL("Invalid URL")

    netloc = _netloc(parts)
    if parts.path in ("", "/") and not parts.query:
        return f"{scheme}://{netloc}"

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def build_cache_key(url: str, options: CaptureOptions) -> str:
    """
    Build the cache/dedup key: normalized URL, sorted patterns, idle token.

    Pattern order does not matter; no patterns is the "none" sentinel.
    """
    patterns = "|".join(sorted(options.block_patterns)) or "none"
    idle = "idle" if options.waits_for_network_idle else "no-idle"
    return f"{normalize_url(url)}|{patterns}|{idle}"
