# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers for stream probing."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

MAX_STREAM_URL_LENGTH = 500
ALLOWED_SCHEMES = ("http", "https")

HOSTNAME_RE = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$")
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

STREAM_PATH_SUFFIXES = ("/stream", "/stream/")
PAGE_PATH_SUFFIXES = ("/index.html", "/index.htm", "/playlist.m3u", "/listen.pls", "/stream.mp3", "/radio.aac")

LOCAL_STREAM_ADVISORY = "Local streams may not be accessible from all devices"
PLAIN_HTTP_ADVISORY = "HTTP streams may have security implications. Consider using HTTPS if available."


@dataclass(frozen=True)
class UrlValidation:
    is_valid: bool
    error: str | None = None
    corrected_url: str | None = None
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class UrlCorrection:
    corrected: str
    reason: str | None = None

    @property
    def changed(self) -> bool:
        return self.reason is not None


def correct_stream_url_format(url: str) -> UrlCorrection:
    """
    Strip path endings that point at a player page or playlist instead of the mount.

    A URL without a scheme is read as https. Unparseable URLs come back unchanged.

    Example:
      correct_stream_url_format("http://radio.example:8000/stream").corrected -> "http://radio.example:8000/"
    """
    raw = str(url or "").strip()
    try:
        parts = urlsplit(raw if _SCHEME_RE.match(raw) else f"https://{raw}")
    except ValueError:
        return UrlCorrection(raw)

    path = parts.path
    reason = None
    for suffix in STREAM_PATH_SUFFIXES:
        if path.endswith(suffix):
            path = path[: -len(suffix)]
            reason = f'Removed "{suffix}" suffix: the base URL format is recommended for better compatibility'
            break
    for suffix in PAGE_PATH_SUFFIXES:
        if path.endswith(suffix):
            path = path[: -len(suffix)]
            reason = f'Removed "{suffix}": the base URL format is recommended for streaming compatibility'
            break

    if reason is None:
        return UrlCorrection(raw)
    if not path.endswith("/"):
        path += "/"
    return UrlCorrection(parts._replace(path=path).geturl(), reason)


def _ip_address(hostname: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        return None


def is_local_hostname(hostname: str) -> bool:
    address = _ip_address(hostname)
    if address is None:
        return hostname.lower() == "localhost"
    return address.is_private or address.is_loopback or address.is_link_local


def _advisories(raw: str, scheme: str, hostname: str) -> tuple[str | None, tuple[str, ...]]:
    suggestions: list[str] = []
    correction = correct_stream_url_format(raw)
    if correction.changed:
        suggestions.append(f"Suggested URL: {correction.corrected}")
        suggestions.append(correction.reason)
    if is_local_hostname(hostname):
        suggestions.append(LOCAL_STREAM_ADVISORY)
    if scheme == "http":
        suggestions.append(PLAIN_HTTP_ADVISORY)
    return (correction.corrected if correction.changed else None), tuple(suggestions)


def validate_stream_url(url: str) -> UrlValidation:
    """
    Check that a stream URL is an absolute http(s) URL with a well-formed hostname.

    Valid URLs may still carry advisory ``suggestions``: a corrected URL for
    player-page or playlist paths, a note on local hosts, and a plain-HTTP note.

    Example:
      validate_stream_url("ftp://host/x").error -> "Stream URL must use HTTP or HTTPS protocol"
    """
    raw = str(url or "").strip()
    if not raw:
        return UrlValidation(False, "Stream URL is required")
    try:
        parts = urlsplit(raw)
        hostname = parts.hostname
        # Accessing .port raises ValueError for out-of-range or non-numeric ports.
        parts.port  # noqa: B018
    except ValueError:
        return UrlValidation(False, "Invalid URL format")

    if not parts.scheme:
        return UrlValidation(False, "Invalid URL format")
    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return UrlValidation(False, "Stream URL must use HTTP or HTTPS protocol")
    if len(raw) > MAX_STREAM_URL_LENGTH:
        return UrlValidation(False, f"Stream URL cannot exceed {MAX_STREAM_URL_LENGTH} characters")
    if not hostname:
        return UrlValidation(False, "Stream URL must have a valid hostname")
    if _ip_address(hostname) is None and not HOSTNAME_RE.match(hostname):
        return UrlValidation(False, "Invalid hostname format")

    corrected_url, suggestions = _advisories(raw, scheme, hostname)
    return UrlValidation(True, corrected_url=corrected_url, suggestions=suggestions)


def redact_url(url: str) -> str:
    """Drop userinfo from a URL before it is logged."""
    try:
        parts = urlsplit(str(url or ""))
    except ValueError:
        return str(url or "")
    if not parts.username and not parts.password:
        return parts.geturl()
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return parts._replace(netloc=netloc).geturl()


__all__ = [
    "MAX_STREAM_URL_LENGTH",
    "UrlCorrection",
    "UrlValidation",
    "correct_stream_url_format",
    "is_local_hostname",
    "redact_url",
    "validate_stream_url",
]
