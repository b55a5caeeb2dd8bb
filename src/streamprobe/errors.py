# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from collections.abc import Iterator
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    DNS_ERROR = "DNS_ERROR"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    INVALID_URL = "INVALID_URL"
    HTTP_STATUS = "HTTP_STATUS"
    NOT_AUDIO = "NOT_AUDIO"
    METADATA_UNSUPPORTED = "METADATA_UNSUPPORTED"
    METADATA_MALFORMED = "METADATA_MALFORMED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class StreamTransportError(Exception):
    """Raised by streaming HTTP clients for transport-level failures."""

    def __init__(self, category: ErrorCategory, message: str):
        super().__init__(message)
        self.category = category
        self.message = message


_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.

    httpx wraps resolver and TLS failures in ConnectError, so the cause chain
    is inspected before falling back to the httpx class.
    """
    if isinstance(exc, StreamTransportError):
        return exc.category

    for item in _exception_chain(exc):
        if isinstance(item, (httpx.TimeoutException, socket.timeout, TimeoutError)):
            return ErrorCategory.TIMEOUT
        if isinstance(item, (ssl_module.SSLError, ssl_module.CertificateError)):
            return ErrorCategory.SSL_ERROR
        if isinstance(item, (socket.gaierror, socket.herror)):
            return ErrorCategory.DNS_ERROR

    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return ErrorCategory.INVALID_URL

    if isinstance(exc, httpx.ConnectError):
        text = str(exc).lower()
        if any(marker in text for marker in _DNS_MARKERS):
            return ErrorCategory.DNS_ERROR
        if "ssl" in text or "certificate" in text:
            return ErrorCategory.SSL_ERROR
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (httpx.TransportError, httpx.StreamError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Connection timeout",
        ErrorCategory.DNS_ERROR: "DNS resolution failed",
        ErrorCategory.SSL_ERROR: "TLS/certificate error",
        ErrorCategory.CONNECTION_ERROR: "Network error",
        ErrorCategory.INVALID_URL: "Invalid stream URL",
        ErrorCategory.HTTP_STATUS: "Unexpected HTTP status",
        ErrorCategory.NOT_AUDIO: "Not an audio stream",
        ErrorCategory.METADATA_UNSUPPORTED: "Metadata not supported by this server",
        ErrorCategory.METADATA_MALFORMED: "Malformed metadata block",
        ErrorCategory.UNKNOWN_ERROR: "Network error during probe",
        ErrorCategory.NONE: "",
        None: "",
    }
    return mapping.get(category, "Probe failed due to network error")


def describe_exception(exc: BaseException, *, timeout_s: float | None = None) -> str:
    """Human-readable message for a transport failure."""
    category = categorize_exception(exc)
    if category == ErrorCategory.TIMEOUT:
        if timeout_s:
            return f"Connection timeout ({timeout_s:g} seconds exceeded)"
        return "Connection timeout"
    if isinstance(exc, StreamTransportError):
        return exc.message
    detail = str(exc).strip() or type(exc).__name__
    return f"{error_category_to_reason(category)}: {detail}"


__all__ = [
    "ErrorCategory",
    "StreamTransportError",
    "categorize_exception",
    "describe_exception",
    "error_category_to_reason",
]
