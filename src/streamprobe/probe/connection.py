# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Connection tester: is this URL a reachable audio stream?"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from ..config import HttpSettings, load_http_settings
from ..errors import ErrorCategory
from ..http.client import HttpClient, create_default_http_client
from ..http.headers import has_header_prefix
from ..http.models import HttpRequest, HttpResponse
from ..http.url import redact_url, validate_stream_url
from ..models.stream import StreamTestOutcome
from .budget import Clock, Deadline

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE_PREFIXES = ("audio/", "video/")
AUDIO_CONTENT_TYPES = ("application/ogg", "application/octet-stream")
STREAM_HEADER_PREFIXES = ("icy-", "ice-", "x-audiocast-")

# Statuses some stream servers send for a HEAD they do not implement.
HEAD_FALLBACK_STATUSES = frozenset({400, 403, 404, 405, 406, 500, 501, 502})

_STATUS_MESSAGES = {
    401: "Stream requires authentication",
    403: "Access to stream is forbidden",
    404: "Stream not found",
    410: "Stream no longer available",
}

# A request never gets less than this, even when the deadline is almost spent.
_MIN_REQUEST_TIMEOUT_S = 0.05


def is_audio_content_type(content_type: str | None, headers: Mapping[str, str] | None = None) -> bool:
    """
    True for audio MIME types, and for a missing content type on a response
    that carries ICY/Icecast headers.
    """
    if not content_type:
        return has_header_prefix(headers, STREAM_HEADER_PREFIXES)
    lowered = content_type.strip().lower()
    if lowered.startswith(AUDIO_CONTENT_TYPE_PREFIXES):
        return True
    return any(lowered.startswith(mime) for mime in AUDIO_CONTENT_TYPES)


def status_error_message(status_code: int, reason_phrase: str = "") -> str:
    if status_code in _STATUS_MESSAGES:
        return f"{_STATUS_MESSAGES[status_code]} (HTTP {status_code})"
    if 500 <= status_code <= 599:
        return f"Stream server error (HTTP {status_code})"
    suffix = f": {reason_phrase}" if reason_phrase else ""
    return f"Stream URL returned status {status_code}{suffix}"


def _is_success_status(status_code: int | None) -> bool:
    return status_code is not None and 200 <= status_code <= 399


class ConnectionTester:
    """
    Probe a stream URL with a minimal request and classify the response.

    Single-shot: one HEAD and, depending on the method policy, one GET that
    never reads a body. Both share one deadline.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        settings: HttpSettings | None = None,
        *,
        clock: Clock = time.monotonic,
    ):
        self.settings = settings or load_http_settings()
        self.http_client = http_client or create_default_http_client(self.settings)
        self._clock = clock

    @property
    def ceiling_s(self) -> float:
        return self.settings.connection_timeout_ms / 1000.0

    def _methods(self) -> tuple[str, ...]:
        policy = self.settings.method_policy
        if policy == "head":
            return ("HEAD",)
        if policy == "get":
            return ("GET",)
        return ("HEAD", "GET")

    def _should_fall_back(self, method: str, response: HttpResponse) -> bool:
        if method != "HEAD":
            return False
        if not response.ok:
            return response.error_category != ErrorCategory.TIMEOUT
        if response.status_code in HEAD_FALLBACK_STATUSES:
            return True
        return _is_success_status(response.status_code) and not is_audio_content_type(response.content_type, response.headers)

    def _fetch(self, url: str, deadline: Deadline) -> tuple[HttpResponse, str]:
        methods = self._methods()
        response = HttpResponse(ok=False, error_message="No request issued", error_category=ErrorCategory.UNKNOWN_ERROR)
        method = methods[0]
        for index, method in enumerate(methods):
            if index and deadline.expired():
                break
            request = HttpRequest(
                url=url,
                method=method,
                headers={"User-Agent": self.settings.user_agent, "Accept": "*/*"},
                timeout=max(deadline.remaining_s(), _MIN_REQUEST_TIMEOUT_S),
                allow_redirects=self.settings.allow_redirects,
            )
            response = self.http_client.request(request)
            logger.debug(
                "%s %s -> status=%s error=%s",
                method,
                redact_url(url),
                response.status_code,
                response.error_message,
            )
            if index + 1 < len(methods) and self._should_fall_back(method, response):
                logger.debug("HEAD not usable for %s, retrying with GET", redact_url(url))
                continue
            break
        return response, method

    def _classify(self, response: HttpResponse, method: str, deadline: Deadline) -> StreamTestOutcome:
        elapsed_ms = deadline.elapsed_ms()

        # A reply that arrives after the ceiling still counts as a timeout.
        if deadline.expired() or (not response.ok and response.error_category == ErrorCategory.TIMEOUT):
            return StreamTestOutcome(
                is_valid=False,
                response_time_ms=elapsed_ms,
                error_message=f"Connection timeout ({self.ceiling_s:g} seconds exceeded)",
                error_category=ErrorCategory.TIMEOUT,
                method=method,
            )

        if not response.ok or response.status_code is None:
            category = response.error_category
            if category == ErrorCategory.NONE:
                category = ErrorCategory.UNKNOWN_ERROR
            return StreamTestOutcome(
                is_valid=False,
                response_time_ms=elapsed_ms,
                error_message=response.error_message or "Unknown error occurred",
                error_category=category,
                method=method,
            )

        content_type = response.content_type
        if not _is_success_status(response.status_code):
            return StreamTestOutcome(
                is_valid=False,
                response_time_ms=elapsed_ms,
                status_code=response.status_code,
                content_type=content_type,
                error_message=status_error_message(response.status_code, response.reason_phrase),
                error_category=ErrorCategory.HTTP_STATUS,
                method=method,
            )

        if not is_audio_content_type(content_type, response.headers):
            shown = content_type or "missing"
            return StreamTestOutcome(
                is_valid=False,
                response_time_ms=elapsed_ms,
                status_code=response.status_code,
                content_type=content_type,
                error_message=f"Stream URL returned unexpected content type: {shown} (not an audio stream)",
                error_category=ErrorCategory.NOT_AUDIO,
                method=method,
            )

        return StreamTestOutcome(
            is_valid=True,
            response_time_ms=elapsed_ms,
            status_code=response.status_code,
            content_type=content_type,
            method=method,
        )

    def test(self, url: str) -> StreamTestOutcome:
        if not isinstance(url, str):
            raise TypeError(f"url must be a string, got {type(url).__name__}")

        deadline = Deadline(self.settings.connection_timeout_ms, clock=self._clock)
        validation = validate_stream_url(url)
        if not validation.is_valid:
            return StreamTestOutcome(
                is_valid=False,
                response_time_ms=deadline.elapsed_ms(),
                error_message=validation.error,
                error_category=ErrorCategory.INVALID_URL,
            )
        if validation.corrected_url:
            logger.debug("%s may point at a player page, base URL %s", redact_url(url), redact_url(validation.corrected_url))

        response, method = self._fetch(url.strip(), deadline)
        outcome = self._classify(response, method, deadline)
        logger.info(
            "Stream test %s: valid=%s status=%s time=%dms%s",
            redact_url(url),
            outcome.is_valid,
            outcome.status_code,
            outcome.response_time_ms,
            f" error={outcome.error_message}" if outcome.error_message else "",
        )
        return outcome


def test_stream_connection(
    url: str,
    *,
    http_client: HttpClient | None = None,
    settings: HttpSettings | None = None,
) -> StreamTestOutcome:
    """Test a stream URL once with a fresh tester."""
    tester = ConnectionTester(http_client, settings)
    try:
        return tester.test(url)
    finally:
        if http_client is None:
            tester.http_client.close()


# Not a pytest test despite the name.
test_stream_connection.__test__ = False  # type: ignore[attr-defined]

__all__ = [
    "ConnectionTester",
    "HEAD_FALLBACK_STATUSES",
    "is_audio_content_type",
    "status_error_message",
    "test_stream_connection",
]
