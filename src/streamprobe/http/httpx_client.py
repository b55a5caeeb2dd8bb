# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import StreamTransportError
from .deadline import SocketDeadline
from .headers import normalize_headers
from .icy_socket import IcyStreamResponse, is_icy_status_error, open_icy_stream, transport_error
from .models import HttpRequest, HttpResponse, StreamResponse

logger = logging.getLogger(__name__)

# Exceptions httpx/httpcore raise while a live response is read or torn down.
_TRANSPORT_ERRORS = (httpx.HTTPError, httpx.StreamError, httpx.InvalidURL, OSError)


class HttpxStreamResponse:
    """StreamResponse over an httpx response opened with ``stream=True``."""

    def __init__(self, response: httpx.Response, *, deadline: SocketDeadline):
        self._response = response
        self._deadline = deadline
        self.status_code = response.status_code
        self.reason_phrase = response.reason_phrase
        self.headers = normalize_headers(response.headers)
        self.url = str(response.url)

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def iter_raw(self) -> Iterator[bytes]:
        # Raw bytes: ICY framing counts bytes on the wire, before any decoding.
        try:
            for chunk in self._response.iter_raw():
                if chunk:
                    yield chunk
        except _TRANSPORT_ERRORS as exc:
            raise transport_error(exc, self._deadline) from exc
        # A socket shut down at the deadline looks like a clean end of body.
        if self._deadline.fired:
            raise transport_error(TimeoutError(), self._deadline)

    def close(self) -> None:
        self._deadline.cancel()
        try:
            self._response.close()
        except _TRANSPORT_ERRORS as exc:
            logger.debug("Error while closing stream %s: %s", self.url, exc)


class HttpxClient:
    """
    Default HttpClient built on a shared httpx.Client.

    ``HttpRequest.timeout`` bounds the whole exchange: a ``SocketDeadline``
    shuts the connection down when it runs out, whatever step is in flight.
    Replies with an ``ICY`` status line are replayed over a raw socket.
    """

    def __init__(self, settings: HttpSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.Client(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.connection_timeout,
            verify=self.settings.verify_ssl,
        )

    def _timeout(self, request: HttpRequest) -> float:
        return request.timeout if request.timeout is not None else self.settings.connection_timeout

    def _headers(self, request: HttpRequest) -> dict[str, str]:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)
        headers.setdefault("Accept", "*/*")
        # One exchange per connection, so every request opens a socket the deadline can see.
        headers.setdefault("Connection", "close")
        return headers

    def _open(self, request: HttpRequest, deadline: SocketDeadline) -> StreamResponse:
        headers = self._headers(request)
        try:
            built = self._client.build_request(
                request.method,
                request.url,
                headers=headers,
                timeout=deadline.budget_s,
                extensions={"trace": deadline.trace},
            )
            response = self._client.send(built, stream=True, follow_redirects=request.allow_redirects)
        except httpx.RemoteProtocolError as exc:
            if deadline.fired or not is_icy_status_error(exc):
                raise transport_error(exc, deadline) from exc
            logger.debug("%s answered with an ICY status line, retrying over a raw socket", request.url)
            return open_icy_stream(
                request.method,
                request.url,
                headers,
                deadline=deadline,
                verify_ssl=self.settings.verify_ssl,
            )
        except _TRANSPORT_ERRORS as exc:
            raise transport_error(exc, deadline) from exc
        return HttpxStreamResponse(response, deadline=deadline)

    def request(self, request: HttpRequest) -> HttpResponse:
        with SocketDeadline(self._timeout(request)) as deadline:
            try:
                stream = self._open(request, deadline)
            except Exception as exc:  # noqa: BLE001
                error = exc if isinstance(exc, StreamTransportError) else transport_error(exc, deadline)
                logger.debug("%s %s failed: %s", request.method, request.url, error.message)
                return HttpResponse(
                    ok=False,
                    error_message=error.message,
                    error_type=type(exc.__cause__ or exc).__name__,
                    error_category=error.category,
                )

            try:
                return HttpResponse(
                    ok=True,
                    status_code=stream.status_code,
                    reason_phrase=stream.reason_phrase,
                    headers=stream.headers,
                    url=stream.url,
                )
            finally:
                # Live streams never end; drop the connection without reading the body.
                stream.close()

    def open_stream(self, request: HttpRequest) -> HttpxStreamResponse | IcyStreamResponse:
        deadline = SocketDeadline(self._timeout(request)).start()
        try:
            return self._open(request, deadline)
        except BaseException:
            deadline.cancel()
            raise

    def close(self) -> None:
        self._client.close()
