# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Raw-socket exchange for SHOUTcast v1 servers.

These servers answer with ``ICY 200 OK`` instead of an HTTP status line,
which h11 (and so httpx) refuses to parse. The request is replayed here over
a plain socket and the ICY status line is read as its HTTP equivalent.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import ssl
from collections.abc import Iterator, Mapping
from urllib.parse import urlsplit

from ..errors import ErrorCategory, StreamTransportError, categorize_exception, describe_exception
from .deadline import SocketDeadline
from .headers import normalize_headers

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 8192
MAX_HEADER_LINES = 100
CHUNK_SIZE = 8192
STATUS_PROTOCOLS = ("ICY", "HTTP/1.0", "HTTP/1.1")


class IcyProtocolError(ConnectionError):
    """The server's reply head could not be parsed."""


def is_icy_status_error(exc: BaseException) -> bool:
    """True when h11 rejected a reply because its status line starts with ``ICY``."""
    return "ICY" in str(exc)


def _request_head(method: str, url: str, headers: Mapping[str, str]) -> tuple[str, int, bool, bytes]:
    parts = urlsplit(url)
    secure = parts.scheme.lower() == "https"
    host = parts.hostname or ""
    port = parts.port or (443 if secure else 80)
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"

    lines = [f"{method} {target} HTTP/1.0", f"Host: {parts.netloc.rpartition('@')[2]}"]
    for name, value in headers.items():
        if name.lower() not in {"host", "connection"}:
            lines.append(f"{name}: {value}")
    lines.append("Connection: close")
    head = "\r\n".join(lines) + "\r\n\r\n"
    return host, port, secure, head.encode("latin-1", "replace")


def _read_line(reader) -> str:  # noqa: ANN001
    line = reader.readline(MAX_LINE_BYTES + 1)
    if len(line) > MAX_LINE_BYTES:
        raise IcyProtocolError("Reply header line too long")
    return line.decode("latin-1").rstrip("\r\n")


def _read_status(reader) -> tuple[int, str]:  # noqa: ANN001
    line = _read_line(reader)
    if not line:
        raise IcyProtocolError("Server disconnected without sending a response")
    parts = line.split(None, 2)
    if len(parts) < 2 or parts[0].upper() not in STATUS_PROTOCOLS or not parts[1].isdigit():
        raise IcyProtocolError(f"illegal status line: {line!r}")
    return int(parts[1]), parts[2] if len(parts) > 2 else ""


def _read_headers(reader) -> dict[str, str]:  # noqa: ANN001
    pairs: list[tuple[str, str]] = []
    for _ in range(MAX_HEADER_LINES):
        line = _read_line(reader)
        if not line:
            return normalize_headers(pairs)
        name, sep, value = line.partition(":")
        if sep:
            pairs.append((name, value))
    raise IcyProtocolError("Too many reply headers")


class IcyStreamResponse:
    """StreamResponse over a raw socket; the deadline is cancelled on close."""

    def __init__(
        self,
        sock: socket.socket,
        reader,  # noqa: ANN001
        *,
        status_code: int,
        reason_phrase: str,
        headers: dict[str, str],
        url: str,
        deadline: SocketDeadline,
    ):
        self._sock = sock
        self._reader = reader
        self._deadline = deadline
        self._closed = False
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.headers = headers
        self.url = url

    @property
    def closed(self) -> bool:
        return self._closed

    def iter_raw(self) -> Iterator[bytes]:
        try:
            while True:
                chunk = self._reader.read1(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        except (OSError, ValueError) as exc:
            raise transport_error(exc, self._deadline) from exc
        if self._deadline.fired:
            raise transport_error(TimeoutError(), self._deadline)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._deadline.cancel()
        with contextlib.suppress(OSError):
            self._reader.close()
        with contextlib.suppress(OSError):
            self._sock.close()


def transport_error(exc: BaseException, deadline: SocketDeadline) -> StreamTransportError:
    if deadline.fired:
        return StreamTransportError(ErrorCategory.TIMEOUT, describe_exception(TimeoutError(), timeout_s=deadline.budget_s))
    return StreamTransportError(categorize_exception(exc), describe_exception(exc, timeout_s=deadline.budget_s))


def open_icy_stream(
    method: str,
    url: str,
    headers: Mapping[str, str],
    *,
    deadline: SocketDeadline,
    verify_ssl: bool = True,
) -> IcyStreamResponse:
    """
    Send ``method url`` as HTTP/1.0 over a plain socket and read the reply head.

    Redirects are not followed. Failures raise ``StreamTransportError``.
    """
    host, port, secure, head = _request_head(method, url, headers)
    sock: socket.socket | None = None
    try:
        sock = socket.create_connection((host, port), timeout=deadline.remaining_s())
        deadline.watch(sock)
        if secure:
            context = ssl.create_default_context()
            if not verify_ssl:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            sock = context.wrap_socket(sock, server_hostname=host, do_handshake_on_connect=False)
            deadline.watch(sock)
            sock.do_handshake()
        sock.sendall(head)
        reader = sock.makefile("rb")
        status_code, reason_phrase = _read_status(reader)
        response_headers = _read_headers(reader)
    except (OSError, ValueError) as exc:
        if sock is not None:
            sock.close()
        raise transport_error(exc, deadline) from exc

    logger.debug("ICY fallback %s %s -> %s %s", method, host, status_code, reason_phrase)
    return IcyStreamResponse(
        sock,
        reader,
        status_code=status_code,
        reason_phrase=reason_phrase,
        headers=response_headers,
        url=url,
        deadline=deadline,
    )


__all__ = ["IcyProtocolError", "IcyStreamResponse", "is_icy_status_error", "open_icy_stream", "transport_error"]
