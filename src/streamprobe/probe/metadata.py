# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Metadata extractor: read one ICY metadata frame from a live stream."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator

from ..config import HttpSettings, load_http_settings
from ..errors import ErrorCategory, StreamTransportError
from ..http.client import HttpClient, create_default_http_client
from ..http.models import HttpRequest, StreamResponse
from ..http.url import redact_url
from ..models.stream import MetadataExtractionResult, StreamMetadata
from .budget import Clock, Deadline
from .icy import (
    ICY_METADATA_REQUEST_HEADER,
    METADATA_BLOCK_UNIT,
    METAINT_HEADER,
    build_stream_metadata,
    decode_metadata_block,
    parse_icy_metadata,
    parse_metaint,
)

logger = logging.getLogger(__name__)

METADATA_UNSUPPORTED = "Metadata not supported by this server"
METADATA_TIMEOUT = "Metadata extraction timed out"
STREAM_ENDED_EARLY = "Malformed metadata block: stream ended early"
METAINT_TOO_LARGE = "Malformed metadata block: icy-metaint too large"


class _ExtractionTimeout(Exception):
    pass


class _StreamEnded(Exception):
    pass


class _FrameReader:
    """Exact-size reads over a chunk iterator, checking the deadline between chunks."""

    def __init__(self, chunks: Iterator[bytes], deadline: Deadline):
        self._chunks = chunks
        self._deadline = deadline
        self._buffer = bytearray()

    def _fill(self, size: int) -> None:
        while len(self._buffer) < size:
            if self._deadline.expired():
                raise _ExtractionTimeout()
            try:
                chunk = next(self._chunks)
            except StopIteration:
                raise _StreamEnded() from None
            self._buffer.extend(chunk)

    def skip(self, size: int) -> None:
        # Audio bytes are discarded as they arrive; only the tail past `size` is kept.
        remaining = size
        while remaining > 0:
            if not self._buffer:
                self._fill(1)
            taken = min(remaining, len(self._buffer))
            del self._buffer[:taken]
            remaining -= taken

    def read(self, size: int) -> bytes:
        self._fill(size)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


class _Watchdog:
    """Closes the stream when the deadline passes so a blocked read is aborted."""

    def __init__(self, stream: StreamResponse, deadline: Deadline, enabled: bool = True):
        self._timer: threading.Timer | None = None
        self.fired = False
        if enabled:
            self._timer = threading.Timer(deadline.remaining_s(), self._fire, args=(stream,))
            self._timer.daemon = True

    def _fire(self, stream: StreamResponse) -> None:
        self.fired = True
        stream.close()

    def __enter__(self) -> _Watchdog:
        if self._timer is not None:
            self._timer.start()
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        if self._timer is not None:
            self._timer.cancel()


class MetadataExtractor:
    """
    Connect with ICY metadata negotiation and read exactly one metadata frame.

    One connection per call. The call is bounded by ``time_budget_ms`` and the
    connection is always closed before returning.
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

    def extract(self, url: str, time_budget_ms: int) -> MetadataExtractionResult:
        if not isinstance(url, str):
            raise TypeError(f"url must be a string, got {type(url).__name__}")

        deadline = Deadline(time_budget_ms, clock=self._clock)
        request = HttpRequest(
            url=url.strip(),
            method="GET",
            headers={
                ICY_METADATA_REQUEST_HEADER: "1",
                "User-Agent": self.settings.user_agent,
                "Accept": "*/*",
            },
            # The client holds the whole exchange to this, connect and reply head included.
            timeout=max(deadline.remaining_s(), 0.05),
            allow_redirects=self.settings.allow_redirects,
        )

        try:
            stream = self.http_client.open_stream(request)
        except StreamTransportError as exc:
            if exc.category == ErrorCategory.TIMEOUT or deadline.expired():
                return self._failed(METADATA_TIMEOUT, ErrorCategory.TIMEOUT, deadline)
            return self._failed(exc.message, exc.category, deadline)

        try:
            return self._read_metadata(stream, deadline)
        finally:
            stream.close()

    def _read_metadata(self, stream: StreamResponse, deadline: Deadline) -> MetadataExtractionResult:
        if not 200 <= stream.status_code <= 299:
            reason = f" {stream.reason_phrase}" if stream.reason_phrase else ""
            return self._failed(
                f"Failed to fetch metadata: {stream.status_code}{reason}",
                ErrorCategory.HTTP_STATUS,
                deadline,
            )

        metaint = parse_metaint(stream.headers.get(METAINT_HEADER))
        if metaint is None:
            logger.debug("%s does not advertise ICY metadata", redact_url(stream.url))
            return self._failed(METADATA_UNSUPPORTED, ErrorCategory.METADATA_UNSUPPORTED, deadline)
        if metaint > self.settings.max_metaint:
            return self._failed(METAINT_TOO_LARGE, ErrorCategory.METADATA_MALFORMED, deadline)

        if deadline.expired():
            return self._failed(METADATA_TIMEOUT, ErrorCategory.TIMEOUT, deadline)

        with _Watchdog(stream, deadline, enabled=self.settings.watchdog) as watchdog:
            try:
                reader = _FrameReader(stream.iter_raw(), deadline)
                reader.skip(metaint)
                length = reader.read(1)[0] * METADATA_BLOCK_UNIT
                block = reader.read(length) if length else b""
            except _ExtractionTimeout:
                return self._failed(METADATA_TIMEOUT, ErrorCategory.TIMEOUT, deadline)
            except _StreamEnded:
                if watchdog.fired or deadline.expired():
                    return self._failed(METADATA_TIMEOUT, ErrorCategory.TIMEOUT, deadline)
                return self._failed(STREAM_ENDED_EARLY, ErrorCategory.METADATA_MALFORMED, deadline)
            except StreamTransportError as exc:
                if watchdog.fired or deadline.expired() or exc.category == ErrorCategory.TIMEOUT:
                    return self._failed(METADATA_TIMEOUT, ErrorCategory.TIMEOUT, deadline)
                return self._failed(exc.message, exc.category, deadline)

        text = decode_metadata_block(block)
        fields = parse_icy_metadata(text)
        if text and not fields:
            return self._failed(
                "Malformed metadata block: no key/value pairs",
                ErrorCategory.METADATA_MALFORMED,
                deadline,
            )

        metadata = build_stream_metadata(stream.headers, fields)
        logger.debug(
            "Metadata from %s: metaint=%d block=%d bytes title=%r",
            redact_url(stream.url),
            metaint,
            length,
            metadata.stream_title,
        )
        return MetadataExtractionResult.succeeded(
            metadata,
            response_time_ms=deadline.elapsed_ms(),
            raw_metadata=text or None,
        )

    def _failed(self, error: str, category: ErrorCategory, deadline: Deadline) -> MetadataExtractionResult:
        return MetadataExtractionResult.failed(error, category=category, response_time_ms=deadline.elapsed_ms())


def get_current_song(
    url: str,
    time_budget_ms: int,
    *,
    http_client: HttpClient | None = None,
    settings: HttpSettings | None = None,
) -> MetadataExtractionResult:
    """Extract the current stream metadata once with a fresh extractor."""
    extractor = MetadataExtractor(http_client, settings)
    try:
        return extractor.extract(url, time_budget_ms)
    finally:
        if http_client is None:
            extractor.http_client.close()


def validate_metadata(metadata: StreamMetadata) -> tuple[bool, list[str]]:
    """Report which of the essential display fields are missing."""
    missing: list[str] = []
    if not metadata.stream_title:
        missing.append("streamTitle")
    if metadata.server_info is None or not metadata.server_info.software:
        missing.append("serverInfo.software")
    if metadata.audio_format is None:
        missing.append("audioFormat")
    return (not missing, missing)


def format_metadata_for_display(metadata: StreamMetadata) -> tuple[str, list[str]]:
    title = metadata.stream_title or "Unknown Stream"
    details: list[str] = []

    server = metadata.server_info
    if server is not None and server.software:
        details.append(f"Server: {server.software} {server.version}" if server.version else f"Server: {server.software}")

    if metadata.audio_format is not None:
        audio = metadata.audio_format.value
        if metadata.bitrate:
            audio = f"{audio} @ {metadata.bitrate}kbps"
        details.append(f"Format: {audio}")

    extra = metadata.extra
    if extra is not None:
        if extra.station_name:
            details.append(f"Station: {extra.station_name}")
        if extra.genre:
            details.append(f"Genre: {extra.genre}")
        if extra.sample_rate and extra.channels:
            details.append(f"Audio: {extra.sample_rate}Hz, {extra.channels}ch")
    return title, details


__all__ = [
    "METADATA_TIMEOUT",
    "METADATA_UNSUPPORTED",
    "MetadataExtractor",
    "format_metadata_for_display",
    "get_current_song",
    "validate_metadata",
]
