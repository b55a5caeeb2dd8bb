# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclasses describing a single stream test and its metadata."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from ..errors import ErrorCategory


class AudioFormat(str, Enum):
    MP3 = "MP3"
    AAC = "AAC"
    OGG = "OGG"
    FLAC = "FLAC"


class ServerSoftware(str, Enum):
    SHOUTCAST = "SHOUTcast"
    ICECAST = "Icecast"


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class StreamTestOutcome:
    """Verdict of the connection tester. Built once per probe, never mutated."""

    is_valid: bool
    response_time_ms: int
    status_code: int | None = None
    content_type: str | None = None
    error_message: str | None = None
    error_category: ErrorCategory = ErrorCategory.NONE
    method: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "isValid": self.is_valid,
            "responseTimeMs": self.response_time_ms,
            "contentType": self.content_type,
        }
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        if self.error_message is not None:
            data["errorMessage"] = self.error_message
        return data


@dataclass
class ServerInfo:
    software: str | None = None
    version: str | None = None
    description: str | None = None

    def is_empty(self) -> bool:
        return self.software is None and self.version is None and self.description is None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"software": self.software, "version": self.version, "description": self.description})


@dataclass
class StreamExtras:
    """Dialect-specific details. Every field is best-effort."""

    genre: str | None = None
    url: str | None = None
    content_type: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    station_name: str | None = None
    description: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "genre": self.genre,
                "url": self.url,
                "contentType": self.content_type,
                "sampleRate": self.sample_rate,
                "channels": self.channels,
                "stationName": self.station_name,
                "description": self.description,
            }
        )


@dataclass
class StreamMetadata:
    """
    Metadata recovered from stream headers and one ICY metadata frame.

    A field left as None was not advertised by the server; it never signals an error.
    """

    stream_title: str | None = None
    bitrate: int | None = None
    audio_format: AudioFormat | None = None
    server_info: ServerInfo | None = None
    extra: StreamExtras | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "streamTitle": self.stream_title,
            "bitrate": self.bitrate,
            "audioFormat": self.audio_format.value if self.audio_format is not None else None,
        }
        if self.server_info is not None and not self.server_info.is_empty():
            data["serverInfo"] = self.server_info.to_dict()
        if self.extra is not None and not self.extra.is_empty():
            data["extra"] = self.extra.to_dict()
        return _drop_none(data)


@dataclass
class MetadataExtractionResult:
    success: bool
    metadata: StreamMetadata | None = None
    error: str | None = None
    response_time_ms: int | None = None
    error_category: ErrorCategory = ErrorCategory.NONE
    raw_metadata: str | None = field(default=None, repr=False)

    @classmethod
    def succeeded(
        cls,
        metadata: StreamMetadata,
        *,
        response_time_ms: int | None = None,
        raw_metadata: str | None = None,
    ) -> MetadataExtractionResult:
        return cls(success=True, metadata=metadata, response_time_ms=response_time_ms, raw_metadata=raw_metadata)

    @classmethod
    def failed(
        cls,
        error: str,
        *,
        category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR,
        response_time_ms: int | None = None,
    ) -> MetadataExtractionResult:
        return cls(success=False, error=error, error_category=category, response_time_ms=response_time_ms)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "success": self.success,
                "metadata": self.metadata.to_dict() if self.metadata is not None else None,
                "error": self.error,
                "responseTimeMs": self.response_time_ms,
            }
        )


__all__ = [
    "AudioFormat",
    "MetadataExtractionResult",
    "ServerInfo",
    "ServerSoftware",
    "StreamExtras",
    "StreamMetadata",
    "StreamTestOutcome",
]
