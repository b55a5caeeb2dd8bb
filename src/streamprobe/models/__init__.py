# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for streamprobe."""

from ..http.models import Headers, HttpRequest, HttpResponse, RetryConfig
from .probe import CombinedProbeResult, FallbackTestResult
from .stream import (
    AudioFormat,
    MetadataExtractionResult,
    ServerInfo,
    ServerSoftware,
    StreamExtras,
    StreamMetadata,
    StreamTestOutcome,
)

__all__ = [
    "AudioFormat",
    "CombinedProbeResult",
    "FallbackTestResult",
    "Headers",
    "HttpRequest",
    "HttpResponse",
    "MetadataExtractionResult",
    "RetryConfig",
    "ServerInfo",
    "ServerSoftware",
    "StreamExtras",
    "StreamMetadata",
    "StreamTestOutcome",
]
