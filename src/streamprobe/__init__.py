# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
streamprobe package entrypoint.

This package tests internet radio streams (Shoutcast/Icecast family) for
reachability and reads their in-band ICY metadata within bounded time budgets.
HTTP behavior is abstracted behind an injectable client interface, and results
are modeled with typed dataclasses.
"""

from .config import HttpSettings, WebSettings, load_http_settings, load_web_settings
from .errors import ErrorCategory, StreamTransportError
from .http import (
    HttpClient,
    HttpRequest,
    HttpResponse,
    HttpxClient,
    RetryConfig,
    create_default_http_client,
)
from .log import setup_logging
from .models import (
    AudioFormat,
    CombinedProbeResult,
    MetadataExtractionResult,
    ServerInfo,
    StreamExtras,
    StreamMetadata,
    StreamTestOutcome,
)
from .probe import (
    ConnectionTester,
    MetadataExtractor,
    ProbeEngine,
    derive_metadata_budget,
    get_current_song,
    test_stream_connection,
)
from .runtime import StreamProbe
from .version import __version__

__all__ = [
    "AudioFormat",
    "CombinedProbeResult",
    "ConnectionTester",
    "ErrorCategory",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "MetadataExtractionResult",
    "MetadataExtractor",
    "ProbeEngine",
    "RetryConfig",
    "ServerInfo",
    "StreamExtras",
    "StreamMetadata",
    "StreamProbe",
    "StreamTestOutcome",
    "StreamTransportError",
    "WebSettings",
    "create_default_http_client",
    "derive_metadata_budget",
    "get_current_song",
    "load_http_settings",
    "load_web_settings",
    "setup_logging",
    "test_stream_connection",
    "__version__",
]
