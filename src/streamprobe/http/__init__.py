# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP transport layer for stream probes."""

from ..config import DEFAULT_USER_AGENT
from .client import HttpClient, create_default_http_client
from .deadline import SocketDeadline
from .headers import first_header, normalize_headers
from .httpx_client import HttpxClient, HttpxStreamResponse
from .models import Headers, HttpRequest, HttpResponse, RetryConfig, StreamResponse
from .url import UrlCorrection, UrlValidation, correct_stream_url_format, redact_url, validate_stream_url

__all__ = [
    "DEFAULT_USER_AGENT",
    "Headers",
    "HttpClient",
    "HttpxClient",
    "HttpxStreamResponse",
    "HttpRequest",
    "HttpResponse",
    "RetryConfig",
    "SocketDeadline",
    "StreamResponse",
    "UrlCorrection",
    "UrlValidation",
    "correct_stream_url_format",
    "create_default_http_client",
    "first_header",
    "normalize_headers",
    "redact_url",
    "validate_stream_url",
]
