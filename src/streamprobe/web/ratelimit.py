# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-caller rate limiting for the admin endpoints (flask-limiter)."""

from __future__ import annotations

import math
import time

from flask import current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded


def client_key() -> str:
    """Rate-limit key: session header, auth prefix, forwarded address, then peer address."""
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return (
        request.headers.get("X-Session-Id")
        or (request.headers.get("Authorization") or "")[:20]
        or forwarded
        or request.headers.get("X-Real-IP")
        or request.remote_addr
        or "unknown"
    )


limiter = Limiter(
    key_func=client_key,
    headers_enabled=True,
    retry_after="delta-seconds",
    strategy="fixed-window",
)


def _limit(count: int) -> str:
    window = current_app.extensions["streamprobe"].web_settings.rate_window_s
    return f"{count} per {window} second"


def stream_test_limit() -> str:
    return _limit(current_app.extensions["streamprobe"].web_settings.test_rate_limit)


def metadata_limit() -> str:
    return _limit(current_app.extensions["streamprobe"].web_settings.metadata_rate_limit)


def _retry_after_s() -> int:
    current = limiter.current_limit
    if current is None:
        return current_app.extensions["streamprobe"].web_settings.rate_window_s
    return max(1, math.ceil(current.reset_at - time.time()))


def rate_limit_exceeded(error: RateLimitExceeded):
    current_app.logger.warning("Rate limit exceeded for %s (%s): %s", request.endpoint, client_key(), error.description)
    response = jsonify(
        {
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
            "retryAfterSeconds": _retry_after_s(),
        }
    )
    response.status_code = 429
    return response


__all__ = ["client_key", "limiter", "metadata_limit", "rate_limit_exceeded", "stream_test_limit"]
