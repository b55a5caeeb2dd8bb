# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Admin endpoints for stream testing and live metadata."""

from __future__ import annotations

from contextlib import closing
from datetime import datetime, timezone
from typing import Any

import httpx
from flask import Blueprint, current_app, jsonify, request

from ..http.url import redact_url
from .auth import require_role
from .ratelimit import limiter, metadata_limit, stream_test_limit

radio_bp = Blueprint("radio_stream", __name__, url_prefix="/api/admin/settings/radio")

METADATA_TIMEOUT_DEFAULT_MS = 5_000
METADATA_TIMEOUT_MIN_MS = 1_000
METADATA_TIMEOUT_MAX_MS = 10_000

# Timeouts that escape the probes mean the tool gave up, not that the stream failed.
_TOOL_TIMEOUTS = (TimeoutError, httpx.TimeoutException)


def _json(body: dict[str, Any], status: int = 200):
    response = jsonify(body)
    response.status_code = status
    return response


def _stream_url_from_body() -> tuple[dict[str, Any], str | None]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return {}, None
    stream_url = body.get("streamUrl")
    if not isinstance(stream_url, str) or not stream_url.strip():
        return body, None
    return body, stream_url.strip()


def _clamp_timeout(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return METADATA_TIMEOUT_DEFAULT_MS
    return int(min(max(value, METADATA_TIMEOUT_MIN_MS), METADATA_TIMEOUT_MAX_MS))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@radio_bp.post("/test")
@limiter.limit(stream_test_limit)
@require_role()
def stream_test():
    _, stream_url = _stream_url_from_body()
    if stream_url is None:
        return _json({"error": "Stream URL is required"}, 400)

    state = current_app.extensions["streamprobe"]
    try:
        with closing(state.probe_factory()) as probe:
            result = probe.probe(stream_url)
    except _TOOL_TIMEOUTS as exc:
        current_app.logger.warning("Stream test for %s timed out: %s", redact_url(stream_url), exc)
        return _json(
            {
                "success": False,
                "status": "failure",
                "message": "Stream connection test timed out",
                "error": "Connection timeout (10 seconds exceeded)",
            },
            408,
        )
    except Exception:  # noqa: BLE001
        current_app.logger.exception("Stream test error for %s", redact_url(stream_url))
        return _json(
            {
                "success": False,
                "status": "failure",
                "message": "Stream connection test failed",
                "error": "Internal server error",
            },
            500,
        )

    return _json(result.to_response())


@radio_bp.post("/metadata")
@limiter.limit(metadata_limit)
@require_role()
def stream_metadata():
    body, stream_url = _stream_url_from_body()
    if stream_url is None:
        return _json({"error": "Invalid URL", "message": "Stream URL is required"}, 400)

    timeout_ms = _clamp_timeout(body.get("timeout", METADATA_TIMEOUT_DEFAULT_MS))
    state = current_app.extensions["streamprobe"]
    try:
        with closing(state.probe_factory()) as probe:
            result = probe.get_current_song(stream_url, timeout_ms)
    except _TOOL_TIMEOUTS as exc:
        current_app.logger.warning("Metadata request for %s timed out: %s", redact_url(stream_url), exc)
        return _json(
            {"success": False, "error": "Timeout", "message": "Metadata extraction timed out"},
            408,
        )
    except Exception:  # noqa: BLE001
        current_app.logger.exception("Metadata update error for %s", redact_url(stream_url))
        return _json(
            {"success": False, "error": "Server error", "message": "Metadata extraction failed"},
            500,
        )

    if result.success and result.metadata is not None:
        return _json(
            {
                "success": True,
                "message": "Metadata retrieved successfully",
                "metadata": result.metadata.to_dict(),
                "responseTime": result.response_time_ms,
                "timestamp": _timestamp(),
            }
        )

    return _json(
        {
            "success": False,
            "error": "Metadata unavailable",
            "message": result.error or "Stream metadata could not be retrieved",
            "responseTime": result.response_time_ms,
            "timestamp": _timestamp(),
        },
        422,
    )


__all__ = ["radio_bp"]
