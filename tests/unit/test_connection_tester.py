# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import time

import httpx
import pytest

from streamprobe.config import HttpSettings
from streamprobe.errors import ErrorCategory
from streamprobe.http.httpx_client import HttpxClient
from streamprobe.http.models import HttpRequest, HttpResponse
from streamprobe.probe import connection
from streamprobe.probe.connection import (
    ConnectionTester,
    is_audio_content_type,
    status_error_message,
)

STREAM_URL = "http://radio.example:8000/live"


class ScriptedHttpClient:
    """Returns a canned response per HTTP method and records every request."""

    def __init__(self, responses):
        self.responses = responses
        self.requests: list[HttpRequest] = []
        self.closed = False

    def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        return self.responses[request.method]

    def close(self) -> None:
        self.closed = True

    @property
    def methods(self):
        return [req.method for req in self.requests]


def _ok(status=200, content_type="audio/mpeg", **headers):
    merged = {"content-type": content_type} if content_type is not None else {}
    merged.update(headers)
    return HttpResponse(ok=True, status_code=status, headers=merged)


def _tester(responses, **settings_kwargs):
    client = ScriptedHttpClient(responses)
    return ConnectionTester(client, HttpSettings(**settings_kwargs)), client


def test_is_audio_content_type():
    assert is_audio_content_type("audio/mpeg")
    assert is_audio_content_type("Audio/AACP; charset=binary")
    assert is_audio_content_type("video/mp2t")
    assert is_audio_content_type("application/ogg")
    assert is_audio_content_type("application/octet-stream")
    assert not is_audio_content_type("text/html; charset=utf-8")
    assert not is_audio_content_type(None)
    assert is_audio_content_type(None, {"icy-metaint": "16000"})
    assert not is_audio_content_type("", {"server": "nginx"})


def test_status_error_message():
    assert status_error_message(404) == "Stream not found (HTTP 404)"
    assert status_error_message(403) == "Access to stream is forbidden (HTTP 403)"
    assert status_error_message(503) == "Stream server error (HTTP 503)"
    assert status_error_message(418, "I'm a teapot") == "Stream URL returned status 418: I'm a teapot"


def test_audio_stream_is_valid_after_head():
    tester, client = _tester({"HEAD": _ok(), "GET": _ok()})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is True
    assert outcome.status_code == 200
    assert outcome.content_type == "audio/mpeg"
    assert outcome.error_message is None
    assert outcome.error_category == ErrorCategory.NONE
    assert outcome.method == "HEAD"
    assert client.methods == ["HEAD"]
    assert client.requests[0].headers["Accept"] == "*/*"


@pytest.mark.parametrize(
    ("status", "message"),
    [
        (404, "Stream not found (HTTP 404)"),
        (403, "Access to stream is forbidden (HTTP 403)"),
        (500, "Stream server error (HTTP 500)"),
    ],
)
def test_http_error_statuses_are_invalid(status, message):
    tester, client = _tester({"HEAD": _ok(status, "text/html"), "GET": _ok(status, "text/html")})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is False
    assert outcome.status_code == status
    assert outcome.error_message == message
    assert outcome.error_category == ErrorCategory.HTTP_STATUS
    assert client.methods == ["HEAD", "GET"]


def test_non_audio_content_type_is_invalid():
    tester, _ = _tester({"HEAD": _ok(content_type="text/html"), "GET": _ok(content_type="text/html")})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is False
    assert outcome.status_code == 200
    assert outcome.error_category == ErrorCategory.NOT_AUDIO
    assert "text/html" in outcome.error_message


def test_head_405_falls_back_to_get():
    tester, client = _tester({"HEAD": _ok(405, "text/plain"), "GET": _ok(content_type="audio/aacp")})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is True
    assert outcome.method == "GET"
    assert outcome.content_type == "audio/aacp"
    assert client.methods == ["HEAD", "GET"]


def test_head_without_content_type_falls_back_to_get():
    tester, client = _tester({"HEAD": _ok(content_type=None), "GET": _ok(content_type=None, **{"icy-metaint": "8192"})})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is True
    assert client.methods == ["HEAD", "GET"]


def test_head_timeout_does_not_retry_with_get():
    timeout = HttpResponse(ok=False, error_message="Connection timeout", error_category=ErrorCategory.TIMEOUT)
    tester, client = _tester({"HEAD": timeout, "GET": _ok()})
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is False
    assert outcome.error_category == ErrorCategory.TIMEOUT
    assert outcome.error_message == "Connection timeout (10 seconds exceeded)"
    assert client.methods == ["HEAD"]


def test_method_policies():
    tester, client = _tester({"HEAD": _ok(405, "text/plain"), "GET": _ok()}, method_policy="head")
    assert tester.test(STREAM_URL).is_valid is False
    assert client.methods == ["HEAD"]

    tester, client = _tester({"HEAD": _ok(405, "text/plain"), "GET": _ok()}, method_policy="get")
    assert tester.test(STREAM_URL).is_valid is True
    assert client.methods == ["GET"]


def test_invalid_url_makes_no_request():
    tester, client = _tester({"HEAD": _ok(), "GET": _ok()})
    outcome = tester.test("ftp://radio.example/live")

    assert outcome.is_valid is False
    assert outcome.error_category == ErrorCategory.INVALID_URL
    assert outcome.error_message == "Stream URL must use HTTP or HTTPS protocol"
    assert outcome.status_code is None
    assert client.requests == []


def test_non_string_url_is_a_programming_error():
    tester, _ = _tester({})
    with pytest.raises(TypeError):
        tester.test(None)


def test_request_timeout_follows_remaining_budget():
    class SteppingClock:
        def __init__(self):
            self.now = 0.0

        def __call__(self):
            return self.now

    clock = SteppingClock()
    client = ScriptedHttpClient({"HEAD": _ok(405, "text/plain"), "GET": _ok()})
    tester = ConnectionTester(client, HttpSettings(connection_timeout_ms=4000), clock=clock)

    original_request = client.request

    def slow_request(request):
        response = original_request(request)
        clock.now += 1.5
        return response

    client.request = slow_request
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is True
    assert outcome.response_time_ms == 3000
    assert [req.timeout for req in client.requests] == [4.0, 2.5]


def test_unreachable_hosts_through_httpx():
    def refused(request):
        raise httpx.ConnectError("Connection refused", request=request)

    def slow(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    settings = HttpSettings()
    refused_client = HttpxClient(settings, client=httpx.Client(transport=httpx.MockTransport(refused)))
    outcome = ConnectionTester(refused_client, settings).test(STREAM_URL)
    assert outcome.is_valid is False
    assert outcome.status_code is None
    assert outcome.error_category == ErrorCategory.CONNECTION_ERROR
    assert "Connection refused" in outcome.error_message

    slow_client = HttpxClient(settings, client=httpx.Client(transport=httpx.MockTransport(slow)))
    outcome = ConnectionTester(slow_client, settings).test(STREAM_URL)
    assert outcome.error_category == ErrorCategory.TIMEOUT
    assert outcome.error_message == "Connection timeout (10 seconds exceeded)"


def test_module_level_helper_keeps_caller_client_open():
    client = ScriptedHttpClient({"HEAD": _ok(), "GET": _ok()})
    outcome = connection.test_stream_connection(STREAM_URL, http_client=client, settings=HttpSettings())
    assert outcome.is_valid is True
    assert client.closed is False


TRICKLED_HEAD = b"HTTP/1.0 200 OK\r\nContent-Type: audio/mpeg\r\nicy-br: 128\r\n\r\n"
ICY_HEAD = b"ICY 200 OK\r\ncontent-type: audio/mpeg\r\nicy-br: 128\r\nicy-metaint: 16\r\n\r\n"


def test_ceiling_holds_against_headers_sent_a_byte_at_a_time(stream_server):
    server = stream_server(TRICKLED_HEAD, byte_delay=0.1)
    tester = ConnectionTester(settings=HttpSettings(connection_timeout_ms=1000, method_policy="get"))

    started = time.monotonic()
    try:
        outcome = tester.test(server.url)
    finally:
        tester.http_client.close()
    took = time.monotonic() - started

    assert took < 2.0
    assert outcome.is_valid is False
    assert outcome.status_code is None
    assert outcome.error_category == ErrorCategory.TIMEOUT
    assert outcome.error_message == "Connection timeout (1 seconds exceeded)"


def test_late_reply_is_classified_as_timeout():
    class SteppingClock:
        def __init__(self):
            self.now = 0.0

        def __call__(self):
            return self.now

    clock = SteppingClock()
    client = ScriptedHttpClient({"GET": _ok()})
    tester = ConnectionTester(client, HttpSettings(connection_timeout_ms=1000, method_policy="get"), clock=clock)
    original_request = client.request

    def late_request(request):
        clock.now += 1.2
        return original_request(request)

    client.request = late_request
    outcome = tester.test(STREAM_URL)

    assert outcome.is_valid is False
    assert outcome.error_category == ErrorCategory.TIMEOUT
    assert outcome.response_time_ms == 1200


def test_shoutcast_v1_icy_status_line_is_a_valid_stream(stream_server):
    server = stream_server(ICY_HEAD + b"\xff" * 64)
    tester = ConnectionTester(settings=HttpSettings(connection_timeout_ms=3000))

    try:
        outcome = tester.test(server.url)
    finally:
        tester.http_client.close()

    assert outcome.is_valid is True
    assert outcome.status_code == 200
    assert outcome.content_type == "audio/mpeg"
    assert outcome.method == "HEAD"
    assert server.requests[-1].startswith(b"HEAD /live HTTP/1.0\r\n")
