# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from streamprobe.config import HttpSettings
from streamprobe.errors import ErrorCategory
from streamprobe.http.models import HttpRequest, HttpResponse, RetryConfig
from streamprobe.models import MetadataExtractionResult, StreamMetadata
from streamprobe.retry import extract_with_retries
from streamprobe.runtime import StreamProbe

PRIMARY = "http://primary.example/live"
BACKUP = "http://backup.example/live"


class RoutingHttpClient:
    """Answers connection tests per URL; unknown URLs are refused."""

    def __init__(self, responses):
        self.responses = responses
        self.urls: list[str] = []
        self.closed = False

    def request(self, request: HttpRequest) -> HttpResponse:
        self.urls.append(request.url)
        return self.responses.get(
            request.url,
            HttpResponse(ok=False, error_message="Network error: refused", error_category=ErrorCategory.CONNECTION_ERROR),
        )

    def close(self) -> None:
        self.closed = True


AUDIO = HttpResponse(ok=True, status_code=200, headers={"content-type": "audio/mpeg"})
MISSING = HttpResponse(ok=True, status_code=404, headers={"content-type": "text/html"})


def _probe(responses, **settings_kwargs):
    client = RoutingHttpClient(responses)
    return StreamProbe(http_client=client, settings=HttpSettings(method_policy="get", **settings_kwargs)), client


def test_facade_context_manager_closes_client():
    probe, client = _probe({PRIMARY: AUDIO})
    with probe as ctx:
        assert ctx.test_connection(PRIMARY).is_valid is True
    assert client.closed is True


def test_fallback_not_used_when_primary_works():
    probe, client = _probe({PRIMARY: AUDIO, BACKUP: AUDIO})
    result = probe.test_connection_with_fallback(PRIMARY, BACKUP)

    assert result.outcome.is_valid is True
    assert result.tested_url == PRIMARY
    assert result.used_fallback is False
    assert client.urls == [PRIMARY]


def test_fallback_used_when_primary_fails():
    probe, _ = _probe({PRIMARY: MISSING, BACKUP: AUDIO})
    result = probe.test_connection_with_fallback(PRIMARY, BACKUP)

    assert result.outcome.is_valid is True
    assert result.used_fallback is True
    assert result.tested_url == BACKUP


def test_fallback_from_settings_and_combined_error():
    probe, _ = _probe({PRIMARY: MISSING}, fallback_stream_url=BACKUP)
    result = probe.test_connection_with_fallback(PRIMARY)

    assert result.outcome.is_valid is False
    assert result.fallback_url == BACKUP
    assert result.outcome.error_message == "Primary: Stream not found (HTTP 404); Fallback: Network error: refused"


def test_no_fallback_available():
    probe, client = _probe({PRIMARY: MISSING})
    result = probe.test_connection_with_fallback(PRIMARY, PRIMARY)

    assert result.outcome.error_message == "Stream not found (HTTP 404) (no fallback available)"
    assert client.urls == [PRIMARY]


def test_get_current_song_defaults_to_probe_ceiling():
    probe, _ = _probe({}, probe_ceiling_ms=7000)
    budgets = []

    class RecordingExtractor:
        def extract(self, url, time_budget_ms):  # noqa: ARG002
            budgets.append(time_budget_ms)
            return MetadataExtractionResult.succeeded(StreamMetadata(stream_title="x"))

    probe.extractor = RecordingExtractor()
    probe.get_current_song(PRIMARY)
    probe.get_current_song(PRIMARY, 1500)
    assert budgets == [7000, 1500]


def test_extract_with_retries_recovers():
    results = [
        MetadataExtractionResult.failed("Metadata extraction timed out", category=ErrorCategory.TIMEOUT),
        MetadataExtractionResult.succeeded(StreamMetadata(stream_title="Back")),
    ]
    sleeps = []

    result = extract_with_retries(
        lambda: results.pop(0),
        retry_config=RetryConfig(max_attempts=3, initial_delay=0.5, backoff_factor=2),
        sleep=sleeps.append,
    )

    assert result.success is True
    assert result.metadata.stream_title == "Back"
    assert sleeps == [0.5]


def test_extract_with_retries_exhausts_attempts():
    sleeps = []
    result = extract_with_retries(
        lambda: MetadataExtractionResult.failed("Network error: reset", category=ErrorCategory.CONNECTION_ERROR),
        retry_config=RetryConfig(max_attempts=3, initial_delay=1.0, backoff_factor=2.0),
        sleep=sleeps.append,
    )

    assert result.success is False
    assert result.error == "Failed after 3 attempts. Last error: Network error: reset"
    assert result.error_category == ErrorCategory.CONNECTION_ERROR
    assert sleeps == [1.0, 2.0]


def test_extract_with_retries_stops_on_permanent_failure():
    calls = []

    def attempt():
        calls.append(1)
        return MetadataExtractionResult.failed(
            "Metadata not supported by this server",
            category=ErrorCategory.METADATA_UNSUPPORTED,
        )

    result = extract_with_retries(attempt, retry_config=RetryConfig(max_attempts=5), sleep=lambda _: None)

    assert len(calls) == 1
    assert result.error == "Failed after 1 attempts. Last error: Metadata not supported by this server"


def test_facade_retry_uses_settings():
    probe, _ = _probe({}, metadata_retries=2, initial_delay=0.0)
    attempts = []

    class FlakyExtractor:
        def extract(self, url, time_budget_ms):  # noqa: ARG002
            attempts.append(time_budget_ms)
            return MetadataExtractionResult.failed("Metadata extraction timed out", category=ErrorCategory.TIMEOUT)

    probe.extractor = FlakyExtractor()
    result = probe.get_current_song_with_retry(PRIMARY, 2500)

    assert attempts == [2500, 2500]
    assert result.error.startswith("Failed after 2 attempts")
