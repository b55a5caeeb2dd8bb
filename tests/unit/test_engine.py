# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from streamprobe.config import HttpSettings
from streamprobe.errors import ErrorCategory
from streamprobe.models import MetadataExtractionResult, StreamMetadata, StreamTestOutcome
from streamprobe.probe.engine import UNEXPECTED_METADATA_ERROR, ProbeEngine

STREAM_URL = "http://radio.example/live"


class DummyTester:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0

    def test(self, url):  # noqa: ARG002
        self.calls += 1
        return self.outcome


class DummyExtractor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.budgets = []

    def extract(self, url, time_budget_ms):  # noqa: ARG002
        self.budgets.append(time_budget_ms)
        if self.error is not None:
            raise self.error
        return self.result


def _valid(response_time_ms=2000):
    return StreamTestOutcome(is_valid=True, response_time_ms=response_time_ms, status_code=200, content_type="audio/mpeg")


def test_valid_stream_with_metadata():
    metadata = StreamMetadata(stream_title="Artist - Song", bitrate=128)
    tester = DummyTester(_valid(2000))
    extractor = DummyExtractor(MetadataExtractionResult.succeeded(metadata, response_time_ms=40))
    engine = ProbeEngine(tester, extractor, HttpSettings())

    result = engine.run(STREAM_URL)

    assert tester.calls == 1
    assert extractor.budgets == [8000]
    assert result.success is True
    assert result.metadata_budget_ms == 8000
    body = result.to_response()
    assert body == {
        "success": True,
        "status": "success",
        "message": "Stream connection successful",
        "details": {"statusCode": 200, "responseTime": 2000, "contentType": "audio/mpeg"},
        "metadata": {"streamTitle": "Artist - Song", "bitrate": 128},
    }


def test_invalid_stream_skips_metadata():
    outcome = StreamTestOutcome(
        is_valid=False,
        response_time_ms=150,
        status_code=404,
        content_type="text/html",
        error_message="Stream not found (HTTP 404)",
        error_category=ErrorCategory.HTTP_STATUS,
    )
    extractor = DummyExtractor()
    engine = ProbeEngine(DummyTester(outcome), extractor, HttpSettings())

    result = engine.run(STREAM_URL)

    assert extractor.budgets == []
    assert result.success is False
    assert result.to_response() == {
        "success": False,
        "status": "failure",
        "message": "Stream connection failed",
        "error": "Stream not found (HTTP 404)",
        "details": {"statusCode": 404, "responseTime": 150, "contentType": "text/html"},
    }


def test_slow_connection_still_gets_metadata_floor():
    extractor = DummyExtractor(MetadataExtractionResult.succeeded(StreamMetadata()))
    engine = ProbeEngine(DummyTester(_valid(9800)), extractor, HttpSettings())

    engine.run(STREAM_URL)

    assert extractor.budgets == [3000]


def test_metadata_failure_is_advisory():
    failed = MetadataExtractionResult.failed(
        "Metadata not supported by this server",
        category=ErrorCategory.METADATA_UNSUPPORTED,
    )
    engine = ProbeEngine(DummyTester(_valid()), DummyExtractor(failed), HttpSettings())

    result = engine.run(STREAM_URL)
    body = result.to_response()

    assert result.success is True
    assert "metadata" not in body
    assert body["metadataError"] == "Metadata not supported by this server"


def test_metadata_exception_becomes_generic_error(caplog):
    engine = ProbeEngine(DummyTester(_valid()), DummyExtractor(error=RuntimeError("boom")), HttpSettings())

    result = engine.run(STREAM_URL)

    assert result.success is True
    assert result.metadata_error == UNEXPECTED_METADATA_ERROR
    assert result.to_response()["metadataError"] == UNEXPECTED_METADATA_ERROR
    assert "Metadata extraction crashed" in caplog.text


def test_engine_budget_follows_settings():
    extractor = DummyExtractor(MetadataExtractionResult.succeeded(StreamMetadata()))
    settings = HttpSettings(probe_ceiling_ms=6000, metadata_floor_ms=1000)
    engine = ProbeEngine(DummyTester(_valid(1500)), extractor, settings)

    result = engine.run(STREAM_URL)

    assert extractor.budgets == [4500]
    assert result.to_dict()["metadataBudgetMs"] == 4500
    assert result.to_dict()["connection"]["isValid"] is True
