# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level streamprobe facade for connection tests and metadata reads."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import replace

from .config import HttpSettings, load_http_settings
from .http.client import HttpClient, create_default_http_client
from .http.models import RetryConfig
from .http.url import redact_url
from .models import CombinedProbeResult, FallbackTestResult, MetadataExtractionResult, StreamTestOutcome
from .probe.connection import ConnectionTester
from .probe.engine import ProbeEngine
from .probe.metadata import MetadataExtractor
from .retry import extract_with_retries

logger = logging.getLogger(__name__)


class StreamProbe:
    """
    Convenience wrapper that wires a shared HTTP client across the probes.

    Caller-level policies (fallback URLs, metadata retries) live here so the
    probes themselves stay single-shot.
    """

    def __init__(self, http_client: HttpClient | None = None, settings: HttpSettings | None = None):
        self.http_settings = settings or load_http_settings()
        self.http_client = http_client or create_default_http_client(self.http_settings)
        self.tester = ConnectionTester(self.http_client, self.http_settings)
        self.extractor = MetadataExtractor(self.http_client, self.http_settings)
        self.engine = ProbeEngine(self.tester, self.extractor, self.http_settings)

    def test_connection(self, url: str) -> StreamTestOutcome:
        return self.tester.test(url)

    def get_current_song(self, url: str, time_budget_ms: int | None = None) -> MetadataExtractionResult:
        budget = time_budget_ms if time_budget_ms is not None else self.http_settings.probe_ceiling_ms
        return self.extractor.extract(url, budget)

    def probe(self, url: str) -> CombinedProbeResult:
        return self.engine.run(url)

    def test_connection_with_fallback(self, url: str, fallback_url: str | None = None) -> FallbackTestResult:
        """Test ``url``; when it fails, test the configured fallback stream instead."""
        primary = self.test_connection(url)
        if primary.is_valid:
            return FallbackTestResult(outcome=primary, tested_url=url)

        fallback = fallback_url or self.http_settings.fallback_stream_url
        if not fallback or fallback.strip() == url.strip():
            return FallbackTestResult(
                outcome=_with_error(primary, f"{primary.error_message} (no fallback available)"),
                tested_url=url,
            )

        logger.info("Primary stream %s failed, testing fallback %s", redact_url(url), redact_url(fallback))
        secondary = self.test_connection(fallback)
        if secondary.is_valid:
            return FallbackTestResult(outcome=secondary, tested_url=fallback, used_fallback=True, fallback_url=fallback)

        return FallbackTestResult(
            outcome=_with_error(primary, f"Primary: {primary.error_message}; Fallback: {secondary.error_message}"),
            tested_url=url,
            fallback_url=fallback,
        )

    def get_current_song_with_retry(
        self,
        url: str,
        time_budget_ms: int | None = None,
        *,
        retry_config: RetryConfig | None = None,
    ) -> MetadataExtractionResult:
        cfg = retry_config or RetryConfig.from_settings(self.http_settings)
        return extract_with_retries(lambda: self.get_current_song(url, time_budget_ms), retry_config=cfg)

    def close(self) -> None:
        with suppress(Exception):
            if hasattr(self.http_client, "close"):
                self.http_client.close()

    def __enter__(self) -> StreamProbe:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


def _with_error(outcome: StreamTestOutcome, message: str) -> StreamTestOutcome:
    return replace(outcome, error_message=message)


__all__ = ["StreamProbe"]
