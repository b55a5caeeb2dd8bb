# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe engine: connection test followed by metadata extraction."""

from __future__ import annotations

import logging

from ..config import HttpSettings, load_http_settings
from ..http.url import redact_url
from ..models.probe import CombinedProbeResult
from .budget import derive_metadata_budget
from .connection import ConnectionTester
from .metadata import MetadataExtractor

logger = logging.getLogger(__name__)

UNEXPECTED_METADATA_ERROR = "Metadata extraction failed unexpectedly"


class ProbeEngine:
    """
    Coordinates the two probes for a single stream URL.

    The metadata read only runs after a valid connection test, gets whatever
    budget the test left over, and can never turn a valid stream into a failure.
    """

    def __init__(
        self,
        tester: ConnectionTester | None = None,
        extractor: MetadataExtractor | None = None,
        settings: HttpSettings | None = None,
    ):
        self.settings = settings or load_http_settings()
        self.tester = tester or ConnectionTester(settings=self.settings)
        self.extractor = extractor or MetadataExtractor(getattr(self.tester, "http_client", None), self.settings)

    def run(self, url: str) -> CombinedProbeResult:
        outcome = self.tester.test(url)
        if not outcome.is_valid:
            return CombinedProbeResult(connection=outcome)

        budget_ms = derive_metadata_budget(
            outcome.response_time_ms,
            self.settings.probe_ceiling_ms,
            self.settings.metadata_floor_ms,
        )

        try:
            metadata_result = self.extractor.extract(url, budget_ms)
        except Exception:  # noqa: BLE001
            logger.exception("Metadata extraction crashed for %s", redact_url(url))
            return CombinedProbeResult(
                connection=outcome,
                metadata_error=UNEXPECTED_METADATA_ERROR,
                metadata_budget_ms=budget_ms,
            )

        metadata_error = None if metadata_result.success else (metadata_result.error or UNEXPECTED_METADATA_ERROR)
        return CombinedProbeResult(
            connection=outcome,
            metadata_result=metadata_result,
            metadata_error=metadata_error,
            metadata_budget_ms=budget_ms,
        )


__all__ = ["ProbeEngine", "UNEXPECTED_METADATA_ERROR"]
