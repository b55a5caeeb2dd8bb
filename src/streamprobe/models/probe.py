# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Combined probe result and the response shapes rendered from it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .stream import MetadataExtractionResult, StreamTestOutcome

SUCCESS_MESSAGE = "Stream connection successful"
FAILURE_MESSAGE = "Stream connection failed"


@dataclass
class CombinedProbeResult:
    """Connection verdict plus the advisory metadata outcome."""

    connection: StreamTestOutcome
    metadata_result: MetadataExtractionResult | None = None
    metadata_error: str | None = None
    metadata_budget_ms: int | None = None

    @property
    def success(self) -> bool:
        # Metadata never changes the verdict.
        return self.connection.is_valid

    @property
    def metadata(self):
        if self.metadata_result is None or not self.metadata_result.success:
            return None
        return self.metadata_result.metadata

    def details(self) -> dict[str, Any]:
        return {
            "statusCode": self.connection.status_code,
            "responseTime": self.connection.response_time_ms,
            "contentType": self.connection.content_type,
        }

    def to_response(self) -> dict[str, Any]:
        """Render the JSON body returned by the stream-test endpoint."""
        if not self.success:
            return {
                "success": False,
                "status": "failure",
                "message": FAILURE_MESSAGE,
                "error": self.connection.error_message,
                "details": self.details(),
            }

        body: dict[str, Any] = {
            "success": True,
            "status": "success",
            "message": SUCCESS_MESSAGE,
            "details": self.details(),
        }
        metadata = self.metadata
        if metadata is not None:
            body["metadata"] = metadata.to_dict()
        if self.metadata_error:
            body["metadataError"] = self.metadata_error
        return body

    def to_dict(self) -> dict[str, Any]:
        data = self.to_response()
        data["connection"] = self.connection.to_dict()
        if self.metadata_result is not None:
            data["metadataResult"] = self.metadata_result.to_dict()
        if self.metadata_budget_ms is not None:
            data["metadataBudgetMs"] = self.metadata_budget_ms
        return data


@dataclass
class FallbackTestResult:
    """Outcome of testing a primary URL with an optional fallback."""

    outcome: StreamTestOutcome
    tested_url: str
    used_fallback: bool = False
    fallback_url: str | None = None


__all__ = ["CombinedProbeResult", "FAILURE_MESSAGE", "FallbackTestResult", "SUCCESS_MESSAGE"]
