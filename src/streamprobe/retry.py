# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Caller-side retry policy for the single-shot metadata probe."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .config import load_http_settings
from .errors import ErrorCategory
from .http.models import RetryConfig
from .models.stream import MetadataExtractionResult

logger = logging.getLogger(__name__)

# Failures that another attempt cannot fix.
_PERMANENT_CATEGORIES = frozenset({ErrorCategory.INVALID_URL, ErrorCategory.METADATA_UNSUPPORTED})


def build_default_retry_config() -> RetryConfig:
    return RetryConfig.from_settings(load_http_settings())


def extract_with_retries(
    attempt: Callable[[], MetadataExtractionResult],
    *,
    retry_config: RetryConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> MetadataExtractionResult:
    """Run a metadata attempt with exponential backoff until it succeeds or attempts run out."""
    cfg = retry_config or build_default_retry_config()
    max_attempts = max(1, cfg.max_attempts)
    delay = cfg.initial_delay
    last_error = "Unknown error"
    attempts = 0

    while attempts < max_attempts:
        result = attempt()
        attempts += 1
        if result.success:
            return result

        last_error = result.error or "Unknown error"
        if result.error_category in _PERMANENT_CATEGORIES:
            break
        if attempts >= max_attempts:
            break
        logger.debug("Metadata attempt %d/%d failed: %s", attempts, max_attempts, last_error)
        sleep(delay)
        delay *= cfg.backoff_factor

    return MetadataExtractionResult.failed(
        f"Failed after {attempts} attempts. Last error: {last_error}",
        category=result.error_category,
        response_time_ms=result.response_time_ms,
    )


__all__ = ["build_default_retry_config", "extract_with_retries"]
