# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP transport models shared by the probes and HttpClient implementations."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from ..config import HttpSettings
from ..errors import ErrorCategory

Headers = dict[str, str]


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    # Budget for the whole exchange (connect, reply head and any body read), in seconds.
    timeout: float | None = None
    allow_redirects: bool = True


@dataclass
class HttpResponse:
    """
    Status line and headers of a response whose body was never read.

    Transport failures are reported with ``ok=False`` and no status code.
    """

    ok: bool
    status_code: int | None = None
    reason_phrase: str = ""
    headers: Headers = field(default_factory=dict)
    url: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    error_category: ErrorCategory = ErrorCategory.NONE

    @property
    def content_type(self) -> str | None:
        value = self.headers.get("content-type")
        return value or None


class StreamResponse(Protocol):
    """An open streaming response. Callers must close it."""

    status_code: int
    reason_phrase: str
    headers: Headers
    url: str

    def iter_raw(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


@dataclass
class RetryConfig:
    """Retry policy applied by callers of the single-shot probes."""

    max_attempts: int = 3
    backoff_factor: float = 2.0
    initial_delay: float = 1.0

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> RetryConfig:
        """Build a retry config from the shared HttpSettings."""
        return cls(
            max_attempts=max(1, settings.metadata_retries),
            backoff_factor=settings.backoff_factor,
            initial_delay=settings.initial_delay,
        )
