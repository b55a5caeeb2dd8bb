# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client abstraction and factory."""

from typing import Protocol

from ..config import HttpSettings, load_http_settings
from .models import HttpRequest, HttpResponse, StreamResponse


class HttpClient(Protocol):
    """
    Minimal protocol for probing stream servers.

    ``request.timeout`` is a wall-clock budget for the whole exchange, not a
    per-read timeout. Implementations abort the connection when it runs out.
    """

    def request(self, request: HttpRequest) -> HttpResponse:
        """Return status and headers only. Never reads the body and never raises for transport errors."""
        ...

    def open_stream(self, request: HttpRequest) -> StreamResponse:
        """Open a streaming response; raises StreamTransportError on transport failure."""
        ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_http_client(settings: HttpSettings | None = None) -> HttpClient:
    """Factory for the default httpx-backed client."""
    from .httpx_client import HttpxClient

    return HttpxClient(settings or load_http_settings())
