# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Wall-clock limit for a whole HTTP exchange."""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

CONNECT_COMPLETE_EVENT = "connection.connect_tcp.complete"


def _shutdown(sock: socket.socket) -> None:
    # shutdown() wakes a thread blocked in recv(); close() alone does not.
    with contextlib.suppress(OSError):
        sock.shutdown(socket.SHUT_RDWR)


class SocketDeadline:
    """
    Shut down every socket of an exchange once ``budget_s`` has elapsed.

    httpx timeouts apply per connect/read/write step, so a server that sends
    its headers a byte at a time never trips them. The timer here bounds the
    total. Sockets are registered directly (``watch``) or picked up from the
    httpcore ``trace`` extension when a TCP connect completes (``trace``).
    """

    def __init__(self, budget_s: float | None, *, clock: Callable[[], float] = time.monotonic):
        self.budget_s = budget_s
        self._clock = clock
        self._started = clock()
        self._sockets: list[socket.socket] = []
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self.fired = False

    def remaining_s(self) -> float | None:
        if self.budget_s is None:
            return None
        return max(self.budget_s - (self._clock() - self._started), 0.0)

    def start(self) -> SocketDeadline:
        remaining = self.remaining_s()
        if remaining is not None and self._timer is None:
            self._timer = threading.Timer(remaining, self._fire)
            self._timer.daemon = True
            self._timer.start()
        return self

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def watch(self, sock: socket.socket) -> None:
        with self._lock:
            self._sockets.append(sock)
            fired = self.fired
        if fired:
            _shutdown(sock)

    def trace(self, event_name: str, info: dict[str, Any]) -> None:
        if event_name != CONNECT_COMPLETE_EVENT:
            return
        get_extra_info = getattr(info.get("return_value"), "get_extra_info", None)
        sock = get_extra_info("socket") if callable(get_extra_info) else None
        if sock is not None:
            self.watch(sock)

    def _fire(self) -> None:
        with self._lock:
            self.fired = True
            sockets = list(self._sockets)
        logger.debug("Exchange exceeded %ss, shutting down %d socket(s)", self.budget_s, len(sockets))
        for sock in sockets:
            _shutdown(sock)

    def __enter__(self) -> SocketDeadline:
        return self.start()

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.cancel()


__all__ = ["SocketDeadline"]
