# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import socket
import threading
import time

import pytest

PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


class ScriptedStreamServer:
    """Loopback TCP server that answers every request with the same scripted bytes."""

    def __init__(self, reply: bytes, *, byte_delay: float = 0.0):
        self.reply = reply
        self.byte_delay = byte_delay
        self.requests: list[bytes] = []
        self._stop = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(8)
        self._listener.settimeout(0.1)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}/live"

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            conn.settimeout(5)
            head = b""
            try:
                while b"\r\n\r\n" not in head:
                    chunk = conn.recv(1024)
                    if not chunk:
                        return
                    head += chunk
                self.requests.append(head)
                if not self.byte_delay:
                    conn.sendall(self.reply)
                    return
                for index in range(len(self.reply)):
                    if self._stop.is_set():
                        return
                    conn.sendall(self.reply[index : index + 1])
                    time.sleep(self.byte_delay)
            except OSError:
                return

    def close(self) -> None:
        self._stop.set()
        self._listener.close()


@pytest.fixture
def stream_server(monkeypatch):
    """Factory for loopback servers; every server is stopped at teardown."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    servers: list[ScriptedStreamServer] = []

    def start(reply: bytes, *, byte_delay: float = 0.0) -> ScriptedStreamServer:
        server = ScriptedStreamServer(reply, byte_delay=byte_delay)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()
