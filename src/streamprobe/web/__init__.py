# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP boundary: admin endpoints wrapping the stream probes."""

from .app import StreamProbeState, create_app
from .auth import Principal, deny_all, proxy_header_authenticator, require_role
from .ratelimit import client_key, limiter

__all__ = [
    "Principal",
    "StreamProbeState",
    "client_key",
    "create_app",
    "deny_all",
    "limiter",
    "proxy_header_authenticator",
    "require_role",
]
