# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Role checks for the admin endpoints.

Authentication itself is external: the application is given an
``Authenticator`` that turns a request into a Principal (or None).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import Request, current_app, jsonify, request


@dataclass(frozen=True)
class Principal:
    identity: str
    role: str | None = None

    def has_role(self, roles: tuple[str, ...]) -> bool:
        return bool(self.role) and self.role.lower() in roles


Authenticator = Callable[[Request], "Principal | None"]


def deny_all(_request: Request) -> Principal | None:
    return None


def proxy_header_authenticator(req: Request) -> Principal | None:
    """Trust identity headers set by an authenticating reverse proxy."""
    identity = (req.headers.get("X-User") or "").strip()
    if not identity:
        return None
    role = (req.headers.get("X-User-Role") or "").strip() or None
    return Principal(identity=identity, role=role)


def require_role(*role_names: str) -> Callable:
    """
    Decorator to require an authenticated principal holding one of ``role_names``.

    With no arguments the application's configured admin roles apply.
    """
    normalized = tuple(role.lower() for role in role_names)

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args: Any, **kwargs: Any) -> Any:
            state = current_app.extensions["streamprobe"]
            principal = state.authenticator(request)
            if principal is None:
                current_app.logger.warning("Authentication required for %s", request.endpoint)
                return jsonify({"error": "Unauthorized"}), 401

            allowed = normalized or state.web_settings.admin_roles
            if not principal.has_role(allowed):
                current_app.logger.warning(
                    "User %s with role %r denied access to %s. Required: %s",
                    principal.identity,
                    principal.role,
                    request.endpoint,
                    ", ".join(allowed),
                )
                return jsonify({"error": "Insufficient permissions. Admin access required."}), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


__all__ = ["Authenticator", "Principal", "deny_all", "proxy_header_authenticator", "require_role"]
