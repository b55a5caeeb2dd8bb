# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for streamprobe."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"streamprobe/{__version__} (radio stream connectivity tester)"

METHOD_POLICIES = ("head_then_get", "head", "get")


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _positive_int_env(name: str, default: int) -> int:
    value = _int_env(name, default)
    return value if value > 0 else default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_str_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class HttpSettings:
    """Transport and probe defaults."""

    connection_timeout_ms: int = 10_000
    probe_ceiling_ms: int = 10_000
    metadata_floor_ms: int = 3_000
    method_policy: str = "head_then_get"
    user_agent: str = DEFAULT_USER_AGENT
    allow_redirects: bool = True
    verify_ssl: bool = True
    max_metaint: int = 1024 * 1024
    metadata_retries: int = 3
    backoff_factor: float = 2.0
    initial_delay: float = 1.0
    watchdog: bool = True
    fallback_stream_url: str | None = None

    @property
    def connection_timeout(self) -> float:
        return self.connection_timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        method_policy = (os.getenv("STREAMPROBE_METHOD_POLICY") or cls.method_policy).strip().lower()
        if method_policy not in METHOD_POLICIES:
            method_policy = cls.method_policy
        return cls(
            connection_timeout_ms=_positive_int_env("STREAMPROBE_CONNECTION_TIMEOUT_MS", cls.connection_timeout_ms),
            probe_ceiling_ms=_positive_int_env("STREAMPROBE_PROBE_CEILING_MS", cls.probe_ceiling_ms),
            metadata_floor_ms=_positive_int_env("STREAMPROBE_METADATA_FLOOR_MS", cls.metadata_floor_ms),
            method_policy=method_policy,
            user_agent=os.getenv("STREAMPROBE_USER_AGENT", cls.user_agent),
            allow_redirects=_bool_env("STREAMPROBE_HTTP_REDIRECTS", cls.allow_redirects),
            verify_ssl=_bool_env("STREAMPROBE_HTTP_VERIFY_SSL", cls.verify_ssl),
            max_metaint=_positive_int_env("STREAMPROBE_MAX_METAINT", cls.max_metaint),
            metadata_retries=_int_env("STREAMPROBE_METADATA_RETRIES", cls.metadata_retries),
            backoff_factor=_float_env("STREAMPROBE_HTTP_BACKOFF", cls.backoff_factor),
            initial_delay=_float_env("STREAMPROBE_HTTP_INITIAL_DELAY", cls.initial_delay),
            watchdog=_bool_env("STREAMPROBE_WATCHDOG", cls.watchdog),
            fallback_stream_url=_optional_str_env("STREAMPROBE_FALLBACK_STREAM_URL"),
        )


@dataclass
class WebSettings:
    """Defaults for the HTTP boundary (rate limits and role checks)."""

    test_rate_limit: int = 10
    metadata_rate_limit: int = 20
    rate_window_s: int = 60
    trust_proxy_auth: bool = False
    admin_roles: tuple[str, ...] = ("admin", "super_admin")
    ratelimit_storage_uri: str = "memory://"

    @classmethod
    def from_env(cls) -> "WebSettings":
        raw_roles = os.getenv("STREAMPROBE_ADMIN_ROLES")
        roles = cls.admin_roles
        if raw_roles is not None:
            parsed = tuple(role.strip().lower() for role in raw_roles.split(",") if role.strip())
            roles = parsed or cls.admin_roles
        return cls(
            test_rate_limit=_positive_int_env("STREAMPROBE_TEST_RATE_LIMIT", cls.test_rate_limit),
            metadata_rate_limit=_positive_int_env("STREAMPROBE_METADATA_RATE_LIMIT", cls.metadata_rate_limit),
            rate_window_s=_positive_int_env("STREAMPROBE_RATE_WINDOW_S", cls.rate_window_s),
            trust_proxy_auth=_bool_env("STREAMPROBE_TRUST_PROXY_AUTH", cls.trust_proxy_auth),
            admin_roles=roles,
            ratelimit_storage_uri=os.getenv("STREAMPROBE_RATELIMIT_STORAGE_URI", cls.ratelimit_storage_uri),
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()


def load_web_settings() -> WebSettings:
    return WebSettings.from_env()
