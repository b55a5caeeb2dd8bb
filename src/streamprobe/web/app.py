# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Flask application factory for the stream-test endpoints."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from flask import Flask
from flask_limiter.errors import RateLimitExceeded

from ..config import WebSettings, load_http_settings, load_web_settings
from ..runtime import StreamProbe
from .auth import Authenticator, deny_all, proxy_header_authenticator
from .ratelimit import limiter, rate_limit_exceeded
from .routes import radio_bp

ProbeFactory = Callable[[], StreamProbe]


@dataclass
class StreamProbeState:
    """Per-application collaborators, stored in ``app.extensions["streamprobe"]``."""

    probe_factory: ProbeFactory
    authenticator: Authenticator
    web_settings: WebSettings


def _default_probe_factory() -> StreamProbe:
    # A fresh client per request: nothing is pooled across probes.
    return StreamProbe(settings=load_http_settings())


def create_app(
    *,
    probe_factory: ProbeFactory | None = None,
    authenticator: Authenticator | None = None,
    web_settings: WebSettings | None = None,
) -> Flask:
    settings = web_settings or load_web_settings()
    if authenticator is None:
        authenticator = proxy_header_authenticator if settings.trust_proxy_auth else deny_all

    app = Flask(__name__)
    app.config["RATELIMIT_STORAGE_URI"] = settings.ratelimit_storage_uri
    app.extensions["streamprobe"] = StreamProbeState(
        probe_factory=probe_factory or _default_probe_factory,
        authenticator=authenticator,
        web_settings=settings,
    )
    limiter.init_app(app)
    app.register_error_handler(RateLimitExceeded, rate_limit_exceeded)
    app.register_blueprint(radio_bp)
    return app


__all__ = ["ProbeFactory", "StreamProbeState", "create_app"]
