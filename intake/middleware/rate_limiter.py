"""
Per-blueprint request limits (Flask-Limiter).

The Limiter in intake/__init__.py carries no default limit. Each API
blueprint gets its own bucket here; a deployment can override a bucket
with ``RATELIMIT_<BLUEPRINT>`` (e.g. ``RATELIMIT_AI="5/minute"``).

Client intake traffic is keyed on the session's access token instead of
the remote address, so several clients behind one office NAT do not share
one autosave allowance.
"""

import logging

from flask import request

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "ai": "20/minute",
    "intake": "300/minute",
    "admin": "120/minute",
}


def _intake_key():
    token = (request.view_args or {}).get("token")
    if token:
        return f"intake:{token}"
    return request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """Attach limits to the registered blueprints; no-op under TESTING."""
    if app.config.get("TESTING"):
        return

    applied = {}
    for name, fallback in DEFAULT_LIMITS.items():
        bp = app.blueprints.get(name)
        if bp is None:
            continue
        limit = app.config.get(f"RATELIMIT_{name.upper()}", fallback)
        if name == "intake":
            limiter.limit(limit, key_func=_intake_key)(bp)
        else:
            limiter.limit(limit)(bp)
        applied[name] = limit

    if "health" in app.blueprints:
        limiter.exempt(app.blueprints["health"])

    logger.info("Rate limits: %s", ", ".join(f"{k}={v}" for k, v in applied.items()))
