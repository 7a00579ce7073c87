"""
Per-request timing and request ids.

Every response carries ``X-Request-ID`` (echoed from the caller or freshly
minted) and ``X-Request-Duration-Ms``. API requests are logged once, at a
level that follows the outcome:

    >= SLOW_REQUEST_MS or 5xx    warning / error
    everything else              debug

Access tokens in client intake paths are shortened before they reach the
log, since the token is the client's only credential.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000
INTAKE_PREFIX = "/api/v1/intake/"
# Health checks hit these every few seconds
QUIET_PATHS = frozenset({"/api/v1/health", "/api/v1/health/ready"})


def _redact_token(path: str) -> str:
    """``/api/v1/intake/abcdef.../submit`` → ``/api/v1/intake/abcd…/submit``."""
    if not path.startswith(INTAKE_PREFIX):
        return path
    token, sep, tail = path[len(INTAKE_PREFIX):].partition("/")
    if not token:
        return path
    return f"{INTAKE_PREFIX}{token[:4]}…{sep}{tail}"


def _level_for(status: int, duration_ms: float) -> tuple[int, str]:
    if status >= 500:
        return logging.ERROR, "Server error"
    if duration_ms >= SLOW_REQUEST_MS:
        return logging.WARNING, "Slow request"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):

    @app.before_request
    def _begin():
        g.started_at = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish(response):
        started = g.pop("started_at", None)
        if started is None:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        request_id = g.get("request_id", "")
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"

        if request.path in QUIET_PATHS or not request.path.startswith("/api/"):
            return response

        path = _redact_token(request.path)
        level, label = _level_for(response.status_code, elapsed)
        logger.log(level, "%s: %s %s %d", label, request.method, path, response.status_code,
                   extra={
                       "method": request.method,
                       "path": path,
                       "status": response.status_code,
                       "duration_ms": elapsed,
                       "remote_addr": request.remote_addr,
                       "request_id": request_id,
                   })
        return response
