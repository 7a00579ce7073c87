"""Error bodies shared by every intake API blueprint.

Every error leaves the API as::

    {"error": "<message>", "code": "ERR_<NAME>", "details": {...}}

``details`` is omitted when empty. The HTTP status follows from the code
unless the caller overrides it.

Usage
-----
    from intake.utils.errors import E, api_error

    return api_error(E.VALIDATION_REQUIRED, "records is required")
    return api_error(E.CONFLICT_VERSION, str(exc), details={"current": 3})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    # Malformed request body: 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    # Unknown field / status / collection, closed vertical, strict-policy edge: 422
    VALIDATION_RULE = "ERR_VALIDATION_RULE"
    # Unknown submission id or access token: 404
    NOT_FOUND = "ERR_NOT_FOUND"
    # Stale collection version, constraint violation: 409
    CONFLICT_VERSION = "ERR_CONFLICT_VERSION"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    # Copy generation or storage failure: 500
    GENERATION_FAILED = "ERR_GENERATION_FAILED"
    DATABASE = "ERR_DATABASE"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_VERSION: 409,
    E.CONFLICT_STATE: 409,
    E.GENERATION_FAILED: 500,
    E.DATABASE: 500,
}


def api_error(code: str, message: str, *, status: int | None = None,
              details: dict | None = None):
    """Build a ``(response, status)`` tuple a view can return directly."""
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
