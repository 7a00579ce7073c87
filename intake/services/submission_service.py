"""
Submission Record Store — Service Layer.

Business logic for:
    - Creation:            new draft submission + capability token
    - Token resolution:    token → submission (the client's only credential)
    - Partial update:      catalogue-checked scalar field writes
    - Collection replace:  delete-then-insert of one child collection, in one
                           transaction, optionally guarded by a version token
    - Full read:           submission + collections + build logs (operator view)
    - Listing:             operator dashboard rows + status counts

Every persisted mutation bumps ``Submission.updated_at``. Status is never
written here; see ``workflow_service.transition_submission``.
"""

import logging

from flask import current_app, has_app_context
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from intake.core.exceptions import ConflictError, NotFoundError, ValidationError
from intake.models import db
from intake.models.submission import (
    BOOLEAN_FIELDS,
    COLLECTION_MODELS,
    EDITABLE_FIELDS,
    OPEN_VERTICALS,
    PROTECTED_FIELDS,
    SUBMISSION_STATUSES,
    TONES,
    VERTICALS,
    Submission,
    build_collection_row,
)

logger = logging.getLogger(__name__)

REPLACE_POLICIES = {"last_write_wins", "versioned"}

_EDITABLE = frozenset(EDITABLE_FIELDS)


def _config(key, default=None):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


# ── Lookups ──────────────────────────────────────────────────────────────────


def get_submission(submission_id: int) -> Submission:
    """Fetch by primary key or raise NotFoundError."""
    sub = db.session.get(Submission, submission_id)
    if not sub:
        raise NotFoundError(resource="Submission", resource_id=submission_id)
    return sub


def get_by_token(token: str) -> Submission | None:
    """Resolve a client access token. Returns None when it does not match."""
    if not token:
        return None
    return Submission.query.filter_by(access_token=token).first()


def require_by_token(token: str) -> Submission:
    sub = get_by_token(token)
    if not sub:
        # Never include the token in the error
        raise NotFoundError(resource="Submission")
    return sub


# ── Create / update ──────────────────────────────────────────────────────────


def create_submission(vertical: str | None = None) -> Submission:
    """Create a draft submission for a vertical and issue its access token."""
    vertical = vertical or _config("DEFAULT_VERTICAL", "home_services")
    if vertical not in VERTICALS:
        raise ValidationError(f"Unknown vertical: {vertical}", details={"vertical": vertical})
    if vertical not in OPEN_VERTICALS:
        raise ValidationError(
            f"Vertical '{vertical}' is not open for intake yet",
            details={"vertical": "coming soon"},
        )

    sub = Submission(vertical=vertical, status="draft")
    db.session.add(sub)
    _commit("create submission")
    logger.info("Submission created", extra={"submission_id": sub.id})
    return sub


_TRUE_TOKENS = frozenset({"true", "1", "yes", "on"})
_FALSE_TOKENS = frozenset({"false", "0", "no", "off"})


def _coerce_bool(value):
    """Checkbox values arrive as JSON booleans, 0/1 or form strings; None if unrecognised."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    return None


def coerce_fields(fields: dict) -> dict:
    """
    Validate a partial update against the field catalogue.

    Raises ValidationError listing every unknown or protected key, a tone
    outside the enumerated set, or a checkbox value that is not a boolean.
    """
    if not isinstance(fields, dict):
        raise ValidationError("Fields must be an object")

    errors = {}
    clean = {}
    for name, value in fields.items():
        if name in PROTECTED_FIELDS:
            errors[name] = "not writable"
            continue
        if name not in _EDITABLE:
            errors[name] = "unknown field"
            continue
        if name in BOOLEAN_FIELDS:
            flag = _coerce_bool(value)
            if flag is None:
                errors[name] = "must be true or false"
                continue
            value = flag
        elif name == "tone" and value:
            value = str(value).upper()
            if value not in TONES:
                errors[name] = f"must be one of {', '.join(TONES)}"
                continue
        clean[name] = value

    if errors:
        raise ValidationError("Invalid submission fields", details=errors)
    return clean


def update_submission(submission_id: int, fields: dict) -> Submission:
    """Merge a partial field mapping into the stored submission."""
    sub = get_submission(submission_id)
    clean = coerce_fields(fields)
    if not clean:
        return sub

    for name, value in clean.items():
        setattr(sub, name, value)
    sub.touch()
    _commit("update submission")
    logger.debug("Submission %s updated: %s", sub.id, sorted(clean),
                 extra={"submission_id": sub.id})
    return sub


# ── Child collections ────────────────────────────────────────────────────────


def replace_collection(
    submission_id: int,
    name: str,
    records: list,
    *,
    expected_version: int | None = None,
    policy: str | None = None,
) -> dict:
    """
    Replace one child collection with the caller's buffer.

    Deletes every stored row for the submission, then inserts ``records``
    with ``sort_order`` taken from list position. Both steps run in one
    transaction. An empty list clears the collection.

    Under the ``versioned`` policy the caller must send the version it last
    saw; a mismatch raises ConflictError and nothing is written. Under
    ``last_write_wins`` the version is advanced but never checked.

    Returns:
        {"collection", "records", "version"}
    """
    model = COLLECTION_MODELS.get(name)
    if model is None:
        raise ValidationError(f"Unknown collection: {name}",
                              details={"collection": sorted(COLLECTION_MODELS)})
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ValidationError("records must be a list of objects")

    policy = policy or _config("COLLECTION_REPLACE_POLICY", "last_write_wins")
    if policy not in REPLACE_POLICIES:
        raise ValidationError(f"Unknown collection replace policy: {policy}")

    sub = get_submission(submission_id)
    version_attr = f"{name}_version"
    current = getattr(sub, version_attr) or 0

    if policy == "versioned":
        if expected_version is None:
            raise ValidationError("expected_version is required",
                                  details={"expected_version": "required"})
        if int(expected_version) != current:
            raise ConflictError(name, "version", expected_version, current)

    try:
        model.query.filter_by(submission_id=sub.id).delete(synchronize_session=False)
        rows = [build_collection_row(model, sub.id, record, i) for i, record in enumerate(records)]
        db.session.add_all(rows)
        setattr(sub, version_attr, current + 1)
        sub.touch()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Collection replace failed",
                         extra={"submission_id": sub.id, "collection": name})
        raise

    logger.debug("Collection %s replaced with %d record(s)", name, len(rows),
                 extra={"submission_id": sub.id, "collection": name})
    return {
        "collection": name,
        "records": [row.to_dict() for row in rows],
        "version": current + 1,
    }


# ── Reads ────────────────────────────────────────────────────────────────────


def get_full_submission(submission_id: int) -> dict:
    """Submission with all collections and build history (operator detail view)."""
    from intake.services.workflow_service import available_transitions, quick_actions

    sub = get_submission(submission_id)
    result = sub.to_dict(include_children=True)
    result["build_logs"] = [log.to_dict() for log in sub.build_logs]
    result["intake_path"] = f"/intake/{sub.access_token}"
    result["quick_actions"] = quick_actions(sub.status)
    result["available_transitions"] = available_transitions(sub.status)
    return result


def list_submissions(search: str | None = None, status: str | None = None) -> list[Submission]:
    """Operator listing, newest first, filtered by free-text and status."""
    q = Submission.query
    if status and status != "all":
        if status not in SUBMISSION_STATUSES:
            raise ValidationError(f"Unknown status: {status}")
        q = q.filter(Submission.status == status)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Submission.business_name.ilike(like), Submission.email.ilike(like)))
    return q.order_by(Submission.created_at.desc(), Submission.id.desc()).all()


def summary_counts() -> dict:
    """Dashboard tiles: total, awaiting review, in build, published."""
    rows = db.session.query(Submission.status, db.func.count(Submission.id)).group_by(Submission.status).all()
    by_status = {status: count for status, count in rows}
    return {
        "total": sum(by_status.values()),
        "submitted": by_status.get("submitted", 0),
        "building": by_status.get("building", 0) + by_status.get("ready_for_qc", 0),
        "published": by_status.get("published", 0),
        "by_status": by_status,
    }


# ── Internal ─────────────────────────────────────────────────────────────────


def _commit(action: str):
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error during %s", action)
        raise
