"""
Submission Status Workflow — Service Layer.

Moves a submission between lifecycle states. Two policies:

    permissive  Any enumerated state may move to any enumerated state,
                including itself. Matches how operators use the dashboard
                today (manual reassignments, re-opening archived work).
    strict      Only the edges in ``STATUS_TRANSITIONS`` are legal.

Whatever the policy, a transition writes ``status`` and ``updated_at``
(plus any caller-supplied fields) in one commit, and stamps
``submitted_at`` the first time a submission enters ``submitted``.
"""

import logging
from datetime import datetime, timezone

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from intake.core.exceptions import ValidationError
from intake.models import db
from intake.models.submission import (
    STATUS_FLOW,
    STATUS_LABELS,
    STATUS_TRANSITIONS,
    SUBMISSION_STATUSES,
)
from intake.services.submission_service import coerce_fields, get_submission

logger = logging.getLogger(__name__)

WORKFLOW_POLICIES = ("permissive", "strict")

# Fields an operator may set together with a status change
OPERATOR_FIELDS = frozenset({"site_url", "published_url"})

QUICK_ACTION_COUNT = 3


def _policy(policy=None):
    if policy is None and has_app_context():
        policy = current_app.config.get("WORKFLOW_POLICY")
    policy = policy or "permissive"
    if policy not in WORKFLOW_POLICIES:
        raise ValidationError(f"Unknown workflow policy: {policy}")
    return policy


def validate_status_transition(old_status, new_status, policy=None):
    """Return True if the transition is legal under the active policy."""
    if new_status not in SUBMISSION_STATUSES:
        return False
    if _policy(policy) == "permissive":
        return True
    return new_status in STATUS_TRANSITIONS.get(old_status, [])


def available_transitions(status, policy=None) -> list[str]:
    """States reachable from ``status`` under the active policy."""
    if _policy(policy) == "permissive":
        return [s for s in SUBMISSION_STATUSES if s != status]
    return list(STATUS_TRANSITIONS.get(status, []))


def quick_actions(status) -> list[dict]:
    """
    Up to three forward states offered as one-click dashboard buttons.

    Drafts are offered the head of the flow. Published and archived
    submissions get none.
    """
    if status in STATUS_FLOW:
        following = STATUS_FLOW[STATUS_FLOW.index(status) + 1:]
    elif status == "draft":
        following = STATUS_FLOW
    else:
        following = ()
    return [
        {"status": s, "label": STATUS_LABELS[s]}
        for s in following[:QUICK_ACTION_COUNT]
    ]


def transition_submission(
    submission_id: int,
    new_status: str,
    *,
    fields: dict | None = None,
    policy: str | None = None,
    actor: str | None = None,
) -> dict:
    """
    Move a submission to ``new_status``.

    Args:
        fields: extra columns written in the same commit. Operators may
            send ``site_url`` / ``published_url``; anything else goes
            through the client field catalogue.
        actor: free-text label for the log line.

    Returns:
        {"submission", "previous_status", "status"}

    Raises:
        NotFoundError: unknown submission.
        ValidationError: unknown state, illegal edge under ``strict``,
            or a field that may not be written.
    """
    if new_status not in SUBMISSION_STATUSES:
        raise ValidationError(
            f"Unknown status: {new_status}",
            details={"status": f"must be one of {', '.join(SUBMISSION_STATUSES)}"},
        )

    sub = get_submission(submission_id)
    old = sub.status
    policy = _policy(policy)
    if not validate_status_transition(old, new_status, policy):
        raise ValidationError(
            f"Invalid transition: {old} → {new_status}",
            details={"allowed": available_transitions(old, policy)},
        )

    extra = dict(fields or {})
    operator_values = {k: extra.pop(k) for k in list(extra) if k in OPERATOR_FIELDS}
    client_values = coerce_fields(extra) if extra else {}

    now = datetime.now(timezone.utc)
    try:
        for name, value in {**client_values, **operator_values}.items():
            setattr(sub, name, value)
        sub.status = new_status
        sub.updated_at = now
        if new_status == "submitted" and sub.submitted_at is None:
            sub.submitted_at = now
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Status transition failed", extra={"submission_id": sub.id})
        raise

    logger.info(
        "Submission %s: %s → %s%s", sub.id, old, new_status,
        f" by {actor}" if actor else "",
        extra={"submission_id": sub.id, "previous_status": old, "new_status": new_status},
    )
    return {"submission": sub.to_dict(), "previous_status": old, "status": new_status}

