"""
Site Build — Service Layer.

There is no site-builder integration yet. A build request records a
``queued`` BuildLog row and moves the submission to ``building`` in the
same commit, so operators can track what was requested.
"""

import logging

from intake.core.exceptions import ValidationError
from intake.models import db
from intake.models.submission import BuildLog
from intake.services.submission_service import get_submission
from intake.services.workflow_service import transition_submission, validate_status_transition

logger = logging.getLogger(__name__)

BUILDABLE_STATUSES = frozenset({"submitted", "in_review"})

STUB_PROVIDER = "stub"
STUB_MESSAGE = "Build queued; no site builder is configured, nothing was generated"


def request_site_build(submission_id: int, requested_by: str | None = None) -> dict:
    """
    Queue a site build for a reviewed submission.

    Returns:
        {"build": BuildLog dict, "submission": Submission dict}

    Raises:
        ValidationError: submission is not in submitted / in_review, or the
            workflow policy forbids moving it to building.
    """
    sub = get_submission(submission_id)
    if sub.status not in BUILDABLE_STATUSES:
        raise ValidationError(
            f"Cannot build a submission in '{sub.status}'",
            details={"status": f"must be one of {', '.join(sorted(BUILDABLE_STATUSES))}"},
        )
    if not validate_status_transition(sub.status, "building"):
        raise ValidationError(f"Invalid transition: {sub.status} → building")

    log = BuildLog(
        submission_id=sub.id,
        provider=STUB_PROVIDER,
        status="queued",
        message=STUB_MESSAGE,
        requested_by=requested_by,
    )
    db.session.add(log)
    try:
        result = transition_submission(sub.id, "building", actor=requested_by)
    except Exception:
        db.session.rollback()
        raise

    logger.info("Site build queued (provider=%s)", STUB_PROVIDER,
                extra={"submission_id": sub.id})
    return {"build": log.to_dict(), "submission": result["submission"]}
