"""
Operator Admin Blueprint.

No authentication layer: the dashboard is expected to sit behind the
operator's own access controls.

Endpoints:
    GET   /api/v1/admin/submissions                       list (?search=&status=) + counts
    GET   /api/v1/admin/submissions/<id>                  full aggregate + quick actions
    POST  /api/v1/admin/submissions/<id>/transition       {status, site_url?, published_url?}
    POST  /api/v1/admin/submissions/<id>/build            site-builder stub
    GET   /api/v1/admin/statuses                          workflow states, flow, labels
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from intake.models.submission import STATUS_FLOW, STATUS_LABELS, SUBMISSION_STATUSES
from intake.services import build_service, submission_service, workflow_service
from intake.utils.helpers import get_json_body, register_error_handlers

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")
register_error_handlers(admin_bp)


@admin_bp.route("/submissions", methods=["GET"])
def list_submissions():
    """Dashboard listing, newest first."""
    search = request.args.get("search", "").strip() or None
    status = request.args.get("status") or None
    rows = submission_service.list_submissions(search=search, status=status)
    return jsonify({
        "items": [s.to_summary_dict() for s in rows],
        "total": len(rows),
        "counts": submission_service.summary_counts(),
    })


@admin_bp.route("/submissions/<int:sid>", methods=["GET"])
def get_submission(sid):
    return jsonify(submission_service.get_full_submission(sid))


@admin_bp.route("/submissions/<int:sid>/transition", methods=["POST"])
def transition_submission(sid):
    data, err = get_json_body(required=("status",))
    if err:
        return err
    fields = {k: v for k, v in data.items() if k not in ("status", "actor")}
    result = workflow_service.transition_submission(
        sid, data["status"], fields=fields or None, actor=data.get("actor") or "operator",
    )
    return jsonify(result)


@admin_bp.route("/submissions/<int:sid>/build", methods=["POST"])
def build_site(sid):
    data, err = get_json_body()
    if err:
        return err
    result = build_service.request_site_build(sid, requested_by=data.get("requested_by"))
    return jsonify(result), 202


@admin_bp.route("/statuses", methods=["GET"])
def list_statuses():
    return jsonify({
        "statuses": list(SUBMISSION_STATUSES),
        "flow": list(STATUS_FLOW),
        "labels": STATUS_LABELS,
        "policy": current_app.config.get("WORKFLOW_POLICY", "permissive"),
    })
