"""
Client Intake Blueprint.

The access token in the URL is the only credential: whoever holds the
link can read and edit that submission.

Endpoints:
    POST  /api/v1/intake                                  create draft → {id, access_token}
    GET   /api/v1/intake/<token>                          submission + collections + versions
    PATCH /api/v1/intake/<token>                          partial scalar update
    PUT   /api/v1/intake/<token>/collections/<name>       replace one collection
    POST  /api/v1/intake/<token>/submit                   draft → submitted
    GET   /api/v1/intake/catalogue                        steps, verticals, categories, tones
"""

import logging

from flask import Blueprint, jsonify

from intake.models.submission import HOME_SERVICE_CATEGORIES, OPEN_VERTICALS, TONES, VERTICALS
from intake.services import submission_service, workflow_service
from intake.session.navigator import STEPS
from intake.utils.errors import E, api_error
from intake.utils.helpers import get_json_body, register_error_handlers

logger = logging.getLogger(__name__)

intake_bp = Blueprint("intake", __name__, url_prefix="/api/v1/intake")
register_error_handlers(intake_bp)


@intake_bp.route("", methods=["POST"])
def create_intake():
    """Start a new intake for a vertical."""
    data, err = get_json_body()
    if err:
        return err
    sub = submission_service.create_submission(data.get("vertical"))
    return jsonify({"id": sub.id, "access_token": sub.access_token}), 201


@intake_bp.route("/catalogue", methods=["GET"])
def catalogue():
    """Static form metadata for the client."""
    return jsonify({
        "steps": [
            {"number": s.number, "title": s.title, "subtitle": s.subtitle, "required": list(s.required)}
            for s in STEPS
        ],
        "verticals": [
            {"key": k, "label": v, "open": k in OPEN_VERTICALS} for k, v in VERTICALS.items()
        ],
        "categories": list(HOME_SERVICE_CATEGORIES),
        "tones": list(TONES),
    })


@intake_bp.route("/<token>", methods=["GET"])
def get_intake(token):
    sub = submission_service.require_by_token(token)
    return jsonify(sub.to_dict(include_children=True))


@intake_bp.route("/<token>", methods=["PATCH"])
def update_intake(token):
    """Merge scalar fields. Unknown or protected keys → 422."""
    data, err = get_json_body()
    if err:
        return err
    sub = submission_service.require_by_token(token)
    sub = submission_service.update_submission(sub.id, data)
    return jsonify(sub.to_dict())


@intake_bp.route("/<token>/collections/<name>", methods=["PUT"])
def replace_collection(token, name):
    data, err = get_json_body()
    if err:
        return err
    records = data.get("records")
    if records is None:
        return api_error(E.VALIDATION_REQUIRED, "records is required")
    expected = data.get("expected_version")
    if expected is not None and not isinstance(expected, int):
        return api_error(E.VALIDATION_INVALID, "expected_version must be an integer")

    sub = submission_service.require_by_token(token)
    result = submission_service.replace_collection(
        sub.id, name, records, expected_version=expected,
    )
    return jsonify(result)


@intake_bp.route("/<token>/submit", methods=["POST"])
def submit_intake(token):
    """Client finished the form: move to submitted."""
    sub = submission_service.require_by_token(token)
    result = workflow_service.transition_submission(sub.id, "submitted", actor="client")
    return jsonify(result)
