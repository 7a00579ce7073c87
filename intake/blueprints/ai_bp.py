"""
Site Intake
AI Blueprint.

Endpoints:
    GENERATE  /api/v1/ai/generate        POST  {prompt, context: {tone}} → {text}
    USAGE     /api/v1/ai/usage           GET   token / cost / outcome totals
"""

import logging

from flask import Blueprint, current_app, jsonify

from intake.ai.gateway import LLMGateway
from intake.models.ai import GenerationLog
from intake.utils.errors import E, api_error
from intake.utils.helpers import get_json_body, register_error_handlers

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")
register_error_handlers(ai_bp)


# ── Lazy singleton stored on Flask app (test-isolation safe) ────────────────

def _get_gateway():
    if not hasattr(current_app, "_ai_gateway"):
        current_app._ai_gateway = LLMGateway(app=current_app)
    return current_app._ai_gateway


@ai_bp.route("/generate", methods=["POST"])
def generate():
    """
    Produce website copy for one instruction.

    Any provider failure (missing key, upstream error, empty reply)
    collapses to a generic 500 "AI generation failed".
    """
    data, err = get_json_body()
    if err:
        return err
    prompt = data.get("prompt")
    if not prompt or not str(prompt).strip():
        return api_error(E.VALIDATION_REQUIRED, "Missing prompt")

    context = data.get("context") or {}
    tone = context.get("tone") if isinstance(context, dict) else None

    text = _get_gateway().generate(str(prompt), tone)
    return jsonify({"text": text})


@ai_bp.route("/usage", methods=["GET"])
def usage():
    """Token, cost and outcome totals plus the 20 most recent calls."""
    recent = GenerationLog.query.order_by(GenerationLog.id.desc()).limit(20).all()
    return jsonify({**GenerationLog.totals(), "recent": [log.to_dict() for log in recent]})
