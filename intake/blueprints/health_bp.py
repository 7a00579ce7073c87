"""
Health Blueprint.

Endpoints:
    GET /api/v1/health          static ok (uptime checks)
    GET /api/v1/health/ready    200 once the app has booted (load balancers)
    GET /api/v1/health/live     database check + intake configuration; 503 if degraded
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from intake.models import db

logger = logging.getLogger(__name__)

APP_NAME = "Site Intake"

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": APP_NAME})


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"})


def _check_database() -> dict:
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness check: database unavailable: %s", exc)
        return {"status": "error", "detail": type(exc).__name__}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


@health_bp.route("/live", methods=["GET"])
def live():
    cfg = current_app.config
    checks = {
        "database": _check_database(),
        "app": {
            "name": APP_NAME,
            "debug": current_app.debug,
            "testing": current_app.testing,
            "workflow_policy": cfg.get("WORKFLOW_POLICY"),
            "collection_replace_policy": cfg.get("COLLECTION_REPLACE_POLICY"),
            "ai_model": cfg.get("LLM_DEFAULT_CHAT_MODEL"),
            "ai_stub_fallback": cfg.get("AI_STUB_FALLBACK"),
        },
    }
    healthy = checks["database"]["status"] == "ok"
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
