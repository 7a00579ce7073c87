"""
Site Intake
Flask application factory.

Usage:
    from intake import create_app
    app = create_app()           # APP_ENV, else "development"
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as sa_engine
from sqlalchemy import event as sa_event

from intake.cli import register_commands
from intake.config import config
from intake.middleware.logging_config import configure_logging
from intake.middleware.rate_limiter import init_rate_limits
from intake.middleware.timing import _redact_token, init_request_timing
from intake.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
# no global limit; applied per blueprint
limiter = Limiter(key_func=get_remote_address, default_limits=[])


@sa_event.listens_for(sa_engine.Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    # collection rows cascade with their submission
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _init_cors(app: Flask):
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins and origins != "*":
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])
    else:
        CORS(app)


def _init_database(app: Flask):
    from intake.models import ai as _ai_models                  # noqa: F401
    from intake.models import submission as _submission_models  # noqa: F401

    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()


def _register_blueprints(app: Flask):
    from intake.blueprints.admin_bp import admin_bp
    from intake.blueprints.ai_bp import ai_bp
    from intake.blueprints.health_bp import health_bp
    from intake.blueprints.intake_bp import intake_bp

    for bp in (intake_bp, admin_bp, ai_bp, health_bp):
        app.register_blueprint(bp)


def _register_error_pages(app: Flask):
    """JSON bodies for HTTP errors no blueprint handled."""

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"error": "Not found", "path": _redact_token(request.path)}, 404
        return "<h1>404 Not Found</h1>", 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error on %s: %s", _redact_token(request.path), e, exc_info=True)
        return {"error": "Internal server error"}, 500


def create_app(config_name=None):
    """Build the app for ``config_name`` (development | testing | production)."""
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates its environment when instantiated
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    _init_cors(app)
    init_request_timing(app)

    _init_database(app)
    _register_blueprints(app)
    _register_error_pages(app)
    register_commands(app)

    # blueprints must exist before limits attach to them
    init_rate_limits(app, limiter)

    logger.info("Site Intake ready (config=%s, workflow=%s)",
                config_name, app.config["WORKFLOW_POLICY"])
    return app
