"""
tests/test_cli_health.py — CLI commands, health checks, request timing, JSON error pages.
"""

import importlib
import json
import logging
from unittest.mock import MagicMock

import pytest
from flask import Blueprint, Flask

intake_config = importlib.import_module("intake.config")

from intake.middleware.logging_config import JSONFormatter, ReadableFormatter
from intake.middleware.rate_limiter import _intake_key, init_rate_limits
from intake.middleware.timing import _level_for, _redact_token
from intake.models.submission import Submission


class TestNewIntakeCommand:

    def test_creates_draft_and_prints_link(self, app):
        result = app.test_cli_runner().invoke(args=["new-intake"])
        assert result.exit_code == 0

        sub = Submission.query.one()
        assert sub.status == "draft"
        assert f"/intake/{sub.access_token}" in result.output

    def test_closed_vertical_fails(self, app):
        result = app.test_cli_runner().invoke(args=["new-intake", "--vertical", "retail"])
        assert result.exit_code != 0
        assert "not open for intake" in result.output
        assert Submission.query.count() == 0


class TestSubmissionsCommand:

    def test_lists_by_status(self, app, submission):
        runner = app.test_cli_runner()
        runner.invoke(args=["new-intake"])

        result = runner.invoke(args=["submissions", "--status", "draft"])
        assert result.exit_code == 0
        assert len(result.output.strip().splitlines()) == 2
        assert "draft" in result.output

    def test_unknown_status(self, app):
        result = app.test_cli_runner().invoke(args=["submissions", "--status", "shipped"])
        assert result.exit_code != 0
        assert "Unknown status" in result.output


class TestHealth:

    def test_basic(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok", "app": "Site Intake"}

    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_live_checks_database(self, client):
        data = client.get("/api/v1/health/live").get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["app"]["workflow_policy"] == "permissive"


class TestErrorPages:

    def test_unknown_api_route_is_json(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/intake/catalogue")
        assert res.status_code == 405


class TestRequestTiming:

    @pytest.mark.parametrize("status,duration,level", [
        (200, 5.0, logging.DEBUG),
        (404, 5.0, logging.DEBUG),
        (200, 1500.0, logging.WARNING),
        (503, 5.0, logging.ERROR),
        (500, 1500.0, logging.ERROR),
    ])
    def test_log_level_follows_outcome(self, status, duration, level):
        assert _level_for(status, duration)[0] == level

    def test_headers(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_token_redacted_in_logged_path(self):
        assert _redact_token("/api/v1/intake/s3cr3t-token/submit") == "/api/v1/intake/s3cr…/submit"
        assert _redact_token("/api/v1/admin/submissions") == "/api/v1/admin/submissions"


def _record(msg="Collection replaced", **extra):
    record = logging.LogRecord("intake.services", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogFormatters:

    def test_readable_appends_context_tags(self):
        line = ReadableFormatter().format(_record(submission_id=12, collection="services"))
        assert "Collection replaced" in line
        assert line.endswith("[submission=12 collection=services]")

    def test_readable_without_context_has_no_tags(self):
        assert ReadableFormatter().format(_record()).endswith("Collection replaced")

    def test_json_carries_context_fields(self):
        entry = json.loads(JSONFormatter().format(
            _record(submission_id=7, previous_status="draft", new_status="submitted", duration_ms=3.2),
        ))
        assert entry["message"] == "Collection replaced"
        assert entry["submission_id"] == 7
        assert entry["new_status"] == "submitted"
        assert entry["duration_ms"] == 3.2
        assert "collection" not in entry


class TestRateLimitKey:

    def test_intake_routes_keyed_by_token(self, app):
        with app.test_request_context("/api/v1/intake/tok123", environ_base={"REMOTE_ADDR": "10.0.0.9"}):
            assert _intake_key() == "intake:tok123"

    def test_other_routes_keyed_by_address(self, app):
        with app.test_request_context("/api/v1/intake", method="POST",
                                      environ_base={"REMOTE_ADDR": "10.0.0.9"}):
            assert _intake_key() == "10.0.0.9"


class TestRateLimitConfig:

    def test_env_overrides_reach_config(self, monkeypatch):
        monkeypatch.setenv("RATELIMIT_AI", "5/minute")
        try:
            reloaded = importlib.reload(intake_config)
            assert reloaded.Config.RATELIMIT_AI == "5/minute"
            assert reloaded.Config.RATELIMIT_INTAKE == "300/minute"
        finally:
            monkeypatch.delenv("RATELIMIT_AI")
            importlib.reload(intake_config)

    def test_configured_limits_applied_per_blueprint(self):
        app = Flask(__name__)
        app.config.update(RATELIMIT_AI="5/minute", RATELIMIT_ADMIN="60/minute")
        for name in ("ai", "intake", "admin", "health"):
            app.register_blueprint(Blueprint(name, __name__, url_prefix=f"/{name}"))
        limiter = MagicMock()

        init_rate_limits(app, limiter)

        limits = [c.args[0] for c in limiter.limit.call_args_list]
        assert limits == ["5/minute", "300/minute", "60/minute"]
        assert limiter.limit.call_args_list[1].kwargs["key_func"] is _intake_key
        limiter.exempt.assert_called_once_with(app.blueprints["health"])
