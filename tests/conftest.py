"""
Shared pytest fixtures for the Site Intake test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - submission: Pre-created draft Submission via the API
    - scheduler: virtual-clock ManualScheduler
    - fake_store / fake_generator: in-memory session collaborators
"""

import threading

import pytest

from intake import create_app
from intake.models import db as _db
from intake.session.scheduler import ManualScheduler
from intake.session.store import RecordStore, TextGenerator


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def submission(client):
    """Create a draft home-services submission via the API."""
    res = client.post("/api/v1/intake", json={"vertical": "home_services"})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


# ── In-memory collaborators for session-engine tests ─────────────────────


class FakeRecordStore(RecordStore):
    """
    Dict-backed RecordStore that records every call.

    ``fail_updates`` / ``fail_replace`` / ``fail_transition`` make the next
    calls raise RuntimeError.
    """

    def __init__(self):
        self.records = {}
        self.calls = []
        self.fail_updates = False
        self.fail_replace = False
        self.fail_transition = False
        self._next_id = 1

    def add(self, token="tok-1", **fields):
        sid = self._next_id
        self._next_id += 1
        self.records[sid] = {
            "id": sid, "access_token": token, "status": "draft", "submitted_at": None,
            "services": [], "testimonials": [], "business_hours": [],
            "collection_versions": {"services": 0, "testimonials": 0, "business_hours": 0},
            **fields,
        }
        return self.records[sid]

    def create_submission(self, vertical=None):
        rec = self.add(token=f"tok-{self._next_id}", vertical=vertical or "home_services")
        self.calls.append(("create", vertical))
        return {"id": rec["id"], "access_token": rec["access_token"]}

    def get_by_token(self, token):
        self.calls.append(("get_by_token", token))
        for rec in self.records.values():
            if rec["access_token"] == token:
                return dict(rec)
        return None

    def update_submission(self, submission_id, fields):
        self.calls.append(("update", submission_id, dict(fields)))
        if self.fail_updates:
            raise RuntimeError("store unavailable")
        self.records[submission_id].update(fields)
        return dict(self.records[submission_id])

    def replace_collection(self, submission_id, name, records, expected_version=None):
        self.calls.append(("replace", submission_id, name, [dict(r) for r in records]))
        if self.fail_replace:
            raise RuntimeError("store unavailable")
        rec = self.records[submission_id]
        rec[name] = [dict(r, sort_order=i) for i, r in enumerate(records)]
        rec["collection_versions"][name] += 1
        return {"collection": name, "records": rec[name], "version": rec["collection_versions"][name]}

    def transition(self, submission_id, status):
        self.calls.append(("transition", submission_id, status))
        if self.fail_transition:
            raise RuntimeError("store unavailable")
        rec = self.records[submission_id]
        rec["status"] = status
        if status == "submitted" and rec.get("submitted_at") is None:
            rec["submitted_at"] = "now"
        return {"submission": dict(rec), "status": status}

    def get_full(self, submission_id):
        return dict(self.records[submission_id])

    def calls_of(self, kind):
        return [c for c in self.calls if c[0] == kind]


class FakeGenerator(TextGenerator):
    """Returns canned text per prompt; ``fail_on`` substrings raise."""

    def __init__(self, reply="Generated copy", fail_on=()):
        self.reply = reply
        self.fail_on = tuple(fail_on)
        self.prompts = []
        self._lock = threading.Lock()

    def generate(self, prompt, tone=None):
        with self._lock:
            self.prompts.append((prompt, tone))
        if any(s in prompt for s in self.fail_on):
            raise RuntimeError("upstream error")
        return self.reply if isinstance(self.reply, str) else self.reply(prompt)


@pytest.fixture()
def fake_store():
    return FakeRecordStore()


@pytest.fixture()
def fake_generator():
    return FakeGenerator()


@pytest.fixture()
def make_generator():
    """Factory for FakeGenerator with a custom reply / failure pattern."""
    return FakeGenerator
