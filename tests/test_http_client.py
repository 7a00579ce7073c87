"""
tests/test_http_client.py — HTTP adapters for the session engine.

A mocked requests.Session forwards every call to the Flask test client,
so the adapters exercise the real endpoints end to end.
"""

from unittest.mock import MagicMock

import pytest
import requests

from intake.core.exceptions import ConflictError, GenerationError, NotFoundError
from intake.session import IntakeSession, SessionSettings
from intake.session.http_client import HttpGenerator, HttpRecordStore

BASE_URL = "http://intake.test"


def _to_response(rv, url):
    resp = requests.Response()
    resp.status_code = rv.status_code
    resp._content = rv.get_data()
    resp.headers.update(dict(rv.headers))
    resp.url = url
    return resp


@pytest.fixture()
def http_session(client):
    """requests.Session mock routed into the Flask test client."""

    def _request(method, url, json=None, timeout=None):
        path = url[len(BASE_URL):]
        rv = client.open(path, method=method, json=json)
        return _to_response(rv, url)

    session = MagicMock(spec=requests.Session)
    session.request.side_effect = _request
    return session


@pytest.fixture()
def store(http_session):
    return HttpRecordStore(BASE_URL, session=http_session)


class TestHttpRecordStore:

    def test_create_and_resolve(self, store):
        created = store.create_submission()
        record = store.get_by_token(created["access_token"])
        assert record["id"] == created["id"]
        assert record["status"] == "draft"

    def test_unknown_token_is_none(self, store):
        assert store.get_by_token("missing") is None

    def test_update_and_replace(self, store):
        created = store.create_submission()
        store.update_submission(created["id"], {"business_name": "Acme"})
        reply = store.replace_collection(created["id"], "services",
                                         [{"service_name": "Drains"}], expected_version=0)

        assert reply["version"] == 1
        full = store.get_full(created["id"])
        assert full["business_name"] == "Acme"
        assert full["services"][0]["service_name"] == "Drains"

    def test_validation_error_raises_http_error(self, store):
        created = store.create_submission()
        with pytest.raises(requests.HTTPError):
            store.update_submission(created["id"], {"status": "published"})

    def test_unresolved_submission(self, store):
        with pytest.raises(NotFoundError):
            store.update_submission(42, {"city": "Austin"})

    def test_submit_goes_through_client_route(self, store, http_session):
        created = store.create_submission()
        result = store.transition(created["id"], "submitted")

        assert result["submission"]["status"] == "submitted"
        url = http_session.request.call_args.args[1]
        assert url.endswith(f"/api/v1/intake/{created['access_token']}/submit")

    def test_other_states_go_through_admin_route(self, store, http_session):
        created = store.create_submission()
        store.transition(created["id"], "in_review")
        url = http_session.request.call_args.args[1]
        assert url.endswith(f"/api/v1/admin/submissions/{created['id']}/transition")

    def test_get_full_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.get_full(9999)

    def test_stale_version_raises_conflict(self, app, store, monkeypatch):
        monkeypatch.setitem(app.config, "COLLECTION_REPLACE_POLICY", "versioned")
        created = store.create_submission()
        store.replace_collection(created["id"], "testimonials",
                                 [{"quote_text": "Great"}], expected_version=0)

        with pytest.raises(ConflictError) as exc:
            store.replace_collection(created["id"], "testimonials", [], expected_version=0)
        assert exc.value.current == 1


class TestHttpGenerator:

    def test_generate(self, http_session):
        generator = HttpGenerator(BASE_URL, session=http_session)
        assert "Done Right" in generator.generate("Write a compelling hero headline", "FRIENDLY")
        body = http_session.request.call_args.kwargs["json"]
        assert body == {"prompt": "Write a compelling hero headline", "context": {"tone": "FRIENDLY"}}

    def test_http_error(self, http_session):
        generator = HttpGenerator(BASE_URL, session=http_session)
        with pytest.raises(GenerationError):
            generator.generate("")

    def test_connection_error(self):
        session = MagicMock(spec=requests.Session)
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(GenerationError):
            HttpGenerator(BASE_URL, session=session).generate("Write copy")

    def test_missing_text(self):
        resp = requests.Response()
        resp.status_code = 200
        resp._content = b'{"other": 1}'
        session = MagicMock(spec=requests.Session)
        session.request.return_value = resp
        with pytest.raises(GenerationError):
            HttpGenerator(BASE_URL, session=session).generate("Write copy")


class TestRemoteSession:

    def test_session_over_http(self, store, http_session, scheduler):
        generator = HttpGenerator(BASE_URL, session=http_session)
        session = IntakeSession.start(store, generator, scheduler=scheduler,
                                      settings=SessionSettings(1.0, 0.8))

        session.set_field("business_name", "Acme Plumbing")
        session.augment_field("hero_headline")
        scheduler.run_jobs()
        scheduler.advance(1.0)
        session.jump_to(4)
        session.add_service(service_name="Drains")
        session.jump_to(10)
        assert session.submit() is True

        full = store.get_full(session.submission_id)
        assert full["status"] == "submitted"
        assert full["business_name"] == "Acme Plumbing"
        assert full["hero_headline"]
        assert [s["service_name"] for s in full["services"]] == ["Drains"]
