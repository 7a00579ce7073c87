"""
tests/test_api_intake.py — Client intake API (token-addressed).

Covers: create, catalogue, token read, partial update, collection replace,
        submit, error contract (400 / 404 / 409 / 422).
"""

import pytest

from intake.models import db
from intake.models.submission import Submission


def _url(token, suffix=""):
    return f"/api/v1/intake/{token}{suffix}"


class TestCreate:

    def test_create_default_vertical(self, client):
        res = client.post("/api/v1/intake", json={})
        assert res.status_code == 201
        data = res.get_json()
        assert data["id"] > 0
        assert data["access_token"]

    def test_create_without_body(self, client):
        res = client.post("/api/v1/intake")
        assert res.status_code == 201

    def test_closed_vertical(self, client):
        res = client.post("/api/v1/intake", json={"vertical": "healthcare"})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_RULE"

    def test_body_must_be_object(self, client):
        res = client.post("/api/v1/intake", json=["home_services"])
        assert res.status_code == 400

    def test_catalogue(self, client):
        data = client.get("/api/v1/intake/catalogue").get_json()
        assert len(data["steps"]) == 10
        assert data["steps"][0]["required"] == ["business_name", "business_category"]
        assert {"key": "home_services", "label": "Home Services", "open": True} in data["verticals"]
        assert "FRIENDLY" in data["tones"]


class TestRead:

    def test_get_by_token(self, client, submission):
        res = client.get(_url(submission["access_token"]))
        assert res.status_code == 200
        data = res.get_json()
        assert data["id"] == submission["id"]
        assert data["status"] == "draft"
        assert data["services"] == []
        assert data["collection_versions"]["business_hours"] == 0

    def test_unknown_token_is_404_without_echo(self, client, submission):
        res = client.get(_url("not-a-real-token"))
        assert res.status_code == 404
        assert "not-a-real-token" not in res.get_data(as_text=True)


class TestUpdate:

    def test_patch_merges(self, client, submission):
        token = submission["access_token"]
        client.patch(_url(token), json={"business_name": "Acme"})
        res = client.patch(_url(token), json={"city": "Austin", "tone": "formal"})

        assert res.status_code == 200
        data = res.get_json()
        assert data["business_name"] == "Acme"
        assert data["city"] == "Austin"
        assert data["tone"] == "FORMAL"

    def test_patch_protected_field(self, client, submission):
        res = client.patch(_url(submission["access_token"]), json={"status": "published"})
        assert res.status_code == 422
        assert res.get_json()["details"] == {"status": "not writable"}
        assert db.session.get(Submission, submission["id"]).status == "draft"

    def test_patch_checkbox_string_false(self, client, submission):
        token = submission["access_token"]
        client.patch(_url(token), json={"emergency_service": True})
        res = client.patch(_url(token), json={"emergency_service": "false"})
        assert res.status_code == 200
        assert res.get_json()["emergency_service"] is False

    def test_patch_unknown_token(self, client):
        res = client.patch(_url("nope"), json={"city": "Austin"})
        assert res.status_code == 404


class TestCollections:

    def test_replace_and_read_back(self, client, submission):
        token = submission["access_token"]
        res = client.put(_url(token, "/collections/services"), json={"records": [
            {"service_name": "Drains"}, {"service_name": "Heaters"},
        ]})
        assert res.status_code == 200
        assert res.get_json()["version"] == 1

        services = client.get(_url(token)).get_json()["services"]
        assert [(s["service_name"], s["sort_order"]) for s in services] == [("Drains", 0), ("Heaters", 1)]

    def test_records_required(self, client, submission):
        res = client.put(_url(submission["access_token"], "/collections/services"), json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_expected_version_must_be_int(self, client, submission):
        res = client.put(_url(submission["access_token"], "/collections/services"),
                         json={"records": [], "expected_version": "1"})
        assert res.status_code == 400

    def test_unknown_collection(self, client, submission):
        res = client.put(_url(submission["access_token"], "/collections/photos"),
                         json={"records": []})
        assert res.status_code == 422

    def test_stale_version_conflict(self, app, client, submission, monkeypatch):
        monkeypatch.setitem(app.config, "COLLECTION_REPLACE_POLICY", "versioned")
        url = _url(submission["access_token"], "/collections/testimonials")
        client.put(url, json={"records": [{"quote_text": "Great"}], "expected_version": 0})

        res = client.put(url, json={"records": [], "expected_version": 0})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_VERSION"
        assert body["details"]["current"] == 1


class TestSubmit:

    def test_submit(self, client, submission):
        res = client.post(_url(submission["access_token"], "/submit"))
        assert res.status_code == 200
        data = res.get_json()
        assert data["previous_status"] == "draft"
        assert data["submission"]["status"] == "submitted"
        assert data["submission"]["submitted_at"] is not None

    @pytest.mark.parametrize("policy,expected", [("permissive", 200), ("strict", 422)])
    def test_resubmit_depends_on_policy(self, app, client, submission, monkeypatch,
                                        policy, expected):
        monkeypatch.setitem(app.config, "WORKFLOW_POLICY", policy)
        url = _url(submission["access_token"], "/submit")
        client.post(url)
        assert client.post(url).status_code == expected
