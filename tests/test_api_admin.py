"""
tests/test_api_admin.py — Operator dashboard API.

Covers: listing (search / status filter / counts), detail with quick
        actions, status transitions with operator URLs, strict-policy
        rejection, build stub, status catalogue.
"""

import pytest

from intake.models.submission import SUBMISSION_STATUSES

BASE = "/api/v1/admin"


def _create(client, **fields):
    sub = client.post("/api/v1/intake", json={}).get_json()
    if fields:
        client.patch(f"/api/v1/intake/{sub['access_token']}", json=fields)
    return sub


def _transition(client, sid, status, **extra):
    return client.post(f"{BASE}/submissions/{sid}/transition", json={"status": status, **extra})


class TestListing:

    def test_list_newest_first_with_counts(self, client):
        a = _create(client, business_name="Acme Plumbing")
        b = _create(client, business_name="Zeta Roofing")
        _transition(client, b["id"], "submitted")

        data = client.get(f"{BASE}/submissions").get_json()
        assert data["total"] == 2
        assert {row["id"] for row in data["items"]} == {a["id"], b["id"]}
        assert data["counts"]["total"] == 2
        assert data["counts"]["submitted"] == 1

    def test_search_matches_name_or_email(self, client):
        a = _create(client, business_name="Acme Plumbing")
        b = _create(client, email="hello@acme.example")
        _create(client, business_name="Zeta Roofing")

        data = client.get(f"{BASE}/submissions?search=ACME").get_json()
        assert {row["id"] for row in data["items"]} == {a["id"], b["id"]}

    def test_status_filter(self, client):
        _create(client)
        b = _create(client)
        _transition(client, b["id"], "in_review")

        data = client.get(f"{BASE}/submissions?status=in_review").get_json()
        assert [row["id"] for row in data["items"]] == [b["id"]]
        assert client.get(f"{BASE}/submissions?status=all").get_json()["total"] == 2

    def test_unknown_status_filter(self, client):
        assert client.get(f"{BASE}/submissions?status=lost").status_code == 422


class TestDetail:

    def test_full_aggregate(self, client):
        sub = _create(client, business_name="Acme")
        client.put(f"/api/v1/intake/{sub['access_token']}/collections/testimonials",
                   json={"records": [{"quote_text": "Great", "author_name": "Jo"}]})

        data = client.get(f"{BASE}/submissions/{sub['id']}").get_json()
        assert data["business_name"] == "Acme"
        assert data["testimonials"][0]["author_name"] == "Jo"
        assert data["intake_path"] == f"/intake/{sub['access_token']}"
        assert [a["status"] for a in data["quick_actions"]] == ["submitted", "in_review", "building"]
        assert "archived" in data["available_transitions"]

    def test_unknown_id(self, client):
        assert client.get(f"{BASE}/submissions/9999").status_code == 404


class TestTransition:

    def test_transition_with_published_url(self, client):
        sub = _create(client)
        res = _transition(client, sub["id"], "published", published_url="https://acme.example")

        assert res.status_code == 200
        data = res.get_json()
        assert data["previous_status"] == "draft"
        assert data["submission"]["status"] == "published"
        assert data["submission"]["published_url"] == "https://acme.example"

    def test_status_required(self, client):
        sub = _create(client)
        res = client.post(f"{BASE}/submissions/{sub['id']}/transition", json={})
        assert res.status_code == 400

    def test_unknown_status(self, client):
        sub = _create(client)
        assert _transition(client, sub["id"], "shipped").status_code == 422

    def test_actor_is_not_a_field(self, client):
        sub = _create(client)
        assert _transition(client, sub["id"], "in_review", actor="sam").status_code == 200

    def test_strict_policy_rejects_skip(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "WORKFLOW_POLICY", "strict")
        sub = _create(client)
        res = _transition(client, sub["id"], "building")
        assert res.status_code == 422
        assert res.get_json()["details"]["allowed"] == ["submitted", "archived"]


class TestBuild:

    def test_build_stub(self, client):
        sub = _create(client)
        _transition(client, sub["id"], "submitted")

        res = client.post(f"{BASE}/submissions/{sub['id']}/build",
                          json={"requested_by": "ops@example.com"})
        assert res.status_code == 202
        data = res.get_json()
        assert data["submission"]["status"] == "building"
        assert data["build"]["provider"] == "stub"

        detail = client.get(f"{BASE}/submissions/{sub['id']}").get_json()
        assert len(detail["build_logs"]) == 1
        assert detail["build_logs"][0]["requested_by"] == "ops@example.com"

    @pytest.mark.parametrize("status", ["draft", "published"])
    def test_build_refused(self, client, status):
        sub = _create(client)
        _transition(client, sub["id"], status)
        res = client.post(f"{BASE}/submissions/{sub['id']}/build")
        assert res.status_code == 422


class TestStatuses:

    def test_catalogue(self, client):
        data = client.get(f"{BASE}/statuses").get_json()
        assert data["statuses"] == list(SUBMISSION_STATUSES)
        assert data["flow"][0] == "submitted"
        assert data["labels"]["ready_for_qc"] == "Ready for QC"
        assert data["policy"] == "permissive"
