"""
HTTP adapters for running an IntakeSession outside the server process.

``HttpRecordStore`` and ``HttpGenerator`` implement the session's
collaborator contracts against the client intake, operator admin and AI
generate endpoints. Client writes are addressed by access token, so the
store remembers the token of every submission it has resolved.

Testability: pass a mock ``session`` instead of letting the adapter build
a real requests.Session.
"""

from __future__ import annotations

import logging

import requests

from intake.core.exceptions import ConflictError, GenerationError, NotFoundError
from intake.session.store import RecordStore, TextGenerator

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class _HttpBase:
    def __init__(self, base_url: str, session: requests.Session | None = None,
                 timeout: int = _DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"Accept": "application/json"})
        return self._session

    def _request(self, method: str, path: str, json_body=None) -> requests.Response:
        return self.session.request(
            method, f"{self.base_url}{path}", json=json_body, timeout=self.timeout,
        )


class HttpRecordStore(_HttpBase, RecordStore):
    """RecordStore over the ``/api/v1/intake`` and ``/api/v1/admin`` endpoints."""

    def __init__(self, base_url: str, session: requests.Session | None = None,
                 timeout: int = _DEFAULT_TIMEOUT) -> None:
        super().__init__(base_url, session, timeout)
        self._tokens: dict = {}

    def _token(self, submission_id) -> str:
        token = self._tokens.get(submission_id)
        if token is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        return token

    def create_submission(self, vertical=None) -> dict:
        resp = self._request("POST", "/api/v1/intake", {"vertical": vertical} if vertical else {})
        resp.raise_for_status()
        data = resp.json()
        self._tokens[data["id"]] = data["access_token"]
        return data

    def get_by_token(self, token) -> dict | None:
        resp = self._request("GET", f"/api/v1/intake/{token}")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
        self._tokens[data["id"]] = token
        return data

    def update_submission(self, submission_id, fields) -> dict:
        resp = self._request("PATCH", f"/api/v1/intake/{self._token(submission_id)}", fields)
        resp.raise_for_status()
        return resp.json()

    def replace_collection(self, submission_id, name, records, expected_version=None) -> dict:
        body = {"records": records}
        if expected_version is not None:
            body["expected_version"] = expected_version
        resp = self._request(
            "PUT", f"/api/v1/intake/{self._token(submission_id)}/collections/{name}", body,
        )
        if resp.status_code == 409:
            current = (resp.json().get("details") or {}).get("current")
            raise ConflictError(resource=name, field="version", value=expected_version,
                                current=current)
        resp.raise_for_status()
        return resp.json()

    def transition(self, submission_id, status) -> dict:
        if status == "submitted" and submission_id in self._tokens:
            resp = self._request("POST", f"/api/v1/intake/{self._token(submission_id)}/submit")
        else:
            resp = self._request(
                "POST", f"/api/v1/admin/submissions/{submission_id}/transition", {"status": status},
            )
        resp.raise_for_status()
        return resp.json()

    def get_full(self, submission_id) -> dict:
        resp = self._request("GET", f"/api/v1/admin/submissions/{submission_id}")
        if resp.status_code == 404:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        resp.raise_for_status()
        return resp.json()


class HttpGenerator(_HttpBase, TextGenerator):
    """TextGenerator over ``POST /api/v1/ai/generate``."""

    def generate(self, prompt, tone=None) -> str:
        try:
            resp = self._request(
                "POST", "/api/v1/ai/generate", {"prompt": prompt, "context": {"tone": tone}},
            )
        except requests.RequestException as exc:
            logger.warning("Generate request failed: %s", type(exc).__name__)
            raise GenerationError() from exc

        if not resp.ok:
            raise GenerationError()
        try:
            text = resp.json().get("text")
        except ValueError as exc:
            raise GenerationError() from exc
        if not text:
            raise GenerationError()
        return text
