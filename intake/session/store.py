"""
Collaborator contracts for the session engine, plus in-process adapters.

The session only talks to two collaborators:

    RecordStore     durable submission + child collections
    TextGenerator   prompt → copy

``LocalRecordStore`` and ``GatewayGenerator`` call the service layer and
LLM gateway directly, pushing an application context when the caller (a
timer or worker thread, usually) has none. ``intake.session.http_client``
provides the same contracts over HTTP.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from flask import has_app_context

from intake.services import submission_service, workflow_service

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Durable store for submissions. All payloads are plain dicts."""

    @abstractmethod
    def create_submission(self, vertical: str | None = None) -> dict:
        """Returns {"id", "access_token"}."""
        ...

    @abstractmethod
    def get_by_token(self, token: str) -> dict | None:
        """Submission with its three collections, or None for an unknown token."""
        ...

    @abstractmethod
    def update_submission(self, submission_id, fields: dict) -> dict:
        ...

    @abstractmethod
    def replace_collection(self, submission_id, name: str, records: list,
                           expected_version: int | None = None) -> dict:
        """Delete-then-insert; returns {"collection", "records", "version"}."""
        ...

    @abstractmethod
    def transition(self, submission_id, status: str) -> dict:
        ...

    @abstractmethod
    def get_full(self, submission_id) -> dict:
        ...


class TextGenerator(ABC):
    """Single request/response copy generation."""

    @abstractmethod
    def generate(self, prompt: str, tone: str | None = None) -> str:
        ...


@contextmanager
def _app_context(app):
    if app is None or has_app_context():
        yield
    else:
        with app.app_context():
            yield


class LocalRecordStore(RecordStore):
    """RecordStore backed by the service layer of a Flask app."""

    def __init__(self, app=None):
        self.app = app

    def create_submission(self, vertical=None) -> dict:
        with _app_context(self.app):
            sub = submission_service.create_submission(vertical)
            return {"id": sub.id, "access_token": sub.access_token}

    def get_by_token(self, token) -> dict | None:
        with _app_context(self.app):
            sub = submission_service.get_by_token(token)
            return sub.to_dict(include_children=True) if sub else None

    def update_submission(self, submission_id, fields) -> dict:
        with _app_context(self.app):
            return submission_service.update_submission(submission_id, fields).to_dict()

    def replace_collection(self, submission_id, name, records, expected_version=None) -> dict:
        with _app_context(self.app):
            return submission_service.replace_collection(
                submission_id, name, records, expected_version=expected_version,
            )

    def transition(self, submission_id, status) -> dict:
        with _app_context(self.app):
            return workflow_service.transition_submission(submission_id, status, actor="client")

    def get_full(self, submission_id) -> dict:
        with _app_context(self.app):
            return submission_service.get_full_submission(submission_id)


class GatewayGenerator(TextGenerator):
    """TextGenerator backed by an in-process LLMGateway."""

    def __init__(self, gateway, app=None):
        self.gateway = gateway
        self.app = app

    def generate(self, prompt, tone=None) -> str:
        with _app_context(self.app):
            return self.gateway.generate(prompt, tone)
