"""
Intake Session Controller.

Composes the session engine for one resumable client link:

    IntakeSession
      ├── FieldStore              scalar snapshot
      ├── DebouncedPersistence    autosave, observes FieldStore
      ├── CollectionEditor × 3    services / testimonials / business_hours
      ├── AugmentationAdapter     AI copy, one job per key
      └── StepNavigator           steps 1-10 + confirmation

Usage:
    store = LocalRecordStore(app)
    session = IntakeSession.open(token, store, GatewayGenerator(LLMGateway(app), app))
    session.set_field("business_name", "Acme Plumbing")
    session.add_service()
    session.next_step()
    ...
    session.submit()
    session.close()
"""

import logging
from dataclasses import dataclass

from intake.ai.prompts import FIELD_PROMPTS, SERVICE_PROMPT
from intake.core.exceptions import NotFoundError, ValidationError
from intake.models.submission import COLLECTION_NAMES, EDITABLE_FIELDS
from intake.session.augment import AugmentationAdapter
from intake.session.collections import DEFAULT_HOURS, CollectionEditor
from intake.session.field_store import FieldStore
from intake.session.navigator import LAST_STEP, StepNavigator, missing_required
from intake.session.persistence import DebouncedPersistence
from intake.session.scheduler import ThreadingScheduler

logger = logging.getLogger(__name__)

_EDITABLE = frozenset(EDITABLE_FIELDS)

# Keys of the hydrated record that are not scalar form fields
_NON_FIELD_KEYS = frozenset(COLLECTION_NAMES) | {"collection_versions", "build_logs"}


@dataclass
class SessionSettings:
    """Timing knobs; mirrors the AUTOSAVE_* / SAVE_INDICATOR_* app config."""

    debounce_seconds: float = 1.0
    indicator_seconds: float = 0.8

    @classmethod
    def from_config(cls, config):
        return cls(
            debounce_seconds=config.get("AUTOSAVE_DEBOUNCE_SECONDS", 1.0),
            indicator_seconds=config.get("SAVE_INDICATOR_SECONDS", 0.8),
        )


def service_key(index: int) -> str:
    """Augmentation key for one service record."""
    return f"services_{index}"


class IntakeSession:
    """One client's in-memory editing session over a stored submission."""

    def __init__(self, record: dict, store, generator, *, token=None, scheduler=None,
                 settings=None):
        settings = settings or SessionSettings()
        self.store = store
        self.generator = generator
        self.token = token or record.get("access_token")
        self.submission_id = record["id"]
        self.status = record.get("status", "draft")

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or ThreadingScheduler()

        self.fields = FieldStore(
            {k: v for k, v in record.items() if k not in _NON_FIELD_KEYS}
        )
        self.persistence = DebouncedPersistence(
            store, self.submission_id, self.scheduler,
            debounce_seconds=settings.debounce_seconds,
            indicator_seconds=settings.indicator_seconds,
        )
        self.fields.subscribe(self.persistence.on_field_changed)

        versions = record.get("collection_versions") or {}
        self.collections = {
            name: CollectionEditor(name, record.get(name) or [], version=versions.get(name, 0))
            for name in COLLECTION_NAMES
        }
        if not len(self.collections["business_hours"]):
            self.collections["business_hours"].replace_all(DEFAULT_HOURS)

        self.augmenter = AugmentationAdapter(generator, self.scheduler, self.fields.snapshot)
        # Re-entry always starts at step 1, whatever the stored status
        self.navigator = StepNavigator(self._flush_collection)

    # ── Construction ─────────────────────────────────────────────────────

    @classmethod
    def open(cls, token: str, store, generator, **kwargs) -> "IntakeSession":
        """Resolve ``token`` and hydrate a session. Unknown tokens raise NotFoundError."""
        record = store.get_by_token(token)
        if not record:
            raise NotFoundError(resource="Submission")
        logger.info("Intake session opened", extra={"submission_id": record["id"]})
        return cls(record, store, generator, token=token, **kwargs)

    @classmethod
    def start(cls, store, generator, vertical=None, **kwargs) -> "IntakeSession":
        """Create a new draft submission and open a session on it."""
        created = store.create_submission(vertical)
        return cls.open(created["access_token"], store, generator, **kwargs)

    # ── Fields ───────────────────────────────────────────────────────────

    def set_field(self, name: str, value):
        """Update one scalar field locally and schedule an autosave."""
        if name not in _EDITABLE:
            raise ValidationError(f"Unknown or read-only field: {name}", details={name: "not editable"})
        self.fields.set(name, value)

    def get_field(self, name: str, default=None):
        return self.fields.get(name, default)

    @property
    def is_saving(self) -> bool:
        return self.persistence.is_saving

    def flush(self) -> bool:
        """Send any pending scalar edits now."""
        return self.persistence.flush_now()

    # ── Collections ──────────────────────────────────────────────────────

    def collection(self, name: str) -> CollectionEditor:
        try:
            return self.collections[name]
        except KeyError:
            raise ValidationError(f"Unknown collection: {name}") from None

    @property
    def services(self) -> CollectionEditor:
        return self.collections["services"]

    @property
    def testimonials(self) -> CollectionEditor:
        return self.collections["testimonials"]

    @property
    def business_hours(self) -> CollectionEditor:
        return self.collections["business_hours"]

    def add_service(self, **overrides) -> int:
        defaults = {
            "service_name": "",
            "category": self.fields.get("business_category") or "",
            "description": "",
        }
        return self.services.add({**defaults, **overrides})

    def add_testimonial(self, **overrides) -> int:
        defaults = {"quote_text": "", "author_name": "", "author_city": "", "rating": 5}
        return self.testimonials.add({**defaults, **overrides})

    def _flush_collection(self, name: str) -> bool:
        return self.collections[name].flush(self.store, self.submission_id)

    # ── Navigation ───────────────────────────────────────────────────────

    @property
    def current_step(self) -> int:
        return self.navigator.current

    @property
    def confirmed(self) -> bool:
        return self.navigator.confirmed

    def next_step(self) -> int:
        return self.navigator.next()

    def prev_step(self) -> int:
        return self.navigator.prev()

    def jump_to(self, step: int) -> int:
        return self.navigator.jump_to(step)

    def missing_required(self, step: int | None = None) -> list[str]:
        step = step or self.current_step
        owned = {4: self.services, 8: self.testimonials}.get(step)
        return missing_required(step, self.fields.snapshot(), owned.records if owned else None)

    # ── AI augmentation ──────────────────────────────────────────────────

    def can_augment(self, target: str) -> bool:
        prompt = FIELD_PROMPTS.get(target)
        return bool(prompt and prompt.is_ready(self.fields.snapshot()))

    def augment_field(self, target: str):
        """
        Generate copy for a form field (e.g. ``hero_headline``).

        Returns the background Job, or None when the source text is too
        short for this field.
        """
        prompt = FIELD_PROMPTS.get(target)
        if prompt is None:
            raise ValidationError(f"No AI copy available for field: {target}")
        if not prompt.is_ready(self.fields.snapshot()):
            return None
        return self.augmenter.augment(
            target, prompt.build, lambda text: self.set_field(prompt.target, text),
        )

    def augment_service(self, index: int):
        """
        Polish one service's description into its ``ai_description``.

        The result follows the record it was requested for: if that record
        moves it still lands there, if it was removed the text is dropped.
        """
        record = self.services.get(index)
        if not SERVICE_PROMPT.is_ready(record):
            return None
        record_key = self.services.key_at(index)

        def apply(text):
            if self.services.update_by_key(record_key, {SERVICE_PROMPT.target: text}) is None:
                logger.info("Service removed before its copy arrived; result dropped",
                            extra={"submission_id": self.submission_id, "collection": "services"})

        return self.augmenter.augment(
            service_key(index), lambda form: SERVICE_PROMPT.build(form, record), apply,
        )

    def is_loading(self, key: str) -> bool:
        return self.augmenter.is_loading(key)

    # ── Submission ───────────────────────────────────────────────────────

    def submit(self) -> bool:
        """
        Finish the form from step 10.

        Flushes every collection and pending field edit, requests the
        ``submitted`` transition, then shows the confirmation step.
        Returns False (and stays on step 10) if the transition failed.
        """
        if self.confirmed:
            return True
        if self.current_step != LAST_STEP:
            raise ValidationError(f"Submit is only available from step {LAST_STEP}")

        for name in COLLECTION_NAMES:
            self._flush_collection(name)
        self.persistence.flush_now()

        try:
            self.store.transition(self.submission_id, "submitted")
        except Exception as e:
            logger.warning("Submit transition failed: %s", type(e).__name__,
                           extra={"submission_id": self.submission_id})
            return False

        self.status = "submitted"
        self.navigator.confirm()
        logger.info("Intake submitted", extra={"submission_id": self.submission_id})
        return True

    def close(self):
        """Flush pending edits and stop owned timers."""
        self.persistence.flush_now()
        if self._owns_scheduler:
            self.scheduler.shutdown()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"<IntakeSession {self.submission_id} step={self.current_step} [{self.status}]>"
