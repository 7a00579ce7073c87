"""
tests/test_session_autosave.py — FieldStore + debounced autosave.

Covers: coalescing of edits inside the quiet period, timer reset,
        separate flushes per window, failure fold-back, saving indicator,
        flush_now, field-name guard on the session, timers refused after
        scheduler shutdown.
"""

import threading

import pytest

from intake.core.exceptions import ValidationError
from intake.session import IntakeSession, SessionSettings
from intake.session.field_store import FieldStore
from intake.session.persistence import DebouncedPersistence
from intake.session.scheduler import ThreadingScheduler


def _autosave(fake_store, scheduler, **fields):
    rec = fake_store.add(**fields)
    store = FieldStore({"id": rec["id"], **fields})
    persistence = DebouncedPersistence(fake_store, rec["id"], scheduler,
                                       debounce_seconds=1.0, indicator_seconds=0.8)
    store.subscribe(persistence.on_field_changed)
    return rec, store, persistence


def _updates(fake_store):
    return [c[2] for c in fake_store.calls_of("update")]


class TestFieldStore:

    def test_hydrate_does_not_notify(self):
        seen = []
        store = FieldStore()
        store.subscribe(lambda name, value: seen.append(name))
        store.hydrate({"business_name": "Acme"})
        assert store.get("business_name") == "Acme"
        assert seen == []

    def test_set_notifies_and_snapshot_is_copy(self):
        seen = []
        store = FieldStore({"city": "Austin"})
        store.subscribe(lambda name, value: seen.append((name, value)))
        store.set("city", "Dallas")

        snap = store.snapshot()
        snap["city"] = "Houston"
        assert seen == [("city", "Dallas")]
        assert store.get("city") == "Dallas"
        assert "city" in store


class TestDebounce:

    def test_edits_inside_window_coalesce(self, fake_store, scheduler):
        rec, store, _ = _autosave(fake_store, scheduler)
        store.set("business_name", "A")
        scheduler.advance(0.3)
        store.set("business_name", "Acme")
        scheduler.advance(0.3)
        store.set("city", "Austin")
        scheduler.advance(1.0)

        assert _updates(fake_store) == [{"business_name": "Acme", "city": "Austin"}]
        assert fake_store.records[rec["id"]]["business_name"] == "Acme"

    def test_each_edit_restarts_quiet_period(self, fake_store, scheduler):
        _, store, _ = _autosave(fake_store, scheduler)
        store.set("city", "Austin")
        scheduler.advance(0.9)
        store.set("zip", "78701")
        scheduler.advance(0.9)
        assert _updates(fake_store) == []

        scheduler.advance(0.1)
        assert _updates(fake_store) == [{"city": "Austin", "zip": "78701"}]

    def test_separate_windows_send_only_their_delta(self, fake_store, scheduler):
        _, store, _ = _autosave(fake_store, scheduler)
        store.set("city", "Austin")
        scheduler.advance(1.0)
        store.set("zip", "78701")
        scheduler.advance(1.0)

        assert _updates(fake_store) == [{"city": "Austin"}, {"zip": "78701"}]

    def test_single_timer_outstanding(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        for i in range(5):
            store.set("city", f"City {i}")
        assert scheduler.pending_timers == 1
        assert persistence.has_pending

    def test_flush_now_cancels_timer(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        store.set("city", "Austin")
        assert persistence.flush_now() is True
        scheduler.advance(5.0)

        assert _updates(fake_store) == [{"city": "Austin"}]
        assert not persistence.has_pending

    def test_flush_now_with_nothing_pending(self, fake_store, scheduler):
        _, _, persistence = _autosave(fake_store, scheduler)
        assert persistence.flush_now() is True
        assert fake_store.calls_of("update") == []


class TestFailure:

    def test_failed_delta_rides_next_flush(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        fake_store.fail_updates = True
        store.set("city", "Austin")
        scheduler.advance(1.0)

        assert persistence.failure_count == 1
        assert persistence.pending == {"city": "Austin"}

        fake_store.fail_updates = False
        store.set("zip", "78701")
        scheduler.advance(1.0)
        assert _updates(fake_store)[-1] == {"city": "Austin", "zip": "78701"}
        assert persistence.pending == {}

    def test_newer_edit_wins_over_failed_value(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        original = fake_store.update_submission

        def _edit_then_fail(submission_id, fields):
            # The user types again while the doomed flush is in flight
            store.set("city", "Dallas")
            raise RuntimeError("store unavailable")

        fake_store.update_submission = _edit_then_fail
        store.set("city", "Austin")
        scheduler.advance(1.0)
        assert persistence.pending == {"city": "Dallas"}

        fake_store.update_submission = original
        scheduler.advance(1.0)
        assert _updates(fake_store)[-1] == {"city": "Dallas"}

    def test_failure_never_raises(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        fake_store.fail_updates = True
        store.set("city", "Austin")
        assert persistence.flush_now() is False


class TestSavingIndicator:

    def test_indicator_window_after_flush(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        assert persistence.is_saving is False

        store.set("city", "Austin")
        assert persistence.is_saving is False
        scheduler.advance(1.0)
        assert persistence.is_saving is True
        scheduler.advance(0.7)
        assert persistence.is_saving is True
        scheduler.advance(0.2)
        assert persistence.is_saving is False

    def test_indicator_true_while_in_flight(self, fake_store, scheduler):
        _, store, persistence = _autosave(fake_store, scheduler)
        observed = []
        original = fake_store.update_submission

        def _observing_update(submission_id, fields):
            observed.append(persistence.is_saving)
            return original(submission_id, fields)

        fake_store.update_submission = _observing_update
        store.set("city", "Austin")
        scheduler.advance(1.0)
        assert observed == [True]


class TestSessionFields:

    def _open(self, fake_store, fake_generator, scheduler):
        fake_store.add(token="tok-1", business_name="Acme")
        return IntakeSession.open("tok-1", fake_store, fake_generator, scheduler=scheduler,
                                  settings=SessionSettings(1.0, 0.8))

    def test_hydrated_fields(self, fake_store, fake_generator, scheduler):
        session = self._open(fake_store, fake_generator, scheduler)
        assert session.get_field("business_name") == "Acme"
        assert "services" not in session.fields

    def test_set_field_autosaves(self, fake_store, fake_generator, scheduler):
        session = self._open(fake_store, fake_generator, scheduler)
        session.set_field("city", "Austin")
        scheduler.advance(1.0)
        assert _updates(fake_store) == [{"city": "Austin"}]

    @pytest.mark.parametrize("name", ["status", "access_token", "colour"])
    def test_non_editable_field_rejected(self, fake_store, fake_generator, scheduler, name):
        session = self._open(fake_store, fake_generator, scheduler)
        with pytest.raises(ValidationError):
            session.set_field(name, "x")
        assert scheduler.pending_timers == 0

    def test_close_flushes(self, fake_store, fake_generator, scheduler):
        session = self._open(fake_store, fake_generator, scheduler)
        with session:
            session.set_field("city", "Austin")
        assert _updates(fake_store) == [{"city": "Austin"}]


class TestSchedulerShutdown:

    def test_manual_timers_ignored_after_shutdown(self, scheduler):
        fired = []
        scheduler.call_later(1.0, lambda: fired.append("before"))
        scheduler.shutdown()
        handle = scheduler.call_later(1.0, lambda: fired.append("after"))

        assert scheduler.pending_timers == 0
        scheduler.advance(5.0)
        assert fired == []
        handle.cancel()

    def test_threading_timers_ignored_after_shutdown(self):
        scheduler = ThreadingScheduler()
        fired = threading.Event()
        scheduler.call_later(30.0, fired.set)
        scheduler.shutdown()

        scheduler.call_later(0, fired.set)
        assert scheduler.closed is True
        assert scheduler._timers == set()
        assert fired.wait(0.1) is False

    def test_late_edit_after_close_is_not_scheduled(self, fake_store, scheduler):
        _, store, _ = _autosave(fake_store, scheduler)
        scheduler.shutdown()
        store.set("city", "Austin")
        assert scheduler.pending_timers == 0


class TestSessionSettings:

    def test_defaults(self):
        assert SessionSettings() == SessionSettings(1.0, 0.8)

    def test_from_config(self):
        settings = SessionSettings.from_config({"AUTOSAVE_DEBOUNCE_SECONDS": 2.5})
        assert settings.debounce_seconds == 2.5
        assert settings.indicator_seconds == 0.8
