"""
Debounced autosave for scalar fields.

One timer per session: every field change resets it, and when the quiet
period elapses the whole accumulated delta goes to the record store in a
single update. Flushes that overlap in time are neither queued nor
cancelled; whichever completes last decides the stored value.

A failed flush is logged and its fields are folded back into the pending
delta (unless the user has since changed them), so the next edit's flush
carries them again. Nothing is retried on its own.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class DebouncedPersistence:
    """
    Coalesces field edits into debounced ``update_submission`` calls.

    Args:
        store: RecordStore collaborator.
        submission_id: resolved primary id.
        scheduler: Scheduler providing the clock and timers.
        debounce_seconds: quiet period before a flush.
        indicator_seconds: how long ``is_saving`` stays true after a flush
            completes.
    """

    def __init__(self, store, submission_id, scheduler, *, debounce_seconds=1.0,
                 indicator_seconds=0.8):
        self.store = store
        self.submission_id = submission_id
        self.scheduler = scheduler
        self.debounce_seconds = debounce_seconds
        self.indicator_seconds = indicator_seconds

        self._lock = threading.Lock()
        self._pending = {}
        self._timer = None
        self._in_flight = 0
        self._indicator_until = None
        self.flush_count = 0
        self.failure_count = 0

    # ── Observer entry point ─────────────────────────────────────────────

    def on_field_changed(self, name, value):
        """Merge one change into the delta and restart the quiet period."""
        with self._lock:
            self._pending[name] = value
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self.scheduler.call_later(self.debounce_seconds, self._on_timer)

    # ── Flushing ─────────────────────────────────────────────────────────

    def _on_timer(self):
        with self._lock:
            self._timer = None
        self._flush()

    def flush_now(self) -> bool:
        """Flush any pending delta immediately. Returns False if a flush failed."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self._flush()

    def _flush(self) -> bool:
        with self._lock:
            if not self._pending:
                return True
            delta, self._pending = self._pending, {}
            self._in_flight += 1

        logger.debug("Autosave flush: %s", sorted(delta),
                     extra={"submission_id": self.submission_id})
        try:
            self.store.update_submission(self.submission_id, delta)
        except Exception as e:
            with self._lock:
                self.failure_count += 1
                for name, value in delta.items():
                    self._pending.setdefault(name, value)
            logger.warning("Autosave failed for %d field(s): %s", len(delta), type(e).__name__,
                           extra={"submission_id": self.submission_id})
            return False
        else:
            with self._lock:
                self.flush_count += 1
            return True
        finally:
            with self._lock:
                self._in_flight -= 1
                self._indicator_until = self.scheduler.now() + self.indicator_seconds

    # ── State ────────────────────────────────────────────────────────────

    @property
    def pending(self) -> dict:
        with self._lock:
            return dict(self._pending)

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending) or self._timer is not None

    @property
    def is_saving(self) -> bool:
        """True while a flush is in flight and for a short while after."""
        with self._lock:
            if self._in_flight:
                return True
            return self._indicator_until is not None and self.scheduler.now() < self._indicator_until

    def cancel(self):
        """Drop the timer without flushing."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
