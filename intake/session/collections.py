"""
Ordered child-collection buffers (services, testimonials, business hours).

Edits are pure, synchronous buffer mutations. Nothing reaches the record
store until ``flush`` replaces the stored collection with the buffer.
"""

import copy
import itertools
import logging
import threading

from intake.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

DEFAULT_HOURS = (
    {"day_of_week": "Monday", "open_time": "08:00", "close_time": "17:00", "is_closed": False},
    {"day_of_week": "Tuesday", "open_time": "08:00", "close_time": "17:00", "is_closed": False},
    {"day_of_week": "Wednesday", "open_time": "08:00", "close_time": "17:00", "is_closed": False},
    {"day_of_week": "Thursday", "open_time": "08:00", "close_time": "17:00", "is_closed": False},
    {"day_of_week": "Friday", "open_time": "08:00", "close_time": "17:00", "is_closed": False},
    {"day_of_week": "Saturday", "open_time": "09:00", "close_time": "14:00", "is_closed": False},
    {"day_of_week": "Sunday", "open_time": "", "close_time": "", "is_closed": True},
)

# Server-assigned keys that are stripped before a record enters the buffer
_SERVER_KEYS = ("submission_id", "sort_order")


class CollectionEditor:
    """
    Edit buffer for one named child collection.

    ``version`` is the stored collection version last seen by this
    session; it is sent with every flush and refreshed from the reply.
    After a stale-version rejection ``conflict`` holds the version the
    store reported, until a flush succeeds or ``adopt_version`` is called.

    Every buffered record also gets a session-local key (``key_at``) that
    survives removals and reordering. Keys live beside the records and
    never reach the store.
    """

    def __init__(self, name: str, records=None, *, version: int = 0):
        self.name = name
        self.version = version
        self.conflict = None
        self._lock = threading.RLock()
        self._next_key = itertools.count(1)
        self._records = [self._clean(r) for r in (records or [])]
        self._keys = [next(self._next_key) for _ in self._records]
        self.flush_count = 0

    @staticmethod
    def _clean(record):
        rec = dict(record)
        for key in _SERVER_KEYS:
            rec.pop(key, None)
        return rec

    # ── Buffer operations ────────────────────────────────────────────────

    def add(self, defaults: dict | None = None) -> int:
        """Append a record built from ``defaults``; returns its index."""
        with self._lock:
            self._records.append(dict(defaults or {}))
            self._keys.append(next(self._next_key))
            return len(self._records) - 1

    def remove_at(self, index: int) -> dict:
        with self._lock:
            self._keys.pop(index)
            return self._records.pop(index)

    def update_at(self, index: int, patch: dict) -> dict:
        """Shallow-merge ``patch`` into the record at ``index``."""
        with self._lock:
            record = {**self._records[index], **patch}
            self._records[index] = record
            return dict(record)

    def key_at(self, index: int) -> int:
        with self._lock:
            return self._keys[index]

    def update_by_key(self, key: int, patch: dict):
        """Patch the record that carries ``key``; None if it has been removed."""
        with self._lock:
            try:
                index = self._keys.index(key)
            except ValueError:
                return None
            return self.update_at(index, patch)

    def replace_all(self, records):
        with self._lock:
            self._records = [self._clean(r) for r in records]
            self._keys = [next(self._next_key) for _ in self._records]

    def get(self, index: int) -> dict:
        with self._lock:
            return dict(self._records[index])

    @property
    def records(self) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self._records)

    def __len__(self):
        with self._lock:
            return len(self._records)

    # ── Persistence ──────────────────────────────────────────────────────

    def flush(self, store, submission_id) -> bool:
        """
        Replace the stored collection with the buffer.

        Position in the buffer becomes the stored order. Failures are
        logged and leave the buffer untouched. Returns True on success.
        """
        records = self.records
        try:
            result = store.replace_collection(
                submission_id, self.name, records, expected_version=self.version,
            )
        except ConflictError as e:
            self.conflict = e.current
            logger.warning("Collection flush rejected: stored version is %s, buffer has %s",
                           e.current, self.version,
                           extra={"submission_id": submission_id, "collection": self.name})
            return False
        except Exception as e:
            logger.warning("Collection flush failed (%d record(s)): %s", len(records),
                           type(e).__name__,
                           extra={"submission_id": submission_id, "collection": self.name})
            return False

        self.flush_count += 1
        self.conflict = None
        if isinstance(result, dict) and result.get("version") is not None:
            self.version = result["version"]
        logger.debug("Collection flushed (%d record(s))", len(records),
                     extra={"submission_id": submission_id, "collection": self.name})
        return True

    def adopt_version(self):
        """Overwrite the stored collection on the next flush (user chose to keep the buffer)."""
        if self.conflict is not None:
            self.version = self.conflict
            self.conflict = None

    def __repr__(self):
        return f"<CollectionEditor {self.name} n={len(self)} v={self.version}>"
