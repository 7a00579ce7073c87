"""
In-memory field snapshot for one intake session.

Holds the submission's scalar fields as the client currently sees them.
Writes are synchronous; observers (autosave, tests) are notified after
each write with the field name and new value.
"""

import threading


class FieldStore:
    """Key/value snapshot of one submission's scalar fields."""

    def __init__(self, fields: dict | None = None):
        self._lock = threading.RLock()
        self._fields = dict(fields or {})
        self._listeners = []

    def subscribe(self, listener):
        """Register ``listener(name, value)``; called after every ``set``."""
        self._listeners.append(listener)
        return listener

    def hydrate(self, fields: dict):
        """Replace the snapshot wholesale. Observers are not notified."""
        with self._lock:
            self._fields = dict(fields or {})

    def set(self, name: str, value):
        with self._lock:
            self._fields[name] = value
        for listener in list(self._listeners):
            listener(name, value)

    def get(self, name: str, default=None):
        with self._lock:
            return self._fields.get(name, default)

    def snapshot(self) -> dict:
        with self._lock:
            return dict(self._fields)

    def __contains__(self, name):
        with self._lock:
            return name in self._fields

    def __len__(self):
        with self._lock:
            return len(self._fields)
