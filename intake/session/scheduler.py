"""
Session schedulers.

The session engine never touches ``threading`` or the wall clock directly;
it asks a Scheduler for the time, for a cancellable one-shot timer, and for
a background job. Two implementations:

    ThreadingScheduler  production: threading.Timer / daemon threads
    ManualScheduler     virtual clock; timers and jobs run only when the
                        caller advances time or drains the job queue
"""

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Job:
    """Handle on a background job."""

    def __init__(self, name=""):
        self.name = name
        self._done = threading.Event()
        self.error = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout=None) -> bool:
        return self._done.wait(timeout)

    def _run(self, fn):
        try:
            fn()
        except Exception as e:
            # Jobs are fire-and-forget; the failure is kept on the handle
            self.error = e
            logger.exception("Background job %s failed", self.name or "<unnamed>")
        finally:
            self._done.set()


class TimerHandle:
    """Cancellable one-shot timer."""

    def __init__(self, cancel_fn):
        self._cancel_fn = cancel_fn
        self.cancelled = False

    def cancel(self):
        if not self.cancelled:
            self.cancelled = True
            self._cancel_fn()


class Scheduler(ABC):
    """Time source + timer + background job runner."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic seconds."""
        ...

    @abstractmethod
    def call_later(self, delay: float, callback) -> TimerHandle:
        ...

    @abstractmethod
    def spawn(self, fn, name: str = "") -> Job:
        ...

    def shutdown(self):
        """Cancel anything still pending; later timers are ignored."""


class ThreadingScheduler(Scheduler):
    """Real time; each timer and job gets its own daemon thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._timers: set = set()
        self.closed = False

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay, callback) -> TimerHandle:
        timer = None

        def _fire():
            with self._lock:
                self._timers.discard(timer)
            callback()

        timer = threading.Timer(delay, _fire)
        timer.daemon = True
        with self._lock:
            if self.closed:
                logger.debug("Timer ignored after shutdown")
                return TimerHandle(lambda: None)
            self._timers.add(timer)
        timer.start()
        return TimerHandle(timer.cancel)

    def spawn(self, fn, name="") -> Job:
        job = Job(name)
        t = threading.Thread(target=job._run, args=(fn,), name=name or None, daemon=True)
        t.start()
        return job

    def shutdown(self):
        with self._lock:
            self.closed = True
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()


class ManualScheduler(Scheduler):
    """
    Virtual clock for tests and scripted sessions.

    ``advance(seconds)`` moves the clock forward and fires every timer that
    comes due, in due-time order, on the calling thread. ``spawn`` only
    queues the job; ``run_jobs()`` executes queued jobs in FIFO order (or
    a chosen subset, to simulate out-of-order completion).
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._seq = itertools.count()
        self._timers = []   # heap of (due, seq, callback, handle)
        self._jobs = []     # list of (job, fn)
        self.closed = False

    def now(self) -> float:
        return self._now

    def call_later(self, delay, callback) -> TimerHandle:
        if self.closed:
            return TimerHandle(lambda: None)
        entry = [self._now + delay, next(self._seq), callback, None]
        handle = TimerHandle(lambda: entry.__setitem__(2, None))
        entry[3] = handle
        heapq.heappush(self._timers, entry)
        return handle

    def spawn(self, fn, name="") -> Job:
        job = Job(name)
        self._jobs.append((job, fn))
        return job

    @property
    def pending_timers(self) -> int:
        return sum(1 for entry in self._timers if entry[2] is not None)

    @property
    def pending_jobs(self) -> list[str]:
        return [job.name for job, _ in self._jobs]

    def advance(self, seconds: float):
        """Move the clock and fire due timers."""
        target = self._now + seconds
        while self._timers and self._timers[0][0] <= target:
            due, _, callback, _ = heapq.heappop(self._timers)
            self._now = max(self._now, due)
            if callback is not None:
                callback()
        self._now = target

    def run_jobs(self, *names):
        """Run queued jobs (all, or only those with the given names)."""
        ran = 0
        while True:
            for i, (job, fn) in enumerate(self._jobs):
                if not names or job.name in names:
                    del self._jobs[i]
                    job._run(fn)
                    ran += 1
                    break
            else:
                return ran

    def shutdown(self):
        self.closed = True
        for entry in self._timers:
            entry[2] = None
        self._timers.clear()
        self._jobs.clear()
