"""
AI augmentation side-channel.

Each ``augment`` call runs as an independent background job keyed by the
slot it fills (a field name, or ``services_<index>`` for a record). A
loading flag is held per key while the job runs. Results are written into
a target distinct from the owner's source text; failures only clear the
flag and leave a warning in the log.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class AugmentationAdapter:
    """
    Args:
        generator: collaborator with ``generate(prompt, tone) -> str``.
        scheduler: runs each request via ``spawn``.
        snapshot: zero-arg callable returning the current field snapshot.
    """

    def __init__(self, generator, scheduler, snapshot):
        self.generator = generator
        self.scheduler = scheduler
        self._snapshot = snapshot
        self._lock = threading.Lock()
        self._loading = {}

    def augment(self, key: str, prompt_builder, apply):
        """
        Start one generation for ``key``.

        ``prompt_builder(snapshot)`` returns the instruction; ``apply(text)``
        stores a successful result. The snapshot is taken now, at call time.
        Returns the background Job.
        """
        snapshot = self._snapshot()
        with self._lock:
            self._loading[key] = True

        def _run():
            try:
                prompt = prompt_builder(snapshot)
                text = self.generator.generate(prompt, snapshot.get("tone"))
                if text:
                    apply(text)
                else:
                    logger.warning("AI generation returned no text", extra={"ai_key": key})
            except Exception as e:
                logger.warning("AI generation failed: %s", type(e).__name__, extra={"ai_key": key})
            finally:
                with self._lock:
                    self._loading[key] = False

        return self.scheduler.spawn(_run, name=key)

    def is_loading(self, key: str) -> bool:
        with self._lock:
            return self._loading.get(key, False)

    @property
    def loading(self) -> dict:
        """Copy of every key's loading flag."""
        with self._lock:
            return dict(self._loading)
