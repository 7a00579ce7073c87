"""
Step catalogue and navigation for the ten-step intake form.

Navigation is soft: any step can be reached from any other, nothing is
validated on the way. The only side effect of leaving a step is flushing
the child collection that step owns (services on 4, testimonials on 8,
business hours on 9).
"""

import logging
from collections import namedtuple

logger = logging.getLogger(__name__)

Step = namedtuple("Step", "number title subtitle required record_required")

STEPS = (
    Step(1, "Business Identity", "Tell us who you are", ("business_name", "business_category"), ()),
    Step(2, "Contact & Location", "Where clients can find you",
         ("city", "zip", "primary_phone", "email"), ()),
    Step(3, "Online Presence", "Your current digital footprint", (), ()),
    Step(4, "Services Offered", "What you do best", (), ("service_name",)),
    Step(5, "Service Areas", "Where you work", ("primary_city",), ()),
    Step(6, "Brand & Design", "How you want to look", (), ()),
    Step(7, "Website Copy", "Your story in your words", (), ()),
    Step(8, "Social Proof", "Reviews, certifications & portfolio", (), ("quote_text",)),
    Step(9, "Business Hours", "When you're available", (), ()),
    Step(10, "Review & Submit", "Double-check everything", (), ()),
)
STEPS_BY_NUMBER = {s.number: s for s in STEPS}

FIRST_STEP = 1
LAST_STEP = 10
CONFIRMATION_STEP = 11

# Step number → collection flushed when leaving it
STEP_COLLECTIONS = {4: "services", 8: "testimonials", 9: "business_hours"}


def clamp_step(n: int) -> int:
    return max(FIRST_STEP, min(LAST_STEP, int(n)))


def missing_required(step: int, fields: dict, records=None) -> list[str]:
    """
    Soft required-field hints for a step; never blocks navigation.

    ``records`` is the buffer of the collection the step owns, when it
    owns one. Record hints come back as ``"<field>[<index>]"``.
    """
    info = STEPS_BY_NUMBER.get(step)
    if info is None:
        return []
    missing = [name for name in info.required if not fields.get(name)]
    for i, record in enumerate(records or []):
        missing.extend(f"{name}[{i}]" for name in info.record_required if not record.get(name))
    return missing


class StepNavigator:
    """
    Current-step state machine.

    Args:
        flush_collection: callable(name) invoked when leaving a step that
            owns a collection.
    """

    def __init__(self, flush_collection, start: int = FIRST_STEP):
        self._flush_collection = flush_collection
        self.current = clamp_step(start)

    @property
    def confirmed(self) -> bool:
        return self.current == CONFIRMATION_STEP

    @property
    def step(self) -> Step | None:
        return STEPS_BY_NUMBER.get(self.current)

    def leave_current(self):
        """Flush the collection owned by the active step, if any."""
        name = STEP_COLLECTIONS.get(self.current)
        if name:
            self._flush_collection(name)

    def next(self) -> int:
        return self._move(self.current + 1)

    def prev(self) -> int:
        return self._move(self.current - 1)

    def jump_to(self, n: int) -> int:
        return self._move(n)

    def _move(self, target) -> int:
        if self.confirmed:
            return self.current
        self.leave_current()
        previous, self.current = self.current, clamp_step(target)
        if previous != self.current:
            logger.debug("Step %d → %d", previous, self.current)
        return self.current

    def confirm(self):
        """Enter the post-submission confirmation pseudo-step."""
        self.current = CONFIRMATION_STEP
