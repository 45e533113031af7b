"""
TDD cycle automaton.

    BLOCKED --TEST_WRITTEN--> RED --TEST_PASSED--> GREEN
       ^                                             |
       +--NEW_FEATURE-- COMPLETE <--REFACTOR_DONE----+

FORCE_PHASE jumps anywhere; RESET returns to BLOCKED and clears the
context. Any other event that does not apply to the current phase is
ignored. The machine is not the system of record: callers start it from
the persisted phase and persist ``phase`` afterwards.
"""

import logging
from typing import Optional

from .models import TDDContext, TDDEvent, TDDEventType, TDDPhase


logger = logging.getLogger(__name__)


TRANSITIONS: dict[tuple[TDDPhase, TDDEventType], TDDPhase] = {
    (TDDPhase.BLOCKED, TDDEventType.TEST_WRITTEN): TDDPhase.RED,
    (TDDPhase.RED, TDDEventType.TEST_PASSED): TDDPhase.GREEN,
    (TDDPhase.GREEN, TDDEventType.REFACTOR_DONE): TDDPhase.COMPLETE,
    (TDDPhase.COMPLETE, TDDEventType.NEW_FEATURE): TDDPhase.BLOCKED,
}

NEXT_PHASE: dict[TDDPhase, TDDPhase] = {
    source: target for (source, _event), target in TRANSITIONS.items()
}


class TDDMachine:
    """Enum plus transition table; pure and synchronous."""

    def __init__(self, initial: TDDPhase = TDDPhase.BLOCKED):
        self.context = TDDContext(current_phase=initial)

    @property
    def phase(self) -> TDDPhase:
        return self.context.current_phase

    def send(self, event: TDDEvent) -> TDDPhase:
        """Apply an event and return the resulting phase. Malformed events are ignored."""
        if not isinstance(event, TDDEvent):
            logger.debug("Ignoring malformed event %r", event)
            return self.phase

        try:
            event_type = TDDEventType(event.type)
        except (ValueError, TypeError):
            logger.debug("Ignoring unknown event type %r", event.type)
            return self.phase

        if event_type == TDDEventType.RESET:
            self.context = TDDContext()
            return self.phase

        if event_type == TDDEventType.FORCE_PHASE:
            if event.phase is None:
                logger.debug("FORCE_PHASE without a target phase ignored")
                return self.phase
            try:
                self.context.current_phase = TDDPhase(event.phase)
            except (ValueError, TypeError):
                logger.debug("FORCE_PHASE to unknown phase %r ignored", event.phase)
            return self.phase

        target = TRANSITIONS.get((self.phase, event_type))
        if target is None:
            logger.debug("Event %s not valid in phase %s", event_type.value, self.phase.value)
            return self.phase

        if event.file:
            if event_type == TDDEventType.TEST_WRITTEN:
                self.context.test_file = event.file
            elif event_type == TDDEventType.TEST_PASSED:
                self.context.impl_file = event.file

        logger.debug("Phase %s -> %s on %s", self.phase.value, target.value, event_type.value)
        self.context.current_phase = target
        return target

    def can_transition_to(self, phase: TDDPhase) -> bool:
        """True iff ``phase`` is the normal successor of the current phase."""
        return NEXT_PHASE.get(self.phase) == phase

    def record_attempt(self, error: Optional[str] = None) -> int:
        self.context.attempt_count += 1
        self.context.last_error = error
        return self.context.attempt_count
