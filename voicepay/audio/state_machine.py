"""Explicit finite-state machine for the recording lifecycle."""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..models.audio import RecordingState

logger = logging.getLogger(__name__)


class RecordingTrigger(str, Enum):
    """Inputs that drive the recording state machine."""
    START = "start"
    GRANTED = "granted"
    ACQUIRE_FAILED = "acquire_failed"
    STOP = "stop"
    TOO_SHORT = "too_short"
    RESOLVED = "resolved"
    FAILED = "failed"
    CANCEL = "cancel"
    RESET = "reset"


class InvalidStateTransition(Exception):
    """Raised when a trigger is not allowed in the current state."""

    def __init__(self, state: RecordingState, trigger: RecordingTrigger):
        self.state = state
        self.trigger = trigger
        super().__init__(f"Trigger '{trigger.value}' not allowed in state '{state.value}'")


S = RecordingState
T = RecordingTrigger

TRANSITIONS: Dict[Tuple[RecordingState, RecordingTrigger], RecordingState] = {
    (S.IDLE, T.START): S.REQUESTING,
    (S.ERROR, T.START): S.REQUESTING,
    (S.REQUESTING, T.GRANTED): S.LISTENING,
    (S.REQUESTING, T.ACQUIRE_FAILED): S.ERROR,
    (S.REQUESTING, T.CANCEL): S.IDLE,
    (S.LISTENING, T.STOP): S.PROCESSING,
    (S.LISTENING, T.CANCEL): S.IDLE,
    (S.PROCESSING, T.RESOLVED): S.COMPLETE,
    (S.PROCESSING, T.FAILED): S.ERROR,
    (S.PROCESSING, T.TOO_SHORT): S.ERROR,
    (S.PROCESSING, T.CANCEL): S.IDLE,
    (S.COMPLETE, T.RESET): S.IDLE,
    (S.ERROR, T.RESET): S.IDLE,
}

# States from which a new recording may begin
STARTABLE_STATES = frozenset({S.IDLE, S.ERROR})

# States that own live resources and can be cancelled
CANCELLABLE_STATES = frozenset({S.REQUESTING, S.LISTENING, S.PROCESSING})

TransitionListener = Callable[[RecordingState, RecordingState, RecordingTrigger], None]


class RecordingStateMachine:
    """Table-driven state machine; the table is the single source of truth."""

    def __init__(self, initial: RecordingState = RecordingState.IDLE):
        self._state = initial
        self._listeners: List[TransitionListener] = []

    @property
    def state(self) -> RecordingState:
        return self._state

    def can_fire(self, trigger: RecordingTrigger) -> bool:
        return (self._state, trigger) in TRANSITIONS

    def fire(self, trigger: RecordingTrigger) -> RecordingState:
        """Apply ``trigger`` and return the new state.

        Raises:
            InvalidStateTransition: if the table has no entry for (state, trigger)
        """
        target: Optional[RecordingState] = TRANSITIONS.get((self._state, trigger))
        if target is None:
            raise InvalidStateTransition(self._state, trigger)

        previous = self._state
        self._state = target
        logger.debug(f"Recording state: {previous.value} --{trigger.value}--> {target.value}")

        for listener in list(self._listeners):
            listener(previous, target, trigger)
        return target

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    @property
    def can_start(self) -> bool:
        return self._state in STARTABLE_STATES

    @property
    def is_active(self) -> bool:
        return self._state in CANCELLABLE_STATES
