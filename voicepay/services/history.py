"""Bounded, newest-first history of processed voice commands."""

import logging
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from ..events import COMMAND_TOPIC, EventPublisher
from ..models.history import CommandHistoryEntry
from ..models.intent import PaymentIntent

logger = logging.getLogger(__name__)


class CommandHistory:
    """Ring buffer of command outcomes; the oldest entry is evicted at capacity."""

    def __init__(self, capacity: int = 10, publisher: Optional[EventPublisher] = None):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self.publisher = publisher
        self._entries: Deque[CommandHistoryEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, transcript: str, intent: Optional[PaymentIntent], success: bool,
               error: Optional[str] = None) -> CommandHistoryEntry:
        entry = CommandHistoryEntry(
            id=uuid.uuid4().hex,
            transcript=transcript,
            intent=intent,
            success=success,
            timestamp=datetime.now(),
            error=error,
        )
        self.add(entry)
        return entry

    def add(self, entry: CommandHistoryEntry) -> None:
        with self._lock:
            self._entries.appendleft(entry)
        logger.debug(f"History entry recorded: '{entry.transcript}' success={entry.success}")
        if self.publisher is not None:
            self.publisher.publish(COMMAND_TOPIC, entry)

    @property
    def entries(self) -> List[CommandHistoryEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def latest(self) -> Optional[CommandHistoryEntry]:
        with self._lock:
            return self._entries[0] if self._entries else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
