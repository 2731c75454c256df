"""Event models published on the pub/sub bus."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .audio import RecordingState


@dataclass(frozen=True)
class StateChangeEvent:
    """Recording state machine moved from one state to another."""
    session_id: Optional[str]
    previous: RecordingState
    current: RecordingState
    trigger: str
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class AudioLevelEvent:
    """Audio level sample for UI feedback only."""
    session_id: str
    level: float  # 0.0 - 1.0
    elapsed_seconds: float
