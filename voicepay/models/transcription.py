"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Transcript:
    """Result of a transcription call. Immutable once produced."""
    text: str
    confidence: float
    duration: float  # Seconds of source audio, or provider processing time
    service: str = "unknown"
    language: str = "en-US"
    timestamp: datetime = field(default_factory=datetime.now)
