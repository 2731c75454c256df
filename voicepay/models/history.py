"""Command history data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .intent import PaymentIntent


@dataclass(frozen=True)
class CommandHistoryEntry:
    """One processed voice command."""
    id: str
    transcript: str
    intent: Optional[PaymentIntent]
    success: bool
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None
