"""Canned transcription for demo mode."""

import asyncio
import itertools
import logging
from typing import Iterable, Optional

from .base import TranscriptionGateway
from ..models.audio import AudioSample
from ..models.transcription import Transcript

logger = logging.getLogger(__name__)

DEMO_COMMANDS = (
    "Send 50 USDC to Alice",
    "What's my balance?",
    "Show transaction history",
    "Transfer 100 USDC to Bob",
)


class DemoTranscriptionGateway(TranscriptionGateway):
    """Cycles through a fixed set of commands regardless of the audio."""

    service_name = "demo"

    def __init__(self, commands: Optional[Iterable[str]] = None, delay_seconds: float = 0.0):
        super().__init__()
        self.commands = list(commands or DEMO_COMMANDS)
        self.delay_seconds = delay_seconds
        self._cycle = itertools.cycle(self.commands)

    async def transcribe(self, sample: AudioSample) -> Transcript:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        text = next(self._cycle)
        logger.info(f"Demo transcript: '{text}'")
        return Transcript(text=text, confidence=0.95, duration=sample.duration_seconds,
                          service=self.service_name)
