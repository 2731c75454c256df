"""Audio-related data models."""

import io
import wave
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RecordingState(str, Enum):
    """States of the audio capture state machine."""
    IDLE = "idle"
    REQUESTING = "requesting"
    LISTENING = "listening"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class AudioSession:
    """Mutable state of one recording, owned by the capture controller."""
    session_id: str
    started_at: Optional[float] = None  # Monotonic clock reading at GRANTED
    elapsed_seconds: float = 0.0  # Updated by the ticker, display only
    chunks: List[bytes] = field(default_factory=list)
    audio_level: float = 0.0
    total_bytes: int = 0

    def add_chunk(self, chunk: bytes) -> None:
        self.chunks.append(chunk)
        self.total_bytes += len(chunk)

    def discard(self) -> None:
        self.chunks.clear()
        self.total_bytes = 0
        self.audio_level = 0.0


@dataclass(frozen=True)
class AudioSample:
    """A finalized recording ready for transcription."""
    data: bytes  # Raw 16-bit PCM
    sample_rate: int
    channels: int
    duration_seconds: float
    sample_width: int = 2
    mime_type: str = "audio/wav"

    @classmethod
    def from_chunks(cls, chunks: List[bytes], sample_rate: int, channels: int,
                    duration_seconds: float) -> "AudioSample":
        return cls(
            data=b"".join(chunks),
            sample_rate=sample_rate,
            channels=channels,
            duration_seconds=duration_seconds,
        )

    def to_wav(self) -> bytes:
        """Wrap the PCM payload in a WAV container for HTTP upload."""
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(self.data)
        return buffer.getvalue()


@dataclass
class CaptureOutcome:
    """What happened to a recording once it left the LISTENING state."""
    state: RecordingState
    duration_seconds: float = 0.0
    result: Optional[object] = None
    error: Optional[Exception] = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.state == RecordingState.COMPLETE
