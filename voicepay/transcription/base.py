"""Abstract base class for transcription gateways."""

from abc import ABC, abstractmethod

from ..models.audio import AudioSample
from ..models.transcription import Transcript


class TranscriptionGateway(ABC):
    """Turns a recorded sample into text. Implementations never retry internally."""

    service_name = "unknown"

    def __init__(self, language: str = "en-US"):
        self.language = language

    @abstractmethod
    async def transcribe(self, sample: AudioSample) -> Transcript:
        """Transcribe a finalized audio sample.

        Args:
            sample: Recorded PCM audio

        Returns:
            Transcript with text, confidence and duration

        Raises:
            TranscriptionFailed: Service error (``code`` may be API_KEY_ERROR)
            NoSpeechDetected: The service returned no text
            RateLimited, Timeout, NetworkError: Transport failures
        """

    async def close(self) -> None:
        """Release any client resources."""
