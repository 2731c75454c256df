"""Google Speech-to-Text transcription gateway."""

import asyncio
import logging
import time
from typing import Optional

from google.api_core import exceptions as gax_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from .base import TranscriptionGateway
from ..errors import (
    ErrorCode,
    NetworkError,
    NoSpeechDetected,
    RateLimited,
    Timeout,
    TranscriptionFailed,
)
from ..models.audio import AudioSample
from ..models.transcription import Transcript

logger = logging.getLogger(__name__)


class GoogleSpeechTranscriptionGateway(TranscriptionGateway):
    """Google Speech-to-Text API gateway for single voice commands."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 timeout_seconds: float = 30.0,
                 client: Optional[speech.SpeechClient] = None):
        """Initialize Google Speech gateway.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the recorded PCM
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            timeout_seconds: gRPC deadline for each recognize call
            client: Pre-built client (tests); otherwise built from credentials
        """
        super().__init__(language)
        if client is None and not credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.credentials_path = credentials_path
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout_seconds = timeout_seconds
        self.client = client
        self.config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            # Voice commands are short utterances
            model="latest_short",
        )

    def _get_client(self) -> speech.SpeechClient:
        if self.client is None:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
            logger.info(f"Using Google Cloud project: {credentials.project_id}")
        return self.client

    async def transcribe(self, sample: AudioSample) -> Transcript:
        return await asyncio.to_thread(self._recognize, sample)

    def _recognize(self, sample: AudioSample) -> Transcript:
        start_time = time.monotonic()
        logger.debug(f"Audio size: {len(sample.data)} bytes; Language: {self.language}; "
                     f"Enhanced model: {self.use_enhanced}")

        audio = speech.RecognitionAudio(content=sample.data)
        try:
            response = self._get_client().recognize(config=self.config, audio=audio,
                                                     timeout=self.timeout_seconds)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise Timeout() from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise NetworkError() from e
        except gax_exceptions.TooManyRequests as e:
            # Also covers ResourceExhausted
            raise RateLimited() from e
        except (gax_exceptions.Unauthenticated, gax_exceptions.PermissionDenied) as e:
            logger.error(f"Google STT rejected credentials: {e}")
            raise TranscriptionFailed("Voice service configuration error", code=ErrorCode.API_KEY_ERROR) from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error: {e}")
            raise TranscriptionFailed(f"Google Speech API error: {e}") from e
        processing_time = time.monotonic() - start_time

        if not response.results or not response.results[0].alternatives:
            logger.debug("--- NO SPEECH DETECTED ---")
            raise NoSpeechDetected()

        alternative = response.results[0].alternatives[0]
        text = alternative.transcript.strip()
        if not text:
            raise NoSpeechDetected()

        logger.debug(f"✅ TRANSCRIPTION SUCCESS: '{text}' "
                     f"(confidence: {alternative.confidence:.2f}, "
                     f"processing_time: {processing_time:.3f}s)")
        return Transcript(
            text=text,
            confidence=alternative.confidence,
            duration=sample.duration_seconds,
            service=self.service_name,
            language=self.language,
        )
