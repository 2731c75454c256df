"""ElevenLabs Speech-to-Text gateway."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .base import TranscriptionGateway
from ..errors import (
    ErrorCode,
    NetworkError,
    NoSpeechDetected,
    RateLimited,
    Timeout,
    TranscriptionFailed,
    VoicePayError,
    error_from_code,
)
from ..models.audio import AudioSample
from ..models.transcription import Transcript

logger = logging.getLogger(__name__)

ELEVENLABS_STT_URL = "https://api.elevenlabs.io/v1/speech-to-text"

# The service does not report an overall confidence
DEFAULT_CONFIDENCE = 0.95


class ElevenLabsTranscriptionGateway(TranscriptionGateway):
    """Uploads the sample as WAV and returns the recognized text."""

    service_name = "ElevenLabs Speech-to-Text"

    def __init__(self,
                 api_key: Optional[str],
                 model_id: str = "scribe_v1",
                 language: str = "en-US",
                 timeout_seconds: float = 30.0,
                 base_url: str = ELEVENLABS_STT_URL):
        """Initialize the ElevenLabs gateway.

        Args:
            api_key: ElevenLabs API key (``xi-api-key`` header)
            model_id: Speech-to-text model
            language: Language hint reported on the transcript
            timeout_seconds: Total request timeout
            base_url: Endpoint, overridable for tests
        """
        super().__init__(language)
        self.api_key = api_key
        self.model_id = model_id
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.base_url = base_url

        logger.info(f"ElevenLabsTranscriptionGateway initialized with model: {model_id}")

    async def transcribe(self, sample: AudioSample) -> Transcript:
        if not self.api_key:
            raise TranscriptionFailed("Voice service configuration error", code=ErrorCode.API_KEY_ERROR)

        form = aiohttp.FormData()
        form.add_field("model_id", self.model_id)
        form.add_field("file", sample.to_wav(), filename="command.wav", content_type=sample.mime_type)

        start_time = time.monotonic()
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.base_url,
                                        headers={"xi-api-key": self.api_key},
                                        data=form) as response:
                    body = await response.text()
                    status = response.status
        except asyncio.TimeoutError as e:
            logger.error("ElevenLabs request timed out")
            raise Timeout() from e
        except aiohttp.ClientError as e:
            logger.error(f"ElevenLabs request failed: {e}")
            raise NetworkError() from e

        return self.parse_response(status, body, time.monotonic() - start_time)

    def parse_response(self, status: int, body: str, elapsed: float) -> Transcript:
        """Map an HTTP status and body onto a transcript or a pipeline error."""
        if status in (401, 403):
            logger.error(f"ElevenLabs rejected the API key: {status}")
            raise TranscriptionFailed("Voice service configuration error", code=ErrorCode.API_KEY_ERROR)
        if status == 429:
            raise RateLimited()
        if status == 408:
            raise Timeout()
        if status != 200:
            logger.error(f"ElevenLabs API error: {status} - {body[:200]}")
            raise self._service_error(status, body)

        try:
            payload: Dict[str, Any] = json.loads(body)
        except json.JSONDecodeError as e:
            raise TranscriptionFailed("Malformed transcription response") from e

        text = (payload.get("text") or "").strip()
        if not text:
            raise NoSpeechDetected()

        logger.debug(f"✅ TRANSCRIPTION SUCCESS: '{text}' (processing_time: {elapsed:.3f}s)")
        return Transcript(
            text=text,
            confidence=DEFAULT_CONFIDENCE,
            duration=elapsed,
            service=self.service_name,
            language=self.language,
        )

    @staticmethod
    def _service_error(status: int, body: str) -> VoicePayError:
        # Proxies in front of the service report {"error": ..., "errorCode": ...}
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and payload.get("errorCode"):
            return error_from_code(payload["errorCode"], payload.get("error"))
        return TranscriptionFailed("Failed to process voice command", details={"status": status})
