"""Speech-to-text gateways."""

import logging

from .base import TranscriptionGateway
from .demo_gateway import DEMO_COMMANDS, DemoTranscriptionGateway
from .elevenlabs_gateway import ElevenLabsTranscriptionGateway
from .google_gateway import GoogleSpeechTranscriptionGateway
from ..config import VoicePayConfig

logger = logging.getLogger(__name__)


def create_transcription_gateway(config: VoicePayConfig) -> TranscriptionGateway:
    """Build the gateway named by ``transcription.provider`` (demo mode wins)."""
    provider = "demo" if config.demo_mode else config.get('transcription.provider', 'elevenlabs')
    timeout = float(config.get('transcription.timeout_seconds', 30))
    logger.info(f"Using transcription provider: {provider}")

    if provider == "demo":
        return DemoTranscriptionGateway()
    if provider == "elevenlabs":
        return ElevenLabsTranscriptionGateway(
            api_key=config.get_secret('transcription.elevenlabs.api_key_env'),
            model_id=config.get('transcription.elevenlabs.model_id', 'scribe_v1'),
            language=config.get('transcription.elevenlabs.language', 'en-US'),
            timeout_seconds=timeout,
        )
    if provider == "google":
        return GoogleSpeechTranscriptionGateway(
            credentials_path=config.get_google_credentials_path(),
            sample_rate=config.get('audio.sample_rate'),
            language=config.get('transcription.google.language', 'en-US'),
            use_enhanced=config.get('transcription.google.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('transcription.google.enable_automatic_punctuation', True),
            timeout_seconds=timeout,
        )
    raise ValueError(f"Unknown transcription provider: {provider}")


__all__ = [
    'DEMO_COMMANDS',
    'DemoTranscriptionGateway',
    'ElevenLabsTranscriptionGateway',
    'GoogleSpeechTranscriptionGateway',
    'TranscriptionGateway',
    'create_transcription_gateway',
]
