"""Unit tests for the transcription gateways."""

import json
from unittest.mock import Mock

import pytest
from google.api_core import exceptions as gax_exceptions

from voicepay.config import VoicePayConfig
from voicepay.errors import (
    ErrorCode,
    NetworkError,
    NoSpeechDetected,
    RateLimited,
    Timeout,
    TranscriptionFailed,
    UnknownError,
)
from voicepay.models import AudioSample
from voicepay.transcription import (
    DEMO_COMMANDS,
    DemoTranscriptionGateway,
    ElevenLabsTranscriptionGateway,
    GoogleSpeechTranscriptionGateway,
    create_transcription_gateway,
)


@pytest.fixture
def audio_sample(sample_audio_chunk):
    return AudioSample(data=sample_audio_chunk * 20, sample_rate=16000, channels=1, duration_seconds=1.3)


@pytest.mark.unit
class TestElevenLabsResponses:
    """HTTP status and body mapping."""

    def setup_method(self):
        self.gateway = ElevenLabsTranscriptionGateway(api_key="key", language="en-US")

    def test_success(self):
        transcript = self.gateway.parse_response(200, json.dumps({"text": " Send 50 USDC to Alice "}), 0.4)

        assert transcript.text == "Send 50 USDC to Alice"
        assert transcript.confidence == 0.95
        assert transcript.language == "en-US"
        assert transcript.service == "ElevenLabs Speech-to-Text"

    @pytest.mark.parametrize("status", [401, 403])
    def test_bad_key(self, status):
        with pytest.raises(TranscriptionFailed) as exc_info:
            self.gateway.parse_response(status, "", 0.1)
        assert exc_info.value.code == ErrorCode.API_KEY_ERROR

    @pytest.mark.parametrize("status, error", [(429, RateLimited), (408, Timeout), (500, TranscriptionFailed)])
    def test_http_errors(self, status, error):
        with pytest.raises(error):
            self.gateway.parse_response(status, "oops", 0.1)

    @pytest.mark.parametrize("error_code, error", [
        ("NO_SPEECH_DETECTED", NoSpeechDetected),
        ("RATE_LIMIT_EXCEEDED", RateLimited),
        ("SOMETHING_NEW", UnknownError),
    ])
    def test_collaborator_error_code(self, error_code, error):
        body = json.dumps({"error": "upstream said no", "errorCode": error_code})
        with pytest.raises(error) as exc_info:
            self.gateway.parse_response(502, body, 0.1)
        assert exc_info.value.message == "upstream said no"

    @pytest.mark.parametrize("body", [json.dumps({"text": ""}), json.dumps({"text": "   "}), json.dumps({})])
    def test_no_speech(self, body):
        with pytest.raises(NoSpeechDetected):
            self.gateway.parse_response(200, body, 0.1)

    def test_malformed_body(self):
        with pytest.raises(TranscriptionFailed):
            self.gateway.parse_response(200, "<html>", 0.1)

    @pytest.mark.asyncio
    async def test_missing_key(self, audio_sample):
        gateway = ElevenLabsTranscriptionGateway(api_key=None)
        with pytest.raises(TranscriptionFailed) as exc_info:
            await gateway.transcribe(audio_sample)
        assert exc_info.value.code == ErrorCode.API_KEY_ERROR


def recognize_response(text, confidence=0.9):
    alternative = Mock(transcript=text, confidence=confidence)
    return Mock(results=[Mock(alternatives=[alternative])])


@pytest.mark.unit
class TestGoogleSpeechGateway:

    def test_requires_credentials_or_client(self):
        with pytest.raises(ValueError):
            GoogleSpeechTranscriptionGateway()

    @pytest.mark.asyncio
    async def test_success(self, audio_sample):
        client = Mock()
        client.recognize.return_value = recognize_response("What's my balance", 0.87)
        gateway = GoogleSpeechTranscriptionGateway(client=client, timeout_seconds=5)

        transcript = await gateway.transcribe(audio_sample)

        assert transcript.text == "What's my balance"
        assert transcript.confidence == 0.87
        assert transcript.duration == 1.3
        assert client.recognize.call_args.kwargs['timeout'] == 5

    @pytest.mark.asyncio
    async def test_no_results(self, audio_sample):
        client = Mock()
        client.recognize.return_value = Mock(results=[])
        gateway = GoogleSpeechTranscriptionGateway(client=client)

        with pytest.raises(NoSpeechDetected):
            await gateway.transcribe(audio_sample)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raised, expected", [
        (gax_exceptions.DeadlineExceeded("slow"), Timeout),
        (gax_exceptions.ServiceUnavailable("down"), NetworkError),
        (gax_exceptions.ResourceExhausted("quota"), RateLimited),
        (gax_exceptions.Unauthenticated("bad creds"), TranscriptionFailed),
        (gax_exceptions.InvalidArgument("bad audio"), TranscriptionFailed),
    ])
    async def test_api_errors(self, audio_sample, raised, expected):
        client = Mock()
        client.recognize.side_effect = raised
        gateway = GoogleSpeechTranscriptionGateway(client=client)

        with pytest.raises(expected):
            await gateway.transcribe(audio_sample)


@pytest.mark.unit
class TestDemoGateway:

    @pytest.mark.asyncio
    async def test_cycles_commands(self, audio_sample):
        gateway = DemoTranscriptionGateway()

        texts = [(await gateway.transcribe(audio_sample)).text for _ in range(len(DEMO_COMMANDS) + 1)]

        assert texts == list(DEMO_COMMANDS) + [DEMO_COMMANDS[0]]


@pytest.mark.unit
class TestGatewayFactory:

    def test_demo_mode_wins(self):
        config = VoicePayConfig(overrides={"demo_mode": True, "transcription": {"provider": "google"}})
        assert isinstance(create_transcription_gateway(config), DemoTranscriptionGateway)

    def test_elevenlabs(self, monkeypatch):
        monkeypatch.setenv("ELEVENLABS_API_KEY", "k")
        gateway = create_transcription_gateway(VoicePayConfig())
        assert isinstance(gateway, ElevenLabsTranscriptionGateway)
        assert gateway.api_key == "k"

    def test_elevenlabs_language_independent_of_google(self, monkeypatch):
        monkeypatch.setenv("ELEVENLABS_API_KEY", "k")
        config = VoicePayConfig(overrides={"transcription": {
            "elevenlabs": {"language": "de-DE"},
            "google": {"language": "fr-FR"},
        }})
        assert create_transcription_gateway(config).language == "de-DE"

    def test_unknown_provider(self):
        config = VoicePayConfig(overrides={"transcription": {"provider": "whisper"}})
        with pytest.raises(ValueError):
            create_transcription_gateway(config)
