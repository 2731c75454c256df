"""Pytest configuration and fixtures for VoicePay tests."""

import logging
import uuid
from decimal import Decimal
from unittest.mock import Mock, patch

import numpy as np
import pytest

from voicepay.audio import InMemoryMicrophone, synthetic_chunks
from voicepay.config import RecordingLimits, VoicePayConfig
from voicepay.events import EventPublisher
from voicepay.payments import InMemoryLedger, WalletSession, create_demo_ledger


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: components wired together")
    config.addinivalue_line("markers", "slow: tests that wait on real timers")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (440 Hz sine)
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    audio_data = (np.sin(2 * np.pi * 440 * t) * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def tone_chunks():
    """Two seconds of tone in 1024-sample chunks."""
    return synthetic_chunks(2.0)


@pytest.fixture
def microphone(tone_chunks):
    return InMemoryMicrophone(chunks=tone_chunks)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Silent audio
        mock_stream.read.return_value = b'\x00' * 2048
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def recording_limits():
    """Short display delays so reset timers fire quickly."""
    return RecordingLimits(
        min_seconds=1.0,
        max_seconds=10.0,
        complete_display_seconds=0.01,
        error_display_seconds=0.01,
        level_interval_seconds=0.01,
    )


@pytest.fixture
def publisher():
    """Publisher on a topic namespace no other test shares."""
    return EventPublisher(prefix=f"t{uuid.uuid4().hex[:8]}")


@pytest.fixture
def demo_ledger():
    return create_demo_ledger()


@pytest.fixture
def hundred_ledger():
    """Wallet holding exactly 100.00 USDC and no history."""
    return InMemoryLedger(usdc_balance=Decimal("100.00"))


@pytest.fixture
def wallet(demo_ledger):
    return WalletSession(demo_ledger)


@pytest.fixture
def test_config(tmp_path):
    """Configuration with logs under the temp dir and retries off."""
    return VoicePayConfig(overrides={
        "logging": {"file_path": str(tmp_path / "logs" / "voicepay.log")},
        "retry": {"auto_retry": False},
    })
