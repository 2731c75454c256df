"""Real hardware tests for the PyAudio microphone.

These tests need an actual input device. They skip when the machine has
no microphone or access is refused.

Run with: pytest tests/hardware/ -v -s -m hardware
"""

import asyncio

import pytest

from voicepay.audio import AudioCaptureController, PyAudioMicrophone
from voicepay.config import RecordingLimits
from voicepay.errors import DeviceBusy, DeviceNotFound, PermissionDenied
from voicepay.models import AudioSample, RecordingState


async def open_or_skip(microphone: PyAudioMicrophone) -> None:
    try:
        await microphone.open()
    except (DeviceNotFound, PermissionDenied, DeviceBusy) as e:
        pytest.skip(f"No usable microphone: {e.message}")


@pytest.mark.hardware
class TestRealMicrophone:
    """Tests that require real audio hardware to run."""

    @pytest.mark.asyncio
    async def test_reads_chunks_for_two_seconds(self):
        microphone = PyAudioMicrophone(sample_rate=16000, chunk_size=1024)
        await open_or_skip(microphone)

        chunks = []
        try:
            loop = asyncio.get_running_loop()
            deadline = loop.time() + 2.0
            while loop.time() < deadline:
                chunk = await asyncio.wait_for(microphone.read(), timeout=1.0)
                if chunk is None:
                    break
                chunks.append(chunk)
        finally:
            await microphone.close()

        print(f"\nCaptured {len(chunks)} chunks ({sum(len(c) for c in chunks)} bytes)")
        # 16kHz / 1024 samples per chunk is ~15 chunks a second
        assert len(chunks) >= 20
        assert all(len(chunk) == 1024 * 2 for chunk in chunks)
        assert microphone.stream is None
        assert microphone.recording_thread is None

    @pytest.mark.asyncio
    async def test_controller_records_real_audio(self):
        microphone = PyAudioMicrophone()
        await open_or_skip(microphone)
        await microphone.close()

        samples = []

        async def capture(sample: AudioSample):
            samples.append(sample)
            return len(sample.data)

        limits = RecordingLimits(
            min_seconds=1.0,
            max_seconds=10.0,
            complete_display_seconds=2.0,
            error_display_seconds=3.0,
            level_interval_seconds=0.1,
        )
        controller = AudioCaptureController(microphone, capture, limits)

        assert await controller.start_recording() is True
        await asyncio.sleep(1.5)
        outcome = await controller.stop_recording()
        await controller.shutdown()

        assert outcome.state == RecordingState.COMPLETE
        assert samples[0].duration_seconds >= 1.0
        assert outcome.result > 16000 * 2
