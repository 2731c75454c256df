"""Microphone sources: PyAudio for real hardware, in-memory for demo and tests."""

import asyncio
import errno
import logging
from abc import ABC, abstractmethod
from threading import Thread, Event
from typing import Iterable, List, Optional

import numpy as np
import pyaudio

from ..errors import DeviceBusy, DeviceNotFound, PermissionDenied, VoicePayError

logger = logging.getLogger(__name__)

# PortAudio error codes surfaced through PyAudio's OSError
PA_INVALID_DEVICE = -9996
PA_DEVICE_UNAVAILABLE = -9985
PA_INVALID_CHANNEL_COUNT = -9998


class MicrophoneSource(ABC):
    """A source of 16-bit PCM audio chunks."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels

    @abstractmethod
    async def open(self) -> None:
        """Acquire the device.

        Raises:
            PermissionDenied, DeviceNotFound, DeviceBusy
        """

    @abstractmethod
    async def read(self) -> Optional[bytes]:
        """Return the next chunk, or None once the source is closed."""

    @abstractmethod
    async def close(self) -> None:
        """Release the device. Must be safe to call more than once."""


def classify_device_error(error: Exception) -> VoicePayError:
    """Map a PyAudio/OS error raised while opening the input stream."""
    code = error.errno if isinstance(error, OSError) else None
    if not isinstance(code, int) and error.args and isinstance(error.args[0], int):
        code = error.args[0]
    text = str(error).lower()

    if code in (errno.EACCES, errno.EPERM) or "permission" in text or "not allowed" in text:
        return PermissionDenied()
    if code == PA_DEVICE_UNAVAILABLE or code == errno.EBUSY or "busy" in text or "unavailable" in text:
        return DeviceBusy()
    if code in (PA_INVALID_DEVICE, PA_INVALID_CHANNEL_COUNT) or "no default input device" in text \
            or "invalid input device" in text or "not found" in text:
        return DeviceNotFound()
    return DeviceNotFound(f"Failed to open microphone: {error}")


class PyAudioMicrophone(MicrophoneSource):
    """Reads the default input device on a background thread."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize the microphone source.

        Args:
            sample_rate: Audio sample rate (16kHz suits speech-to-text services)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
        """
        super().__init__(sample_rate=sample_rate, channels=channels)
        self.chunk_size = chunk_size
        self.format = format

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self.total_chunks = 0

        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = False

    async def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._closed = False
        self.stop_event.clear()
        self.total_chunks = 0

        try:
            await asyncio.to_thread(self.__open_audio_stream)
        except OSError as e:
            logger.error(f"Failed to open microphone: {e}")
            self.__release_stream()
            raise classify_device_error(e) from e

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "MicrophoneThread"
        self.recording_thread.start()

    def __open_audio_stream(self) -> None:
        self.pyaudio_instance = pyaudio.PyAudio()
        self.stream = self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

    def _record_continuously(self) -> None:
        """Internal method: continuous read loop in background thread."""
        try:
            while not self.stop_event.is_set():
                audio_chunk = self.stream.read(self.chunk_size, exception_on_overflow=False)
                self.total_chunks += 1
                self._loop.call_soon_threadsafe(self._queue.put_nowait, audio_chunk)
        except OSError as e:
            if not self.stop_event.is_set():
                logger.error(f"Microphone read failed: {e}")
        except RuntimeError:
            # Event loop closed underneath us during shutdown
            logger.debug("Event loop closed while microphone thread was running")
        finally:
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
            except RuntimeError:
                logger.debug("Event loop closed before the end-of-stream marker was delivered")

    async def read(self) -> Optional[bytes]:
        if self._queue is None or (self._closed and self._queue.empty()):
            return None
        return await self._queue.get()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            await asyncio.to_thread(self.recording_thread.join, 2.0)
            if self.recording_thread.is_alive():
                logger.warning("Microphone thread did not stop cleanly")
        self.recording_thread = None

        self.__release_stream()
        if self._queue is not None:
            self._queue.put_nowait(None)
        logger.info(f"Microphone closed. Total chunks: {self.total_chunks}")

    def __release_stream(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None


class InMemoryMicrophone(MicrophoneSource):
    """Plays back pre-recorded chunks; used in demo mode and tests.

    After the chunks run out, ``read`` waits until the source is closed, just
    like a live device that keeps delivering silence.
    """

    def __init__(
        self,
        chunks: Iterable[bytes] = (),
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_interval: float = 0.0,
        open_error: Optional[VoicePayError] = None,
        open_delay: float = 0.0,
    ):
        super().__init__(sample_rate=sample_rate, channels=channels)
        self.chunks: List[bytes] = list(chunks)
        self.chunk_interval = chunk_interval
        self.open_error = open_error
        self.open_delay = open_delay

        self.open_count = 0
        self.close_count = 0
        self.is_open = False
        self._position = 0
        self._closed_event: Optional[asyncio.Event] = None

    async def open(self) -> None:
        self._closed_event = asyncio.Event()
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.open_error is not None:
            raise self.open_error
        self.open_count += 1
        self.is_open = True
        self._position = 0

    async def read(self) -> Optional[bytes]:
        if not self.is_open:
            return None
        if self._position < len(self.chunks):
            if self.chunk_interval:
                await asyncio.sleep(self.chunk_interval)
            chunk = self.chunks[self._position]
            self._position += 1
            return chunk
        await self._closed_event.wait()
        return None

    async def close(self) -> None:
        if self.is_open:
            self.close_count += 1
        self.is_open = False
        if self._closed_event is not None:
            self._closed_event.set()


def synthetic_chunks(seconds: float, sample_rate: int = 16000, chunk_size: int = 1024,
                     frequency: float = 440.0, amplitude: float = 0.3) -> List[bytes]:
    """A sine tone split into 16-bit PCM chunks, for demo mode and tests."""
    total = int(seconds * sample_rate)
    t = np.arange(total) / sample_rate
    samples = (np.sin(2 * np.pi * frequency * t) * amplitude * 32767).astype(np.int16)
    return [samples[i:i + chunk_size].tobytes() for i in range(0, total, chunk_size)]
