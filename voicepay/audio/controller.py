"""Audio capture controller: microphone lifecycle driven by the recording FSM."""

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, List, Optional

from ..config import RecordingLimits
from ..errors import RecordingTooShort, UnknownError, VoicePayError
from ..events import EventPublisher, LEVEL_TOPIC, STATE_TOPIC
from ..models.audio import AudioSample, AudioSession, CaptureOutcome, RecordingState
from ..models.events import AudioLevelEvent, StateChangeEvent
from .level_meter import compute_level
from .microphone import MicrophoneSource
from .state_machine import RecordingStateMachine, RecordingTrigger

logger = logging.getLogger(__name__)

SampleHandler = Callable[[AudioSample], Awaitable[Any]]

# Seconds between elapsed-time ticks shown to the user
TICK_INTERVAL = 1.0


class AudioCaptureController:
    """Owns the microphone, the recording session and its timers.

    Every exit path (stop, cancel, error, shutdown) goes through
    ``_release_resources`` so the stream, the level sampler, the elapsed
    ticker and the auto-stop timer never outlive the session.
    """

    def __init__(
        self,
        microphone: MicrophoneSource,
        handler: SampleHandler,
        limits: RecordingLimits,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the controller.

        Args:
            microphone: Source of PCM chunks
            handler: Coroutine run on each accepted sample (the voice pipeline)
            limits: Min/max duration and display delays
            publisher: Optional event bus for state and level events
            clock: Monotonic clock; the duration is read from it at stop time
        """
        self.microphone = microphone
        self.handler = handler
        self.limits = limits
        self.publisher = publisher
        self.clock = clock

        self.fsm = RecordingStateMachine()
        self.fsm.add_listener(self._on_transition)

        self.session: Optional[AudioSession] = None
        self.last_error: Optional[VoicePayError] = None

        self._session_tasks: List[asyncio.Task] = []
        self._pipeline_task: Optional[asyncio.Task] = None
        self._reset_task: Optional[asyncio.Task] = None
        self._outcome: Optional[asyncio.Future] = None
        self._microphone_open = False
        self._acquiring = False
        self._last_session_id: Optional[str] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecordingState:
        return self.fsm.state

    @property
    def is_recording(self) -> bool:
        return self.state == RecordingState.LISTENING

    @property
    def is_processing(self) -> bool:
        return self.state == RecordingState.PROCESSING

    @property
    def can_record(self) -> bool:
        return self.fsm.can_start and not self._acquiring

    @property
    def recording_time(self) -> float:
        return self.session.elapsed_seconds if self.session else 0.0

    @property
    def audio_level(self) -> float:
        return self.session.audio_level if self.session else 0.0

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_recording(self) -> bool:
        """Acquire the microphone and begin listening.

        Returns:
            True if the controller is now listening. A call made while a
            session is active is a no-op and returns False.
        """
        if not self.can_record:
            logger.warning(f"Recording already in progress (state={self.state.value})")
            return False

        self._cancel_reset()
        self.last_error = None
        session = AudioSession(session_id=uuid.uuid4().hex[:12])
        self.session = session
        self._last_session_id = session.session_id
        self._outcome = asyncio.get_running_loop().create_future()
        self.fsm.fire(RecordingTrigger.START)

        self._acquiring = True
        try:
            await self.microphone.open()
        except VoicePayError as e:
            return await self._acquire_failed(session, e)
        except Exception as e:
            logger.exception("Unexpected error while opening microphone")
            return await self._acquire_failed(session, UnknownError(f"Failed to start recording: {e}"))
        finally:
            self._acquiring = False

        if self.session is not session:
            # Cancelled while the device was being acquired
            logger.info("Recording cancelled during microphone acquisition; releasing device")
            await self.microphone.close()
            return False

        self._microphone_open = True
        session.started_at = self.clock()
        self.fsm.fire(RecordingTrigger.GRANTED)

        loop = asyncio.get_running_loop()
        self._session_tasks = [
            loop.create_task(self._read_audio(session), name="voicepay-audio-reader"),
            loop.create_task(self._sample_levels(session), name="voicepay-level-sampler"),
            loop.create_task(self._tick(session), name="voicepay-duration-ticker"),
            loop.create_task(self._auto_stop(session), name="voicepay-auto-stop"),
        ]
        logger.info(f"Recording started (session={session.session_id})")
        return True

    async def stop_recording(self) -> Optional[CaptureOutcome]:
        """Stop listening, then hand the sample to the pipeline.

        Returns:
            The outcome, or None if the controller was not listening.
        """
        if self.state != RecordingState.LISTENING:
            logger.warning(f"No recording in progress (state={self.state.value})")
            return None

        session = self.session
        duration = self.clock() - session.started_at
        self.fsm.fire(RecordingTrigger.STOP)
        await self._release_resources()

        if duration < self.limits.min_seconds:
            logger.info(f"Recording too short: {duration:.2f}s < {self.limits.min_seconds:.2f}s")
            session.discard()
            error = RecordingTooShort(details={"duration_seconds": duration})
            return self._finish(session, RecordingTrigger.TOO_SHORT, duration, error=error)

        sample = AudioSample.from_chunks(
            session.chunks,
            sample_rate=self.microphone.sample_rate,
            channels=self.microphone.channels,
            duration_seconds=duration,
        )
        session.discard()
        logger.info(f"Recording stopped after {duration:.2f}s ({len(sample.data)} bytes)")

        task = asyncio.ensure_future(self.handler(sample))
        self._pipeline_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._pipeline_task is task:
                self._pipeline_task = None

        if self.session is not session or task.cancelled():
            logger.info("Voice command cancelled during processing")
            return CaptureOutcome(state=self.state, duration_seconds=duration, cancelled=True)

        error = task.exception()
        if error is not None:
            if not isinstance(error, VoicePayError):
                logger.error(f"Unexpected pipeline error: {error!r}")
                error = UnknownError(str(error) or "Failed to process voice command")
            return self._finish(session, RecordingTrigger.FAILED, duration, error=error)

        return self._finish(session, RecordingTrigger.RESOLVED, duration, result=task.result())

    async def cancel_recording(self) -> bool:
        """Abort the active session immediately and return to idle."""
        if not self.fsm.is_active:
            return False

        session = self.session
        self.session = None
        self.last_error = None
        self.fsm.fire(RecordingTrigger.CANCEL)

        if self._pipeline_task is not None and not self._pipeline_task.done():
            self._pipeline_task.cancel()

        await self._release_resources()
        if session is not None:
            session.discard()

        self._resolve_outcome(CaptureOutcome(state=RecordingState.IDLE, cancelled=True))
        logger.info("Recording cancelled")
        return True

    async def wait_for_outcome(self) -> Optional[CaptureOutcome]:
        """Wait for the current session to finish (stopped, failed or cancelled)."""
        if self._outcome is None:
            return None
        return await self._outcome

    def clear_error(self) -> None:
        self.last_error = None
        if self.state == RecordingState.ERROR:
            self._cancel_reset()
            self.fsm.fire(RecordingTrigger.RESET)

    async def shutdown(self) -> None:
        """Release everything; used when the owning UI goes away."""
        await self.cancel_recording()
        self._cancel_reset()
        if self.state in (RecordingState.COMPLETE, RecordingState.ERROR):
            self.fsm.fire(RecordingTrigger.RESET)
        logger.info("AudioCaptureController shut down")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _acquire_failed(self, session: AudioSession, error: VoicePayError) -> bool:
        if self.session is not session:
            return False
        logger.error(f"Failed to start recording: {error.message}")
        self.last_error = error
        self.fsm.fire(RecordingTrigger.ACQUIRE_FAILED)
        await self._release_resources()
        self.session = None
        self._resolve_outcome(CaptureOutcome(state=self.state, error=error))
        self._schedule_reset(self.limits.error_display_seconds)
        return False

    def _finish(self, session: AudioSession, trigger: RecordingTrigger, duration: float,
                result: Any = None, error: Optional[VoicePayError] = None) -> CaptureOutcome:
        self.last_error = error
        self.fsm.fire(trigger)
        self.session = None

        outcome = CaptureOutcome(state=self.state, duration_seconds=duration, result=result, error=error)
        self._resolve_outcome(outcome)

        delay = (self.limits.complete_display_seconds if error is None
                 else self.limits.error_display_seconds)
        self._schedule_reset(delay)
        return outcome

    async def _release_resources(self) -> None:
        current = asyncio.current_task()
        tasks = [t for t in self._session_tasks if t is not current and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._session_tasks = []

        if self._microphone_open:
            self._microphone_open = False
            await self.microphone.close()

    async def _read_audio(self, session: AudioSession) -> None:
        while True:
            chunk = await self.microphone.read()
            if chunk is None:
                break
            session.add_chunk(chunk)
            session.audio_level = compute_level(chunk)

    async def _sample_levels(self, session: AudioSession) -> None:
        while True:
            await asyncio.sleep(self.limits.level_interval_seconds)
            if self.publisher is not None:
                self.publisher.publish(LEVEL_TOPIC, AudioLevelEvent(
                    session_id=session.session_id,
                    level=session.audio_level,
                    elapsed_seconds=self.clock() - session.started_at,
                ))

    async def _tick(self, session: AudioSession) -> None:
        while True:
            await asyncio.sleep(TICK_INTERVAL)
            session.elapsed_seconds = self.clock() - session.started_at

    async def _auto_stop(self, session: AudioSession) -> None:
        await asyncio.sleep(self.limits.max_seconds)
        if self.session is session and self.state == RecordingState.LISTENING:
            logger.info(f"Max recording duration reached ({self.limits.max_seconds:.1f}s)")
            await self.stop_recording()

    def _schedule_reset(self, delay: float) -> None:
        self._cancel_reset()
        self._reset_task = asyncio.get_running_loop().create_task(self._reset_after(delay))

    async def _reset_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.state in (RecordingState.COMPLETE, RecordingState.ERROR):
            self.fsm.fire(RecordingTrigger.RESET)

    def _cancel_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None

    def _resolve_outcome(self, outcome: CaptureOutcome) -> None:
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(outcome)

    def _on_transition(self, previous: RecordingState, current: RecordingState,
                       trigger: RecordingTrigger) -> None:
        if self.publisher is None:
            return
        self.publisher.publish(STATE_TOPIC, StateChangeEvent(
            session_id=self._last_session_id,
            previous=previous,
            current=current,
            trigger=trigger.value,
            error=self.last_error.user_message if self.last_error else None,
        ))
