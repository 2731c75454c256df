"""Audio capture and recording lifecycle."""

from .controller import AudioCaptureController
from .level_meter import compute_level
from .microphone import (
    InMemoryMicrophone,
    MicrophoneSource,
    PyAudioMicrophone,
    classify_device_error,
    synthetic_chunks,
)
from .state_machine import InvalidStateTransition, RecordingStateMachine, RecordingTrigger

__all__ = [
    'AudioCaptureController',
    'InMemoryMicrophone',
    'InvalidStateTransition',
    'MicrophoneSource',
    'PyAudioMicrophone',
    'RecordingStateMachine',
    'RecordingTrigger',
    'classify_device_error',
    'compute_level',
    'synthetic_chunks',
]
