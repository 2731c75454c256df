"""Audio level metering for UI feedback."""

import numpy as np

# 16-bit PCM full scale
_FULL_SCALE = 32768.0

# RMS at half of full scale already reads as a full meter
_METER_GAIN = 2.0


def compute_level(audio_chunk: bytes) -> float:
    """Return a normalized 0..1 loudness level for a chunk of 16-bit PCM."""
    if not audio_chunk or len(audio_chunk) < 2:
        return 0.0

    # Drop a trailing odd byte rather than fail on it
    usable = len(audio_chunk) - (len(audio_chunk) % 2)
    samples = np.frombuffer(audio_chunk[:usable], dtype=np.int16).astype(np.float64)
    rms = float(np.sqrt(np.mean(samples ** 2)))
    return min(rms / _FULL_SCALE * _METER_GAIN, 1.0)

