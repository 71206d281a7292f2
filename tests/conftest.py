import io

import numpy as np
import pytest
import soundfile as sf

SAMPLE_RATE: int = 8000


def make_channels(
    num_channels: int = 2,
    frames: int = 8000,
    freq: float = 440.0,
    sr: int = SAMPLE_RATE,
) -> np.ndarray:
    """Sine test signal shaped (channels, frames); each channel phase-shifted."""
    t: np.ndarray = np.arange(frames, dtype=np.float64) / sr
    rows = [0.8 * np.sin(2 * np.pi * freq * t + ch) for ch in range(num_channels)]
    return np.asarray(rows, dtype=np.float32)


def make_wav_bytes(channels: np.ndarray, sr: int = SAMPLE_RATE) -> bytes:
    """Encode (channels, frames) as a 32-bit float WAV so samples round-trip exactly."""
    buf = io.BytesIO()
    sf.write(buf, channels.T, sr, format="WAV", subtype="FLOAT")
    return buf.getvalue()


@pytest.fixture
def stereo_channels() -> np.ndarray:
    return make_channels()


@pytest.fixture
def stereo_wav(stereo_channels: np.ndarray) -> bytes:
    return make_wav_bytes(stereo_channels)
