import struct

import numpy as np

from application.dto.trim_dto import DecodedBuffer
from trimmer.errors import EncodeError

WAV_HEADER_SIZE: int = 44
BYTES_PER_SAMPLE: int = 2

# RIFF size fields are uint32; the chunk size adds 36 on top of the data.
MAX_DATA_LENGTH: int = 0xFFFFFFFF - 36
# fmt chunk: block align is uint16; rate and byte rate are uint32.
MAX_BLOCK_ALIGN: int = 0xFFFF
MAX_BYTE_RATE: int = 0xFFFFFFFF

# <  little-endian
# 4s "RIFF"  I chunk size  4s "WAVE"
# 4s "fmt "  I 16  H format  H channels  I rate  I byte rate  H block align  H bits
# 4s "data"  I data length
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def build_wav_header(num_channels: int, sample_rate: int, frame_count: int) -> bytes:
    """Return the canonical 44-byte PCM16 RIFF/WAVE header."""
    block_align: int = num_channels * BYTES_PER_SAMPLE
    data_length: int = frame_count * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,
        1,
        num_channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BYTES_PER_SAMPLE * 8,
        b"data",
        data_length,
    )


def quantize_pcm16(channels: np.ndarray) -> np.ndarray:
    """
    Convert float samples to int16 with asymmetric scaling.

    Negative samples scale by 32768, the rest by 32767, after clamping to
    [-1, 1]. Rounding is half-up. NaN becomes 0.
    """
    samples: np.ndarray = np.nan_to_num(
        channels.astype(np.float64), nan=0.0, posinf=1.0, neginf=-1.0
    )
    samples = np.clip(samples, -1.0, 1.0)
    scaled: np.ndarray = np.where(samples < 0, samples * 32768.0, samples * 32767.0)
    return np.floor(scaled + 0.5).astype(np.int16)


def encode_wav(buffer: DecodedBuffer) -> bytes:
    """
    Serialize a PCM buffer to 16-bit little-endian WAV bytes.

    Frames are interleaved channel-major (ch0, ch1, ..., then next frame).
    """
    channels = buffer.channels
    if channels.ndim != 2 or channels.shape[0] < 1:
        raise EncodeError(
            f"Cannot encode samples with shape {channels.shape}.\n"
            f"    → Expected a (channels, frames) array with at least one channel."
        )
    if int(buffer.sample_rate) <= 0:
        raise EncodeError(
            f"Sample rate must be positive. Got: {buffer.sample_rate}.\n"
            f"    → Render the buffer again from a valid source."
        )

    num_channels, frame_count = channels.shape
    block_align: int = num_channels * BYTES_PER_SAMPLE
    if block_align > MAX_BLOCK_ALIGN or int(buffer.sample_rate) * block_align > MAX_BYTE_RATE:
        raise EncodeError(
            f"WAV header cannot describe {num_channels} channels at {buffer.sample_rate} Hz.\n"
            f"    → Resample or downmix the source before trimming."
        )
    data_length: int = frame_count * num_channels * BYTES_PER_SAMPLE
    if data_length > MAX_DATA_LENGTH:
        raise EncodeError(
            f"Trimmed audio is too large for a WAV file ({data_length} data bytes).\n"
            f"    → Choose a shorter selection."
        )

    pcm: np.ndarray = quantize_pcm16(channels)
    # (channels, frames) → (frames, channels) so row-major order interleaves.
    interleaved: bytes = np.ascontiguousarray(pcm.T).astype("<i2").tobytes()

    return build_wav_header(num_channels, int(buffer.sample_rate), frame_count) + interleaved
