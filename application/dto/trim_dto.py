# application/dto/trim_dto.py
# Value objects threaded through one trim invocation.

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class AudioSource:
    """Encoded input exactly as the caller supplied it."""
    content: bytes
    mime_type: str = ""
    name: str = ""


@dataclass(frozen=True, eq=False)
class DecodedBuffer:
    """
    Decoded PCM audio.

    ``channels`` has shape (num_channels, frame_count), dtype float32.
    """
    channels: np.ndarray
    sample_rate: int

    @property
    def num_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate


@dataclass(frozen=True)
class TrimWindow:
    """Resolved [start, end) range in seconds."""
    start: float
    end: float

    @property
    def span(self) -> float:
        return self.end - self.start


@dataclass(frozen=True, eq=False)
class RenderedBuffer(DecodedBuffer):
    """Output of the offline renderer; same layout as DecodedBuffer."""


@dataclass(frozen=True)
class EncodedArtifact:
    """Finished WAV blob, ready for the upload collaborator."""
    content: bytes = field(repr=False)
    name: str
    mime_type: str = "audio/wav"

    @property
    def size(self) -> int:
        return len(self.content)
