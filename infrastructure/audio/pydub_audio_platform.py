# infrastructure/audio/pydub_audio_platform.py
# Implementation of IAudioPlatform using pydub/soundfile for decoding and
# NumPy (+ an optional Pedalboard graph) for offline rendering.

import asyncio
import io
import logging
import math
import os
import tempfile
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import numpy as np
import soundfile as sf
from pedalboard import Pedalboard
from pydub import AudioSegment

from application.dto.trim_dto import DecodedBuffer, RenderedBuffer, TrimWindow
from application.ports.audio_platform_port import IAudioPlatform
from trimmer.errors import DecodeError, RenderError
from trimmer.utils import SOUNDFILE_NATIVE_FORMATS, sniff_format

logger = logging.getLogger(__name__)

# Absorbs float error in span * rate so exact frame counts do not round up.
FRAME_EPSILON: float = 1e-6


def target_frame_count(window: TrimWindow, sample_rate: int) -> int:
    """Frames the render target holds: ceil(span * rate), at least 1."""
    return max(1, int(math.ceil(window.span * sample_rate - FRAME_EPSILON)))


@contextmanager
def decoding_context() -> Iterator[str]:
    """Scratch WAV file for ffmpeg-backed decodes; always removed on exit."""
    tmp_fd: int
    tmp_path: str
    tmp_fd, tmp_path = tempfile.mkstemp(suffix=".wav")
    os.close(tmp_fd)
    try:
        yield tmp_path
    finally:
        try:
            os.unlink(tmp_path)
        except OSError as e:
            logger.warning("Could not delete %s: %s", tmp_path, e)


class OfflineRenderContext:
    """
    Isolated render target for a single invocation.

    Owns the zero-filled output array and, when configured, a freshly built
    Pedalboard graph. Released by ``close()`` (or leaving the ``with`` block).
    """

    def __init__(
        self,
        num_channels: int,
        frame_count: int,
        sample_rate: int,
        board: Optional[Pedalboard] = None,
    ) -> None:
        self.sample_rate: int = sample_rate
        self.frame_count: int = frame_count
        self._target: Optional[np.ndarray] = np.zeros(
            (num_channels, frame_count), dtype=np.float32
        )
        self._board: Optional[Pedalboard] = board

    def __enter__(self) -> "OfflineRenderContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._target is None

    def render(self, segment: np.ndarray) -> np.ndarray:
        """Run *segment* through the graph into the target; return the target."""
        if self._target is None:
            raise RenderError("Render context is already closed.")

        processed: np.ndarray = segment
        if self._board is not None and segment.shape[1] > 0:
            # Pedalboard takes (channels, frames) float32
            processed = self._board(segment.astype(np.float32), self.sample_rate, reset=True)

        written: int = min(self.frame_count, processed.shape[1])
        self._target[:, :written] = processed[:, :written]
        return self._target

    def close(self) -> None:
        self._target = None
        if self._board is not None:
            self._board.reset()
            self._board = None


class PydubAudioPlatform(IAudioPlatform):
    """
    Decode with soundfile (WAV/FLAC/OGG) or pydub + ffmpeg (everything else);
    render trim windows offline with NumPy.

    Args:
        board_factory: Optional zero-argument callable returning a new
                       Pedalboard. Called once per render so graphs are
                       never shared between concurrent trims.
    """

    def __init__(self, board_factory: Optional[Callable[[], Pedalboard]] = None) -> None:
        self._board_factory = board_factory

    # ── Decode ───────────────────────────────────────────────────

    async def decode(self, data: bytes) -> DecodedBuffer:
        return await asyncio.to_thread(self._decode_sync, data)

    def _decode_sync(self, data: bytes) -> DecodedBuffer:
        if not data:
            raise DecodeError(
                "No audio data to decode.\n"
                "    → Select a non-empty audio file."
            )

        fmt: Optional[str] = sniff_format(data[:16])
        with decoding_context() as scratch_path:
            try:
                if fmt in SOUNDFILE_NATIVE_FORMATS:
                    samples, sr = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
                else:
                    segment: AudioSegment = AudioSegment.from_file(io.BytesIO(data))
                    segment.export(scratch_path, format="wav")
                    samples, sr = sf.read(scratch_path, dtype="float32", always_2d=True)
            except Exception as exc:
                raise DecodeError(
                    f"Could not decode audio ({fmt or 'unknown format'}): {exc}\n"
                    f"    → Use a valid .mp3, .wav, .flac, .ogg, .aac or .m4a file."
                ) from exc

        if sr <= 0 or samples.shape[1] < 1:
            raise DecodeError(
                f"Decoded audio has no channels or an invalid sample rate ({sr}).\n"
                f"    → The file may be corrupt; try exporting it again."
            )

        # soundfile gives (frames, channels); keep channels-first
        channels: np.ndarray = np.ascontiguousarray(samples.T, dtype=np.float32)
        logger.info(
            "decoded format=%s channels=%d rate=%d frames=%d",
            fmt or "ffmpeg", channels.shape[0], sr, channels.shape[1],
        )
        return DecodedBuffer(channels=channels, sample_rate=int(sr))

    # ── Render ───────────────────────────────────────────────────

    async def render_offline(self, buffer: DecodedBuffer, window: TrimWindow) -> RenderedBuffer:
        return await asyncio.to_thread(self._render_sync, buffer, window)

    def _render_sync(self, buffer: DecodedBuffer, window: TrimWindow) -> RenderedBuffer:
        sr: int = buffer.sample_rate
        frames: int = target_frame_count(window, sr)
        start_frame: int = min(buffer.frame_count, int(round(window.start * sr)))

        try:
            board: Optional[Pedalboard] = self._board_factory() if self._board_factory else None
            with OfflineRenderContext(buffer.num_channels, frames, sr, board) as ctx:
                segment: np.ndarray = buffer.channels[:, start_frame:start_frame + frames]
                rendered: np.ndarray = ctx.render(segment)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(
                f"Offline render failed for {window.start:.3f}s–{window.end:.3f}s: {exc}\n"
                f"    → Try a shorter selection."
            ) from exc

        if rendered.shape != (buffer.num_channels, frames):
            raise RenderError(
                f"Rendered {rendered.shape[1]} frames, expected {frames}."
            )

        logger.info(
            "rendered start=%.3f end=%.3f frames=%d", window.start, window.end, frames
        )
        return RenderedBuffer(channels=rendered, sample_rate=sr)
