# application/ports/audio_platform_port.py
# Port interface for the decode / offline-render primitives.
# Domain layer: must not import infrastructure or adapter code.

from abc import ABC, abstractmethod

from application.dto.trim_dto import DecodedBuffer, RenderedBuffer, TrimWindow


class IAudioPlatform(ABC):
    """Abstract base class for the audio decode and render backend."""

    @abstractmethod
    async def decode(self, data: bytes) -> DecodedBuffer:
        """
        Decode an encoded audio file held in memory.

        Args:
            data: Raw bytes of any supported container/codec.

        Returns:
            DecodedBuffer with float32 samples shaped (channels, frames).

        Raises:
            DecodeError: The bytes are not a supported audio file.
        """
        ...

    @abstractmethod
    async def render_offline(
        self,
        buffer: DecodedBuffer,
        window: TrimWindow,
    ) -> RenderedBuffer:
        """
        Render ``window`` of ``buffer`` into a new buffer of exactly
        ceil(window.span * sample_rate) frames.

        Raises:
            RenderError: Rendering failed internally.
        """
        ...
