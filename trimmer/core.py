import logging
from typing import Callable, List, Optional, Tuple

from application.dto.trim_dto import (
    AudioSource,
    DecodedBuffer,
    EncodedArtifact,
    RenderedBuffer,
    TrimWindow,
)
from application.ports.audio_platform_port import IAudioPlatform
from application.ports.upload_port import IUploadClient
from trimmer.ranges import resolve_trim_window
from trimmer.utils import WAV_MIME_TYPE, resolve_name, validate_source
from trimmer.wav import encode_wav

logger = logging.getLogger(__name__)

STEPS: List[str] = [
    "Decoding audio",
    "Resolving trim window",
    "Rendering selection",
    "Encoding WAV",
]


def _default_platform() -> IAudioPlatform:
    from infrastructure.audio.pydub_audio_platform import PydubAudioPlatform
    return PydubAudioPlatform()


async def trim_audio_file(
    source      : AudioSource,
    start       : Optional[float],
    end         : Optional[float],
    target_name : Optional[str] = None,
    *,
    platform    : Optional[IAudioPlatform] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> EncodedArtifact:
    """
    Full pipeline: decode → resolve window → render → encode WAV → name.

    Args:
        source:      Encoded audio plus its MIME type and original name.
        start:       Requested start, seconds (or ms if > 1000). None = 0.
        end:         Requested end, seconds (or ms if > 1000). None = end of file.
        target_name: Desired artifact name; falls back to ``source.name``.
        platform:    Decode/render backend. Defaults to PydubAudioPlatform.
        progress_callback: Optional callback (step_idx, total_steps, step_name).

    Returns:
        EncodedArtifact holding a 16-bit PCM WAV.

    Raises:
        DecodeError, InvalidRangeError, RenderError, EncodeError
    """
    validate_source(source)
    backend: IAudioPlatform = platform or _default_platform()
    total_steps: int = len(STEPS)

    def _report(step_idx: int) -> None:
        if progress_callback:
            progress_callback(step_idx, total_steps, STEPS[step_idx])

    # [1] Decode
    _report(0)
    decoded: DecodedBuffer = await backend.decode(source.content)

    # [2] Resolve
    _report(1)
    window: TrimWindow = resolve_trim_window(start, end, decoded.duration)
    logger.info(
        "trim window name=%s requested=(%s, %s) resolved=(%.3f, %.3f) duration=%.3f",
        source.name or "-", start, end, window.start, window.end, decoded.duration,
    )

    # [3] Render
    _report(2)
    rendered: RenderedBuffer = await backend.render_offline(decoded, window)
    del decoded

    # [4] Encode
    _report(3)
    content: bytes = encode_wav(rendered)

    return EncodedArtifact(
        content=content,
        name=resolve_name(target_name, source.name),
        mime_type=WAV_MIME_TYPE,
    )


async def trim_and_upload(
    source      : AudioSource,
    start       : Optional[float],
    end         : Optional[float],
    uploader    : IUploadClient,
    target_name : Optional[str] = None,
    *,
    platform    : Optional[IAudioPlatform] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> Tuple[EncodedArtifact, Optional[dict]]:
    """
    Trim *source* and hand the artifact straight to *uploader*.

    Returns the artifact and the file service's reply payload.
    """
    artifact: EncodedArtifact = await trim_audio_file(
        source,
        start,
        end,
        target_name,
        platform=platform,
        progress_callback=progress_callback,
    )
    logger.info("uploading name=%s size=%dB", artifact.name, artifact.size)
    reply: Optional[dict] = await uploader.create(artifact)
    return artifact, reply
