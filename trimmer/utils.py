import os
import re
from typing import Optional

from application.dto.trim_dto import AudioSource
from trimmer.errors import DecodeError

# Supported formats
SUPPORTED_INPUT_FORMATS: set[str] = {".mp3", ".wav", ".flac", ".ogg", ".aac", ".m4a"}
OUTPUT_EXTENSION: str = ".wav"
WAV_MIME_TYPE: str = "audio/wav"
DEFAULT_BASE_NAME: str = "audio"

DEFAULT_API_BASE: str = "http://localhost:8080/api"
DEFAULT_UPLOAD_TIMEOUT: float = 30.0

# Declared types that say nothing about the payload; the decoder decides
GENERIC_MIME_TYPES: frozenset = frozenset({"", "application/octet-stream", "binary/octet-stream"})

# Magic bytes for known audio containers
AUDIO_MAGIC_BYTES: dict[bytes, str] = {
    b"\xff\xfb":              ".mp3",  # MP3 (MPEG layer 3)
    b"\xff\xf3":              ".mp3",
    b"\xff\xf2":              ".mp3",
    b"ID3":                   ".mp3",  # MP3 with ID3 tag
    b"RIFF":                  ".wav",
    b"fLaC":                  ".flac",
    b"OggS":                  ".ogg",
    b"\xff\xf1":              ".aac",  # ADTS
    b"\xff\xf9":              ".aac",
    b"\x00\x00\x00\x18ftyp": ".m4a",
    b"\x00\x00\x00\x1cftyp": ".m4a",
    b"\x00\x00\x00\x20ftyp": ".m4a",
}

# Containers libsndfile opens without ffmpeg
SOUNDFILE_NATIVE_FORMATS: frozenset = frozenset({".wav", ".flac", ".ogg"})

_EXTENSION_RE = re.compile(r"\.[^./]+$")


def sniff_format(header: bytes) -> Optional[str]:
    """Return the extension matching the file's magic bytes, or None."""
    for magic, ext in AUDIO_MAGIC_BYTES.items():
        if header[:len(magic)] == magic:
            return ext
    return None


# Naming

def resolve_name(desired_base_name: Optional[str], original_name: Optional[str]) -> str:
    """
    Derive the artifact name: prefer the desired name, drop one extension,
    force ``.wav``.

    Example: ("intro", "song.mp3")  →  intro.wav
    Example: ("", "song.mp3")       →  song.wav
    Example: ("take.2.ogg", "")     →  take.2.wav
    """
    desired: str = (desired_base_name or "").strip()
    name: str = desired or (original_name or "").strip()
    base: str = _EXTENSION_RE.sub("", name) or DEFAULT_BASE_NAME
    return f"{base}{OUTPUT_EXTENSION}"


def get_output_path(input_path: str, name: Optional[str] = None) -> str:
    """
    Place the resolved artifact name next to the input file.

    Example: /music/song.mp3           →  /music/song.wav
    Example: /music/song.mp3, "intro"  →  /music/intro.wav
    """
    directory: str = os.path.dirname(input_path)
    return os.path.join(directory, resolve_name(name, os.path.basename(input_path)))


# Validation helpers

def validate_input_file(path: str) -> None:
    """Raise FileNotFoundError / ValueError if the input path is invalid."""
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Input file not found: '{path}'.\n" f"    → Check the path and try again."
        )
    if not os.path.isfile(path):
        raise ValueError(
            f"Input path is not a file: '{path}'.\n"
            f"    → Provide a path to an audio file, not a directory."
        )

    ext: str = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_INPUT_FORMATS:
        raise ValueError(
            f"Unsupported input format: '{ext}'.\n"
            f"    Supported: {', '.join(sorted(SUPPORTED_INPUT_FORMATS))}\n"
            f"    → Example: python main.py song.mp3 --start 2 --end 5 --auto-output"
        )


def validate_source(source: AudioSource) -> None:
    """Raise DecodeError for sources that can never decode."""
    if not source.content:
        raise DecodeError(
            f"Audio file '{source.name or 'upload'}' is empty.\n"
            f"    → Select a non-empty audio file."
        )
    mime: str = (source.mime_type or "").strip().lower()
    if mime in GENERIC_MIME_TYPES:
        return
    if not mime.startswith("audio/"):
        raise DecodeError(
            f"Unsupported file type: '{source.mime_type}'.\n"
            f"    → Select an audio file (audio/*)."
        )
