# trimmer/errors.py
# Typed failures surfaced by the trim pipeline. Each stage raises exactly one
# of these; the underlying cause is chained with ``raise ... from exc``.


class TrimError(Exception):
    """Base class for every pipeline failure."""


class DecodeError(TrimError):
    """Input bytes are not a parseable / supported audio file."""


class InvalidRangeError(TrimError, ValueError):
    """The resolved trim window is empty or inverted."""


class RenderError(TrimError):
    """The offline render stage failed."""


class EncodeError(TrimError):
    """The rendered buffer could not be serialized as WAV."""


class UploadError(TrimError):
    """The upload collaborator rejected the artifact or was unreachable."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
