import math
from typing import Optional

from application.dto.trim_dto import TrimWindow
from trimmer.errors import InvalidRangeError

# Values whose magnitude exceeds this are read as milliseconds.
# Known limitation: a genuine start/end past 1000 s is misread as ms.
MILLISECOND_THRESHOLD: float = 1000.0

# Selections this short (or inverted) fall back to "start → end of file".
MIN_SELECTION_SECONDS: float = 0.05


def normalize_seconds(value: float) -> float:
    """Return *value* in seconds, inferring milliseconds from its magnitude."""
    if abs(value) > MILLISECOND_THRESHOLD:
        return value / 1000.0
    return value


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def resolve_trim_window(
    requested_start: Optional[float],
    requested_end: Optional[float],
    duration: float,
) -> TrimWindow:
    """
    Resolve a user selection against the decoded duration.

    Args:
        requested_start: Start in seconds or milliseconds (None = 0).
        requested_end:   End in seconds or milliseconds (None = duration).
        duration:        Decoded duration in seconds.

    Returns:
        TrimWindow with 0 <= start < end <= duration.

    Raises:
        InvalidRangeError: Nothing is left to trim after clamping and fallback.
    """
    if not math.isfinite(duration) or duration < 0:
        raise InvalidRangeError(
            f"Audio duration is not usable: {duration!r}.\n"
            f"    → The decoded file reports no playable length."
        )

    start: float = 0.0 if requested_start is None else float(requested_start)
    end: float = duration if requested_end is None else float(requested_end)

    if not (math.isfinite(start) and math.isfinite(end)):
        raise InvalidRangeError(
            f"Trim range must be finite numbers. Got: start={start!r}, end={end!r}.\n"
            f"    → Pick a start and end inside the track."
        )

    start = _clamp(normalize_seconds(start), 0.0, duration)
    end = _clamp(normalize_seconds(end), 0.0, duration)

    if end - start <= MIN_SELECTION_SECONDS:
        end = duration

    if end <= start:
        raise InvalidRangeError(
            f"Trim selection is empty: start={start:.3f}s, end={end:.3f}s "
            f"(track length {duration:.3f}s).\n"
            f"    → Move the start point before the end of the track."
        )

    return TrimWindow(start=start, end=end)
