"""Frame-accurate time conversion utilities.

Frames are the canonical unit for every stored position and duration.
Millisecond values are projections of frame values and are always
recomputed from frames, never adjusted on their own.

Halves round up (away from the previous frame), so a timestamp exactly
between two frames lands on the later one.
"""

import math
from functools import lru_cache


@lru_cache(maxsize=4096)
def ms_to_frames(ms: float, fps: int) -> int:
    """Convert milliseconds to the nearest integer frame.

    Example:
        >>> ms_to_frames(1000, 30)
        30
    """
    return math.floor(ms * fps / 1000 + 0.5)


@lru_cache(maxsize=4096)
def frames_to_ms(frame: int, fps: int) -> int:
    """Convert a frame number to the nearest millisecond.

    Example:
        >>> frames_to_ms(1, 30)
        33
    """
    return math.floor(frame * 1000 / fps + 0.5)


def quantize_ms(ms: float, fps: int) -> int:
    """Snap a timestamp to the nearest frame boundary.

    Example:
        >>> quantize_ms(40, 30)
        33
    """
    return frames_to_ms(ms_to_frames(ms, fps), fps)


def px_to_ms(px: float, px_per_sec: float) -> float:
    """Convert a horizontal pixel distance to milliseconds at the given zoom."""
    return px / px_per_sec * 1000


def ms_to_px(ms: float, px_per_sec: float) -> float:
    return ms * px_per_sec / 1000


def px_to_frames(px: float, px_per_sec: float, fps: int) -> int:
    return ms_to_frames(px_to_ms(px, px_per_sec), fps)


def frames_to_px(frame: int, px_per_sec: float, fps: int) -> float:
    return ms_to_px(frames_to_ms(frame, fps), px_per_sec)
