"""
Pure utility functions for annotation logic.

These functions have no side effects and can be tested in isolation.
"""

from typing import Tuple, Union
import datetime

import numpy as np


def round_half_up(value):
    """
    Round to the nearest integer, halves going up.

    Python's round() uses banker's rounding, which would make
    pixel -> frame resolution jitter between neighbouring frames.

    Args:
        value: Scalar or array-like of floats

    Returns:
        int for scalars, int64 array otherwise
    """
    rounded = np.floor(np.asarray(value, dtype=np.float64) + 0.5).astype(np.int64)
    if rounded.ndim == 0:
        return int(rounded)
    return rounded


def clamp(value, low, high):
    """Clamp a scalar or array into [low, high]."""
    clipped = np.clip(value, low, high)
    if np.ndim(clipped) == 0:
        return clipped.item()
    return clipped


def normalize_range(start: int, end: int) -> Tuple[int, int]:
    """Return (start, end) ordered so that start <= end."""
    if start > end:
        return end, start
    return start, end


def range_length(start: int, end: int) -> int:
    """Length of a frame range, in frames."""
    return abs(end - start)


def frame_to_time(frame: int, fps: float, offset: float = 0.0) -> float:
    """
    Convert a frame number into seconds.

    Args:
        frame: Frame number
        fps: Frames per second of the video
        offset: Time of frame 0, in seconds

    Returns:
        Time in seconds
    """
    if fps <= 0:
        raise ValueError("fps must be positive")
    return frame / fps + offset


def format_time(seconds: Union[int, float]) -> str:
    """Format seconds as HH:MM:SS.ss (the playback widget's clock format)."""
    seconds = max(float(seconds), 0.0)
    stamp = datetime.datetime(1970, 1, 1) + datetime.timedelta(seconds=seconds)
    return stamp.strftime("%H:%M:%S.%f")[:11]
