"""
Frame <-> pixel mapping for the timeline track.

The base map is linear from [0, total_frames] onto [0, track_width].
A view transform (offset, scale) sits on top of it for zoom and pan,
and is kept clamped so the visible window never leaves the track.
"""

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np

from .utils import clamp, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_ZOOM_STEP = 1.05


@dataclass
class ViewTransform:
    """
    Zoom/pan state applied on top of the base frame -> pixel map.

    The scale is stored as an integer number of zoom notches so that
    zooming in and out by the same amount lands on exactly the same scale.
    """

    offset: float = 0.0
    zoom_factor: int = 0
    zoom_step: float = DEFAULT_ZOOM_STEP

    @property
    def scale(self) -> float:
        return self.zoom_step ** self.zoom_factor

    def apply(self, pixel):
        """Base pixel -> screen pixel."""
        return self.offset + np.asarray(pixel, dtype=np.float64) * self.scale

    def invert(self, x):
        """Screen pixel -> base pixel."""
        return (np.asarray(x, dtype=np.float64) - self.offset) / self.scale

    def keep_in_bounds(self, width: float):
        """Clamp the offset so [0, width] stays covered by the zoomed track."""
        scale = self.scale
        if self.offset > 0:
            self.offset = 0.0
        elif self.offset + width * scale < width:
            self.offset = width * (1 - scale)

    def reset(self):
        self.offset = 0.0
        self.zoom_factor = 0


class CoordinateTransform:
    """
    Maps frames to track pixels and back, with zoom and pan.

    Pixel -> frame results are rounded to the nearest frame and clamped to
    [0, total_frames]; pointer positions routinely overshoot the track
    during fast drags.
    """

    def __init__(
        self,
        total_frames: int,
        track_width: float,
        zoom_step: float = DEFAULT_ZOOM_STEP,
    ):
        """
        Initialize the transform.

        Args:
            total_frames: Number of frames in the video (domain upper bound)
            track_width: Width of the track in pixels (range upper bound)
            zoom_step: Multiplicative scale change per wheel notch
        """
        if total_frames <= 0:
            raise ValueError(f"total_frames must be positive, got {total_frames}")
        if track_width <= 0:
            raise ValueError(f"track_width must be positive, got {track_width}")
        if zoom_step <= 1:
            raise ValueError(f"zoom_step must be greater than 1, got {zoom_step}")

        self.total_frames = int(total_frames)
        self.track_width = float(track_width)
        self.view = ViewTransform(zoom_step=zoom_step)

        # pan gesture anchors
        self._pan_down_x: Optional[float] = None
        self._pan_down_offset: Optional[float] = None

    @property
    def scale(self) -> float:
        return self.view.scale

    @property
    def offset(self) -> float:
        return self.view.offset

    # Base map

    def frame_to_pixel(self, frame):
        """Frame(s) -> base track pixel(s), without the view transform."""
        pixel = np.asarray(frame, dtype=np.float64) * (
            self.track_width / self.total_frames
        )
        if pixel.ndim == 0:
            return float(pixel)
        return pixel

    def pixel_to_frame(self, pixel):
        """Base track pixel(s) -> nearest frame(s), clamped to the video."""
        frame = np.asarray(pixel, dtype=np.float64) * (
            self.total_frames / self.track_width
        )
        return clamp(round_half_up(frame), 0, self.total_frames)

    def clamp_frame(self, frame: int) -> int:
        return clamp(int(frame), 0, self.total_frames)

    # With the view transform

    def frame_to_screen(self, frame):
        """Frame(s) -> on-screen x inside the (zoomed, panned) track."""
        x = self.view.apply(self.frame_to_pixel(frame))
        if np.ndim(x) == 0:
            return float(x)
        return x

    def screen_to_frame(self, x):
        """On-screen x -> nearest frame, clamped to the video."""
        return self.pixel_to_frame(self.view.invert(x))

    # Zoom / pan

    def zoom(self, x: float, notches: int = 1) -> bool:
        """
        Zoom around screen position x.

        Args:
            x: Pointer position; the frame under it stays in place
            notches: Wheel notches, positive zooms in, negative zooms out

        Returns:
            True if the view changed
        """
        if notches == 0:
            return False

        before = (self.view.offset, self.view.zoom_factor)
        direction = 1 if notches > 0 else -1
        for _ in range(abs(int(notches))):
            self._zoom_notch(float(x), direction)

        changed = before != (self.view.offset, self.view.zoom_factor)
        if changed:
            logger.debug(
                f"Zoomed to scale {self.view.scale:.4f}, offset {self.view.offset:.2f}"
            )
        return changed

    def _zoom_notch(self, x: float, direction: int):
        old_offset = self.view.offset
        old_scale = self.view.scale

        self.view.zoom_factor += direction
        if self.view.zoom_factor <= 0:
            # no zooming out beyond the unzoomed fit
            self.view.reset()
            return

        new_scale = self.view.scale
        anchored = (x - old_offset) / old_scale
        self.view.offset = x - anchored * new_scale
        self.view.keep_in_bounds(self.track_width)

    def begin_pan(self, x: float):
        """Anchor a pan gesture at screen position x."""
        self._pan_down_x = float(x)
        self._pan_down_offset = self.view.offset

    def pan_to(self, x: float) -> bool:
        """Move the view so the anchored point follows the pointer."""
        if self._pan_down_x is None:
            self.begin_pan(x)
            return False
        old_offset = self.view.offset
        self.view.offset = self._pan_down_offset + (float(x) - self._pan_down_x)
        self.view.keep_in_bounds(self.track_width)
        return self.view.offset != old_offset

    def end_pan(self):
        self._pan_down_x = None
        self._pan_down_offset = None

    @property
    def is_panning(self) -> bool:
        return self._pan_down_x is not None

    def visible_frames(self):
        """First and last frame currently visible on the track."""
        return (
            self.screen_to_frame(0.0),
            self.screen_to_frame(self.track_width),
        )
