"""
Render adapter for annotation session.

Bridges the AnnotationSession with whatever draws the timeline.
"""

from typing import Any, Callable, Dict, List, Optional

import numpy as np

from ..core.annotation import AnnotationEvent, AnnotationSession, EventType, Mode
from ..core.annotation.utils import format_time, frame_to_time

# vertical padding inside a channel band, as drawn by the timeline widget
INSTANT_MARGIN = 5
INTERVAL_MARGIN = 3


class TimelineRenderAdapter:
    """
    Adapter connecting AnnotationSession to a timeline renderer.

    Provides a thin layer that:
    - Translates session events into a single invalidation callback
    - Turns the session state into plain render data in screen pixels
    """

    def __init__(
        self,
        session: AnnotationSession,
        update_callback: Optional[Callable] = None,
        channel_height: Optional[int] = None,
    ):
        """
        Initialize adapter.

        Args:
            session: Core annotation session
            update_callback: Called with the event whenever a redraw is due
            channel_height: Height of one channel band, in pixels
        """
        self.session = session
        self.update_callback = update_callback
        if channel_height is None:
            channel_height = session.cfg.render.channel_height
        self.channel_height = int(channel_height)

        # Subscribe to session events
        self._setup_event_handlers()

    def _setup_event_handlers(self):
        """Setup event handlers for session events."""
        for event_type in (
            EventType.EDITED,
            EventType.SELECTED,
            EventType.MODE_CHANGED,
            EventType.VIEW_CHANGED,
            EventType.NAVIGATED,
            EventType.STATE_CHANGED,
        ):
            self.session.events.on(event_type, self._on_invalidated)

    def _on_invalidated(self, event: AnnotationEvent):
        if self.update_callback:
            self.update_callback(event)

    def detach(self):
        """Stop listening to the session."""
        for event_type in (
            EventType.EDITED,
            EventType.SELECTED,
            EventType.MODE_CHANGED,
            EventType.VIEW_CHANGED,
            EventType.NAVIGATED,
            EventType.STATE_CHANGED,
        ):
            self.session.events.off(event_type, self._on_invalidated)

    def get_render_model(self) -> Dict[str, Any]:
        """
        Get everything needed to draw the timeline.

        Returns:
            Dictionary with channel bands, instant markers, interval
            rectangles, indicator lines and view state
        """
        session = self.session
        transform = session.transform
        selection = session.get_selection()

        channels = []
        for row, channel in enumerate(session.get_channels()):
            top = row * self.channel_height
            channels.append(
                dict(
                    channel.to_dict(),
                    y=top,
                    height=self.channel_height,
                    current=channel.id == session.state.current_channel,
                    instants=self._instants(channel.id, top, selection.instant),
                    intervals=self._intervals(channel.id, top, selection.interval),
                )
            )

        indicators = {}
        for name, frame in session.get_indicators().items():
            indicators[name] = (
                transform.frame_to_screen(frame) if frame is not None else None
            )

        return {
            "width": transform.track_width,
            "height": len(channels) * self.channel_height,
            "offset": transform.offset,
            "scale": transform.scale,
            "mode": session.state.mode.value,
            "state": session.state.to_dict(),
            # the kind that is not editable in the current mode is drawn faded
            "dimmed": "intervals" if session.state.mode is Mode.INSTANT else "instants",
            "channels": channels,
            "indicators": indicators,
            # playback clock shown next to the index line
            "time": format_time(
                frame_to_time(session.state.index_frame, float(session.cfg.fps))
            ),
        }

    def _instants(self, channel_id: int, top: int, selected) -> List[Dict[str, Any]]:
        layouts = self.session.get_instants(channel_id)
        if not layouts:
            return []
        xs = self.session.transform.frame_to_screen(
            np.array([layout.frame for layout in layouts])
        )
        return [
            dict(
                layout.to_dict(),
                x=float(x),
                y1=top + INSTANT_MARGIN,
                y2=top + self.channel_height - INSTANT_MARGIN,
                selected=layout.instant is selected,
            )
            for layout, x in zip(layouts, xs)
        ]

    def _intervals(self, channel_id: int, top: int, selected) -> List[Dict[str, Any]]:
        layouts = self.session.get_intervals(channel_id)
        if not layouts:
            return []
        transform = self.session.transform
        x_start = transform.frame_to_screen(np.array([layout.start for layout in layouts]))
        x_end = transform.frame_to_screen(np.array([layout.end for layout in layouts]))

        band = self.channel_height - 2 * INTERVAL_MARGIN
        items = []
        for layout, x0, x1 in zip(layouts, x_start, x_end):
            row_height = band / layout.size
            items.append(
                dict(
                    layout.to_dict(),
                    x=float(x0),
                    width=float(x1 - x0),
                    y=top + INTERVAL_MARGIN + layout.index * row_height,
                    height=row_height,
                    selected=layout.interval is not None and layout.interval is selected,
                )
            )
        return items
