"""
Annotation session management.

Core logic for an interactive timeline annotation session.
UI-agnostic - can be used with any interface (GUI, Web, CLI).
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging
import time

from .commands import (
    Command,
    CreateInstant,
    CreateInterval,
    delete_instant,
    delete_interval,
    edit_instant_frame,
    edit_interval_range,
    edit_label,
)
from .config import default_config, validate_config
from .events import AnnotationEvent, EventEmitter, EventType
from .grouping import IntervalLayout, assign_groups
from .history import CommandHistory
from .state import (
    Channel,
    DragKind,
    DragState,
    Instant,
    InstantLayout,
    Interval,
    Mode,
    ReviewState,
    Selection,
    SessionState,
    Target,
    TargetKind,
)
from .store import AnnotationStore
from .transform import CoordinateTransform
from .utils import clamp, normalize_range, range_length

logger = logging.getLogger(__name__)

INTERVAL_DRAGS = (
    DragKind.DRAGGING_BODY,
    DragKind.DRAGGING_LEFT_EDGE,
    DragKind.DRAGGING_RIGHT_EDGE,
)


class AnnotationSession:
    """
    Manages the state and logic of a timeline annotation session.

    This class handles:
    - Pointer gestures (create, move, resize, pan, scrub) turned into commands
    - Keyboard commands (mode, undo/redo, delete, channel cursor, labels)
    - Selection of the current instant or interval
    - The review workflow (edited -> confirmed -> submitted)
    - Queries for renderers, including interval grouping and drag previews

    The session never writes to the store itself: every change goes
    through the command history, so undo/redo stays exact. It emits events
    that UI components can listen to, rather than manipulating UI elements.
    """

    def __init__(self, cfg=None, clock: Callable[[], float] = time.time):
        """
        Initialize annotation session.

        Args:
            cfg: Configuration tree (see config.default_config)
            clock: Returns the current time in seconds, for export metadata
        """
        self.cfg = cfg if cfg is not None else default_config()
        validate_config(self.cfg)
        self.clock = clock

        self.store = AnnotationStore.from_channels(
            self.cfg.channels, reference_name=self.cfg.reference_channel
        )

        limit = self.cfg.history.limit
        self.history = CommandHistory(
            self.store, limit=int(limit) if limit not in (None, "") else None
        )

        self.transform = CoordinateTransform(
            total_frames=int(self.cfg.total_frames),
            track_width=float(self.cfg.track_width),
            zoom_step=float(self.cfg.zoom_step),
        )

        # Event emitter for UI notifications
        self.events = EventEmitter()

        first_channel = 1 if len(self.store.channels) > 1 else None
        self.state = SessionState(
            mode=Mode(self.cfg.mode), current_channel=first_channel
        )

        self.class_map: Dict[str, str] = {
            str(entry["key"]).lower(): entry["class"] for entry in self.cfg.classes
        }
        self.edit_modifier = str(self.cfg.input.edit_modifier).lower()
        self.pan_modifier = str(self.cfg.input.pan_modifier).lower()
        self.min_interval_length = int(self.cfg.min_interval_length)

        self._started_at = self.clock()

        self._key_commands: Dict[str, Callable[[], Any]] = {
            "toggle_mode": self.toggle_mode,
            "instant_mode": lambda: self.set_mode(Mode.INSTANT),
            "interval_mode": lambda: self.set_mode(Mode.INTERVAL),
            "undo": self.undo,
            "redo": self.redo,
            "delete": self.delete_selection,
            "deselect": self.clear_selection,
            "channel_up": lambda: self.move_channel(-1),
            "channel_down": lambda: self.move_channel(1),
            "submit": self.submit,
            "mark": self.mark,
        }

    def start(self):
        """Restart the working-time clock and announce the initial state."""
        self._started_at = self.clock()
        self._emit(EventType.STATE_CHANGED, state=self.state.review.value)

    # Queries

    def get_channels(self) -> List[Channel]:
        return self.store.channels

    def get_instants(self, channel_id: int) -> List[InstantLayout]:
        """Instants of a channel, with the live frame of one being dragged."""
        drag = self.state.drag
        layouts = []
        for instant in self.store.instants(channel_id):
            if (
                drag is not None
                and drag.kind is DragKind.DRAGGING_INSTANT
                and drag.item_id == instant.id
            ):
                layouts.append(InstantLayout(instant, drag.preview_frame, True))
            else:
                layouts.append(InstantLayout(instant, instant.frame))
        return layouts

    def get_intervals(self, channel_id: int) -> List[IntervalLayout]:
        """
        Intervals of a channel annotated with their overlap group.

        Recomputed on every call; any drag preview (including the draft of
        a creation gesture) is laid out in place of the stored values.
        """
        drag = self.state.drag
        layouts = []
        for interval in self.store.intervals(channel_id):
            if drag is not None and drag.kind in INTERVAL_DRAGS and drag.item_id == interval.id:
                layouts.append(
                    IntervalLayout(interval, drag.preview_start, drag.preview_end)
                )
            else:
                layouts.append(IntervalLayout(interval, interval.start, interval.end))

        if (
            drag is not None
            and drag.kind is DragKind.DRAGGING_NEW
            and drag.channel_id == channel_id
        ):
            layouts.append(IntervalLayout(None, drag.preview_start, drag.preview_end))

        return assign_groups(layouts)

    def get_selection(self) -> Selection:
        return self.state.selection

    def get_indicators(self) -> Dict[str, Optional[int]]:
        """Frames of the playback index, hover cursor and pending mark."""
        return {
            "index": self.state.index_frame,
            "cursor": self.state.cursor_frame,
            "pending_mark": self.state.pending_mark,
        }

    def snapshot(self) -> Dict[str, Any]:
        """
        Export all annotations with session metadata.

        Returns:
            {instants, intervals, timestamp (epoch ms), workingTime (ms),
            maxFrame, numClassChanges}
        """
        data = self.store.snapshot()
        now = self.clock()
        data["timestamp"] = int(now * 1000)
        data["workingTime"] = int((now - self._started_at) * 1000)
        data["maxFrame"] = self.state.max_frame
        data["numClassChanges"] = self.state.num_class_changes
        return data

    def load_snapshot(self, data: Dict[str, Any]):
        """
        Replace the annotations with a previously exported snapshot.

        History is cleared: loaded annotations cannot be undone away.
        """
        self._discard_drag()
        self.store.load(data)
        self.history.clear()
        self.state.selection.clear()
        self.state.max_frame = max(self.state.max_frame, int(data.get("maxFrame", 0)))
        self._emit(EventType.EDITED, action="load", command=None)

    # Pointer input

    def pointer_down(
        self,
        target: Union[Target, Dict, None] = None,
        x: Optional[float] = None,
        frame: Optional[int] = None,
        modifiers: Iterable[str] = (),
    ) -> Optional[DragState]:
        """
        Start a gesture.

        Args:
            target: What the pointer landed on
            x: Pointer position in track pixels
            frame: Already resolved frame, used when x is not given
            modifiers: Held modifier keys, e.g. ("ctrl",)

        Returns:
            The gesture that was opened, if any
        """
        target = self._target(target)
        x, frame = self._resolve(x, frame)
        modifiers = self._modifiers(modifiers)
        self.state.cursor_frame = frame

        if self.state.drag is not None:
            logger.warning(
                f"Pointer down during an open {self.state.drag.kind.value} gesture, "
                "discarding it"
            )
            self._discard_drag()

        if self.pan_modifier in modifiers:
            self.transform.begin_pan(x)
            return self._begin(DragState(kind=DragKind.PAN, down=frame))

        editable = self.state.review is not ReviewState.SUBMITTED
        editing = editable and self.edit_modifier in modifiers

        if target.channel_id is not None:
            self._focus_channel(target.channel_id)

        if target.kind is TargetKind.INSTANT:
            instant = self.store.require_instant(target.item_id)
            self.select(instant)
            if editing and self.state.mode is Mode.INSTANT:
                return self._begin(self._instant_drag(instant, frame))

        elif target.is_interval:
            interval = self.store.require_interval(target.item_id)
            self.select(interval)
            if editable and self.state.mode is Mode.INTERVAL:
                if target.kind is TargetKind.INTERVAL_LEFT_EDGE:
                    return self._begin(
                        self._interval_drag(DragKind.DRAGGING_LEFT_EDGE, interval, frame)
                    )
                if target.kind is TargetKind.INTERVAL_RIGHT_EDGE:
                    return self._begin(
                        self._interval_drag(DragKind.DRAGGING_RIGHT_EDGE, interval, frame)
                    )
                if editing:
                    return self._begin(
                        self._interval_drag(DragKind.DRAGGING_BODY, interval, frame)
                    )

        elif target.kind is TargetKind.CHANNEL and editing:
            channel = self.store.require_channel(target.channel_id)
            if channel.is_reference:
                logger.debug("Ignoring edit gesture on the reference channel")
            elif self.state.mode is Mode.INSTANT:
                command = self._execute(
                    CreateInstant(
                        channel_id=channel.id,
                        frame=frame,
                        clazz=self.state.current_class,
                    )
                )
                self.select(command.instant)
                return self._begin(self._instant_drag(command.instant, frame))
            else:
                return self._begin(
                    DragState(
                        kind=DragKind.DRAGGING_NEW,
                        channel_id=channel.id,
                        down=frame,
                        preview_start=frame,
                        preview_end=frame,
                    )
                )

        self._seek(frame)
        return self._begin(DragState(kind=DragKind.SCRUB, down=frame))

    def pointer_move(
        self,
        target: Union[Target, Dict, None] = None,
        x: Optional[float] = None,
        frame: Optional[int] = None,
        modifiers: Iterable[str] = (),
    ):
        """Advance the open gesture, or move the hover cursor."""
        x, frame = self._resolve(x, frame)
        self.state.cursor_frame = frame

        drag = self.state.drag
        if drag is None:
            self._emit(EventType.VIEW_CHANGED, cursor=frame)
            return
        self._update_drag(drag, x, frame)

    def pointer_up(
        self,
        target: Union[Target, Dict, None] = None,
        x: Optional[float] = None,
        frame: Optional[int] = None,
        modifiers: Iterable[str] = (),
    ) -> Optional[Command]:
        """
        Finish the open gesture.

        Returns:
            The command committed by the gesture, if any
        """
        drag = self.state.drag
        if drag is None:
            return None
        x, frame = self._resolve(x, frame)
        self._update_drag(drag, x, frame)
        self.state.drag = None

        command = self._commit(drag)
        self._emit(EventType.VIEW_CHANGED, drag=None)
        return command

    def pointer_leave(self):
        self.state.cursor_frame = None
        self._emit(EventType.VIEW_CHANGED, cursor=None)

    def _begin(self, drag: DragState) -> DragState:
        self.state.drag = drag
        logger.debug(f"Gesture {drag.kind.value} started at frame {drag.down}")
        return drag

    def _instant_drag(self, instant: Instant, frame: int) -> DragState:
        return DragState(
            kind=DragKind.DRAGGING_INSTANT,
            channel_id=instant.channel.id,
            item_id=instant.id,
            down=frame,
            down_frame=instant.frame,
            preview_frame=instant.frame,
        )

    def _interval_drag(self, kind: DragKind, interval: Interval, frame: int) -> DragState:
        return DragState(
            kind=kind,
            channel_id=interval.channel.id,
            item_id=interval.id,
            down=frame,
            down_start=interval.start,
            down_end=interval.end,
            preview_start=interval.start,
            preview_end=interval.end,
        )

    def _update_drag(self, drag: DragState, x: float, frame: int):
        kind = drag.kind
        if kind is DragKind.PAN:
            if self.transform.pan_to(x):
                self._emit(
                    EventType.VIEW_CHANGED,
                    offset=self.transform.offset,
                    scale=self.transform.scale,
                )
            return
        if kind is DragKind.SCRUB:
            self._seek(frame)
            return

        if kind is DragKind.DRAGGING_NEW:
            drag.preview_start, drag.preview_end = normalize_range(drag.down, frame)
        elif kind is DragKind.DRAGGING_BODY:
            # pure translation kept inside the video, a zero delta is always allowed
            delta = clamp(
                frame - drag.down,
                min(0, -drag.down_start),
                max(0, self.transform.total_frames - drag.down_end),
            )
            drag.preview_start = drag.down_start + delta
            drag.preview_end = drag.down_end + delta
        elif kind is DragKind.DRAGGING_LEFT_EDGE:
            drag.preview_start, drag.preview_end = normalize_range(frame, drag.down_end)
        elif kind is DragKind.DRAGGING_RIGHT_EDGE:
            drag.preview_start, drag.preview_end = normalize_range(drag.down_start, frame)
        elif kind is DragKind.DRAGGING_INSTANT:
            drag.preview_frame = frame

        self._emit(EventType.VIEW_CHANGED, drag=kind.value)

    def _commit(self, drag: DragState) -> Optional[Command]:
        kind = drag.kind
        if kind is DragKind.PAN:
            self.transform.end_pan()
            return None
        if kind is DragKind.SCRUB:
            return None

        if kind is DragKind.DRAGGING_NEW:
            start, end = drag.preview_start, drag.preview_end
            if range_length(start, end) < self.min_interval_length:
                logger.debug(
                    f"Discarding interval draft [{start}, {end}] shorter than "
                    f"{self.min_interval_length} frames"
                )
                return None
            command = self._execute(
                CreateInterval(
                    channel_id=drag.channel_id,
                    start=start,
                    end=end,
                    clazz=self.state.current_class,
                )
            )
            self.select(command.interval)
            return command

        if kind in INTERVAL_DRAGS:
            # re-fetch: the gesture only kept the id
            interval = self.store.require_interval(drag.item_id)
            if (drag.preview_start, drag.preview_end) == (interval.start, interval.end):
                return None
            return self._execute(
                edit_interval_range(
                    self.store, interval.id, drag.preview_start, drag.preview_end
                )
            )

        if kind is DragKind.DRAGGING_INSTANT:
            instant = self.store.require_instant(drag.item_id)
            if drag.preview_frame == instant.frame:
                return None
            return self._execute(
                edit_instant_frame(self.store, instant.id, drag.preview_frame)
            )

        raise ValueError(f"Unhandled gesture {kind}")

    def _discard_drag(self):
        drag = self.state.drag
        if drag is None:
            return
        if drag.kind is DragKind.PAN:
            self.transform.end_pan()
        self.state.drag = None
        logger.debug(f"Gesture {drag.kind.value} discarded")

    # Keyboard input

    def key_command(self, name: str) -> bool:
        """
        Handle a key command already resolved by an external keymap.

        Args:
            name: Command name, or a configured class key

        Returns:
            True if the name was recognised
        """
        handler = self._key_commands.get(name)
        if handler is not None:
            handler()
            return True
        if str(name).lower() in self.class_map:
            self.set_class(name)
            return True
        logger.warning(f"Ignoring unknown key command {name!r}")
        return False

    def set_mode(self, mode: Union[Mode, str]) -> bool:
        mode = Mode(mode)
        if mode is self.state.mode:
            return False
        self.state.mode = mode
        self.state.pending_mark = None
        self._emit(EventType.MODE_CHANGED, mode=mode.value)
        return True

    def toggle_mode(self) -> Mode:
        self.set_mode(self.state.mode.toggled())
        return self.state.mode

    def move_channel(self, delta: int) -> Optional[int]:
        """
        Move the current-channel cursor by delta positions.

        The cursor never lands on the reference channel at position 0.
        """
        channels = self.store.channels
        if len(channels) < 2 or self.state.current_channel is None:
            return self.state.current_channel
        ids = [channel.id for channel in channels]
        position = clamp(ids.index(self.state.current_channel) + delta, 1, len(ids) - 1)
        self._focus_channel(ids[position])
        return self.state.current_channel

    def _focus_channel(self, channel_id: int):
        channel = self.store.get_channel(channel_id)
        if channel is None or channel.is_reference:
            return
        if channel_id != self.state.current_channel:
            self.state.current_channel = channel_id
            self._emit(EventType.NAVIGATED, channel=channel_id)

    def undo(self) -> Optional[Command]:
        if not self._editable("undo"):
            return None
        self._discard_drag()
        command = self.history.undo()
        if command is not None:
            self._refresh_selection()
            self._after_edit("undo", command)
        return command

    def redo(self) -> Optional[Command]:
        if not self._editable("redo"):
            return None
        self._discard_drag()
        command = self.history.redo()
        if command is not None:
            self._refresh_selection()
            self._after_edit("redo", command)
        return command

    def delete_selection(self) -> Optional[Command]:
        """Delete the selected instant or interval and clear the selection."""
        if not self._editable("delete"):
            return None
        selection = self.state.selection
        if selection.instant is not None:
            command = delete_instant(self.store, selection.instant.id)
        elif selection.interval is not None:
            command = delete_interval(self.store, selection.interval.id)
        else:
            return None
        self._discard_drag()
        self.clear_selection()
        return self._execute(command)

    def mark(self) -> Optional[Command]:
        """
        Annotate at the playback index on the current channel.

        In interval mode the first mark remembers the start and the second
        one creates the interval between both marks.
        """
        if not self._editable("mark") or self.state.current_channel is None:
            return None
        frame = self.state.index_frame

        if self.state.mode is Mode.INSTANT:
            command = self._execute(
                CreateInstant(
                    channel_id=self.state.current_channel,
                    frame=frame,
                    clazz=self.state.current_class,
                )
            )
            self.select(command.instant)
            return command

        if self.state.pending_mark is None:
            self.state.pending_mark = frame
            self._emit(EventType.VIEW_CHANGED, pending_mark=frame)
            return None

        start, end = normalize_range(self.state.pending_mark, frame)
        self.state.pending_mark = None
        self._emit(EventType.VIEW_CHANGED, pending_mark=None)
        if range_length(start, end) < self.min_interval_length:
            logger.debug(f"Discarding marked interval [{start}, {end}]")
            return None
        command = self._execute(
            CreateInterval(
                channel_id=self.state.current_channel,
                start=start,
                end=end,
                clazz=self.state.current_class,
            )
        )
        self.select(command.interval)
        return command

    def set_class(self, key: str) -> Optional[Command]:
        """
        Make the class bound to key current and apply it to the selection.

        Returns:
            The label command, if the selection was relabeled
        """
        clazz = self.class_map[str(key).lower()]
        if self.state.review is ReviewState.SUBMITTED:
            logger.debug("Session submitted, ignoring class change")
            return None
        if clazz != self.state.current_class:
            self.state.current_class = clazz
            self.state.num_class_changes += 1
            self._emit(
                EventType.STATE_CHANGED, state=self.state.review.value, clazz=clazz
            )

        current = self.state.selection.current
        if current is None or current.clazz == clazz:
            return None
        return self._execute(edit_label(self.store, current, clazz))

    def submit(self):
        """First submit confirms the annotations, the second one submits them."""
        review = self.state.review
        if review is ReviewState.EDITED:
            self._set_review(ReviewState.CONFIRMED)
            self._emit(EventType.CONFIRMED, snapshot=self.snapshot())
        elif review is ReviewState.CONFIRMED:
            self._set_review(ReviewState.SUBMITTED)
            self._emit(EventType.SUBMITTED, data=self.snapshot())
        else:
            logger.debug(f"Nothing to submit in state {review.value}")

    # Playback / view

    def frame_changed(self, frame: int):
        """Keep the timeline index in sync with the playback widget."""
        frame = self.transform.clamp_frame(frame)
        self.state.index_frame = frame
        self.state.max_frame = max(self.state.max_frame, frame)
        self._emit(EventType.VIEW_CHANGED, index=frame)

    def zoom(self, x: float, notches: int = 1) -> bool:
        changed = self.transform.zoom(x, notches)
        if changed:
            if self.transform.is_panning:
                # the old anchor belongs to the previous scale
                self.transform.begin_pan(x)
            self._emit(
                EventType.VIEW_CHANGED,
                offset=self.transform.offset,
                scale=self.transform.scale,
            )
        return changed

    def frame_at(self, x: float) -> int:
        return self.transform.screen_to_frame(x)

    def _seek(self, frame: int):
        if frame == self.state.index_frame:
            return
        self.state.index_frame = frame
        self.state.max_frame = max(self.state.max_frame, frame)
        self._emit(EventType.NAVIGATED, frame=frame)

    # Selection

    def select(self, entity: Union[Instant, Interval]):
        """Make entity the sole selection."""
        selection = self.state.selection
        if selection.current is entity:
            return
        if isinstance(entity, Instant):
            selection.select_instant(entity)
        elif isinstance(entity, Interval):
            selection.select_interval(entity)
        else:
            raise TypeError(f"Cannot select {type(entity).__name__}")
        self._emit(EventType.SELECTED, **selection.to_dict())

    def select_instant(self, instant_id: int):
        self.select(self.store.require_instant(instant_id))

    def select_interval(self, interval_id: int):
        self.select(self.store.require_interval(interval_id))

    def clear_selection(self):
        if self.state.selection.is_empty:
            return
        self.state.selection.clear()
        self._emit(EventType.SELECTED, **self.state.selection.to_dict())

    def _refresh_selection(self):
        current = self.state.selection.current
        if current is not None and not self.store.contains(current):
            self.clear_selection()

    # Helpers

    def _execute(self, command: Command) -> Command:
        self.history.execute(command)
        self._after_edit("execute", command)
        return command

    def _after_edit(self, action: str, command: Command):
        self._emit(EventType.EDITED, action=action, command=command.name)
        if self.state.review in (ReviewState.IDLE, ReviewState.CONFIRMED):
            self._set_review(ReviewState.EDITED)

    def _set_review(self, review: ReviewState):
        self.state.review = review
        self._emit(EventType.STATE_CHANGED, state=review.value)

    def _editable(self, action: str) -> bool:
        if self.state.review is ReviewState.SUBMITTED:
            logger.debug(f"Session submitted, ignoring {action}")
            return False
        return True

    def _emit(self, event_type: EventType, **data):
        self.events.emit(AnnotationEvent(event_type, data))

    def _resolve(self, x: Optional[float], frame: Optional[int]):
        if x is not None:
            return float(x), self.transform.screen_to_frame(x)
        if frame is None:
            raise ValueError("Pointer events need either x or frame")
        frame = self.transform.clamp_frame(frame)
        return self.transform.frame_to_screen(frame), frame

    @staticmethod
    def _modifiers(modifiers: Iterable[str]) -> frozenset:
        return frozenset(str(modifier).lower() for modifier in modifiers)

    @staticmethod
    def _target(target: Union[Target, Dict, None]) -> Target:
        if target is None:
            return Target()
        if isinstance(target, dict):
            return Target.from_dict(target)
        return target
