"""
State management for annotation sessions.

Contains data classes representing channels, their annotations and the
interaction state of a session.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass
class IdAllocator:
    """Monotonic id source. Ids are never reused, not even after an undo."""

    next_id: int = 1

    def allocate(self) -> int:
        allocated = self.next_id
        self.next_id += 1
        return allocated

    def bump(self, seen_id: int):
        """Make sure ids loaded from elsewhere are never handed out again."""
        if seen_id >= self.next_id:
            self.next_id = seen_id + 1


@dataclass(eq=False)
class Channel:
    """A named lane holding instants and intervals."""

    id: int
    name: str
    instants: List["Instant"] = field(default_factory=list, repr=False)
    intervals: List["Interval"] = field(default_factory=list, repr=False)

    @property
    def is_reference(self) -> bool:
        """Channel 0 is reserved for the reference (audio) track."""
        return self.id == 0

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "num_instants": len(self.instants),
            "num_intervals": len(self.intervals),
        }


@dataclass(eq=False)
class Instant:
    """One labeled frame."""

    id: int
    frame: int
    channel: Channel = field(repr=False)
    clazz: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self):
        """Convert to the export format, resolving the channel reference."""
        return {
            "id": self.id,
            "frame": self.frame,
            "channel": self.channel.name,
            "channelid": self.channel.id,
            "label": self.clazz,
            "note": self.note,
        }


@dataclass(eq=False)
class Interval:
    """A labeled [start, end] frame span."""

    id: int
    start: int
    end: int
    channel: Channel = field(repr=False)
    clazz: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self):
        """Convert to the export format, resolving the channel reference."""
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "channel": self.channel.name,
            "channelid": self.channel.id,
            "label": self.clazz,
            "note": self.note,
        }


@dataclass
class InstantLayout:
    """An instant with the frame it is currently drawn at."""

    instant: Instant
    frame: int
    is_preview: bool = False

    @property
    def id(self) -> int:
        return self.instant.id

    def to_dict(self):
        return {
            "id": self.instant.id,
            "frame": self.frame,
            "label": self.instant.clazz,
            "preview": self.is_preview,
        }


class Mode(Enum):
    """Which gesture vocabulary is active."""

    INSTANT = "instant"
    INTERVAL = "interval"

    def toggled(self) -> "Mode":
        return Mode.INTERVAL if self is Mode.INSTANT else Mode.INSTANT


class ReviewState(Enum):
    """Review workflow of a session: edit, confirm, then submit."""

    IDLE = "idle"
    EDITED = "edited"
    CONFIRMED = "confirm"
    SUBMITTED = "submit"


class TargetKind(Enum):
    """What a pointer event landed on."""

    TRACK = "track"
    CHANNEL = "channel"
    INSTANT = "instant"
    INTERVAL_BODY = "interval_body"
    INTERVAL_LEFT_EDGE = "interval_left_edge"
    INTERVAL_RIGHT_EDGE = "interval_right_edge"


@dataclass(frozen=True)
class Target:
    """Hit-test result supplied with pointer events."""

    kind: TargetKind = TargetKind.TRACK
    channel_id: Optional[int] = None
    item_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict):
        """Create from dictionary."""
        return cls(
            kind=TargetKind(data.get("kind", TargetKind.TRACK.value)),
            channel_id=data.get("channel_id"),
            item_id=data.get("item_id"),
        )

    @property
    def is_interval(self) -> bool:
        return self.kind in (
            TargetKind.INTERVAL_BODY,
            TargetKind.INTERVAL_LEFT_EDGE,
            TargetKind.INTERVAL_RIGHT_EDGE,
        )


@dataclass
class Selection:
    """At most one selected instant or interval, as live store references."""

    instant: Optional[Instant] = None
    interval: Optional[Interval] = None

    def select_instant(self, instant: Instant):
        self.instant = instant
        self.interval = None

    def select_interval(self, interval: Interval):
        self.interval = interval
        self.instant = None

    def clear(self):
        self.instant = None
        self.interval = None

    @property
    def current(self):
        return self.instant if self.instant is not None else self.interval

    @property
    def is_empty(self) -> bool:
        return self.instant is None and self.interval is None

    def to_dict(self):
        return {
            "instant": self.instant.id if self.instant is not None else None,
            "interval": self.interval.id if self.interval is not None else None,
        }


class DragKind(Enum):
    """Per-gesture sub-state of the interaction state machine."""

    PAN = "pan"
    SCRUB = "scrub"
    DRAGGING_NEW = "dragging_new"
    DRAGGING_BODY = "dragging_body"
    DRAGGING_LEFT_EDGE = "dragging_left_edge"
    DRAGGING_RIGHT_EDGE = "dragging_right_edge"
    DRAGGING_INSTANT = "dragging_instant"


@dataclass
class DragState:
    """
    Shadow fields of one gesture.

    Nothing here touches the store; the preview values are what the
    renderer shows until the gesture commits a single command.
    """

    kind: DragKind
    channel_id: Optional[int] = None
    item_id: Optional[int] = None
    down: int = 0
    down_start: int = 0
    down_end: int = 0
    down_frame: int = 0
    preview_start: int = 0
    preview_end: int = 0
    preview_frame: int = 0


@dataclass
class SessionState:
    """Everything about a session that is not annotation data."""

    mode: Mode = Mode.INSTANT
    review: ReviewState = ReviewState.IDLE
    current_channel: Optional[int] = None
    current_class: Optional[str] = None
    num_class_changes: int = 0
    index_frame: int = 0
    cursor_frame: Optional[int] = None
    max_frame: int = 0
    pending_mark: Optional[int] = None
    selection: Selection = field(default_factory=Selection)
    drag: Optional[DragState] = None

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return {
            "mode": self.mode.value,
            "review": self.review.value,
            "current_channel": self.current_channel,
            "current_class": self.current_class,
            "num_class_changes": self.num_class_changes,
            "index_frame": self.index_frame,
            "cursor_frame": self.cursor_frame,
            "max_frame": self.max_frame,
            "selection": self.selection.to_dict(),
            "drag": self.drag.kind.value if self.drag is not None else None,
        }
