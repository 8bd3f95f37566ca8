"""
Reversible commands, the only write path into the store.

Each command carries the old and new values it needs. Forward and inverse
application are two dispatch functions over the command types, so adding a
command type means registering both directions.
"""

from dataclasses import dataclass, field
from functools import singledispatch
from typing import Optional
import logging

from .state import Instant, Interval
from .store import AnnotationStore, InvalidReferenceError

logger = logging.getLogger(__name__)


@dataclass
class Command:
    """Base class of every command."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass
class CreateInstant(Command):
    channel_id: int = 0
    frame: int = 0
    clazz: Optional[str] = None
    note: Optional[str] = None
    # the created object, kept so redo re-inserts the very same instance
    instant: Optional[Instant] = field(default=None, repr=False)


@dataclass
class CreateInterval(Command):
    channel_id: int = 0
    start: int = 0
    end: int = 0
    clazz: Optional[str] = None
    note: Optional[str] = None
    interval: Optional[Interval] = field(default=None, repr=False)


@dataclass
class EditInstantFrame(Command):
    instant_id: int = 0
    frame_from: int = 0
    frame_to: int = 0


@dataclass
class EditIntervalRange(Command):
    interval_id: int = 0
    start_from: int = 0
    end_from: int = 0
    start_to: int = 0
    end_to: int = 0


@dataclass
class DeleteInstant(Command):
    instant_id: int = 0
    instant: Optional[Instant] = field(default=None, repr=False)


@dataclass
class DeleteInterval(Command):
    interval_id: int = 0
    interval: Optional[Interval] = field(default=None, repr=False)


@dataclass
class EditInstantLabel(Command):
    instant_id: int = 0
    clazz_from: Optional[str] = None
    clazz_to: Optional[str] = None


@dataclass
class EditIntervalLabel(Command):
    interval_id: int = 0
    clazz_from: Optional[str] = None
    clazz_to: Optional[str] = None


# Forward


@singledispatch
def apply_forward(command, store: AnnotationStore):
    """Apply the effect of a command to the store."""
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


@apply_forward.register
def _(command: CreateInstant, store: AnnotationStore):
    if command.instant is None:
        channel = store.require_channel(command.channel_id)
        command.instant = Instant(
            id=store.instant_ids.allocate(),
            frame=command.frame,
            channel=channel,
            clazz=command.clazz,
            note=command.note,
        )
    store._insert_instant(command.instant)


@apply_forward.register
def _(command: CreateInterval, store: AnnotationStore):
    if command.interval is None:
        channel = store.require_channel(command.channel_id)
        command.interval = Interval(
            id=store.interval_ids.allocate(),
            start=command.start,
            end=command.end,
            channel=channel,
            clazz=command.clazz,
            note=command.note,
        )
    store._insert_interval(command.interval)


@apply_forward.register
def _(command: EditInstantFrame, store: AnnotationStore):
    store.require_instant(command.instant_id).frame = command.frame_to


@apply_forward.register
def _(command: EditIntervalRange, store: AnnotationStore):
    interval = store.require_interval(command.interval_id)
    interval.start = command.start_to
    interval.end = command.end_to


@apply_forward.register
def _(command: DeleteInstant, store: AnnotationStore):
    command.instant = store._remove_instant(command.instant_id)


@apply_forward.register
def _(command: DeleteInterval, store: AnnotationStore):
    command.interval = store._remove_interval(command.interval_id)


@apply_forward.register
def _(command: EditInstantLabel, store: AnnotationStore):
    store.require_instant(command.instant_id).clazz = command.clazz_to


@apply_forward.register
def _(command: EditIntervalLabel, store: AnnotationStore):
    store.require_interval(command.interval_id).clazz = command.clazz_to


# Inverse


@singledispatch
def apply_inverse(command, store: AnnotationStore):
    """Undo the effect of a previously applied command."""
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


@apply_inverse.register
def _(command: CreateInstant, store: AnnotationStore):
    if command.instant is None:
        raise InvalidReferenceError("CreateInstant was never applied")
    store._remove_instant(command.instant.id)


@apply_inverse.register
def _(command: CreateInterval, store: AnnotationStore):
    if command.interval is None:
        raise InvalidReferenceError("CreateInterval was never applied")
    store._remove_interval(command.interval.id)


@apply_inverse.register
def _(command: EditInstantFrame, store: AnnotationStore):
    store.require_instant(command.instant_id).frame = command.frame_from


@apply_inverse.register
def _(command: EditIntervalRange, store: AnnotationStore):
    interval = store.require_interval(command.interval_id)
    interval.start = command.start_from
    interval.end = command.end_from


@apply_inverse.register
def _(command: DeleteInstant, store: AnnotationStore):
    if command.instant is None:
        raise InvalidReferenceError("DeleteInstant was never applied")
    store._insert_instant(command.instant)


@apply_inverse.register
def _(command: DeleteInterval, store: AnnotationStore):
    if command.interval is None:
        raise InvalidReferenceError("DeleteInterval was never applied")
    store._insert_interval(command.interval)


@apply_inverse.register
def _(command: EditInstantLabel, store: AnnotationStore):
    store.require_instant(command.instant_id).clazz = command.clazz_from


@apply_inverse.register
def _(command: EditIntervalLabel, store: AnnotationStore):
    store.require_interval(command.interval_id).clazz = command.clazz_from


# Builders that read the current values from the store


def edit_instant_frame(store: AnnotationStore, instant_id: int, frame: int):
    instant = store.require_instant(instant_id)
    return EditInstantFrame(instant_id=instant_id, frame_from=instant.frame, frame_to=frame)


def edit_interval_range(store: AnnotationStore, interval_id: int, start: int, end: int):
    interval = store.require_interval(interval_id)
    return EditIntervalRange(
        interval_id=interval_id,
        start_from=interval.start,
        end_from=interval.end,
        start_to=start,
        end_to=end,
    )


def delete_instant(store: AnnotationStore, instant_id: int):
    store.require_instant(instant_id)
    return DeleteInstant(instant_id=instant_id)


def delete_interval(store: AnnotationStore, interval_id: int):
    store.require_interval(interval_id)
    return DeleteInterval(interval_id=interval_id)


def edit_label(store: AnnotationStore, entity, clazz: Optional[str]):
    """Label command for an instant or interval currently in the store."""
    if isinstance(entity, Instant):
        store.require_instant(entity.id)
        return EditInstantLabel(
            instant_id=entity.id, clazz_from=entity.clazz, clazz_to=clazz
        )
    if isinstance(entity, Interval):
        store.require_interval(entity.id)
        return EditIntervalLabel(
            interval_id=entity.id, clazz_from=entity.clazz, clazz_to=clazz
        )
    raise TypeError(f"Cannot label {type(entity).__name__}")
