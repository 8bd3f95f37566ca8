"""
Annotation store.

Owns the channels and the instants/intervals placed on them. Reads are
public; writes are reserved for the command functions in commands.py so
that every change can be undone exactly.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from .state import Channel, IdAllocator, Instant, Interval

logger = logging.getLogger(__name__)

REFERENCE_CHANNEL_ID = 0


class InvalidReferenceError(AssertionError):
    """A command or query referred to an id that is not in the store."""


class AnnotationStore:
    """
    In-memory model of channels, instants and intervals.

    Lookups by id go through insertion-ordered dicts, so the global
    listing order is creation order for everything still present.
    """

    def __init__(self, channels: Optional[Iterable[Channel]] = None):
        self._channels: Dict[int, Channel] = {}
        self._instants: Dict[int, Instant] = {}
        self._intervals: Dict[int, Interval] = {}

        self.instant_ids = IdAllocator()
        self.interval_ids = IdAllocator()

        for channel in channels or []:
            self._add_channel(channel)

    @classmethod
    def from_channels(
        cls, names: Iterable[str], reference_name: str = "audio"
    ) -> "AnnotationStore":
        """
        Build a store with the reference channel plus the named channels.

        Args:
            names: Annotation channel names, given ids 1..n in order
            reference_name: Name of the reserved channel 0

        Returns:
            New store
        """
        channels = [Channel(id=REFERENCE_CHANNEL_ID, name=reference_name)]
        for idx, name in enumerate(names, start=1):
            channels.append(Channel(id=idx, name=str(name)))
        return cls(channels)

    def _add_channel(self, channel: Channel):
        if channel.id in self._channels:
            raise ValueError(f"Duplicate channel id {channel.id}")
        self._channels[channel.id] = channel

    # Queries

    @property
    def channels(self) -> List[Channel]:
        return list(self._channels.values())

    def get_channel(self, channel_id: int) -> Optional[Channel]:
        return self._channels.get(channel_id)

    def get_instant(self, instant_id: int) -> Optional[Instant]:
        return self._instants.get(instant_id)

    def get_interval(self, interval_id: int) -> Optional[Interval]:
        return self._intervals.get(interval_id)

    def require_channel(self, channel_id: int) -> Channel:
        channel = self.get_channel(channel_id)
        if channel is None:
            raise InvalidReferenceError(f"Unknown channel id {channel_id}")
        return channel

    def require_instant(self, instant_id: int) -> Instant:
        instant = self.get_instant(instant_id)
        if instant is None:
            raise InvalidReferenceError(f"Unknown instant id {instant_id}")
        return instant

    def require_interval(self, interval_id: int) -> Interval:
        interval = self.get_interval(interval_id)
        if interval is None:
            raise InvalidReferenceError(f"Unknown interval id {interval_id}")
        return interval

    def instants(self, channel_id: Optional[int] = None) -> List[Instant]:
        """All instants, or those of one channel, in insertion order."""
        if channel_id is None:
            return list(self._instants.values())
        return list(self.require_channel(channel_id).instants)

    def intervals(self, channel_id: Optional[int] = None) -> List[Interval]:
        """All intervals, or those of one channel, in insertion order."""
        if channel_id is None:
            return list(self._intervals.values())
        return list(self.require_channel(channel_id).intervals)

    def contains(self, entity) -> bool:
        """True if this exact object is currently stored."""
        if isinstance(entity, Instant):
            return self._instants.get(entity.id) is entity
        if isinstance(entity, Interval):
            return self._intervals.get(entity.id) is entity
        return False

    def __len__(self):
        return len(self._instants) + len(self._intervals)

    # Writes, for commands.py only

    def _insert_instant(self, instant: Instant):
        if instant.id in self._instants:
            raise InvalidReferenceError(f"Instant id {instant.id} already stored")
        channel = self.require_channel(instant.channel.id)
        channel.instants.append(instant)
        self._instants[instant.id] = instant

    def _remove_instant(self, instant_id: int) -> Instant:
        instant = self.require_instant(instant_id)
        instant.channel.instants.remove(instant)
        del self._instants[instant_id]
        return instant

    def _insert_interval(self, interval: Interval):
        if interval.id in self._intervals:
            raise InvalidReferenceError(f"Interval id {interval.id} already stored")
        channel = self.require_channel(interval.channel.id)
        channel.intervals.append(interval)
        self._intervals[interval.id] = interval

    def _remove_interval(self, interval_id: int) -> Interval:
        interval = self.require_interval(interval_id)
        interval.channel.intervals.remove(interval)
        del self._intervals[interval_id]
        return interval

    # Export

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Plain serializable view of all annotations.

        Channel references are resolved to name/id here and nowhere else.
        """
        return {
            "instants": [instant.to_dict() for instant in self._instants.values()],
            "intervals": [
                interval.to_dict() for interval in self._intervals.values()
            ],
        }

    def load(self, data: Dict[str, Any]):
        """
        Replace all annotations with those of a snapshot.

        Setup-time seeding, not an undoable edit. Entries are matched to
        channels by `channelid`, falling back to the channel name.
        """
        for channel in self._channels.values():
            channel.instants.clear()
            channel.intervals.clear()
        self._instants.clear()
        self._intervals.clear()

        for entry in data.get("instants", []):
            channel = self._resolve_channel(entry)
            instant = Instant(
                id=int(entry["id"]),
                frame=int(entry["frame"]),
                channel=channel,
                clazz=entry.get("label"),
                note=entry.get("note"),
            )
            self._insert_instant(instant)
            self.instant_ids.bump(instant.id)

        for entry in data.get("intervals", []):
            channel = self._resolve_channel(entry)
            start, end = int(entry["start"]), int(entry["end"])
            if end < start:
                start, end = end, start
            interval = Interval(
                id=int(entry["id"]),
                start=start,
                end=end,
                channel=channel,
                clazz=entry.get("label"),
                note=entry.get("note"),
            )
            self._insert_interval(interval)
            self.interval_ids.bump(interval.id)

        logger.debug(
            f"Loaded {len(self._instants)} instants and "
            f"{len(self._intervals)} intervals"
        )

    def _resolve_channel(self, entry: Dict[str, Any]) -> Channel:
        channel_id = entry.get("channelid")
        if channel_id is not None and channel_id in self._channels:
            return self._channels[channel_id]
        name = entry.get("channel")
        for channel in self._channels.values():
            if channel.name == name:
                return channel
        raise InvalidReferenceError(
            f"Snapshot entry {entry.get('id')} refers to an unknown channel "
            f"({channel_id!r}, {name!r})"
        )
