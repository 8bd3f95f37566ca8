"""
Grouping of temporally overlapping intervals into stacked sub-rows.

Intervals of a channel are clustered so that every pair of overlapping
intervals ends up in the same group. Inside a group the members are
ordered by id, so editing one interval does not reshuffle its siblings.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .state import Interval

# drafts have no id yet and sort after every committed interval
DRAFT_SORT_ID = np.iinfo(np.int64).max


@dataclass
class IntervalLayout:
    """An interval (or an uncommitted draft) with its place in the layout."""

    interval: Optional[Interval]
    start: int
    end: int
    group: int = 0
    index: int = 0
    size: int = 1

    @property
    def id(self) -> Optional[int]:
        return self.interval.id if self.interval is not None else None

    @property
    def is_draft(self) -> bool:
        return self.interval is None

    def to_dict(self):
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "label": self.interval.clazz if self.interval is not None else None,
            "group": self.group,
            "index": self.index,
            "size": self.size,
            "draft": self.is_draft,
        }


def group_intervals(
    ids: Sequence[int], starts: Sequence[int], ends: Sequence[int]
) -> List[List[int]]:
    """
    Cluster intervals whose spans overlap.

    Args:
        ids: Interval ids (creation order)
        starts: Start frames
        ends: End frames, with ends[i] >= starts[i]

    Returns:
        Groups as lists of input positions, groups ordered by time and
        members ordered by id
    """
    ids = np.asarray(ids, dtype=np.int64)
    starts = np.asarray(starts, dtype=np.int64)
    ends = np.asarray(ends, dtype=np.int64)
    if len(starts) == 0:
        return []

    # by start, ties broken by id so the scan is deterministic
    order = np.lexsort((ids, starts))

    groups: List[List[int]] = []
    anchor_end = None
    for pos in order:
        pos = int(pos)
        if groups and starts[pos] <= anchor_end:
            groups[-1].append(pos)
            anchor_end = max(anchor_end, int(ends[pos]))
        else:
            groups.append([pos])
            anchor_end = int(ends[pos])

    for group in groups:
        group.sort(key=lambda p: int(ids[p]))
    return groups


def assign_groups(layouts: List[IntervalLayout]) -> List[IntervalLayout]:
    """
    Fill in group, index and size of each layout entry.

    Returns:
        The same entries ordered by group, then by index
    """
    ids = [
        layout.id if layout.id is not None else DRAFT_SORT_ID for layout in layouts
    ]
    starts = [layout.start for layout in layouts]
    ends = [layout.end for layout in layouts]

    ordered = []
    for group_idx, members in enumerate(group_intervals(ids, starts, ends)):
        for index, pos in enumerate(members):
            layout = layouts[pos]
            layout.group = group_idx
            layout.index = index
            layout.size = len(members)
            ordered.append(layout)
    return ordered


def layout_intervals(intervals: Sequence[Interval]) -> List[IntervalLayout]:
    """Group committed intervals as they are stored."""
    return assign_groups(
        [IntervalLayout(interval, interval.start, interval.end) for interval in intervals]
    )
