"""
Core annotation module - UI-agnostic timeline annotation logic.

This module provides the model, commands, layout and interaction logic
of the annotation timeline, usable with any UI framework (Qt, Web, CLI).
"""

from .session import AnnotationSession
from .events import AnnotationEvent, EventType, EventEmitter
from .history import CommandHistory
from .store import AnnotationStore, InvalidReferenceError
from .transform import CoordinateTransform, ViewTransform
from .grouping import IntervalLayout, group_intervals, layout_intervals
from .config import default_config, load_config
from .state import (
    Channel,
    Instant,
    Interval,
    Mode,
    ReviewState,
    Selection,
    Target,
    TargetKind,
)

__all__ = [
    "AnnotationSession",
    "AnnotationEvent",
    "EventType",
    "EventEmitter",
    "CommandHistory",
    "AnnotationStore",
    "InvalidReferenceError",
    "CoordinateTransform",
    "ViewTransform",
    "IntervalLayout",
    "group_intervals",
    "layout_intervals",
    "default_config",
    "load_config",
    "Channel",
    "Instant",
    "Interval",
    "Mode",
    "ReviewState",
    "Selection",
    "Target",
    "TargetKind",
]
