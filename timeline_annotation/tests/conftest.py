"""
Test fixtures and utilities for timeline annotation tests.

Provides reusable fixtures for configurations, stores and sessions.
"""

import pytest
from unittest.mock import Mock

from timeline_annotation.core.annotation import (
    AnnotationSession,
    AnnotationStore,
    Target,
    TargetKind,
    default_config,
)


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def cfg():
    """
    Configuration where one frame is one pixel.

    Channels: 0 audio (reference), 1 steps, 2 falls.
    """
    cfg = default_config()
    cfg.total_frames = 1000
    cfg.track_width = 1000.0
    cfg.channels = ["steps", "falls"]
    cfg.classes = [
        {"key": "w", "class": "walk"},
        {"key": "r", "class": "run"},
    ]
    return cfg


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    """Store with the reference channel and two annotation channels."""
    return AnnotationStore.from_channels(["steps", "falls"])


@pytest.fixture
def session(cfg, clock):
    """Session in instant mode."""
    session = AnnotationSession(cfg, clock=clock)
    session.start()
    return session


@pytest.fixture
def interval_session(session):
    """Session switched to interval mode."""
    session.key_command("interval_mode")
    return session


@pytest.fixture
def listener():
    """Mock event listener."""
    return Mock()


def channel_target(channel_id: int = 1) -> Target:
    return Target(TargetKind.CHANNEL, channel_id=channel_id)


def drag(session, target, start: int, end: int, modifiers=("ctrl",), steps=()):
    """Press at start, move through steps, release at end."""
    session.pointer_down(target, frame=start, modifiers=modifiers)
    for frame in steps:
        session.pointer_move(target, frame=frame, modifiers=modifiers)
    return session.pointer_up(target, frame=end, modifiers=modifiers)
