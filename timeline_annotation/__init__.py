"""
Timeline annotation core.

UI-agnostic engine for marking video frames with instants and intervals
organised in channels, with undo/redo and interval layout.
"""

from pathlib import Path

__version__ = (Path(__file__).parent / "VERSION").read_text().strip()
