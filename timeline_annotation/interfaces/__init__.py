"""
Interfaces module - UI adapters for annotation core.

Provides adapters to connect the core annotation logic
with different UI frameworks (Qt, Web, etc).
"""

from .render_adapter import TimelineRenderAdapter

__all__ = ['TimelineRenderAdapter']
