"""
Session configuration.

Defaults live in an EasyDict tree; a JSON file and TIMELINE_* environment
variables can override them.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union
import json
import logging
import os

from easydict import EasyDict as edict

from ...utils.env import load_cfg_from_env

logger = logging.getLogger(__name__)


def default_config() -> edict:
    cfg = edict()
    cfg.total_frames = 1000
    cfg.track_width = 1000.0
    cfg.fps = 30.0
    cfg.zoom_step = 1.05
    cfg.min_interval_length = 2
    cfg.reference_channel = "audio"
    cfg.channels = ["events"]
    cfg.mode = "instant"
    # [{"key": "w", "class": "walk"}, ...]
    cfg.classes = []

    cfg.input = edict()
    cfg.input.edit_modifier = "ctrl"
    cfg.input.pan_modifier = "shift"

    cfg.history = edict()
    cfg.history.limit = None

    cfg.render = edict()
    cfg.render.channel_height = 50
    return cfg


def _merge(base: edict, overrides: Dict) -> edict:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    **overrides,
) -> edict:
    """
    Build a configuration.

    Args:
        path: Optional JSON file merged over the defaults
        env: Environment used for TIMELINE_* overrides, os.environ if None
        **overrides: Final top-level overrides

    Returns:
        Configuration tree
    """
    cfg = default_config()
    if path is not None:
        path = Path(path)
        logger.debug(f"Loading configuration from {path}")
        with path.open() as f:
            _merge(cfg, json.load(f))
    cfg = load_cfg_from_env(cfg, os.environ if env is None else env)
    _merge(cfg, overrides)
    validate_config(cfg)
    return cfg


def channels_from_snapshot(data: Dict) -> List[str]:
    """
    Channel names, ordered by id, recovered from an exported snapshot.

    Ids without any annotation get a placeholder name so that every
    entry lands on the channel id it was exported with.
    """
    names = {}
    for entry in list(data.get("instants", [])) + list(data.get("intervals", [])):
        channel_id = int(entry["channelid"])
        if channel_id > 0:
            names[channel_id] = entry.get("channel") or f"channel{channel_id}"
    if not names:
        return list(default_config().channels)
    return [names.get(idx, f"channel{idx}") for idx in range(1, max(names) + 1)]


def frames_from_snapshot(data: Dict) -> int:
    """
    Video length large enough to hold every frame a snapshot refers to.

    Never shorter than the default so a sparse snapshot still gets room
    to annotate past its last entry.
    """
    frames = [int(default_config().total_frames), int(data.get("maxFrame") or 0)]
    frames.extend(int(entry["frame"]) for entry in data.get("instants", []))
    for entry in data.get("intervals", []):
        frames.extend((int(entry["start"]), int(entry["end"])))
    return max(frames)


def validate_config(cfg: edict):
    if int(cfg.total_frames) <= 0:
        raise ValueError(f"total_frames must be positive, got {cfg.total_frames}")
    if float(cfg.track_width) <= 0:
        raise ValueError(f"track_width must be positive, got {cfg.track_width}")
    if float(cfg.fps) <= 0:
        raise ValueError(f"fps must be positive, got {cfg.fps}")
    if cfg.mode not in ("instant", "interval"):
        raise ValueError(f"Unknown mode {cfg.mode!r}")
    keys = [entry["key"] for entry in cfg.classes]
    if len(keys) != len(set(keys)):
        raise ValueError("Class keys must be unique")
