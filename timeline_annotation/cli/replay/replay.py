import json
import logging
from gettext import gettext as _
from typing import Any, Dict

from timeline_annotation.core.annotation import AnnotationSession, load_config
from timeline_annotation.core.annotation.config import (
    channels_from_snapshot,
    frames_from_snapshot,
)

logger = logging.getLogger(__name__)

POINTER_EVENTS = ("pointer_down", "pointer_move", "pointer_up")


def apply_event(session: AnnotationSession, event: Dict[str, Any]):
    """Feed one scripted input event to the session."""
    kind = event.get("event")
    if kind in POINTER_EVENTS:
        getattr(session, kind)(
            target=event.get("target"),
            x=event.get("x"),
            frame=event.get("frame"),
            modifiers=event.get("modifiers", ()),
        )
    elif kind == "pointer_leave":
        session.pointer_leave()
    elif kind == "key":
        session.key_command(event["name"])
    elif kind == "frame":
        session.frame_changed(int(event["frame"]))
    elif kind == "zoom":
        session.zoom(float(event["x"]), int(event.get("notches", 1)))
    else:
        raise ValueError(_("Unknown event type: {kind}").format(kind=kind))


def handle(args):
    assert args.script.exists() and args.script.is_file(), _(
        "Event script must exist and be a file"
    )
    if not args.overwrite:
        assert not args.output.exists(), _(
            "Output file already exists, use --overwrite to replace it"
        )

    snapshot = None
    overrides = {}
    if args.snapshot is not None:
        snapshot = json.loads(args.snapshot.read_text())
        if args.config is None:
            overrides["channels"] = channels_from_snapshot(snapshot)
            overrides["total_frames"] = frames_from_snapshot(snapshot)

    cfg = load_config(args.config, **overrides)
    session = AnnotationSession(cfg)
    if snapshot is not None:
        session.load_snapshot(snapshot)
    session.start()

    count = 0
    with args.script.open() as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                apply_event(session, json.loads(line))
            except ValueError as e:
                raise ValueError(
                    _("Invalid event on line {lineno}: {error}").format(
                        lineno=lineno, error=e
                    )
                ) from e
            count += 1

    logger.info(
        _("Replayed {count} events, {undo} commands in history").format(
            count=count, undo=session.history.undo_depth
        )
    )
    args.output.write_text(json.dumps(session.snapshot(), indent=2))
    return 0
