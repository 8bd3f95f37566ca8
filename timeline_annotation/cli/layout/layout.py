import json
import logging
from gettext import gettext as _

from timeline_annotation.core.annotation import AnnotationSession, load_config
from timeline_annotation.core.annotation.config import (
    channels_from_snapshot,
    frames_from_snapshot,
)
from timeline_annotation.core.annotation.utils import format_time, frame_to_time

logger = logging.getLogger(__name__)


def handle(args):
    assert args.snapshot.exists() and args.snapshot.is_file(), _(
        "Snapshot must exist and be a file"
    )
    snapshot = json.loads(args.snapshot.read_text())

    overrides = {}
    if args.config is None:
        overrides["channels"] = channels_from_snapshot(snapshot)
        overrides["total_frames"] = frames_from_snapshot(snapshot)
    cfg = load_config(args.config, **overrides)

    session = AnnotationSession(cfg)
    session.load_snapshot(snapshot)
    logger.debug(f"Loaded {len(session.store)} annotations from {args.snapshot}")

    fps = float(cfg.fps)
    for channel in session.get_channels():
        layouts = session.get_intervals(channel.id)
        if not layouts:
            continue
        print(f"{channel.id}\t{channel.name}")
        for layout in layouts:
            print(
                f"\t#{layout.id}\t[{layout.start}, {layout.end}]"
                f"\t{format_time(frame_to_time(layout.start, fps))}"
                f" - {format_time(frame_to_time(layout.end, fps))}"
                f"\tgroup={layout.group}\tindex={layout.index}\tsize={layout.size}"
            )
    return 0
