from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Replay a script of input events and export the result")


def command(subparser):
    subparser.add_argument(
        "script", type=Path, help=_("JSON-lines file with one input event per line")
    )
    subparser.add_argument(
        "output", type=Path, help=_("Where to save the exported annotations JSON")
    )
    subparser.add_argument(
        "-c", "--config", dest="config", type=Path, help=_("JSON configuration file")
    )
    subparser.add_argument(
        "-s",
        "--snapshot",
        dest="snapshot",
        type=Path,
        help=_("Previously exported annotations to start from"),
    )
    subparser.add_argument(
        "--overwrite",
        action="store_true",
        help=_("Overwrite the output file if it exists"),
    )

    def handle(args):
        from .replay import handle as replay_handle

        return replay_handle(args)

    return handle
