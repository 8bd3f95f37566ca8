from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Show how the intervals of a snapshot are grouped")


def command(subparser):
    subparser.add_argument("snapshot", type=Path, help=_("Exported annotations JSON"))
    subparser.add_argument(
        "-c", "--config", dest="config", type=Path, help=_("JSON configuration file")
    )

    def handle(args):
        from .layout import handle as layout_handle

        return layout_handle(args)

    return handle
