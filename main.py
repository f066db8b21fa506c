import sys

from rich.console import Console
from rich.pretty import pprint

from arbor import *

__prog__ = "tool"


def _configure(context):
    context.config["path"] = context.flags["config"]


tool = Command(
    __prog__,
    usage="[options] <command> [arguments]",
    help="Post and manage statuses from the command line.",
    set_flags=lambda context, flags: flags.option(
        "-c", "--config", default="~/.tool.yml", descr="Configuration file path",
    ),
    init=_configure,
)


@tool.command(usage="[options] text...", aliases=("st",))
def status(context, args):
    """Show or create statuses.

    With text, a new status is created; otherwise the latest ones are listed."""
    pprint({"config": context.config, "text": " ".join(args)})


tool.command(help_command([
    Command("expansions", help="Expansion rules for status text.\n\n"
                               "Words starting with @ are resolved against your contacts."),
]))


if __name__ == '__main__':
    try:
        invoke(tool, config={})
    except UsageError:
        sys.exit(2)
    except Exception as exception:
        Console(stderr=True, highlight=False).print(exception)
        sys.exit(1)
