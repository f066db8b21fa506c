"""
Arbor help synthesis: turn a command's declarative fields into help text.

What this module provides
- HelpInfo: a value object computed on demand from a command (never stored on
  it) with the name, synopsis, usage block, full help, flag summary and,
  when requested, one level of child summaries.
- synthesize(command, include_children=False, context=None, ...): build a HelpInfo.
- Three renderers on HelpInfo, each writing to a diagnostic sink:
  • write_usage(file): the usage block.
  • write_synopsis(file): usage, synopsis and flags (answer to -help).
  • write_long(file): usage, full help, flags, subcommands and help topics
    (answer to "help").

Layout (write_long)
    Usage:

      tool status update [options] text...
      tool status update

    Create a new tweet from the given text.

    Options:
      -r, --reply-to <str>
            Reply to this tweet ID

    Subcommands:
      status update : Create a new tweet from the given text.
      status delete : (no description available)

Rendering
- Output goes through a rich console bound to the sink (see open_console):
  styled on terminals, plain text elsewhere, never re-wrapped. The palette can
  be overridden with a __styles__ mapping in __main__.
- Rendering the same HelpInfo twice writes byte-identical output.
"""
import copy
from collections import defaultdict

from rich.cells import cell_len
from rich.text import Text

from .flags import flagset
from .utils import *

_PLACEHOLDER = "(no description available)"


def _usage_lines(command, /):
    """
    Normalize usage lines: trim each one, drop blank ones, and strip the command
    name from the head of a line. A line equal to the name itself is kept as an
    empty usage form.
    """
    lines = []
    prefix = command.name + " "
    for line in (command.usage or "").split("\n"):
        if not (line := line.strip()):
            continue
        elif line == command.name:
            lines.append("")
        else:
            lines.append(line.removeprefix(prefix))
    return lines


def _indent(first, prefix, text, /):
    """
    Return text with first prepended to the first line and prefix to every
    following line; trailing blanks are trimmed per line.
    """
    return "\n".join(
        (first if index == 0 else prefix) + line
        for index, line in enumerate(text.split("\n"))
    ).replace(" \n", "\n").rstrip(" ")


def _table(rows, /):
    """
    Align (name, description) rows on a " : " separator.
    """
    width = max((cell_len(name) for name, _ in rows), default=0)
    return [
        (name + " " * (width - cell_len(name)), description)
        for name, description in rows
    ]


class HelpInfo:
    """
    Synthesized help details for one command.

    Fields (read-only)
    - name: display name (the invoked name when synthesized from a context).
    - synopsis: first line of the help text ("" when there is none).
    - usage: "Usage:" block with one indented line per usage form.
    - help: full help text, trimmed.
    - flags: "Options:" block, or None when the command declares no flags.
    - commands: HelpInfo of each child (empty unless requested; never nested).
    - topics: HelpInfo of help topics (filled by the help command only).
    """
    __introspectable__ = ("name", "synopsis", "usage", "help", "flags", "commands", "topics")

    name = mirror("name")
    synopsis = mirror("synopsis")
    usage = mirror("usage")
    help = mirror("help")
    flags = mirror("flags")
    commands = mirror("commands")
    topics = mirror("topics")

    def __init__(self, name, /, synopsis="", usage="", help="", flags=None, commands=(), topics=()):
        self._name = name
        self._synopsis = synopsis
        self._usage = usage
        self._help = help
        self._flags = flags
        self._commands = tuple(commands)
        self._topics = tuple(topics)

    def __repr__(self):
        return "help-info(%s)" % ", ".join("%s=%r" % item for item in self.__rich_repr__())

    def __rich_repr__(self):
        for name in self.__introspectable__:
            yield name, getattr(self, name)

    def __eq__(self, other):
        if not isinstance(other, HelpInfo):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    def __hash__(self):
        return hash(tuple(self.__rich_repr__()))

    def __replace__(self, **overrides):
        fields = dict(self.__rich_repr__()) | overrides
        return type(self)(fields.pop("name"), **fields)

    def _styles(self):
        return defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "usage-section": "bold #36C5F0",
            "description-section": "",
            "placeholder": "italic #A3A3A3",
            "options-label": "bold #FFFFFF",
            "options-section": "#9CA3AF",
            "children-title": "bold #FFFFFF",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",
        } | getattr(__import__("__main__"), "__styles__", {}))

    def _section(self, label, body, styles, /):
        """
        Style a "Label:\\n..." block: the label line in one style, the rest in another.
        """
        text = Text(body, styles[label + "-section"])
        if (end := body.find("\n")) > 0:
            text.stylize(styles[label + "-label"], 0, end)
        return text

    def _usage_block(self, styles, /):
        return Text.assemble(self._section("usage", self.usage, styles), "\n\n")

    def _description(self, body, styles, /):
        if body:
            return Text.assemble((body, styles["description-section"]), "\n\n")
        return Text.assemble((_PLACEHOLDER, styles["placeholder"]), "\n\n")

    def _flags_block(self, styles, /):
        if self.flags:
            return Text.assemble(self._section("options", self.flags, styles), "\n\n")
        return Text()

    def _listing(self, title, base, infos, styles, /):
        """
        Render an aligned "<title>:" table of "  <base><name> : <synopsis>" rows.
        """
        if not infos:
            return Text()
        listing = Text.assemble((title + ":", styles["children-title"]), "\n")
        for name, synopsis in _table([("  " + base + info.name, info.synopsis) for info in infos]):
            listing.append(name, styles["children"])
            listing.append(" : ")
            if synopsis:
                listing.append(synopsis, styles["children-description"])
            else:
                listing.append(_PLACEHOLDER, styles["placeholder"])
            listing.append("\n")
        return listing.append("\n")

    def write_usage(self, file=None, /):
        """
        Write the usage block followed by a blank line to file (stderr when None).
        """
        open_console(file).print(self._usage_block(self._styles()), end="")

    def write_synopsis(self, file=None, /):
        """
        Write the usage block, the synopsis (or a placeholder) and the flag block.
        """
        styles = self._styles()
        open_console(file).print(Text.assemble(
            self._usage_block(styles),
            self._description(self.synopsis, styles),
            self._flags_block(styles),
        ), end="")

    def write_long(self, file=None, /):
        """
        Write the complete help: usage, full help (or a placeholder), flags, the
        subcommand table and the help topic table. Child rows are prefixed with
        this command's name.
        """
        styles = self._styles()
        open_console(file).print(Text.assemble(
            self._usage_block(styles),
            self._description(self.help, styles),
            self._flags_block(styles),
            self._listing("Subcommands", self.name + " ", self.commands, styles),
            self._listing("Help topics", "", self.topics, styles),
        ), end="")


def _declared_flags(command, context, /):
    """
    Return the FlagSet describing command's flags, or None without set_flags.

    The set already built by dispatch (context.flags of the command's own
    context) is reused as is. Otherwise a fresh set is declared through
    set_flags with a context for the command: the given one when it belongs to
    the command, one derived from it (shared config and sink) when it belongs
    to another node, or a new root context when there is none.
    """
    if command.set_flags is None:
        return None
    if context is None:
        context = command.new_context()
    elif context.command is not command:
        context = copy.replace(context, command=command, name=command.name, flags=None)
    elif context.flags is not None:
        return context.flags
    declared = flagset(command.name)
    command.set_flags(context, declared)
    return declared


def synthesize(command, /, include_children=False, context=None, name=Unset, declare=True):
    """
    Build the HelpInfo for command.

    Parameters
    - command: the command to describe.
    - include_children: add one level of child summaries (their own children
      are never included, nor are their flags declared).
    - context: the dispatch context, if any. Its invoked name is displayed and
      its parsed flags reused when the context belongs to this command.
    - name: display name override (e.g., "status update" for a nested path).
    - declare: when False, set_flags is not called and flags stays None.

    Behavior
    - synopsis is the first line of the trimmed help text.
    - usage lines lose a redundant leading command name and are indented under
      "  <name> "; a command without usage lines shows "  <name>".
    - flag defaults are rendered under "Options:"; nothing is parsed.
    """
    help = (command.help or "").strip()
    if name is Unset:
        name = command.name
        if context is not None and context.command is command:
            name = context.name

    prefix = "  " + name + " "
    lines = _usage_lines(command)
    usage = "Usage:\n\n" + (_indent(prefix, prefix, "\n".join(lines)) if lines else "  " + name)

    flags = None
    if declare and (declared := _declared_flags(command, context)) is not None:
        if defaults := declared.defaults():
            flags = "Options:\n" + defaults

    commands = ()
    if include_children:
        # rows only show synopses; no recursion, no flag declaration
        commands = tuple(synthesize(child, declare=False) for child in command.commands)

    return HelpInfo(
        name,
        synopsis=help.split("\n", 1)[0],
        usage=usage,
        help=help,
        flags=flags,
        commands=commands,
    )


__all__ = (
    "HelpInfo",
    "synthesize",
)
