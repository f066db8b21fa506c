"""
Arbor faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue
  raised while parsing flags or dispatching a command tree.
- CommandException / CommandWarning: the error and warning bases; each holds
  a message and a frozen options mapping and renders itself for rich
  (header with code and title, message, hint).
- UsageError: the usage sentinel. Help or usage text has already been written
  when it is raised; callers map it to a distinct exit status.
- trigger(): central entry point to surface a fault (errors are raised,
  warnings are rendered to their sink).
- getdoc(): documentation a host registered for a code, if any.

Taxonomy
- usage sentinel ........ UsageError (never rendered as an error)
- initialization ........ InitializationError (wraps the initializer failure)
- flag parsing .......... FlagError and subclasses (propagated unwrapped)
- soft diagnostics ...... UnknownCommandWarning, LiteralHelpWarning,
                          UnknownTopicWarning (written, never raised)

Integration
- The flag layer raises FlagError subclasses through trigger(fault).
- The dispatcher renders warnings through trigger(warning, file=context.log).
- Run action failures are not faults: they propagate untouched.

Host customization (attributes of the __main__ module)
- __styles__: palette overrides, __codes__: code labels, __docs__: code docs,
  __prog__: program name shown in fault headers.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .utils import Unset, coalesce, open_console


class FaultCode(IntEnum):
    """
    Stable numeric identifiers of every fault arbor reports.

    Ranges
    - flags (1111x/1112x)
      • MALFORMED_FLAG, UNKNOWN_FLAG, FLAG_ASSIGNMENT, DUPLICATED_FLAG,
        FLAG_VALUE_REQUIRED, INVALID_FLAG_VALUE, HELP_REQUESTED
    - dispatch (1113x)
      • INITIALIZATION
    - warnings (1210x)
      • UNKNOWN_COMMAND, LITERAL_HELP, UNKNOWN_TOPIC

    Hosts may relabel codes for display (see normalize); the numbers never change.
    """
    # flag parsing
    MALFORMED_FLAG              = 11111
    UNKNOWN_FLAG                = 11112
    FLAG_ASSIGNMENT             = 11113
    DUPLICATED_FLAG             = 11115
    FLAG_VALUE_REQUIRED         = 11117
    INVALID_FLAG_VALUE          = 11124
    HELP_REQUESTED              = 11129

    # dispatch
    INITIALIZATION              = 11131

    # warnings
    UNKNOWN_COMMAND             = 12101
    LITERAL_HELP                = 12102
    UNKNOWN_TOPIC               = 12103

    def normalize(self):
        """
        Display label of this code: __main__.__codes__[code] when the host
        defines one, else the number.
        """
        labels = getattr(__import__("__main__"), "__codes__", {})
        return str(labels[self]) if self in labels else str(self.value)


def _render(fault, palette, title):
    """
    Build the rich renderable shared by errors and warnings.

    Layout
        [ prog — code | Title ]
        message
         → hint
    Header parts and the hint are omitted when the fault carries no value for them.
    """
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    renders = []
    prog = getattr(main, "__prog__", fault.options.get("prog"))
    code = fault.options.get("code")
    parts = [
        text(prog, "prog-name") if prog else None,
        text(code.normalize(), "code") if isinstance(code, FaultCode) else None,
        text(fault.options.get("title", "").title(), title) if fault.options.get("title") else None,
    ]
    if any(parts):
        header = Text("[ ")
        if parts[0]:
            header.append_text(parts[0])
            header.append(" — " if parts[1] or parts[2] else "")
        if parts[1]:
            header.append_text(parts[1])
            header.append(" | " if parts[2] else "")
        if parts[2]:
            header.append_text(parts[2])
        renders.append(header.append(" ]"))

    renders.append(text(coalesce(fault.message, ""), "message"))

    if hint := fault.options.get("hint"):
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    return Group(*renders)


class UsageError(Exception):
    """
    The usage sentinel.

    Raised once help, synopsis or usage text has been written to the diagnostic
    sink: the user asked for help, passed arguments the tree cannot place, or
    reached a command with nothing to run. Callers conventionally exit with
    status 2 and print nothing further.
    """

    def __init__(self, message="usage requested", /):
        super().__init__(message)


class CommandException(Exception):
    """
    Base class for framework errors.

    Carries a message and a read-only mapping of options (code, title, hint,
    plus free-form context such as input or index). Instances render as rich
    renderables and are surfaced through trigger().
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error-title")

    def __trigger__(self):
        raise self from None

    def __replace__(self, /, **overrides):
        return type(self)(self.message, **(dict(self.options) | overrides))


class FlagError(CommandException): ...
class MalformedFlagError(FlagError): ...
class UnknownFlagError(FlagError): ...
class FlagAssignmentError(FlagError): ...
class DuplicatedFlagError(FlagError): ...
class FlagValueRequiredError(FlagError): ...
class InvalidFlagValueError(FlagError): ...


class HelpRequested(FlagError):
    """
    Raised by the flag layer for -h, -help or --help when the flag set does not
    declare them itself. The dispatcher turns it into synopsis help + UsageError.
    """


class InitializationError(CommandException):
    """
    An initializer hook failed. The message names the command; the original
    exception is kept as __cause__.
    """


class CommandWarning(Warning):
    """
    Base class for soft diagnostics.

    Warnings never change the control flow: trigger() renders them to the
    sink given by the "file" option (stderr when absent) and returns.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning-title")

    def __trigger__(self):
        open_console(self.options.get("file")).print(self)

    def __replace__(self, /, **overrides):
        return type(self)(self.message, **(dict(self.options) | overrides))


class UnknownCommandWarning(CommandWarning): ...
class LiteralHelpWarning(CommandWarning): ...
class UnknownTopicWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    Surface fault: merge options into a copy (copy.replace) and call its
    __trigger__. Errors raise themselves; warnings print to options["file"]
    (stderr when absent) and trigger() returns None.
    """
    for method in ("__trigger__", "__replace__"):
        if not callable(getattr(fault, method, None)):
            raise TypeError("trigger() needs an object with %s, got %s" % (method, type(fault).__name__))
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    Documentation registered by the host for code in __main__.__docs__, or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() expects a FaultCode, not %s" % type(code).__name__)
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "UsageError",
    "CommandException",
    "FlagError",
    "MalformedFlagError",
    "UnknownFlagError",
    "FlagAssignmentError",
    "DuplicatedFlagError",
    "FlagValueRequiredError",
    "InvalidFlagValueError",
    "HelpRequested",
    "InitializationError",
    "CommandWarning",
    "UnknownCommandWarning",
    "LiteralHelpWarning",
    "UnknownTopicWarning",
    "trigger",
    "getdoc",
)
