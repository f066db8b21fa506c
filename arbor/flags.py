r"""
Arbor flag specifications and the flag set parser.

Overview
- Specs
  • Option: named, value-bearing flag with one or more aliases (e.g., -c/--config).
  • Flag: named, presence-only switch (no payload), e.g., -v/--verbose.

- FlagSet
  • Holds the specs a command declares through its set_flags(context, flags)
    callback, parses the leading flags of an argument list, and stores the
    parsed values (the flag destinations) for the run action to read back.
  • Never prints: every problem is raised as a FlagError subclass (see
    arbor.faults) so the dispatcher decides what the user sees.
  • flagset(name) is the constructor used by the dispatcher.

Parsing rules
- Flags come first; parsing stops at the first non-flag token, at a lone "-",
  or right after "--" (which is consumed).
- One or two leading dashes are equivalent: -config, --config.
- Options take a value inline (-config=path) or as the next token (-config path).
- Flags are presence-only; -verbose=true is a user error.
- -h, -help and --help raise HelpRequested unless the set declares them.

Validation highlights
- Names must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique within the set
  (compared without their dashes).
- Option cannot combine metavar and choices; choices reject duplicates.

Quick example
    >>> flags = flagset("update")
    >>> flags.option("-r", "--reply-to", default="", descr="Reply to this tweet ID")
    ...
    >>> flags.flag("--auto-reply", descr="Automatically populate reply based on mentions")
    ...
    >>> flags.parse(["--reply-to=1234", "hello", "world"])
    ['hello', 'world']
    >>> flags["reply-to"], flags["auto-reply"]
    ('1234', False)
"""
import difflib
import functools
import os.path
import re
import sys
from collections import deque
from collections.abc import Iterable, Set

from rich.text import Text

from .faults import *
from .utils import *

_NAME = re.compile(r"--?[^\W\d_](-?[^\W_]+)*")
_TOKEN = re.compile(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?")
_HELP = frozenset({"h", "help"})


@functools.cache
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"
    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _sanitize_names(cls, names, /):
    """
    Validate shell-style names and return them as a tuple in declaration order.

    Raises
    - TypeError: when no name is given or a name is not a string.
    - ValueError: when a name is malformed or repeats another one (dashes ignored).
    """
    if not names:
        raise TypeError(f"{cls.__typename__} requires at least one name")
    keys = set()
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'names' must be strings")
        elif not _NAME.fullmatch(name):
            raise ValueError(f"{cls.__typename__} name {name!r} is not a valid flag name")
        elif (key := name.lstrip("-")) in keys:
            raise ValueError(f"{cls.__typename__} name {name!r} is duplicated")
        keys.add(key)
    return tuple(names)


def _sanitize_string(cls, label, object, /):
    """
    Trim an optional string field; empty strings are rejected, Unset becomes None.
    """
    if not isinstance(object, str | Text | Unset):
        raise TypeError(f"{cls.__typename__} {label!r} must be a string")
    elif isinstance(object, str) and not (object := object.strip()):
        raise ValueError(f"{cls.__typename__} {label!r} cannot be empty")
    return coalesce(object)


class _Spec:
    """
    Shared plumbing for flag specs: stable repr and rich repr over __introspectable__.
    """
    __typename__ = "spec"
    __introspectable__ = ()

    def __repr__(self):
        return "%s(%s)" % (self.__typename__, ", ".join("%s=%r" % item for item in self.__rich_repr__()))

    def __rich_repr__(self):
        for name in self.__introspectable__:
            yield name, getattr(self, name)

    @property
    def keys(self):
        """
        Lookup keys for this spec: every name without its leading dashes.
        """
        return tuple(name.lstrip("-") for name in self._names)


class Option(_Spec):
    """
    A named flag that carries a value.

    Parameters
    - *names: one or more names such as "-c", "--config" or "-log-level".
    - default: value stored when the option is absent (None when Unset).
    - type: converter applied to the raw string (str by default).
    - metavar: label for the value in help output.
    - choices: accepted converted values (empty means unrestricted).
    - descr: short help text.
    - dest: key under which the value is stored (defaults to the longest name
      without dashes, e.g. "log-level").
    """
    __typename__ = "option"
    __introspectable__ = ("names", "dest", "default", "type", "metavar", "choices", "descr")

    names = mirror("names")
    dest = mirror("dest")
    default = mirror("default")
    type = mirror("type")
    metavar = mirror("metavar")
    choices = mirror("choices")
    descr = mirror("descr")

    def __init__(self, *names, default=Unset, type=str, metavar=Unset, choices=(), descr=Unset, dest=Unset):
        self._names = _sanitize_names(Option, names)
        if not callable(type):
            raise TypeError(f"{self.__typename__} 'type' must be callable")
        self._type = type
        self._metavar = _sanitize_string(Option, "metavar", metavar)
        self._descr = _sanitize_string(Option, "descr", descr)

        if not isinstance(choices, Iterable) or isinstance(choices, str):
            raise TypeError(f"{self.__typename__} 'choices' must be an iterable")
        if not isinstance(choices, Set) and len(choices := list(choices)) != len(set(choices)):
            raise ValueError(f"{self.__typename__} 'choices' cannot contain duplicates")
        self._choices = tuple(choices)
        if self._choices and self._metavar is not None:
            raise TypeError(f"{self.__typename__} cannot have both 'metavar' and 'choices'")

        self._dest = _sanitize_string(Option, "dest", dest) or max(self.keys, key=len)
        self._default = coalesce(default)


class Flag(_Spec):
    """
    A named, presence-only switch. Its value is False until it appears.

    Parameters
    - *names: one or more names such as "-v" or "--verbose".
    - descr: short help text.
    - dest: key under which the value is stored (defaults to the longest name
      without dashes).
    """
    __typename__ = "flag"
    __introspectable__ = ("names", "dest", "descr")

    names = mirror("names")
    dest = mirror("dest")
    descr = mirror("descr")
    default = False

    def __init__(self, *names, descr=Unset, dest=Unset):
        self._names = _sanitize_names(Flag, names)
        self._descr = _sanitize_string(Flag, "descr", descr)
        self._dest = _sanitize_string(Flag, "dest", dest) or max(self.keys, key=len)


class FlagSet:
    """
    The flags of one command for one invocation.

    A FlagSet owns the storage for every value it parses; a fresh one is built
    each time a command is dispatched (or its help is synthesized), so no flag
    state outlives the invocation that produced it.

    Attributes (read-only)
    - name: the command name used in hints.
    - specs: declared specs in declaration order.
    - values: mapping of dest -> current value (defaults until parsed).
    - args: arguments left over by the last parse().
    - parsed: whether parse() completed.
    """
    name = mirror("name")
    specs = mirror("specs")
    values = mirror("values")
    args = mirror("args")
    parsed = mirror("parsed")

    def __init__(self, name=Unset, /):
        if not isinstance(name, str | Unset):
            raise TypeError("flag set 'name' must be a string")
        self._name = coalesce(name, os.path.basename(sys.argv[0]))
        self._specs = []
        self._lookup = {}
        self._values = {}
        self._args = []
        self._parsed = False

    def __repr__(self):
        return "flag-set(name=%r, values=%r)" % (self._name, self._values)

    def __contains__(self, name):
        return name in self._values or name.lstrip("-") in self._lookup

    def __getitem__(self, name):
        """
        Return the value stored for a dest, or for any alias of a declared spec.
        """
        try:
            return self._values[name]
        except KeyError:
            pass
        try:
            return self._values[self._lookup[name.lstrip("-")].dest]
        except KeyError:
            raise KeyError(name) from None

    def add(self, spec, /):
        """
        Declare a spec on this set and initialize its destination with its default.

        Raises
        - TypeError: when spec is not an Option or a Flag.
        - ValueError: when a name or the dest is already in use.
        """
        if not isinstance(spec, Option | Flag):
            raise TypeError("add() argument must be an option or a flag")
        for key in spec.keys:
            if key in self._lookup:
                raise ValueError(f"flag set name {key!r} is already in use")
        if spec.dest in self._values:
            raise ValueError(f"flag set dest {spec.dest!r} is already in use")

        self._specs.append(spec)
        self._lookup.update(dict.fromkeys(spec.keys, spec))
        self._values[spec.dest] = spec.default
        return spec

    def option(self, *names, **options):
        """
        Shortcut for add(Option(*names, **options)).
        """
        return self.add(Option(*names, **options))

    def flag(self, *names, **options):
        """
        Shortcut for add(Flag(*names, **options)).
        """
        return self.add(Flag(*names, **options))

    def _hint(self):
        return "try '%s -help' to see the available flags" % self._name

    def parse(self, args, /):
        r"""
        parse leading flags from args and return the remaining arguments.

        behavior
        - values are reset to their defaults before parsing.
        - each flag token is validated with
          (?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?
        - parsing stops at the first non-flag token, a lone "-", or after "--".

        raises
        - HelpRequested: -h/-help/--help when not declared.
        - MalformedFlagError, UnknownFlagError, FlagAssignmentError,
          DuplicatedFlagError, FlagValueRequiredError, InvalidFlagValueError.
        """
        if isinstance(args, str) or not isinstance(args, Iterable):
            raise TypeError("parse() argument must be an iterable of strings")

        self._values = {spec.dest: spec.default for spec in self._specs}
        self._args = []
        self._parsed = False

        tokens = deque(args)
        seen = set()
        index = 0
        while tokens:
            token = tokens[0]
            if not isinstance(token, str):
                raise TypeError("parse() argument must be an iterable of strings")
            if token == "--":
                tokens.popleft()
                break
            if not token.startswith("-") or token == "-":
                break
            tokens.popleft()
            index += 1

            if not (match := _TOKEN.fullmatch(token)):
                trigger(MalformedFlagError(
                    "bad form of flag %r at %s position" % (token, _ordinal(index)),
                    title="malformed flag",
                    code=FaultCode.MALFORMED_FLAG,
                    hint=self._hint() + " (e.g., -name=value)",
                    token=token,
                    index=index,
                    docs=getdoc(FaultCode.MALFORMED_FLAG),
                ))

            input = match["input"]
            value = match["value"]  # None without '=', possibly '' with it

            try:
                spec = self._lookup[input.lstrip("-")]
            except KeyError:
                if input.lstrip("-") in _HELP:
                    trigger(HelpRequested(
                        "help requested with %r" % input,
                        title="help requested",
                        code=FaultCode.HELP_REQUESTED,
                        input=input,
                        index=index,
                    ))
                suggestions = difflib.get_close_matches(input, [
                    name for spec in self._specs for name in spec.names
                ], 5)
                try:
                    hint = "did you mean %r? %s" % (suggestions[0], self._hint())
                except IndexError:
                    hint = self._hint()
                trigger(UnknownFlagError(
                    "unknown flag %r at %s position" % (input, _ordinal(index)),
                    title="unknown flag",
                    code=FaultCode.UNKNOWN_FLAG,
                    input=input,
                    index=index,
                    suggestions=suggestions,
                    hint=hint,
                    docs=getdoc(FaultCode.UNKNOWN_FLAG),
                ))

            if spec.dest in seen:
                trigger(DuplicatedFlagError(
                    "flag %r at %s position was already provided" % (input, _ordinal(index)),
                    title="duplicated flag",
                    code=FaultCode.DUPLICATED_FLAG,
                    input=input,
                    index=index,
                    hint="keep a single %s; each flag can be specified only once" % input,
                    docs=getdoc(FaultCode.DUPLICATED_FLAG),
                ))
            seen.add(spec.dest)

            if isinstance(spec, Flag):
                if value is not None:
                    trigger(FlagAssignmentError(
                        "flag %r at %s position cannot have a value" % (input, _ordinal(index)),
                        title="flag cannot take a value",
                        code=FaultCode.FLAG_ASSIGNMENT,
                        input=input,
                        index=index,
                        hint="remove everything from '=' (for example: %s)" % input,
                        docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                    ))
                self._values[spec.dest] = True
                continue

            if value is None:
                if not tokens:
                    trigger(FlagValueRequiredError(
                        "option %r at %s position requires a value" % (input, _ordinal(index)),
                        title="missing value",
                        code=FaultCode.FLAG_VALUE_REQUIRED,
                        input=input,
                        index=index,
                        hint="pass a value: %s=<value> or %s <value>" % (input, input),
                        docs=getdoc(FaultCode.FLAG_VALUE_REQUIRED),
                    ))
                value = tokens.popleft()
                index += 1

            try:
                converted = spec.type(value)
            except (TypeError, ValueError) as exception:
                trigger(InvalidFlagValueError(
                    "invalid value %r for option %r at %s position" % (value, input, _ordinal(index)),
                    title="invalid value",
                    code=FaultCode.INVALID_FLAG_VALUE,
                    input=input,
                    index=index,
                    exception=exception,
                    hint="%s expects a %s value" % (input, getattr(spec.type, "__name__", "valid")),
                    docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
                ))

            if spec.choices and converted not in spec.choices:
                trigger(InvalidFlagValueError(
                    "invalid choice %r for option %r at %s position" % (value, input, _ordinal(index)),
                    title="invalid choice",
                    code=FaultCode.INVALID_FLAG_VALUE,
                    input=input,
                    index=index,
                    hint="choose one of: %s" % ", ".join(map(repr, spec.choices)),
                    docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
                ))
            self._values[spec.dest] = converted

        self._args = list(tokens)
        self._parsed = True
        return list(self._args)

    def defaults(self):
        """
        Render the standard flag summary, one entry per spec ordered by dest:

              -c, --config <str>
                    Configuration file path (default: 'config.yml')

        Defaults are shown unless they are None, empty or False.
        Returns an empty string for a set without specs.
        """
        lines = []
        for spec in sorted(self._specs, key=lambda x: x.dest):
            shorts = sorted((name for name in spec.names if len(name.lstrip("-")) == 1), key=len)
            longs = sorted((name for name in spec.names if len(name.lstrip("-")) > 1), key=len)
            entry = "  " + ", ".join(shorts + longs)
            if isinstance(spec, Option):
                if spec.choices:
                    entry += " {%s}" % ",".join(map(repr, spec.choices))
                elif spec.metavar is not None:
                    entry += " " + str(spec.metavar)
                else:
                    entry += " <%s>" % getattr(spec.type, "__name__", "value")
            lines.append(entry)

            details = str(spec.descr) if spec.descr is not None else ""
            if spec.default not in (None, "", False):
                details += (" " if details else "") + "(default: %r)" % (spec.default,)
            if details:
                lines.append(" " * 8 + details)
        return "\n".join(lines)


def flagset(name, /):
    """
    Construct an empty FlagSet for the named command.

    The returned set writes nothing on its own: parse errors and help requests
    are raised as faults, and the caller reports them.
    """
    return FlagSet(name)


__all__ = (
    "Option",
    "Flag",
    "FlagSet",
    "flagset",
)
