"""
Arbor utilities shared by the flag, help and command layers.

Contents
- Unset: the "argument omitted" marker. Constructors use it where None is a
  legitimate value (a run action explicitly set to None, an option whose
  default is None).
- coalesce(value, default): turn Unset into a default, keep everything else.
- rename(...): give generated callables a readable __name__/__qualname__.
- mirror("field"): read-only property over "_field", handing out frozen
  snapshots of containers so a built tree cannot be edited from outside.
- open_console(file): the rich console every renderer prints through.

Examples
    >>> coalesce(Unset, 3), coalesce(0, 3)
    (3, 0)
    >>> @rename("run_status")
    ... def run(context, args): ...
    ...
    >>> run.__qualname__
    'run_status'
"""
import builtins
import sys
from collections.abc import Mapping, Sequence, Set
from typing import final

from rich.console import Console


@final
class UnsetType:
    """
    Type of the Unset marker.

    There is exactly one instance; it is falsey, prints as "Unset", may be
    used on either side of "|" to build isinstance() unions, and the type
    refuses subclasses.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, else object itself (None, 0 and ""
    included).
    """
    if object is Unset:
        return default
    return object


def rename(*parameters):
    """
    rename(callable, name) sets __name__ and __qualname__ and returns the
    callable; rename(name) returns a decorator doing the same.

    TypeError is raised for a non-callable target, a non-string name, a
    callable whose names are read-only, or a wrong number of arguments.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() expects a string")

        def decorator(target):
            return rename(target, name)

        decorator.__name__ = decorator.__qualname__ = "rename"
        return decorator

    if len(parameters) != 2:
        raise TypeError("rename() expects 1 or 2 arguments, got %d" % len(parameters))

    target, name = parameters
    if not builtins.callable(target):
        raise TypeError("rename() target must be callable, not %s" % type(target).__name__)
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        target.__name__ = target.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() target %r cannot be renamed" % (target,)) from None
    return target


def _freeze(value):
    """
    Snapshot a value for public exposure: lists and other sequences become
    tuples, sets become frozensets, mappings are copied; nested containers are
    frozen the same way. Strings and other objects are returned unchanged.
    """
    match value:
        case str():
            return value
        case Mapping():
            return {key: _freeze(item) for key, item in value.items()}
        case Set():
            return frozenset(_freeze(item) for item in value)
        case Sequence():
            return tuple(_freeze(item) for item in value)
    return value


def mirror(name, /):
    """
    Build a read-only property named name that returns _freeze(self._<name>).

        class Command:
            commands = mirror("commands")   # exposes self._commands as a tuple
    """
    if not isinstance(name, str):
        raise TypeError("mirror() expects a field name")
    attribute = "_" + name

    def getter(self):
        return _freeze(getattr(self, attribute))

    getter.__name__ = getter.__qualname__ = name
    return property(getter, doc="read-only view of %s" % attribute)


def open_console(file=None, /):
    """
    Return a rich Console printing to file, or to the current sys.stderr.

    Markup, emoji and highlighting are off so user text is printed literally;
    soft wrapping keeps rich from re-flowing or cropping lines. rich decides
    on colour: sinks that are not terminals get plain text.
    """
    if file is None:
        file = sys.stderr
    if not callable(getattr(file, "write", None)):
        raise TypeError("open_console() needs an object with a write() method")
    return Console(file=file, highlight=False, markup=False, emoji=False, soft_wrap=True)


Unset = UnsetType()


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "open_console",
    "UnsetType",
    "Unset",
)
