"""
Arbor command layer: build a command tree and dispatch arguments through it.

What this module provides
- Command: one node of the tree (name, usage, help, optional flag declaration,
  initializer and run action, ordered children, aliases).
- Context: the per-invocation environment threaded through dispatch (current
  node, its parent, the invoked name, pending help, shared config, sink).
- dispatch(context, args): the recursive dispatcher.
- Factories and helpers:
  • command(...): create a Command or a decorator that produces one.
  • invoke(command, prompt): build the root context and dispatch.
  • help_command(topics): a stock "help" subcommand.
  • fail_with_usage / run_short_help / run_long_help: stock run actions.

Dispatch, one level at a time
1. Flags: when the node declares flags, a fresh flag set is declared through
   set_flags(context, flags) and parsed. -h/-help renders synopsis help and
   raises UsageError; other flag faults propagate as they are.
2. Init: init(context) runs; its failure becomes InitializationError.
3. Resolution: a token naming a child descends into it (name match always
   wins); "help" marks help as pending when more arguments follow or when the
   node has nothing to run; anything else ends the walk.
4. Terminal: pending help renders long help, a node without run action renders
   usage (both raise UsageError), otherwise run(context, args) is returned.

Quick start
    from arbor import Command, command, help_command, invoke

    tool = Command("tool", help="Manage statuses.")

    @tool.command(usage="[options] text...")
    def update(context, args):
        '''Create a new status from the given text.'''
        print(" ".join(args))

    tool.command(help_command())

    if __name__ == "__main__":
        invoke(tool)

Notes
- The tree is built once; children are only attached while constructing it.
- UsageError means the help or usage text has already been written: callers
  map it to exit status 2 and print nothing else.
"""
import copy
import inspect
import os.path
import re
import shlex
import sys
from collections.abc import Iterable

from .faults import *
from .flags import flagset
from .help import synthesize
from .utils import *

_NAME = re.compile(r"\S+")


def _sanitize_name(name, /, label="name"):
    """
    Validate a command name or alias: a non-empty string without whitespace.
    """
    if not isinstance(name, str):
        raise TypeError(f"command {label} must be a string")
    if not _NAME.fullmatch(name):
        raise ValueError(f"command {label} {name!r} must be a non-empty word")
    return name


def _sanitize_hook(hook, /, label):
    """
    Normalize an optional hook: Unset and None become None, callables pass.
    """
    if hook is Unset or hook is None:
        return None
    if not callable(hook):
        raise TypeError(f"command {label!r} must be callable")
    return hook


def _attach_to_parent(self, parent):
    """
    Register this command under its parent, enforcing unique names.

    Behavior
    - The command's name and aliases claim slots in the parent's _index
      registry (name -> child).
    - If a slot is already taken by a different command, raises ValueError
      and leaves the parent untouched.
    """
    for name in (self.name, *self.aliases):
        if parent._index.get(name, self) is not self:
            raise ValueError(f"command {parent.name!r} subcommand name {name!r} is already in use")
    for name in (self.name, *self.aliases):
        parent._index[name] = self
    parent._commands.append(self)


class Command:
    """
    One node of a command tree.

    Fields (read-only)
    - name: identifier matched against arguments and shown in help.
    - usage: one or more usage forms, one per line (the leading command name is
      optional: it is stripped when help is synthesized).
    - help: free text; its first line is the synopsis.
    - aliases: extra names this command answers to under its parent.
    - set_flags: None or a callable (context, flags) declaring flags.
    - init: None or a callable (context) run before resolving subcommands.
    - run: None or a callable (context, args) run with the free arguments.
    - commands: children, in declaration order.

    Defaults
    - name: the function name for decorated commands, basename(sys.argv[0])
      otherwise.
    - help: the docstring of a decorated function.

    Raises
    - TypeError on wrong field types, ValueError on an empty name or a name
      clashing with a sibling.
    """
    __introspectable__ = ("name", "usage", "help", "aliases", "set_flags", "init", "run", "commands")
    __displayable__ = ("name", "usage", "help", "aliases", "commands")

    name = mirror("name")
    usage = mirror("usage")
    help = mirror("help")
    aliases = mirror("aliases")
    set_flags = mirror("set_flags")
    init = mirror("init")
    run = mirror("run")
    commands = mirror("commands")

    def __init__(
        self,
        name=Unset,
        /,
        usage=Unset,
        help=Unset,
        *,
        set_flags=Unset,
        init=Unset,
        run=Unset,
        commands=(),
        aliases=(),
    ):
        if name is Unset:
            name = os.path.basename(sys.argv[0]) or "command"
        self._name = _sanitize_name(name)

        if not isinstance(usage, str | Unset | None):
            raise TypeError("command 'usage' must be a string")
        self._usage = coalesce(usage, None) or ""

        if not isinstance(help, str | Unset | None):
            raise TypeError("command 'help' must be a string")
        self._help = coalesce(help, None) or ""

        self._set_flags = _sanitize_hook(set_flags, "set_flags")
        self._init = _sanitize_hook(init, "init")
        self._run = _sanitize_hook(run, "run")

        if isinstance(aliases, str) or not isinstance(aliases, Iterable):
            raise TypeError("command 'aliases' must be an iterable of strings")
        self._aliases = tuple(_sanitize_name(alias, "alias") for alias in aliases)
        if self._name in self._aliases or len(set(self._aliases)) != len(self._aliases):
            raise ValueError(f"command {self._name!r} has repeated aliases")

        self._commands = []
        self._index = {}
        if isinstance(commands, str) or not isinstance(commands, Iterable):
            raise TypeError("command 'commands' must be an iterable of commands")
        for child in commands:
            if not isinstance(child, Command):
                raise TypeError("command 'commands' must be an iterable of commands")
            _attach_to_parent(child, self)

    def __repr__(self):
        return "command(%s)" % ", ".join("%s=%r" % item for item in self.__rich_repr__())

    def __rich_repr__(self):
        for name in self.__displayable__:
            yield name, getattr(self, name)

    def find(self, token, /):
        """
        Return the child named (or aliased) token, or None.
        """
        return self._index.get(token)

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Create or attach a subcommand under this command.

        Modes
        - self.command(child): attach an existing Command.
        - self.command(func, ...): wrap func as the run action of a new child.
        - @self.command(...): decorator form of the above.

        Returns the attached child (or a decorator returning it).
        """
        if isinstance(source, Command):
            if args or kwargs:
                raise TypeError("command() does not accept options with an existing command")
            _attach_to_parent(source, self)
            return source

        @rename("command")
        def wrapper(source, /):
            _attach_to_parent(child := command(source, *args, **kwargs), self)
            return child

        return wrapper(source) if source is not Unset else wrapper

    def help_info(self, include_children=False, context=None):
        """
        Synthesize the HelpInfo of this command (see arbor.help.synthesize).
        """
        return synthesize(self, include_children, context)

    def new_context(self, config=None, log=None):
        """
        Return a root Context for dispatching into this command.
        """
        return Context(self, config=config, log=log)

    def __invoke__(self, prompt=Unset, /, config=None, log=None):
        """
        Dispatch a token stream through this command.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split with shlex.split.
          • Iterable[str]: pre-tokenized arguments, passed as they are.
        - config, log: forwarded to the root context.

        Returns whatever the selected run action returns.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        return dispatch(self.new_context(config, log), tokens)


class Context:
    """
    Per-invocation environment threaded through dispatch.

    Fields
    - command: the node currently executing.
    - parent: the node above it (None at the root).
    - name: the word used to reach this node (an alias, possibly).
    - help: True once a "help" token has been consumed on the way down.
    - config: opaque payload shared by every level (set up by initializers).
    - log: diagnostic sink, any object with write(str); None means sys.stderr.
    - flags: the node's parsed FlagSet, or None when it declares no flags.
    - outer: the context of the level above (None at the root).

    A child context is derived with copy.replace(); the parent context is
    never changed afterwards. Contexts are writers: context.write(text) goes
    to the sink.
    """
    __introspectable__ = ("command", "parent", "name", "help", "config", "log", "flags", "outer")

    def __init__(self, command, /, parent=None, name=Unset, help=False, config=None, log=None, flags=None, outer=None):
        if not isinstance(command, Command):
            raise TypeError("context 'command' must be a command")
        if parent is not None and not isinstance(parent, Command):
            raise TypeError("context 'parent' must be a command")
        if log is not None and not callable(getattr(log, "write", None)):
            raise TypeError("context 'log' must be a writable object")
        if outer is not None and not isinstance(outer, Context):
            raise TypeError("context 'outer' must be a context")
        self.command = command
        self.parent = parent
        self.name = coalesce(name, command.name)
        self.help = bool(help)
        self.config = config
        self.log = log
        self.flags = flags
        self.outer = outer

    def __repr__(self):
        return "context(%s)" % ", ".join("%s=%r" % item for item in self.__rich_repr__())

    def __rich_repr__(self):
        yield "command", self.command.name
        yield "parent", self.parent.name if self.parent else None
        yield "name", self.name
        yield "help", self.help

    def __replace__(self, **overrides):
        fields = {name: getattr(self, name) for name in self.__introspectable__} | overrides
        return type(self)(fields.pop("command"), **fields)

    @property
    def output(self):
        """
        The resolved diagnostic sink (sys.stderr when log is None).
        """
        return sys.stderr if self.log is None else self.log

    def write(self, data, /):
        return self.output.write(data)

    def flush(self):
        if callable(flush := getattr(self.output, "flush", None)):
            flush()


def _parse_flags(context, args):
    """
    Declare and parse the flags of context.command; return the free arguments.
    """
    command = context.command
    context.flags = flags = flagset(command.name)
    command.set_flags(context, flags)
    try:
        return flags.parse(args)
    except HelpRequested:
        command.help_info(context=context).write_synopsis(context.log)
        raise UsageError("help requested") from None


def _initialize(context):
    """
    Run the initializer of context.command, wrapping its failures.
    """
    try:
        context.command.init(context)
    except UsageError:
        raise
    except Exception as exception:
        raise InitializationError(
            "initializing %r: %s" % (context.name, exception),
            code=FaultCode.INITIALIZATION,
            title="initialization failed",
            prog=context.name,
            command=context.command.name,
        ) from exception


def dispatch(context, args, /):
    """
    Dispatch args through the tree, starting at context.command.

    Returns
    - the value returned by the selected run action.

    Raises
    - UsageError: help, synopsis or usage text was written to the sink.
    - FlagError (and subclasses): a flag could not be parsed.
    - InitializationError: an initializer failed (original as __cause__).
    - anything raised by the run action, untouched.
    """
    if not isinstance(context, Context):
        raise TypeError("dispatch() first argument must be a context")
    if isinstance(args, str) or not isinstance(args, Iterable):
        raise TypeError("dispatch() second argument must be an iterable of strings")

    command = context.command
    args = list(args)

    if command.set_flags is not None:
        args = _parse_flags(context, args)

    if command.init is not None:
        _initialize(context)

    while args:
        if (child := command.find(args[0])) is not None:
            return dispatch(copy.replace(context, command=child, parent=command, name=args[0], flags=None, outer=context), args[1:])
        if args[0] == "help" and (len(args) > 1 or command.run is None):
            context.help = True
            del args[0]
            continue
        if command.run is None and not context.help:
            trigger(
                UnknownCommandWarning(f'command "{args[0]}" not understood'),
                code=FaultCode.UNKNOWN_COMMAND,
                title="unknown command",
                hint=f"run '{context.name} help' to list the available commands",
                prog=context.name,
                file=context.log,
            )
        break

    if context.help:
        command.help_info(True, context).write_long(context.log)
        raise UsageError("help requested")

    if command.run is None:
        command.help_info(context=context).write_usage(context.log)
        raise UsageError("no command to run")

    if args == ["help"]:
        trigger(
            LiteralHelpWarning("'help' will be treated as a literal argument"),
            code=FaultCode.LITERAL_HELP,
            title="literal help",
            hint=f"use '{context.name} -help' to show the help of this command",
            prog=context.name,
            file=context.log,
        )

    return command.run(context, args)


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command from a run action, or return a decorator that will.

    Invocation modes
    - Direct:    cmd = command(func, "name", usage="...")
    - Decorator: @command(usage="...")
                 def name(context, args): ...

    The function becomes the run action; name defaults to its __name__ and
    help to its docstring. Remaining arguments go to Command(...).
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source) or isinstance(source, Command):
            raise TypeError("@command() must be applied to a callable")
        options = dict(zip(("name", "usage", "help"), args)) | kwargs
        return Command(
            coalesce(options.pop("name", Unset), source.__name__),
            options.pop("usage", Unset),
            coalesce(options.pop("help", Unset), inspect.getdoc(source) or ""),
            run=source,
            **options,
        )

    if len(args) > 3:
        raise TypeError("command() takes at most 4 positional arguments (%d given)" % (len(args) + 1))
    return wrapper(source) if source is not Unset else wrapper


def invoke(command, prompt=Unset, /, config=None, log=None):
    """
    Convenience runner: dispatch prompt through command (see Command.__invoke__).
    """
    if hasattr(command, "__invoke__") and callable(command.__invoke__):
        return command.__invoke__(prompt, config=config, log=log)
    raise TypeError("invoke() first argument must implement __invoke__ method")


def fail_with_usage(context, args, /):
    """
    Run action that writes the usage block and raises UsageError.
    """
    context.command.help_info(context=context).write_usage(context.log)
    raise UsageError("usage requested")


def run_short_help(context, args, /):
    """
    Run action that writes synopsis help and raises UsageError.
    """
    context.command.help_info(context=context).write_synopsis(context.log)
    raise UsageError("help requested")


def run_long_help(context, args, /):
    """
    Run action that writes long help (with subcommands) and raises UsageError.
    """
    context.command.help_info(True, context).write_long(context.log)
    raise UsageError("help requested")


def run_help(context, args, /, topics=()):
    """
    Run action of the help command.

    Behavior
    - no arguments: long help of the parent under the name it was invoked by
      (an alias included), listing topics as well.
    - "a b ...": walks the parent's subcommands (or, for the first word, the
      topics) and writes the long help of the node found.
    - unknown words: writes "unknown help topic 'a b'" to the sink.
    Always raises UsageError.
    """
    target = context.parent or context.command
    if (outer := context.outer) is not None and outer.command is target:
        base = outer
    else:
        base = copy.replace(context, command=target, parent=None, name=target.name, flags=None, outer=None)

    if not args:
        info = target.help_info(True, base)
        copy.replace(info, topics=[synthesize(topic, declare=False) for topic in topics]).write_long(context.log)
        raise UsageError("help requested")

    node = target.find(args[0])
    if node is None:
        node = next((topic for topic in topics if topic.name == args[0]), None)
    depth = 1
    while node is not None and depth < len(args):
        node = node.find(args[depth])
        depth += 1

    if node is None:
        trigger(
            UnknownTopicWarning("unknown help topic %r" % " ".join(args[:depth])),
            code=FaultCode.UNKNOWN_TOPIC,
            title="unknown help topic",
            hint=f"run '{context.name}' to list the available topics",
            prog=context.name,
            file=context.log,
        )
    else:
        synthesize(node, True, base, name=" ".join(args)).write_long(context.log)
    raise UsageError("help requested")


def help_command(topics=(), /):
    """
    Return a "help" command for attaching under any node.

    topics are Commands carrying just a name and help text; they are listed by
    "help" with no arguments and shown by "help <topic>".
    """
    if isinstance(topics, Command) or not isinstance(topics, Iterable):
        raise TypeError("help_command() argument must be an iterable of commands")
    topics = tuple(topics)
    if not all(isinstance(topic, Command) for topic in topics):
        raise TypeError("help_command() argument must be an iterable of commands")

    @rename("run_help")
    def run(context, args):
        return run_help(context, args, topics)

    return Command(
        "help",
        usage="[topic/command ...]",
        help="Print help for the specified command or topic.",
        run=run,
    )


__all__ = (
    "Command",
    "Context",
    "dispatch",
    "command",
    "invoke",
    "fail_with_usage",
    "run_short_help",
    "run_long_help",
    "run_help",
    "help_command",
)
