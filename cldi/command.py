"""Recursive command tree and dispatcher.

A :class:`CommandNode` couples an argparse grammar fragment with a handler
and a map of named children. The tree is assembled once with the fluent
builder methods and then executed against parsed arguments::

    root = (
        CommandNode("cldi")
        .arg("-u", "--user")
        .handler(DelegateHandler(prepare=apply_overrides))
        .subcommands([block_number_cmd(), account_cmd()])
    )
    root.exec(context)

Dispatch walks the invoked path from the root: each node runs its handler,
and the default :class:`DelegateHandler` then descends into the matched
child. A :class:`TerminalHandler` ends the walk. Handler failures are wrapped
in :class:`~cldi.errors.CommandError` naming the command, and every ancestor
adds its own layer on the way up; nothing is recovered along the way.

The argparse parser is generated from the tree on demand, so the grammar and
the child map can never disagree, and renames touch a single place.
"""

from __future__ import annotations

import argparse
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import CommandConfigError, CommandError, DispatchError

logger = logging.getLogger(__name__)

HandlerFn = Callable[[argparse.Namespace, Any], None]

_SUBCOMMAND_DEST = "_cldi_subcommand_{depth}"


def subcommand_dest(depth: int) -> str:
    """Namespace attribute holding the child invoked at ``depth``."""

    return _SUBCOMMAND_DEST.format(depth=depth)


@dataclass
class Invocation:
    """A node being executed against one parsed command line."""

    node: "CommandNode"
    args: argparse.Namespace
    depth: int

    @property
    def subcommand(self) -> Optional[str]:
        return getattr(self.args, subcommand_dest(self.depth), None)

    def delegate(self, context: Any) -> bool:
        """Execute the invoked child, if any. Returns whether one ran."""

        name = self.subcommand
        if name is None:
            return False
        child = self.node.get_subcommand(name)
        if child is None:
            raise DispatchError(f"no subcommand handler for `{name}`")
        child.exec_with(self.args, context, depth=self.depth + 1)
        return True


class Handler(ABC):
    """What a node does when it is reached during dispatch."""

    @abstractmethod
    def run(self, invocation: Invocation, context: Any) -> None: ...


class TerminalHandler(Handler):
    """Run ``fn(args, context)`` and stop; children of the node are not visited."""

    def __init__(self, fn: HandlerFn) -> None:
        self.fn = fn

    def run(self, invocation: Invocation, context: Any) -> None:
        self.fn(invocation.args, context)

    def __repr__(self) -> str:
        return f"TerminalHandler({getattr(self.fn, '__name__', self.fn)!r})"


class DelegateHandler(Handler):
    """Optionally prepare the context, then descend into the invoked child.

    ``fallback`` runs when the command line names no child.
    """

    def __init__(self, prepare: HandlerFn | None = None, fallback: HandlerFn | None = None) -> None:
        self.prepare = prepare
        self.fallback = fallback

    def run(self, invocation: Invocation, context: Any) -> None:
        if self.prepare is not None:
            self.prepare(invocation.args, context)
        if not invocation.delegate(context) and self.fallback is not None:
            self.fallback(invocation.args, context)

    def __repr__(self) -> str:
        return f"DelegateHandler(prepare={self.prepare!r}, fallback={self.fallback!r})"


class CommandNode:
    """A named command with its arguments, handler and subcommands."""

    def __init__(self, name: str) -> None:
        if not name or name.startswith("-"):
            raise CommandConfigError(f"invalid command name: {name!r}")
        self._name = name
        self._about: str | None = None
        self._args: List[Tuple[Tuple[Any, ...], Dict[str, Any]]] = []
        self._handler: Handler = DelegateHandler()
        self._children: Dict[str, CommandNode] = {}

    # Builder -------------------------------------------------------------

    def about(self, text: str) -> "CommandNode":
        self._about = text
        return self

    def arg(self, *flags: str, **kwargs: Any) -> "CommandNode":
        """Declare an argument using :meth:`argparse.ArgumentParser.add_argument` syntax."""

        self._args.append((flags, kwargs))
        return self

    def handler(self, handler: Union[Handler, HandlerFn]) -> "CommandNode":
        """Attach a handler; plain callables become :class:`TerminalHandler`."""

        self._handler = handler if isinstance(handler, Handler) else TerminalHandler(handler)
        return self

    def subcommand(self, child: "CommandNode") -> "CommandNode":
        if child.name in self._children:
            raise CommandConfigError(
                f"command `{self._name}` already has a subcommand named `{child.name}`"
            )
        self._children[child.name] = child
        return self

    def subcommands(self, children: Iterable["CommandNode"]) -> "CommandNode":
        for child in children:
            self.subcommand(child)
        return self

    def rename_subcommand(self, old: str, new: str) -> "CommandNode":
        """Rename a child in place, keeping its position among siblings."""

        if old not in self._children:
            raise CommandConfigError(f"command `{self._name}` has no subcommand `{old}` (not found)")
        if new == old:
            return self
        if new in self._children:
            raise CommandConfigError(
                f"command `{self._name}` already has a subcommand named `{new}`"
            )
        child = self._children[old]
        renamed = {(new if key == old else key): value for key, value in self._children.items()}
        child._name = new
        self._children = renamed
        return self

    # Introspection -------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str | None:
        return self._about

    @property
    def children(self) -> Mapping[str, "CommandNode"]:
        return MappingProxyType(self._children)

    def get_subcommand(self, name: str) -> Optional["CommandNode"]:
        return self._children.get(name)

    def get_handler(self) -> Handler:
        return self._handler

    def walk(self, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], "CommandNode"]]:
        """Yield ``(path, node)`` depth-first, starting with this node."""

        path = prefix + (self._name,)
        yield path, self
        for child in self._children.values():
            yield from child.walk(path)

    def option_strings(self) -> List[str]:
        return [flag for flags, _ in self._args for flag in flags if flag.startswith("-")]

    # Grammar -------------------------------------------------------------

    def build_parser(
        self, parser: argparse.ArgumentParser | None = None, *, depth: int = 0
    ) -> argparse.ArgumentParser:
        """Generate the argparse grammar for this subtree."""

        if parser is None:
            parser = argparse.ArgumentParser(prog=self._name, description=self._about)
        for flags, kwargs in self._args:
            parser.add_argument(*flags, **kwargs)
        if self._children:
            subparsers = parser.add_subparsers(
                dest=subcommand_dest(depth), metavar="<command>"
            )
            for child in self._children.values():
                child_parser = subparsers.add_parser(
                    child.name, help=child.description, description=child.description
                )
                child.build_parser(child_parser, depth=depth + 1)
        return parser

    # Execution -----------------------------------------------------------

    def exec(self, context: Any, argv: Sequence[str] | None = None) -> None:
        """Parse ``argv`` (default: process arguments) and dispatch."""

        args = self.build_parser().parse_args(argv)
        self.exec_with(args, context)

    def exec_with(self, args: argparse.Namespace, context: Any, *, depth: int = 0) -> None:
        logger.debug("Dispatching command `%s` (depth %d)", self._name, depth)
        try:
            self._handler.run(Invocation(self, args, depth), context)
        except CommandError as exc:
            if exc.command == self._name:
                raise
            raise CommandError(self._name, f"failed to exec subcommand `{exc.command}`") from exc
        except DispatchError:
            raise
        except Exception as exc:
            raise CommandError(self._name) from exc

    def __repr__(self) -> str:
        return f"CommandNode({self._name!r}, children={list(self._children)})"


def build(name: str) -> CommandNode:
    """Start a new leaf command."""

    return CommandNode(name)
