"""Interactive console: every line is dispatched through the same command tree."""

from __future__ import annotations

import logging
import shlex
import sys
from typing import Callable

from . import cli
from .command import CommandNode, subcommand_dest
from .context import Context
from .errors import CliError

logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit"}


def _prompt(context: Context) -> str:
    if context.account is not None:
        return f"cldi({context.user})> "
    return "cldi> "


def run_console(
    root: CommandNode,
    context: Context,
    *,
    read_line: Callable[[str], str] = input,
) -> None:
    """Read commands until EOF or ``exit``; failures are reported and the loop goes on."""

    parser = root.build_parser()
    print("cita-cloud console; type `-h` for help, `exit` to leave")
    while True:
        try:
            line = read_line(_prompt(context)).strip()
        except EOFError:
            print()
            return
        except KeyboardInterrupt:
            print()
            continue

        if not line:
            continue
        if line in EXIT_WORDS:
            return

        try:
            argv = shlex.split(line)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            continue

        try:
            args = parser.parse_args(argv)
        except SystemExit:
            # argparse has already printed usage or help
            continue

        try:
            if getattr(args, subcommand_dest(0), None) is None:
                # flags only: apply them without nesting another console
                cli.apply_global_flags(args, context)
            else:
                root.exec_with(args, context)
        except CliError as exc:
            logger.debug("Console command failed", exc_info=True)
            print(f"error: {cli.describe_error(exc)}", file=sys.stderr)
