"""Command definitions grouped by the service they talk to."""

from __future__ import annotations

import argparse
import json
from typing import Any, List

from ..command import CommandNode
from ..context import Context
from ..sender import DEFAULT_QUOTA, DEFAULT_VALID_UNTIL, resolve_valid_until_block, send_tx
from ..util import parse_u64, parse_valid_until

COMPACT_JSON_SEPARATORS = (",", ":")


def print_json(data: Any, *, compact: bool = False) -> None:
    if compact:
        print(json.dumps(data, separators=COMPACT_JSON_SEPARATORS))
    else:
        print(json.dumps(data, indent=2))


def resolve_until(context: Context, raw: str) -> int:
    return context.runtime.block_on(resolve_valid_until_block, context.controller, raw)


def with_tx_options(cmd: CommandNode) -> CommandNode:
    """Add the ``--quota`` and ``--until`` flags shared by every signing command."""

    return cmd.arg(
        "-q",
        "--quota",
        type=parse_u64,
        default=DEFAULT_QUOTA,
        help="the quota of this tx (default: %(default)s)",
    ).arg(
        "--until",
        dest="valid_until_block",
        type=parse_valid_until,
        default=DEFAULT_VALID_UNTIL,
        help="this tx is valid until the given block height; `+h` means `current + h` (default: %(default)s)",
    )


def send_and_print(args: argparse.Namespace, context: Context, to: bytes, data: bytes, value: bytes) -> None:
    signer = context.current_account()
    valid_until_block = resolve_until(context, args.valid_until_block)
    tx_hash = context.runtime.block_on(
        send_tx,
        context.controller,
        signer,
        to,
        data,
        value,
        quota=args.quota,
        valid_until_block=valid_until_block,
    )
    print(tx_hash.to_hex())


def all_commands() -> List[CommandNode]:
    """Every top-level command except ``completions``, which needs the finished tree."""

    from .account import account_cmd
    from .admin import admin_cmd
    from .controller import controller_cmds
    from .evm import evm_cmds
    from .executor import executor_cmds

    return [*controller_cmds(), *executor_cmds(), *evm_cmds(), admin_cmd(), account_cmd()]
