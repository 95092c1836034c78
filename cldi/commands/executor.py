"""Commands backed by the executor service."""

from __future__ import annotations

import argparse
from typing import List

from ..command import CommandNode
from ..context import Context
from ..util import parse_addr, parse_data


def cmd_call(args: argparse.Namespace, ctx: Context) -> None:
    if args.from_ is not None:
        from_ = args.from_
    elif ctx.account is not None:
        from_ = ctx.account.address
    else:
        from_ = bytes(20)
    result = ctx.runtime.block_on(ctx.executor.call, from_, args.to, args.data)
    print("0x" + result.hex())


def executor_cmds() -> List[CommandNode]:
    return [
        CommandNode("call")
        .about("Executor call (read-only, nothing is sent to the chain)")
        .arg("to", type=parse_addr, help="the target contract address")
        .arg("data", type=parse_data, nargs="?", default=b"", help="the data of this call request")
        .arg(
            "-f",
            "--from",
            dest="from_",
            type=parse_addr,
            default=None,
            help="the caller address; defaults to the current account",
        )
        .handler(cmd_call)
    ]
