"""Commands backed by the controller service."""

from __future__ import annotations

import argparse
import logging
from typing import List, Union

from ..bench import BlockProgress, run_bench
from ..command import CommandNode
from ..context import Context
from ..sender import DEFAULT_QUOTA
from ..util import (
    parse_addr,
    parse_data,
    parse_hash,
    parse_positive_float,
    parse_u64,
    parse_value,
)
from . import print_json, send_and_print, with_tx_options

logger = logging.getLogger(__name__)


def cmd_send(args: argparse.Namespace, ctx: Context) -> None:
    send_and_print(args, ctx, args.to, args.data, args.value)


def send_cmd() -> CommandNode:
    cmd = (
        CommandNode("send")
        .about("Send a transaction")
        .arg("to", type=parse_addr, help="the target address of this tx")
        .arg("data", type=parse_data, nargs="?", default=b"", help="the data of this tx")
        .arg("-v", "--value", type=parse_value, default=bytes(32), help="the value of this tx")
    )
    return with_tx_options(cmd).handler(cmd_send)


def cmd_block_number(args: argparse.Namespace, ctx: Context) -> None:
    print(ctx.runtime.block_on(ctx.controller.get_block_number, args.for_pending))


def parse_height_or_hash(raw: str) -> Union[int, bytes]:
    return parse_hash(raw) if raw.startswith(("0x", "0X")) else parse_u64(raw)


def cmd_block_at(args: argparse.Namespace, ctx: Context) -> None:
    if isinstance(args.target, int):
        block = ctx.runtime.block_on(ctx.controller.get_block_by_number, args.target)
    else:
        block = ctx.runtime.block_on(ctx.controller.get_block_by_hash, args.target)
    print_json(block.to_json())


def block_at_cmd() -> CommandNode:
    return (
        CommandNode("block-at")
        .about("Get block by height or hash (0x)")
        .arg("target", type=parse_height_or_hash, help="block height, or 0x-prefixed block hash")
        .handler(cmd_block_at)
    )


def cmd_block_hash(args: argparse.Namespace, ctx: Context) -> None:
    print(ctx.runtime.block_on(ctx.controller.get_block_hash, args.height).to_hex())


def cmd_get_tx(args: argparse.Namespace, ctx: Context) -> None:
    tx = ctx.runtime.block_on(ctx.controller.get_tx, args.tx_hash)
    print_json(tx.to_json())


def cmd_get_tx_index(args: argparse.Namespace, ctx: Context) -> None:
    print(ctx.runtime.block_on(ctx.controller.get_tx_index, args.tx_hash))


def cmd_get_tx_block_number(args: argparse.Namespace, ctx: Context) -> None:
    print(ctx.runtime.block_on(ctx.controller.get_tx_block_number, args.tx_hash))


def cmd_peer_count(_args: argparse.Namespace, ctx: Context) -> None:
    print(ctx.runtime.block_on(ctx.controller.get_peer_count))


def cmd_peers_info(_args: argparse.Namespace, ctx: Context) -> None:
    nodes = ctx.runtime.block_on(ctx.controller.get_peers_info)
    print_json([node.to_json() for node in nodes])


def cmd_system_config(_args: argparse.Namespace, ctx: Context) -> None:
    print_json(ctx.runtime.block_on(ctx.controller.get_system_config).to_json())


def cmd_add_node(args: argparse.Namespace, ctx: Context) -> None:
    code = ctx.runtime.block_on(ctx.controller.add_node, args.multi_address)
    print(code)


def _print_block_progress(progress: BlockProgress) -> None:
    minutes, seconds = divmod(progress.elapsed_seconds, 60)
    print(
        f"{minutes:0>2}:{seconds:0>2} block `{progress.height}` contains `{progress.tx_count}` txs, "
        f"finalized: `{progress.finalized}`"
    )


def cmd_bench(args: argparse.Namespace, ctx: Context) -> None:
    signer = ctx.current_account()
    logger.info("Benchmarking %d txs as %s", args.count, signer.address.to_hex())
    settings = ctx.settings
    interval = args.interval or (settings.bench_interval if settings is not None else 1.0)
    timeout = args.timeout or (settings.bench_timeout if settings is not None else None)
    report = run_bench(
        ctx.controller,
        signer,
        ctx.runtime,
        args.count,
        quota=args.quota,
        interval=interval,
        timeout=timeout,
        on_block=_print_block_progress,
    )
    print(f"sending {len(report.tx_hashes)} txs done, finalized: `{report.finalized}`")


def bench_cmd() -> CommandNode:
    return (
        CommandNode("bench")
        .about("Send multiple txs with random content and track them until they land in blocks")
        .arg("count", type=parse_u64, nargs="?", default=10, help="how many txs to send (default: %(default)s)")
        .arg("-q", "--quota", type=parse_u64, default=DEFAULT_QUOTA, help="the quota of each tx")
        .arg("--interval", type=parse_positive_float, default=None, help="block polling interval in seconds")
        .arg("--timeout", type=parse_positive_float, default=None, help="give up tracking after this many seconds")
        .handler(cmd_bench)
    )


def controller_cmds() -> List[CommandNode]:
    return [
        send_cmd(),
        CommandNode("block-number")
        .about("Get block number")
        .arg("-p", "--for-pending", action="store_true", help="get the block number of pending block")
        .handler(cmd_block_number),
        block_at_cmd(),
        CommandNode("block-hash")
        .about("Get block hash by block height")
        .arg("height", type=parse_u64)
        .handler(cmd_block_hash),
        CommandNode("get-tx").about("Get tx by hash").arg("tx_hash", type=parse_hash).handler(cmd_get_tx),
        CommandNode("get-tx-index")
        .about("Get tx's index by hash")
        .arg("tx_hash", type=parse_hash)
        .handler(cmd_get_tx_index),
        CommandNode("get-tx-block-number")
        .about("Get tx's block number by hash")
        .arg("tx_hash", type=parse_hash)
        .handler(cmd_get_tx_block_number),
        CommandNode("peer-count").about("Get peer count").handler(cmd_peer_count),
        CommandNode("peers-info").about("Get peers info").handler(cmd_peers_info),
        CommandNode("system-config").about("Get system config").handler(cmd_system_config),
        CommandNode("add-node")
        .about("Call add-node rpc")
        .arg("multi_address", help="the multi-address of the node, e.g. /dns4/127.0.0.1/tcp/40001")
        .handler(cmd_add_node),
        bench_cmd(),
    ]

