"""System-configuration changes, submitted as UTXO transactions by the admin account."""

from __future__ import annotations

import argparse
import logging

from ..command import CommandNode, DelegateHandler
from ..context import Context
from ..errors import DispatchError
from ..model import UtxoType
from ..sender import (
    admin_output,
    block_interval_output,
    emergency_brake_output,
    send_utxo,
    validators_output,
)
from ..util import parse_addr, parse_on_off, parse_u32

logger = logging.getLogger(__name__)


def _send_utxo(ctx: Context, output: bytes, utxo_type: UtxoType) -> None:
    signer = ctx.current_account()
    tx_hash = ctx.runtime.block_on(send_utxo, ctx.controller, signer, output, utxo_type)
    print(tx_hash.to_hex())


def cmd_set_admin(args: argparse.Namespace, ctx: Context) -> None:
    _send_utxo(ctx, admin_output(args.admin), UtxoType.ADMIN)


def cmd_set_block_interval(args: argparse.Namespace, ctx: Context) -> None:
    _send_utxo(ctx, block_interval_output(args.block_interval), UtxoType.BLOCK_INTERVAL)


def cmd_update_validators(args: argparse.Namespace, ctx: Context) -> None:
    logger.debug("Updating validators to %d entries", len(args.validators))
    _send_utxo(ctx, validators_output(args.validators), UtxoType.VALIDATORS)


def cmd_emergency_brake(args: argparse.Namespace, ctx: Context) -> None:
    _send_utxo(ctx, emergency_brake_output(args.switch), UtxoType.EMERGENCY_BRAKE)


def _missing_subcommand(_args: argparse.Namespace, _ctx: Context) -> None:
    raise DispatchError("`admin` needs a subcommand; see `admin -h`")


def admin_cmd() -> CommandNode:
    return (
        CommandNode("admin")
        .about("The admin commands for managing chain")
        .handler(DelegateHandler(fallback=_missing_subcommand))
        .subcommands(
            [
                CommandNode("set-admin")
                .about("Set admin")
                .arg("admin", type=parse_addr, help="the address of the new admin")
                .handler(cmd_set_admin),
                CommandNode("set-block-interval")
                .about("Set block interval")
                .arg("block_interval", type=parse_u32, help="new block interval in seconds")
                .handler(cmd_set_block_interval),
                CommandNode("update-validators")
                .about("Update validators")
                .arg("validators", type=parse_addr, nargs="+", help="validator addresses")
                .handler(cmd_update_validators),
                CommandNode("emergency-brake")
                .about("Send emergency brake cmd to chain")
                .arg("switch", type=parse_on_off, metavar="on|off", help="turn the brake on or off")
                .handler(cmd_emergency_brake),
            ]
        )
    )
