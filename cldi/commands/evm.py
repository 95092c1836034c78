"""Commands backed by the EVM service, plus the two contract-writing sends."""

from __future__ import annotations

import argparse
from typing import List

from ..command import CommandNode
from ..context import Context
from ..sender import ABI_ADDRESS, store_abi_data
from ..util import parse_addr, parse_data, parse_hash, parse_value
from . import print_json, send_and_print, with_tx_options


def cmd_create(args: argparse.Namespace, ctx: Context) -> None:
    # an empty `to` deploys the data as contract code
    send_and_print(args, ctx, b"", args.data, args.value)


def cmd_store_abi(args: argparse.Namespace, ctx: Context) -> None:
    send_and_print(args, ctx, ABI_ADDRESS, store_abi_data(args.address, args.abi), bytes(32))


def cmd_get_receipt(args: argparse.Namespace, ctx: Context) -> None:
    receipt = ctx.runtime.block_on(ctx.evm.get_receipt, args.tx_hash)
    print_json(receipt.to_json())


def cmd_get_code(args: argparse.Namespace, ctx: Context) -> None:
    print("0x" + ctx.runtime.block_on(ctx.evm.get_code, args.address).hex())


def cmd_get_balance(args: argparse.Namespace, ctx: Context) -> None:
    balance = ctx.runtime.block_on(ctx.evm.get_balance, args.address)
    print(int.from_bytes(balance, "big"))


def cmd_get_account_nonce(args: argparse.Namespace, ctx: Context) -> None:
    nonce = ctx.runtime.block_on(ctx.evm.get_tx_count, args.address)
    print(int.from_bytes(nonce, "big"))


def cmd_get_contract_abi(args: argparse.Namespace, ctx: Context) -> None:
    abi = ctx.runtime.block_on(ctx.evm.get_abi, args.address)
    print(abi.decode("utf-8", errors="replace"))


def evm_cmds() -> List[CommandNode]:
    return [
        with_tx_options(
            CommandNode("create")
            .about("Create an EVM contract")
            .arg("data", type=parse_data, help="the contract creation bytecode")
            .arg("-v", "--value", type=parse_value, default=bytes(32), help="the value sent with the creation")
        ).handler(cmd_create),
        CommandNode("get-receipt")
        .about("Get EVM execution receipt by tx hash")
        .arg("tx_hash", type=parse_hash)
        .handler(cmd_get_receipt),
        CommandNode("get-code").about("Get code by contract address").arg("address", type=parse_addr).handler(cmd_get_code),
        CommandNode("get-balance")
        .about("Get balance by account address")
        .arg("address", type=parse_addr)
        .handler(cmd_get_balance),
        CommandNode("get-account-nonce")
        .about("Get the nonce of an account")
        .arg("address", type=parse_addr)
        .handler(cmd_get_account_nonce),
        CommandNode("get-contract-abi")
        .about("Get the ABI stored for a contract")
        .arg("address", type=parse_addr)
        .handler(cmd_get_contract_abi),
        with_tx_options(
            CommandNode("store-contract-abi")
            .about("Store the ABI of a contract on chain")
            .arg("address", type=parse_addr, help="the contract address")
            .arg("abi", help="the ABI JSON text")
        ).handler(cmd_store_abi),
    ]
