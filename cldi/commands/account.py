"""Local account management: create, select, import, export and delete keys."""

from __future__ import annotations

import argparse
import logging

from ..command import CommandNode, DelegateHandler
from ..context import Context
from ..errors import WalletError
from ..util import parse_data
from ..wallet import Wallet
from . import print_json

logger = logging.getLogger(__name__)


def _wallet(ctx: Context) -> Wallet:
    if ctx.wallet is None:
        raise WalletError("no wallet is configured for this session")
    return ctx.wallet


def cmd_create(args: argparse.Namespace, ctx: Context) -> None:
    address = _wallet(ctx).create_account(args.name)
    print(address.to_hex())


def cmd_login(args: argparse.Namespace, ctx: Context) -> None:
    wallet = _wallet(ctx)
    address = wallet.set_default_user(args.name)
    ctx.set_account(args.name, wallet.load_account(args.name))
    print(f"login as `{args.name}` ({address.to_hex()})")


def cmd_import(args: argparse.Namespace, ctx: Context) -> None:
    address = _wallet(ctx).import_account(args.name, args.public_key, args.private_key)
    print(address.to_hex())


def cmd_export(args: argparse.Namespace, ctx: Context) -> None:
    exported = _wallet(ctx).export_account(args.name)
    if exported is None:
        raise WalletError(f"user `{args.name}` has no account")
    print_json(exported)


def cmd_delete(args: argparse.Namespace, ctx: Context) -> None:
    wallet = _wallet(ctx)
    if not wallet.delete_account(args.name):
        raise WalletError(f"user `{args.name}` has no account")
    if ctx.user == args.name:
        ctx.set_account(None, None)
    logger.info("Deleted account of user %s", args.name)


def cmd_list(_args: argparse.Namespace, ctx: Context) -> None:
    wallet = _wallet(ctx)
    default_user = wallet.default_user()
    for user in wallet.list_account():
        marker = "*" if user == default_user else " "
        print(f"{marker} {user}")


def account_cmd() -> CommandNode:
    return (
        CommandNode("account")
        .about("Account commands; lists the stored accounts when given no subcommand")
        .handler(DelegateHandler(fallback=cmd_list))
        .subcommands(
            [
                CommandNode("create")
                .about("Create an account")
                .arg("name", metavar="user", help="the user name of the new account")
                .handler(cmd_create),
                CommandNode("login")
                .about("Make an account the default one")
                .arg("name", metavar="user")
                .handler(cmd_login),
                CommandNode("import")
                .about("Import an account from its key pair")
                .arg("name", metavar="user")
                .arg("--pk", dest="public_key", type=parse_data, required=True, help="the public key")
                .arg("--sk", dest="private_key", type=parse_data, required=True, help="the private key")
                .handler(cmd_import),
                CommandNode("export")
                .about("Export an account, private key included")
                .arg("name", metavar="user")
                .handler(cmd_export),
                CommandNode("delete")
                .about("Delete an account")
                .arg("name", metavar="user")
                .handler(cmd_delete),
                CommandNode("list").about("List stored accounts").handler(cmd_list),
            ]
        )
    )
