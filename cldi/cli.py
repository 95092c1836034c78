"""Command line interface for the cita-cloud chain."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Sequence

import requests

from .command import CommandNode, DelegateHandler
from .commands import all_commands
from .commands.completions import completions_cmd
from .config import Settings, load_settings
from .context import Context, Runtime
from .crypto import CRYPTO_PROVIDERS, get_crypto
from .errors import CliError, RPCError, format_error_chain
from .rpc_client import ControllerClient, EvmClient, ExecutorClient, JsonRpcTransport, format_rpc_hint
from .wallet import Wallet

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

GLOBAL_FLAG_DESTS = ("user", "controller_addr", "executor_addr", "evm_addr", "crypto", "data_dir")


def global_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {dest: getattr(args, dest, None) for dest in GLOBAL_FLAG_DESTS}


def describe_error(exc: BaseException) -> str:
    """Render an error chain, followed by a hint when a node rejection is recognised."""

    message = format_error_chain(exc)
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, RPCError):
            hint = format_rpc_hint(current)
            if hint:
                message = f"{message}\nhint: {hint}"
            break
        current = current.__cause__
    return message


def build_context(settings: Settings, runtime: Runtime | None = None) -> Context:
    """Create the clients, wallet and signing account described by ``settings``."""

    crypto = get_crypto(settings.crypto)
    session = requests.Session()

    def transport(endpoint: str, service: str) -> JsonRpcTransport:
        return JsonRpcTransport(endpoint, timeout=settings.rpc_timeout, session=session, service=service)

    wallet = Wallet(settings.data_dir, crypto)
    user = settings.user
    if settings.user_from_default:
        user = wallet.default_user() or user
    account = wallet.load_account(user)
    if account is not None and account.crypto.name != crypto.name:
        logger.warning(
            "Account `%s` holds %s keys but %s is active; signing commands are unavailable",
            user,
            account.crypto.name,
            crypto.name,
        )
        account = None

    context = Context(
        crypto=crypto,
        controller=ControllerClient(crypto, transport(settings.controller_addr, "controller")),
        executor=ExecutorClient(crypto, transport(settings.executor_addr, "executor")),
        evm=EvmClient(crypto, transport(settings.resolved_evm_addr, "evm")),
        runtime=runtime or Runtime(),
        wallet=wallet,
        settings=settings,
    )
    context.set_account(user, account)
    logger.debug(
        "Context ready: user=%s crypto=%s controller=%s executor=%s",
        user,
        crypto.name,
        settings.controller_addr,
        settings.executor_addr,
    )
    return context


def _settings_differ(settings: Settings, overrides: Dict[str, Any]) -> bool:
    for dest, value in overrides.items():
        if dest == "data_dir":
            if Path(value).expanduser() != settings.data_dir:
                return True
        elif dest == "user":
            if settings.user_from_default or value != settings.user:
                return True
        elif getattr(settings, dest) != value:
            return True
    return False


def apply_global_flags(args: argparse.Namespace, context: Context) -> None:
    """Rebuild the context when flags name a different user, node or algorithm.

    ``main`` already honours the flags of its own command line; this matters
    for console lines such as ``-u alice send ...``.
    """

    if getattr(args, "verbose", False):
        logging.getLogger().setLevel(logging.DEBUG)
    overrides = {key: value for key, value in global_overrides(args).items() if value is not None}
    if not overrides or context.settings is None or not _settings_differ(context.settings, overrides):
        return
    fresh = build_context(load_settings(overrides=overrides), runtime=context.runtime)
    context.crypto = fresh.crypto
    context.controller = fresh.controller
    context.executor = fresh.executor
    context.evm = fresh.evm
    context.wallet = fresh.wallet
    context.settings = fresh.settings
    context.set_account(fresh.user, fresh.account)


def build_root() -> CommandNode:
    root = CommandNode("cldi").about("The command line interface to interact with cita-cloud")

    def enter_console(_args: argparse.Namespace, context: Context) -> None:
        from .console import run_console

        run_console(root, context)

    root = (
        root.arg("-u", "--user", help="the user to use; defaults to the one selected by `account login`")
        .arg("-r", "--controller-addr", dest="controller_addr", help="controller address, e.g. localhost:50004")
        .arg("-e", "--executor-addr", dest="executor_addr", help="executor address, e.g. localhost:50002")
        .arg("--evm-addr", dest="evm_addr", help="EVM service address; defaults to the executor address")
        .arg("--crypto", choices=sorted(CRYPTO_PROVIDERS), help="the signing algorithm of the chain")
        .arg("--data-dir", dest="data_dir", help="where accounts and config.yaml live")
        .arg("-v", "--verbose", action="store_true", help="enable debug logging")
        .handler(DelegateHandler(prepare=apply_global_flags, fallback=enter_console))
        .subcommands(all_commands())
    )
    return root.subcommand(completions_cmd(root))


def main(argv: Sequence[str] | None = None) -> None:
    root = build_root()
    parser = root.build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    context: Context | None = None
    try:
        settings = load_settings(overrides=global_overrides(args))
        context = build_context(settings)
        root.exec_with(args, context)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        parser.exit(130)
    except CliError as exc:
        parser.exit(1, f"error: {describe_error(exc)}\n")
    finally:
        if context is not None:
            context.runtime.shutdown()


if __name__ == "__main__":
    main(sys.argv[1:])
