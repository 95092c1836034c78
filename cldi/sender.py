"""Build, sign and submit transactions through a controller."""

from __future__ import annotations

import logging
import secrets
import struct
from typing import Iterable

from .account import Account
from .crypto import FixedBytes
from .model import SystemConfig, Transaction, UtxoTransaction, UtxoType
from .rpc_client import ControllerBehaviour
from .signer import sign_raw_tx, sign_raw_utxo

logger = logging.getLogger(__name__)

DEFAULT_QUOTA = 3_000_000
DEFAULT_VALID_UNTIL = "+95"

# Builtin address that stores contract ABIs on the EVM executor.
ABI_ADDRESS = bytes.fromhex("ffffffffffffffffffffffffffffffffff010001")


def random_nonce() -> str:
    return str(secrets.randbits(64))


def resolve_valid_until_block(controller: ControllerBehaviour, until: str | int) -> int:
    """Resolve ``+N`` relative to the current height; plain numbers are absolute."""

    text = str(until).strip()
    if text.startswith("+"):
        return controller.get_block_number(False) + int(text[1:])
    return int(text)


def send_tx(
    controller: ControllerBehaviour,
    signer: Account,
    to: bytes,
    data: bytes,
    value: bytes,
    *,
    quota: int = DEFAULT_QUOTA,
    valid_until_block: int,
    system_config: SystemConfig | None = None,
) -> FixedBytes:
    """Sign a normal transaction with the chain's version and id, then submit it."""

    if system_config is None:
        system_config = controller.get_system_config()
    tx = Transaction(
        version=system_config.version,
        to=bytes(to),
        nonce=random_nonce(),
        quota=quota,
        valid_until_block=valid_until_block,
        data=bytes(data),
        value=bytes(value),
        chain_id=system_config.chain_id,
    )
    raw = sign_raw_tx(tx, signer)
    tx_hash = controller.send_raw(raw)
    logger.info("Submitted tx %s", tx_hash.to_hex())
    return tx_hash


def send_utxo(
    controller: ControllerBehaviour,
    signer: Account,
    output: bytes,
    utxo_type: UtxoType,
) -> FixedBytes:
    """Submit a system-configuration change chained to the previous one."""

    system_config = controller.get_system_config()
    utxo = UtxoTransaction(
        version=system_config.version,
        pre_tx_hash=system_config.pre_hash_for(utxo_type),
        output=bytes(output),
        lock_id=int(utxo_type),
    )
    raw = sign_raw_utxo(utxo, signer)
    tx_hash = controller.send_raw(raw)
    logger.info("Submitted %s utxo %s", UtxoType(utxo_type).name.lower(), tx_hash.to_hex())
    return tx_hash


def admin_output(admin: bytes) -> bytes:
    return bytes(admin)


def block_interval_output(interval: int) -> bytes:
    return struct.pack(">I", interval)


def validators_output(validators: Iterable[bytes]) -> bytes:
    return b"".join(bytes(validator) for validator in validators)


def emergency_brake_output(switch: bool) -> bytes:
    return b"\x00" if switch else b""


def store_abi_data(contract: bytes, abi: str) -> bytes:
    """Payload for the ABI store builtin: ``<contract address><abi json>``."""

    return bytes(contract) + abi.encode("utf-8")
