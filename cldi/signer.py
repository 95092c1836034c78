"""Turn unsigned transaction bodies into signed, submission-ready payloads.

Both shapes follow the same pipeline::

    body -> encode -> hash -> sign(hash) -> Witness(sender, signature)

The signed hash is always the hash of the encoded *unsigned* body; the node
recomputes exactly that to check the witness.
"""

from __future__ import annotations

import logging

from .account import Account
from .model import NormalTx, Transaction, UtxoTransaction, UtxoTx, Witness

logger = logging.getLogger(__name__)


def _witness(account: Account, digest: bytes) -> Witness:
    signature = account.sign(digest)
    return Witness(sender=account.address, signature=signature)


def sign_raw_tx(tx: Transaction, account: Account) -> NormalTx:
    """Sign a normal transaction with ``account``."""

    tx_hash = account.crypto.hash(tx.encode())
    logger.debug("Signing normal tx %s as %s", tx_hash.to_hex(), account.address.to_hex())
    return NormalTx(transaction=tx, transaction_hash=tx_hash, witness=_witness(account, tx_hash))


def sign_raw_utxo(utxo: UtxoTransaction, account: Account) -> UtxoTx:
    """Sign a UTXO transaction; the result starts with a single witness."""

    utxo_hash = account.crypto.hash(utxo.encode())
    logger.debug("Signing utxo tx %s as %s", utxo_hash.to_hex(), account.address.to_hex())
    return UtxoTx(
        transaction=utxo,
        transaction_hash=utxo_hash,
        witnesses=[_witness(account, utxo_hash)],
    )
