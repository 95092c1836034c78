"""Protocol data structures exchanged with the controller and executors.

Unsigned bodies (:class:`Transaction`, :class:`UtxoTransaction`) know how to
produce their canonical encoding; everything else is a typed view over the
JSON payloads returned by the services. Byte fields travel as ``0x`` hex.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from .codec import encode_message, from_hex, to_hex


class UtxoType(IntEnum):
    """System-configuration kinds carried by UTXO transactions (the ``lock_id``)."""

    ADMIN = 1002
    BLOCK_INTERVAL = 1003
    VALIDATORS = 1004
    EMERGENCY_BRAKE = 1005


@dataclass
class Transaction:
    """Unsigned single-signer transaction body."""

    version: int = 0
    to: bytes = b""
    nonce: str = ""
    quota: int = 0
    valid_until_block: int = 0
    data: bytes = b""
    value: bytes = b""
    chain_id: bytes = b""

    def encode(self) -> bytes:
        return encode_message(
            [
                (1, "uint32", self.version),
                (2, "bytes", self.to),
                (3, "string", self.nonce),
                (4, "uint64", self.quota),
                (5, "uint64", self.valid_until_block),
                (6, "bytes", self.data),
                (7, "bytes", self.value),
                (8, "bytes", self.chain_id),
            ]
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "to": to_hex(self.to),
            "nonce": self.nonce,
            "quota": self.quota,
            "valid_until_block": self.valid_until_block,
            "data": to_hex(self.data),
            "value": to_hex(self.value),
            "chain_id": to_hex(self.chain_id),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            version=int(data.get("version", 0)),
            to=from_hex(data.get("to")),
            nonce=str(data.get("nonce", "")),
            quota=int(data.get("quota", 0)),
            valid_until_block=int(data.get("valid_until_block", 0)),
            data=from_hex(data.get("data")),
            value=from_hex(data.get("value")),
            chain_id=from_hex(data.get("chain_id")),
        )


@dataclass
class UtxoTransaction:
    """Unsigned UTXO-style body; system transactions use this shape."""

    version: int = 0
    pre_tx_hash: bytes = b""
    output: bytes = b""
    lock_id: int = 0

    def encode(self) -> bytes:
        return encode_message(
            [
                (1, "uint32", self.version),
                (2, "bytes", self.pre_tx_hash),
                (3, "bytes", self.output),
                (4, "uint64", self.lock_id),
            ]
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "pre_tx_hash": to_hex(self.pre_tx_hash),
            "output": to_hex(self.output),
            "lock_id": self.lock_id,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "UtxoTransaction":
        return cls(
            version=int(data.get("version", 0)),
            pre_tx_hash=from_hex(data.get("pre_tx_hash")),
            output=from_hex(data.get("output")),
            lock_id=int(data.get("lock_id", 0)),
        )


@dataclass
class Witness:
    sender: bytes
    signature: bytes

    def to_json(self) -> Dict[str, Any]:
        return {"sender": to_hex(self.sender), "signature": to_hex(self.signature)}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Witness":
        return cls(sender=from_hex(data.get("sender")), signature=from_hex(data.get("signature")))


@dataclass
class NormalTx:
    """Signed normal transaction: body, its hash and exactly one witness."""

    transaction: Transaction
    transaction_hash: bytes
    witness: Witness

    @property
    def witnesses(self) -> List[Witness]:
        return [self.witness]

    def to_json(self) -> Dict[str, Any]:
        return {
            "normal_tx": {
                "transaction": self.transaction.to_json(),
                "transaction_hash": to_hex(self.transaction_hash),
                "witness": self.witness.to_json(),
            }
        }


@dataclass
class UtxoTx:
    """Signed UTXO transaction; the witness list may grow with co-signers."""

    transaction: UtxoTransaction
    transaction_hash: bytes
    witnesses: List[Witness] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "utxo_tx": {
                "transaction": self.transaction.to_json(),
                "transaction_hash": to_hex(self.transaction_hash),
                "witnesses": [witness.to_json() for witness in self.witnesses],
            }
        }


RawTransaction = Union[NormalTx, UtxoTx]


def raw_transaction_from_json(data: Dict[str, Any]) -> RawTransaction:
    if "normal_tx" in data:
        inner = data["normal_tx"] or {}
        return NormalTx(
            transaction=Transaction.from_json(inner.get("transaction") or {}),
            transaction_hash=from_hex(inner.get("transaction_hash")),
            witness=Witness.from_json(inner.get("witness") or {}),
        )
    if "utxo_tx" in data:
        inner = data["utxo_tx"] or {}
        return UtxoTx(
            transaction=UtxoTransaction.from_json(inner.get("transaction") or {}),
            transaction_hash=from_hex(inner.get("transaction_hash")),
            witnesses=[Witness.from_json(item) for item in inner.get("witnesses") or []],
        )
    raise ValueError("raw transaction must contain `normal_tx` or `utxo_tx`")


@dataclass
class BlockHeader:
    prevhash: bytes = b""
    timestamp: int = 0
    height: int = 0
    transactions_root: bytes = b""
    proposer: bytes = b""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "BlockHeader":
        return cls(
            prevhash=from_hex(data.get("prevhash")),
            timestamp=int(data.get("timestamp", 0)),
            height=int(data.get("height", 0)),
            transactions_root=from_hex(data.get("transactions_root")),
            proposer=from_hex(data.get("proposer")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "prevhash": to_hex(self.prevhash),
            "timestamp": self.timestamp,
            "height": self.height,
            "transactions_root": to_hex(self.transactions_root),
            "proposer": to_hex(self.proposer),
        }


@dataclass
class CompactBlock:
    version: int = 0
    header: BlockHeader = field(default_factory=BlockHeader)
    tx_hashes: List[bytes] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CompactBlock":
        body = data.get("body") or {}
        return cls(
            version=int(data.get("version", 0)),
            header=BlockHeader.from_json(data.get("header") or {}),
            tx_hashes=[from_hex(item) for item in body.get("tx_hashes") or []],
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "header": self.header.to_json(),
            "body": {"tx_hashes": [to_hex(item) for item in self.tx_hashes]},
        }


@dataclass
class SystemConfig:
    version: int = 0
    chain_id: bytes = b""
    admin: bytes = b""
    block_interval: int = 0
    validators: List[bytes] = field(default_factory=list)
    emergency_brake: bool = False
    quota_limit: int = 0
    block_limit: int = 0
    version_pre_hash: bytes = b""
    chain_id_pre_hash: bytes = b""
    admin_pre_hash: bytes = b""
    block_interval_pre_hash: bytes = b""
    validators_pre_hash: bytes = b""
    emergency_brake_pre_hash: bytes = b""

    def pre_hash_for(self, utxo_type: UtxoType) -> bytes:
        """Return the hash of the last accepted change of ``utxo_type``."""

        return {
            UtxoType.ADMIN: self.admin_pre_hash,
            UtxoType.BLOCK_INTERVAL: self.block_interval_pre_hash,
            UtxoType.VALIDATORS: self.validators_pre_hash,
            UtxoType.EMERGENCY_BRAKE: self.emergency_brake_pre_hash,
        }[UtxoType(utxo_type)]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SystemConfig":
        return cls(
            version=int(data.get("version", 0)),
            chain_id=from_hex(data.get("chain_id")),
            admin=from_hex(data.get("admin")),
            block_interval=int(data.get("block_interval", 0)),
            validators=[from_hex(item) for item in data.get("validators") or []],
            emergency_brake=bool(data.get("emergency_brake", False)),
            quota_limit=int(data.get("quota_limit", 0)),
            block_limit=int(data.get("block_limit", 0)),
            version_pre_hash=from_hex(data.get("version_pre_hash")),
            chain_id_pre_hash=from_hex(data.get("chain_id_pre_hash")),
            admin_pre_hash=from_hex(data.get("admin_pre_hash")),
            block_interval_pre_hash=from_hex(data.get("block_interval_pre_hash")),
            validators_pre_hash=from_hex(data.get("validators_pre_hash")),
            emergency_brake_pre_hash=from_hex(data.get("emergency_brake_pre_hash")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "chain_id": to_hex(self.chain_id),
            "admin": to_hex(self.admin),
            "block_interval": self.block_interval,
            "validators": [to_hex(item) for item in self.validators],
            "emergency_brake": self.emergency_brake,
            "quota_limit": self.quota_limit,
            "block_limit": self.block_limit,
            "version_pre_hash": to_hex(self.version_pre_hash),
            "chain_id_pre_hash": to_hex(self.chain_id_pre_hash),
            "admin_pre_hash": to_hex(self.admin_pre_hash),
            "block_interval_pre_hash": to_hex(self.block_interval_pre_hash),
            "validators_pre_hash": to_hex(self.validators_pre_hash),
            "emergency_brake_pre_hash": to_hex(self.emergency_brake_pre_hash),
        }


@dataclass
class NodeInfo:
    address: bytes = b""
    multi_address: str = ""
    origin: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "NodeInfo":
        net_info = data.get("net_info") or {}
        return cls(
            address=from_hex(data.get("address")),
            multi_address=str(net_info.get("multi_address", "")),
            origin=int(net_info.get("origin", 0)),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self.address),
            "net_info": {"multi_address": self.multi_address, "origin": self.origin},
        }


@dataclass
class Log:
    address: bytes = b""
    topics: List[bytes] = field(default_factory=list)
    data: bytes = b""
    log_index: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Log":
        return cls(
            address=from_hex(data.get("address")),
            topics=[from_hex(item) for item in data.get("topics") or []],
            data=from_hex(data.get("data")),
            log_index=int(data.get("log_index", 0)),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self.address),
            "topics": [to_hex(item) for item in self.topics],
            "data": to_hex(self.data),
            "log_index": self.log_index,
        }


@dataclass
class Receipt:
    transaction_hash: bytes = b""
    transaction_index: int = 0
    block_hash: bytes = b""
    block_number: int = 0
    cumulative_quota_used: bytes = b""
    quota_used: bytes = b""
    contract_address: bytes = b""
    logs: List[Log] = field(default_factory=list)
    state_root: bytes = b""
    logs_bloom: bytes = b""
    error_message: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Receipt":
        return cls(
            transaction_hash=from_hex(data.get("transaction_hash")),
            transaction_index=int(data.get("transaction_index", 0)),
            block_hash=from_hex(data.get("block_hash")),
            block_number=int(data.get("block_number", 0)),
            cumulative_quota_used=from_hex(data.get("cumulative_quota_used")),
            quota_used=from_hex(data.get("quota_used")),
            contract_address=from_hex(data.get("contract_address")),
            logs=[Log.from_json(item) for item in data.get("logs") or []],
            state_root=from_hex(data.get("state_root")),
            logs_bloom=from_hex(data.get("logs_bloom")),
            error_message=data.get("error_message") or None,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "transaction_hash": to_hex(self.transaction_hash),
            "transaction_index": self.transaction_index,
            "block_hash": to_hex(self.block_hash),
            "block_number": self.block_number,
            "cumulative_quota_used": to_hex(self.cumulative_quota_used),
            "quota_used": to_hex(self.quota_used),
            "contract_address": to_hex(self.contract_address),
            "logs": [log.to_json() for log in self.logs],
            "state_root": to_hex(self.state_root),
            "logs_bloom": to_hex(self.logs_bloom),
            "error_message": self.error_message,
        }
