"""RPC clients for the controller, executor and EVM services.

The command handlers only ever talk to the abstract behaviours defined here
(:class:`ControllerBehaviour`, :class:`ExecutorBehaviour`,
:class:`EvmBehaviour`), which keeps them testable against in-memory fakes.
The concrete clients speak JSON-RPC 2.0 over HTTP through a shared
:class:`JsonRpcTransport`; byte fields travel as ``0x`` hex strings and the
method names follow the service contracts (``send_raw_transaction``,
``get_block_by_number`` ...).

Failures come in three flavours: :class:`~cldi.errors.TransportError` when
the service cannot be reached, :class:`~cldi.errors.RPCError` when it answers
with an error object, and :class:`~cldi.errors.ProtocolMismatchError` when a
well-formed answer carries hashes whose size does not fit the active crypto
provider. Nothing here retries.
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from requests import RequestException, Response

from .codec import from_hex, to_hex
from .crypto import CryptoProvider, FixedBytes
from .errors import InvalidLengthError, ProtocolMismatchError, RPCError, TransportError
from .model import (
    CompactBlock,
    NodeInfo,
    RawTransaction,
    Receipt,
    SystemConfig,
    raw_transaction_from_json,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a remediation hint for well-known controller rejections."""

    if error_obj is None:
        return None

    message = ""
    if isinstance(error_obj, RPCError):
        message = error_obj.message
    elif isinstance(error_obj, dict):
        message = str(error_obj.get("message", ""))
    lowered = message.lower()

    if "signature" in lowered:
        return (
            "The node rejected the witness. Make sure --crypto matches the algorithm the chain was "
            "deployed with (sm or eth)."
        )
    if "invalidvaliduntilblock" in lowered or "valid_until_block" in lowered:
        return "valid_until_block is out of range; use --until +N to make it relative to the current height."
    if "duptransaction" in lowered or "duplicate" in lowered:
        return "The same transaction was already submitted; resend with a new nonce."
    if "quota" in lowered:
        return "The transaction quota exceeds the block limit; lower --quota."
    if "admin" in lowered and ("permission" in lowered or "forbidden" in lowered):
        return "System transactions must be signed by the chain administrator account."
    return None


def normalize_endpoint(endpoint: str) -> str:
    """Turn ``host:port`` into a URL; full URLs pass through unchanged."""

    endpoint = endpoint.strip()
    if "://" in endpoint:
        return endpoint.rstrip("/")
    return f"http://{endpoint}"


class JsonRpcTransport:
    """Thin JSON-RPC 2.0 transport over a shared ``requests.Session``."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        service: str = "rpc",
    ) -> None:
        self.endpoint = endpoint
        self.url = normalize_endpoint(endpoint)
        self.timeout = timeout
        self.service = service
        self._session = session or requests.Session()

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request and return its ``result``."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s.%s params=%s", self.service, method, params)
        try:
            response = self._session.post(
                self.url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection to %s failed: %s",
                self.service,
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise TransportError(
                f"cannot reach the {self.service} service at {self.endpoint}; check that the node is "
                "running and the address flags or CITA_CLOUD_* variables point to it"
            ) from exc
        self._raise_for_status(response)
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise TransportError(f"{self.service} service returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise TransportError(f"{self.service} service returned a non-object JSON-RPC envelope")
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        logger.debug("RPC error body: %s", response.text)
        # JSON-RPC error objects may ride on an HTTP error status
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        raise TransportError(
            f"{self.service} service returned HTTP {response.status_code}",
            status_code=response.status_code,
        )


class ControllerBehaviour(ABC):
    """Operations offered by the controller (consensus) service."""

    def clone(self) -> "ControllerBehaviour":
        """Return a handle safe to hand to a spawned task."""

        return self

    @abstractmethod
    def send_raw(self, raw: RawTransaction) -> FixedBytes: ...

    @abstractmethod
    def get_system_config(self) -> SystemConfig: ...

    @abstractmethod
    def get_block_number(self, for_pending: bool = False) -> int: ...

    @abstractmethod
    def get_block_hash(self, block_number: int) -> FixedBytes: ...

    @abstractmethod
    def get_block_by_number(self, block_number: int) -> CompactBlock: ...

    @abstractmethod
    def get_block_by_hash(self, block_hash: bytes) -> CompactBlock: ...

    @abstractmethod
    def get_tx(self, tx_hash: bytes) -> RawTransaction: ...

    @abstractmethod
    def get_tx_index(self, tx_hash: bytes) -> int: ...

    @abstractmethod
    def get_tx_block_number(self, tx_hash: bytes) -> int: ...

    @abstractmethod
    def get_peer_count(self) -> int: ...

    @abstractmethod
    def get_peers_info(self) -> List[NodeInfo]: ...

    @abstractmethod
    def add_node(self, multi_address: str) -> int: ...


class ExecutorBehaviour(ABC):
    """Read-only contract calls against the executor."""

    def clone(self) -> "ExecutorBehaviour":
        return self

    @abstractmethod
    def call(self, from_: bytes, to: bytes, data: bytes) -> bytes: ...


class EvmBehaviour(ABC):
    """EVM state queries."""

    def clone(self) -> "EvmBehaviour":
        return self

    @abstractmethod
    def get_receipt(self, tx_hash: bytes) -> Receipt: ...

    @abstractmethod
    def get_code(self, address: bytes) -> bytes: ...

    @abstractmethod
    def get_balance(self, address: bytes) -> bytes: ...

    @abstractmethod
    def get_tx_count(self, address: bytes) -> bytes: ...

    @abstractmethod
    def get_abi(self, address: bytes) -> bytes: ...


def _field(result: Any, key: str, method: str) -> Any:
    if not isinstance(result, dict) or key not in result:
        raise TransportError(f"`{method}` response is missing the `{key}` field")
    return result[key]


class _Client:
    """Shared plumbing for the concrete service clients."""

    def __init__(self, crypto: CryptoProvider, transport: JsonRpcTransport) -> None:
        self.crypto = crypto
        self.transport = transport

    def clone(self):
        """Return a handle sharing this client's transport and session."""

        return type(self)(self.crypto, self.transport)

    def _hash_from(self, raw: bytes, what: str) -> FixedBytes:
        try:
            return self.crypto.Hash.from_slice(raw)
        except InvalidLengthError as exc:
            raise ProtocolMismatchError(
                f"{self.transport.service} returned an invalid {what} ({len(raw)} bytes), "
                f"maybe it uses a different signing algorithm than `{self.crypto.name}`?"
            ) from exc


class ControllerClient(_Client, ControllerBehaviour):
    def send_raw(self, raw: RawTransaction) -> FixedBytes:
        result = self.transport.call("send_raw_transaction", [raw.to_json()])
        return self._hash_from(from_hex(_field(result, "hash", "send_raw_transaction")), "transaction hash")

    def get_system_config(self) -> SystemConfig:
        result = self.transport.call("get_system_config")
        if not isinstance(result, dict):
            raise TransportError("`get_system_config` returned a non-object result")
        return SystemConfig.from_json(result)

    def get_block_number(self, for_pending: bool = False) -> int:
        result = self.transport.call("get_block_number", [{"flag": bool(for_pending)}])
        return int(_field(result, "block_number", "get_block_number"))

    def get_block_hash(self, block_number: int) -> FixedBytes:
        result = self.transport.call("get_block_hash", [{"block_number": int(block_number)}])
        return self._hash_from(from_hex(_field(result, "hash", "get_block_hash")), "block hash")

    def get_block_by_number(self, block_number: int) -> CompactBlock:
        result = self.transport.call("get_block_by_number", [{"block_number": int(block_number)}])
        return CompactBlock.from_json(result or {})

    def get_block_by_hash(self, block_hash: bytes) -> CompactBlock:
        result = self.transport.call("get_block_by_hash", [{"hash": to_hex(block_hash)}])
        return CompactBlock.from_json(result or {})

    def get_tx(self, tx_hash: bytes) -> RawTransaction:
        result = self.transport.call("get_transaction", [{"hash": to_hex(tx_hash)}])
        if not isinstance(result, dict):
            raise TransportError("`get_transaction` returned a non-object result")
        return raw_transaction_from_json(result)

    def get_tx_index(self, tx_hash: bytes) -> int:
        result = self.transport.call("get_transaction_index", [{"hash": to_hex(tx_hash)}])
        return int(_field(result, "tx_index", "get_transaction_index"))

    def get_tx_block_number(self, tx_hash: bytes) -> int:
        result = self.transport.call("get_transaction_block_number", [{"hash": to_hex(tx_hash)}])
        return int(_field(result, "block_number", "get_transaction_block_number"))

    def get_peer_count(self) -> int:
        result = self.transport.call("get_peer_count")
        return int(_field(result, "peer_count", "get_peer_count"))

    def get_peers_info(self) -> List[NodeInfo]:
        result = self.transport.call("get_peers_info")
        return [NodeInfo.from_json(item) for item in _field(result, "nodes", "get_peers_info") or []]

    def add_node(self, multi_address: str) -> int:
        result = self.transport.call("add_node", [{"multi_address": multi_address}])
        return int(_field(result, "code", "add_node"))


class ExecutorClient(_Client, ExecutorBehaviour):
    def call(self, from_: bytes, to: bytes, data: bytes) -> bytes:
        request: Dict[str, Any] = {
            "from": to_hex(from_),
            "to": to_hex(to),
            "method": to_hex(data),
            "args": [],
        }
        result = self.transport.call("call", [request])
        return from_hex(_field(result, "value", "call"))


class EvmClient(_Client, EvmBehaviour):
    def get_receipt(self, tx_hash: bytes) -> Receipt:
        result = self.transport.call("get_transaction_receipt", [{"hash": to_hex(tx_hash)}])
        if not isinstance(result, dict):
            raise TransportError("`get_transaction_receipt` returned a non-object result")
        return Receipt.from_json(result)

    def get_code(self, address: bytes) -> bytes:
        result = self.transport.call("get_code", [{"address": to_hex(address)}])
        return from_hex(_field(result, "byte_code", "get_code"))

    def get_balance(self, address: bytes) -> bytes:
        result = self.transport.call("get_balance", [{"address": to_hex(address)}])
        return from_hex(_field(result, "value", "get_balance"))

    def get_tx_count(self, address: bytes) -> bytes:
        result = self.transport.call("get_transaction_count", [{"address": to_hex(address)}])
        return from_hex(_field(result, "nonce", "get_transaction_count"))

    def get_abi(self, address: bytes) -> bytes:
        result = self.transport.call("get_abi", [{"address": to_hex(address)}])
        return from_hex(_field(result, "bytes_abi", "get_abi"))
