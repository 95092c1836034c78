"""Pluggable signing algorithms.

Every component that touches hashes, addresses or signatures goes through a
:class:`CryptoProvider`, so the rest of the client does not care which scheme
the target chain uses. Two providers ship with cldi:

``sm``
    SM3 digests with SM2 signatures. Signatures are ``r || s || public_key``
    (128 bytes) so a verifier can recover the signer's address.
``eth``
    Keccak-256 digests with recoverable secp256k1 ECDSA signatures
    (``r || s || v``, 65 bytes).

Both derive a 20-byte address from the last 20 bytes of the digest of the
uncompressed public key (without the ``0x04`` prefix).

Exactly one provider is active per process; it is selected at runtime with
:func:`get_crypto`. Feeding bytes produced by one provider into the other is
reported as :class:`~cldi.errors.ProtocolMismatchError` instead of silently
failing verification.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Dict, Tuple, Type

from coincurve import PrivateKey, PublicKey
from Crypto.Hash import keccak
from cryptography.hazmat.primitives import hashes
from gmssl import func, sm2

from .errors import ConfigurationError, InvalidLengthError, ProtocolMismatchError, SigningError

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .account import Account

logger = logging.getLogger(__name__)

HASH_LENGTH = 32
ADDRESS_LENGTH = 20


class FixedBytes(bytes):
    """Immutable byte string whose length is fixed by the subclass."""

    LENGTH: ClassVar[int] = 0
    KIND: ClassVar[str] = "value"

    def __new__(cls, data: bytes | bytearray | memoryview) -> "FixedBytes":
        if isinstance(data, int):
            raise TypeError(f"{cls.__name__} must be built from bytes, not int")
        raw = bytes(data)
        if len(raw) != cls.LENGTH:
            raise InvalidLengthError(cls.KIND, cls.LENGTH, len(raw))
        return super().__new__(cls, raw)

    @classmethod
    def from_slice(cls, data: bytes | bytearray | memoryview) -> "FixedBytes":
        return cls(data)

    @classmethod
    def from_hex(cls, value: str) -> "FixedBytes":
        stripped = value[2:] if value[:2] in {"0x", "0X"} else value
        try:
            raw = bytes.fromhex(stripped)
        except ValueError as exc:
            raise ValueError(f"invalid hex for {cls.KIND}: {value!r}") from exc
        return cls(raw)

    def to_hex(self) -> str:
        return "0x" + self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_hex()})"


def _fixed_type(name: str, kind: str, length: int) -> Type[FixedBytes]:
    return type(name, (FixedBytes,), {"LENGTH": length, "KIND": kind})


class CryptoProvider(ABC):
    """Capability set for one signature scheme."""

    name: ClassVar[str]
    Hash: ClassVar[Type[FixedBytes]]
    Address: ClassVar[Type[FixedBytes]]
    Signature: ClassVar[Type[FixedBytes]]
    PRIVATE_KEY_LENGTH: ClassVar[int] = 32
    PUBLIC_KEY_LENGTH: ClassVar[int] = 64

    @abstractmethod
    def hash(self, data: bytes) -> FixedBytes:
        """Return the digest of ``data``."""

    @abstractmethod
    def generate_keypair(self) -> Tuple[bytes, bytes]:
        """Return a fresh ``(public_key, private_key)`` pair."""

    @abstractmethod
    def public_key_of(self, private_key: bytes) -> bytes:
        """Derive the 64-byte uncompressed public key for ``private_key``."""

    @abstractmethod
    def sign_digest(self, public_key: bytes, private_key: bytes, digest: bytes) -> FixedBytes:
        """Sign a digest with a raw key pair."""

    @abstractmethod
    def verify(self, address: bytes, digest: bytes, signature: bytes) -> bool:
        """Check that ``signature`` over ``digest`` was produced by ``address``."""

    def sign(self, account: "Account", message: bytes) -> FixedBytes:
        """Sign ``message`` (a digest produced by :meth:`hash`) with ``account``."""

        if account.crypto.name != self.name:
            raise ProtocolMismatchError(
                f"account uses the `{account.crypto.name}` algorithm but `{self.name}` is active"
            )
        digest = self._digest(message)
        return self.sign_digest(account.public_key, account.private_key, digest)

    def address_of(self, public_key: bytes) -> FixedBytes:
        public_key = self.normalize_public_key(public_key)
        return self.Address(self.hash(public_key)[-ADDRESS_LENGTH:])

    def check_private_key(self, private_key: bytes) -> bytes:
        raw = bytes(private_key)
        if len(raw) != self.PRIVATE_KEY_LENGTH:
            raise InvalidLengthError("private key", self.PRIVATE_KEY_LENGTH, len(raw))
        return raw

    def normalize_public_key(self, public_key: bytes) -> bytes:
        raw = bytes(public_key)
        if len(raw) == self.PUBLIC_KEY_LENGTH + 1 and raw[0] == 0x04:
            raw = raw[1:]
        if len(raw) != self.PUBLIC_KEY_LENGTH:
            raise InvalidLengthError("public key", self.PUBLIC_KEY_LENGTH, len(raw))
        return raw

    def _digest(self, message: bytes) -> bytes:
        if len(message) != self.Hash.LENGTH:
            raise SigningError(
                f"the `{self.name}` algorithm signs {self.Hash.LENGTH}-byte digests, got {len(message)} bytes"
            )
        return bytes(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SmCrypto(CryptoProvider):
    """SM3 + SM2 (the default algorithm of the chain)."""

    name = "sm"
    Hash = _fixed_type("SmHash", "hash", HASH_LENGTH)
    Address = _fixed_type("SmAddress", "address", ADDRESS_LENGTH)
    Signature = _fixed_type("SmSignature", "signature", 128)

    _ORDER = int(sm2.default_ecc_table["n"], 16)

    def hash(self, data: bytes) -> FixedBytes:
        digest = hashes.Hash(hashes.SM3())
        digest.update(bytes(data))
        return self.Hash(digest.finalize())

    def generate_keypair(self) -> Tuple[bytes, bytes]:
        secret = secrets.randbelow(self._ORDER - 1) + 1
        private_key = secret.to_bytes(self.PRIVATE_KEY_LENGTH, "big")
        return self.public_key_of(private_key), private_key

    def public_key_of(self, private_key: bytes) -> bytes:
        private_key = self.check_private_key(private_key)
        engine = sm2.CryptSM2(private_key=private_key.hex(), public_key="")
        # gmssl exposes scalar multiplication only through this helper
        point = engine._kg(int(private_key.hex(), 16), sm2.default_ecc_table["g"])
        return bytes.fromhex(point)

    @staticmethod
    def _engine(public_key: bytes, private_key: bytes = b"") -> sm2.CryptSM2:
        engine = sm2.CryptSM2(private_key=private_key.hex(), public_key="")
        # set after construction: the constructor strips leading "0"/"4" digits
        engine.public_key = public_key.hex()
        return engine

    def sign_digest(self, public_key: bytes, private_key: bytes, digest: bytes) -> FixedBytes:
        public_key = self.normalize_public_key(public_key)
        private_key = self.check_private_key(private_key)
        engine = self._engine(public_key, private_key)
        # GB/T 32918: e = SM3(Z_A || M) with the default user id
        signature_hex = None
        while signature_hex is None:
            signature_hex = engine.sign_with_sm3(bytes(digest), func.random_hex(engine.para_len))
        return self.Signature(bytes.fromhex(signature_hex) + public_key)

    def verify(self, address: bytes, digest: bytes, signature: bytes) -> bool:
        address = self.Address(address)
        signature = self.Signature(signature)
        digest = self.Hash(digest)
        rs, public_key = bytes(signature[:64]), bytes(signature[64:])
        if self.address_of(public_key) != address:
            return False
        return bool(self._engine(public_key).verify_with_sm3(rs.hex(), bytes(digest)))


class EthCrypto(CryptoProvider):
    """Keccak-256 + secp256k1, compatible with Ethereum addresses."""

    name = "eth"
    Hash = _fixed_type("EthHash", "hash", HASH_LENGTH)
    Address = _fixed_type("EthAddress", "address", ADDRESS_LENGTH)
    Signature = _fixed_type("EthSignature", "signature", 65)

    def hash(self, data: bytes) -> FixedBytes:
        return self.Hash(keccak.new(digest_bits=256, data=bytes(data)).digest())

    def generate_keypair(self) -> Tuple[bytes, bytes]:
        key = PrivateKey()
        return key.public_key.format(compressed=False)[1:], key.secret

    def public_key_of(self, private_key: bytes) -> bytes:
        key = PrivateKey(self.check_private_key(private_key))
        return key.public_key.format(compressed=False)[1:]

    def sign_digest(self, public_key: bytes, private_key: bytes, digest: bytes) -> FixedBytes:
        key = PrivateKey(self.check_private_key(private_key))
        return self.Signature(key.sign_recoverable(bytes(digest), hasher=None))

    def verify(self, address: bytes, digest: bytes, signature: bytes) -> bool:
        address = self.Address(address)
        signature = self.Signature(signature)
        digest = self.Hash(digest)
        try:
            recovered = PublicKey.from_signature_and_message(
                bytes(signature), bytes(digest), hasher=None
            )
        except Exception:  # coincurve raises a bare Exception when recovery fails
            logger.debug("secp256k1 public key recovery failed", exc_info=True)
            return False
        return self.address_of(recovered.format(compressed=False)) == address


CRYPTO_PROVIDERS: Dict[str, Type[CryptoProvider]] = {
    SmCrypto.name: SmCrypto,
    EthCrypto.name: EthCrypto,
}
DEFAULT_CRYPTO = SmCrypto.name


def get_crypto(name: str | None = None) -> CryptoProvider:
    """Instantiate the provider registered under ``name``."""

    key = (name or DEFAULT_CRYPTO).strip().lower()
    try:
        provider_cls = CRYPTO_PROVIDERS[key]
    except KeyError as exc:
        choices = ", ".join(sorted(CRYPTO_PROVIDERS))
        raise ConfigurationError(f"Unknown crypto algorithm `{name}` (choose one of: {choices})") from exc
    return provider_cls()
