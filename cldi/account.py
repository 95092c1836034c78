"""Key-holding identities bound to a single crypto provider."""

from __future__ import annotations

from typing import Any, Dict

from .crypto import CryptoProvider, FixedBytes
from .errors import WalletError


class Account:
    """A key pair plus the provider that knows how to use it.

    The private key is kept out of ``repr`` and logs; only
    :meth:`export` hands it out, for the ``account export`` command.
    """

    def __init__(self, crypto: CryptoProvider, public_key: bytes, private_key: bytes) -> None:
        self.crypto = crypto
        self._private_key = crypto.check_private_key(private_key)
        self.public_key = crypto.normalize_public_key(public_key)
        self.address: FixedBytes = crypto.address_of(self.public_key)

    @classmethod
    def generate(cls, crypto: CryptoProvider) -> "Account":
        public_key, private_key = crypto.generate_keypair()
        return cls(crypto, public_key, private_key)

    @classmethod
    def from_private_key(cls, crypto: CryptoProvider, private_key: bytes) -> "Account":
        return cls(crypto, crypto.public_key_of(private_key), private_key)

    @classmethod
    def from_keypair(cls, crypto: CryptoProvider, public_key: bytes, private_key: bytes) -> "Account":
        """Build an account from imported keys, rejecting mismatched pairs."""

        derived = crypto.public_key_of(private_key)
        if crypto.normalize_public_key(public_key) != derived:
            raise WalletError("public key does not match the private key for the active algorithm")
        return cls(crypto, derived, private_key)

    @property
    def private_key(self) -> bytes:
        return self._private_key

    def sign(self, message: bytes) -> FixedBytes:
        return self.crypto.sign(self, message)

    def export(self) -> Dict[str, Any]:
        return {
            "crypto": self.crypto.name,
            "address": self.address.to_hex(),
            "public_key": "0x" + self.public_key.hex(),
            "private_key": "0x" + self._private_key.hex(),
        }

    def __repr__(self) -> str:
        return f"Account(crypto={self.crypto.name!r}, address={self.address.to_hex()})"
