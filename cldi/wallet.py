"""File-backed account store.

Accounts live under ``<data dir>/accounts/<user>.yaml``; the default user
chosen with ``account login`` is remembered in ``<data dir>/wallet.yaml``.
Keys are stored unencrypted, so the files are created owner-readable only.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .account import Account
from .codec import EncodingError, from_hex
from .crypto import CryptoProvider, FixedBytes, get_crypto
from .errors import ConfigurationError, WalletError

logger = logging.getLogger(__name__)

_USER_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


class Wallet:
    def __init__(self, data_dir: Path, crypto: CryptoProvider) -> None:
        self.data_dir = Path(data_dir)
        self.crypto = crypto
        self.accounts_dir = self.data_dir / "accounts"
        self.meta_path = self.data_dir / "wallet.yaml"

    # Paths and raw IO ----------------------------------------------------

    def _account_path(self, user: str) -> Path:
        if not _USER_PATTERN.match(user) or user.startswith("."):
            raise WalletError(f"invalid user name: {user!r}")
        return self.accounts_dir / f"{user}.yaml"

    @staticmethod
    def _write_private(path: Path, data: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            yaml.safe_dump(data, handle, sort_keys=True)

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        try:
            loaded = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise WalletError(f"corrupted wallet file {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise WalletError(f"corrupted wallet file {path}: expected a mapping")
        return loaded

    def _store(self, user: str, account: Account) -> None:
        record = account.export()
        self._write_private(
            self._account_path(user),
            {
                "crypto": record["crypto"],
                "public_key": record["public_key"],
                "private_key": record["private_key"],
            },
        )
        logger.debug("Stored account for user %s (%s)", user, record["address"])

    # Public API ----------------------------------------------------------

    def load_account(self, user: str) -> Optional[Account]:
        path = self._account_path(user)
        if not path.exists():
            return None
        record = self._read(path)
        try:
            crypto = get_crypto(record.get("crypto") or self.crypto.name)
        except ConfigurationError as exc:
            raise WalletError(f"account `{user}` uses an unsupported algorithm") from exc
        try:
            public_key = from_hex(record.get("public_key"))
            private_key = from_hex(record.get("private_key"))
        except EncodingError as exc:
            raise WalletError(f"account `{user}` has malformed keys") from exc
        return Account(crypto, public_key, private_key)

    def create_account(self, user: str) -> FixedBytes:
        if self._account_path(user).exists():
            raise WalletError(f"user `{user}` already has an account")
        account = Account.generate(self.crypto)
        self._store(user, account)
        return account.address

    def import_account(self, user: str, public_key: bytes, private_key: bytes) -> FixedBytes:
        if self._account_path(user).exists():
            raise WalletError(f"user `{user}` already has an account")
        account = Account.from_keypair(self.crypto, public_key, private_key)
        self._store(user, account)
        return account.address

    def export_account(self, user: str) -> Optional[Dict[str, Any]]:
        account = self.load_account(user)
        return account.export() if account is not None else None

    def delete_account(self, user: str) -> bool:
        path = self._account_path(user)
        if not path.exists():
            return False
        path.unlink()
        if self.default_user() == user:
            self._write_meta({})
        return True

    def list_account(self) -> List[str]:
        if not self.accounts_dir.is_dir():
            return []
        return sorted(path.stem for path in self.accounts_dir.glob("*.yaml"))

    def set_default_user(self, user: str) -> FixedBytes:
        account = self.load_account(user)
        if account is None:
            raise WalletError(f"user `{user}` has no account")
        meta = self._read(self.meta_path) if self.meta_path.exists() else {}
        meta["default_user"] = user
        self._write_meta(meta)
        return account.address

    def default_user(self) -> Optional[str]:
        if not self.meta_path.exists():
            return None
        value = self._read(self.meta_path).get("default_user")
        return str(value) if value else None

    def _write_meta(self, meta: Dict[str, Any]) -> None:
        self._write_private(self.meta_path, meta)
