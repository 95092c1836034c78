"""Command line client for cita-cloud chains."""

from .account import Account
from .command import CommandNode, DelegateHandler, TerminalHandler, build
from .context import Context, Runtime
from .crypto import CRYPTO_PROVIDERS, CryptoProvider, EthCrypto, SmCrypto, get_crypto
from .errors import (
    CliError,
    CommandConfigError,
    CommandError,
    ConfigurationError,
    DispatchError,
    InvalidLengthError,
    ProtocolMismatchError,
    RPCError,
    SigningError,
    TransportError,
    WalletError,
)
from .model import NormalTx, RawTransaction, Transaction, UtxoTransaction, UtxoTx, UtxoType
from .signer import sign_raw_tx, sign_raw_utxo

__all__ = [
    "Account",
    "CRYPTO_PROVIDERS",
    "CliError",
    "CommandConfigError",
    "CommandError",
    "CommandNode",
    "ConfigurationError",
    "Context",
    "CryptoProvider",
    "DelegateHandler",
    "DispatchError",
    "EthCrypto",
    "InvalidLengthError",
    "NormalTx",
    "ProtocolMismatchError",
    "RPCError",
    "RawTransaction",
    "Runtime",
    "SigningError",
    "SmCrypto",
    "TerminalHandler",
    "Transaction",
    "TransportError",
    "UtxoTransaction",
    "UtxoTx",
    "UtxoType",
    "WalletError",
    "build",
    "get_crypto",
    "sign_raw_tx",
    "sign_raw_utxo",
]
