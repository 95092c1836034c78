"""Exception hierarchy shared by the cldi modules."""

from __future__ import annotations


class CliError(RuntimeError):
    """Base class for errors raised by cldi."""


class ConfigurationError(CliError):
    """Raised when configuration is invalid."""


class DispatchError(CliError):
    """Raised when an invocation does not match the command tree."""


class CommandConfigError(DispatchError):
    """Raised when the command tree itself is built inconsistently."""


class CommandError(CliError):
    """Wraps a handler failure with the name of the command that raised it."""

    def __init__(self, command: str, message: str | None = None) -> None:
        super().__init__(message or f"failed to exec command `{command}`")
        self.command = command


class SigningError(CliError):
    """Raised when a payload cannot be signed."""


class ProtocolMismatchError(CliError):
    """Raised when bytes do not fit the active signing algorithm."""


class InvalidLengthError(ProtocolMismatchError, ValueError):
    """Raised when a fixed-length value is built from the wrong number of bytes."""

    def __init__(self, kind: str, expected: int, actual: int) -> None:
        super().__init__(
            f"invalid {kind} length: expected {expected} bytes, got {actual} "
            "(algorithm mismatch? check the --crypto setting against the node)"
        )
        self.kind = kind
        self.expected = expected
        self.actual = actual


class TransportError(CliError):
    """Raised when an RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RPCError(CliError):
    """Raised when a remote service answers with an error object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class WalletError(CliError):
    """Raised when the wallet store cannot satisfy a request."""


class BenchTimeoutError(CliError, TimeoutError):
    """Raised when the batch-send tracker exceeds its deadline."""


def format_error_chain(exc: BaseException) -> str:
    """Join an exception and its causes as ``outer: inner: root``."""

    parts: list[str] = []
    current: BaseException | None = exc
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or current.__class__.__name__
        parts.append(text)
        current = current.__cause__
    return ": ".join(parts)
