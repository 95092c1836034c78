"""Argument validators used by the command grammar.

Each helper is an argparse ``type=`` callable: it converts the raw string or
raises :class:`argparse.ArgumentTypeError`, so malformed input is rejected
before any handler or network call runs.
"""

from __future__ import annotations

import argparse

from .crypto import ADDRESS_LENGTH, HASH_LENGTH

VALUE_LENGTH = 32


def _strip_0x(raw: str) -> str:
    raw = raw.strip()
    return raw[2:] if raw[:2] in {"0x", "0X"} else raw


def parse_data(raw: str) -> bytes:
    """Arbitrary hex data, ``0x`` prefix optional."""

    body = _strip_0x(raw)
    if len(body) % 2:
        body = "0" + body
    try:
        return bytes.fromhex(body)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid hex: {raw!r}") from exc


def _parse_fixed(raw: str, length: int, what: str) -> bytes:
    data = parse_data(raw)
    if len(data) != length:
        raise argparse.ArgumentTypeError(
            f"invalid {what} length: expected {length} bytes, got {len(data)} ({raw!r})"
        )
    return data


def parse_addr(raw: str) -> bytes:
    return _parse_fixed(raw, ADDRESS_LENGTH, "address")


def parse_hash(raw: str) -> bytes:
    return _parse_fixed(raw, HASH_LENGTH, "hash")


def parse_value(raw: str) -> bytes:
    """A 256-bit big-endian value given as hex; shorter input is left-padded."""

    data = parse_data(raw)
    if len(data) > VALUE_LENGTH:
        raise argparse.ArgumentTypeError(
            f"value is too large: at most {VALUE_LENGTH} bytes, got {len(data)}"
        )
    return data.rjust(VALUE_LENGTH, b"\x00")


def parse_u64(raw: str) -> int:
    try:
        value = int(raw, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an unsigned integer, got {raw!r}") from exc
    if not 0 <= value < 1 << 64:
        raise argparse.ArgumentTypeError(f"{value} does not fit in u64")
    return value


def parse_u32(raw: str) -> int:
    value = parse_u64(raw)
    if value >= 1 << 32:
        raise argparse.ArgumentTypeError(f"{value} does not fit in u32")
    return value


def parse_valid_until(raw: str) -> str:
    """Either an absolute height or ``+N`` relative to the current height."""

    parse_u64(raw[1:] if raw.startswith("+") else raw)
    return raw


def parse_positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {raw!r}")
    return value


def parse_on_off(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in {"on", "true", "1", "yes"}:
        return True
    if lowered in {"off", "false", "0", "no"}:
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {raw!r}")
