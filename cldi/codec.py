"""Canonical byte encoding for transaction bodies.

The chain hashes transactions in protobuf wire format, so the signer has to
reproduce that format byte for byte. Only the subset needed by the unsigned
bodies is implemented: varint and length-delimited fields, emitted in
ascending field order with proto3 default values (``0``, empty bytes, empty
string) omitted. Two equal bodies therefore always encode to the same bytes.
"""

from __future__ import annotations

from typing import Iterable, Tuple, Union

WIRE_VARINT = 0
WIRE_LENGTH_DELIMITED = 2

FieldValue = Union[int, bytes, str]


class EncodingError(ValueError):
    """Raised when a value cannot be represented in the wire format."""


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise EncodingError(f"varint fields must be non-negative, got {value}")
    out = bytearray()
    while True:
        to_write = value & 0x7F
        value >>= 7
        if value:
            out.append(to_write | 0x80)
        else:
            out.append(to_write)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Return ``(value, next_offset)`` for the varint starting at ``offset``."""

    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise EncodingError("truncated varint")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, offset
        shift += 7
        if shift > 63:
            raise EncodingError("varint longer than 64 bits")


def _key(field_number: int, wire_type: int) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def encode_uint_field(field_number: int, value: int, *, bits: int = 64) -> bytes:
    if value >= 1 << bits:
        raise EncodingError(f"field {field_number} does not fit in uint{bits}: {value}")
    if value == 0:
        return b""
    return _key(field_number, WIRE_VARINT) + encode_varint(value)


def encode_bytes_field(field_number: int, value: bytes | str) -> bytes:
    raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    if not raw:
        return b""
    return _key(field_number, WIRE_LENGTH_DELIMITED) + encode_varint(len(raw)) + raw


def encode_message(fields: Iterable[Tuple[int, str, FieldValue]]) -> bytes:
    """Encode ``(field_number, kind, value)`` triples in field-number order.

    ``kind`` is one of ``uint32``, ``uint64``, ``bytes`` or ``string``.
    """

    parts = []
    for number, kind, value in sorted(fields, key=lambda item: item[0]):
        if kind == "uint32":
            parts.append(encode_uint_field(number, int(value), bits=32))
        elif kind == "uint64":
            parts.append(encode_uint_field(number, int(value), bits=64))
        elif kind in {"bytes", "string"}:
            parts.append(encode_bytes_field(number, value))  # type: ignore[arg-type]
        else:  # pragma: no cover - programming error
            raise EncodingError(f"unsupported field kind: {kind}")
    return b"".join(parts)


def to_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


def from_hex(value: str | None) -> bytes:
    """Decode a ``0x``-prefixed (or bare) hex string; ``None`` means empty."""

    if not value:
        return b""
    stripped = value[2:] if value[:2] in {"0x", "0X"} else value
    if len(stripped) % 2:
        stripped = "0" + stripped
    try:
        return bytes.fromhex(stripped)
    except ValueError as exc:
        raise EncodingError(f"invalid hex string: {value!r}") from exc
