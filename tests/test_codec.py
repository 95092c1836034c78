import pytest

from cldi.codec import EncodingError, decode_varint, encode_message, encode_varint, from_hex, to_hex
from cldi.model import Transaction, UtxoTransaction, UtxoType


def test_varint_known_values() -> None:
    assert encode_varint(0) == b"\x00"
    assert encode_varint(1) == b"\x01"
    assert encode_varint(300) == b"\xac\x02"
    assert decode_varint(b"\xac\x02") == (300, 2)


def test_negative_varint_is_rejected() -> None:
    with pytest.raises(EncodingError):
        encode_varint(-1)


def test_transaction_encoding_matches_protobuf_bytes() -> None:
    tx = Transaction(
        version=0,
        to=b"\x11" * 20,
        nonce="7",
        quota=300,
        valid_until_block=100,
        data=b"",
        value=b"\x00" * 32,
        chain_id=b"\x22" * 32,
    )

    expected = (
        b"\x12\x14" + b"\x11" * 20
        + b"\x1a\x01" + b"7"
        + b"\x20\xac\x02"
        + b"\x28\x64"
        + b"\x3a\x20" + b"\x00" * 32
        + b"\x42\x20" + b"\x22" * 32
    )
    assert tx.encode() == expected


def test_default_fields_are_omitted() -> None:
    assert Transaction().encode() == b""
    assert UtxoTransaction(version=0, output=b"", lock_id=0).encode() == b""


def test_field_order_does_not_depend_on_declaration_order() -> None:
    ordered = encode_message([(1, "uint32", 3), (2, "bytes", b"ab")])
    shuffled = encode_message([(2, "bytes", b"ab"), (1, "uint32", 3)])

    assert ordered == shuffled == b"\x08\x03\x12\x02ab"


def test_equal_bodies_encode_identically() -> None:
    first = UtxoTransaction(version=1, pre_tx_hash=b"\x01" * 32, output=b"\x05", lock_id=UtxoType.ADMIN)
    second = UtxoTransaction(version=1, pre_tx_hash=b"\x01" * 32, output=b"\x05", lock_id=1002)

    assert first.encode() == second.encode()
    assert first.encode().endswith(b"\x20\xea\x07")


def test_uint32_overflow_is_rejected() -> None:
    with pytest.raises(EncodingError):
        Transaction(version=1 << 32).encode()


def test_hex_helpers() -> None:
    assert to_hex(b"\x0a\xbc") == "0x0abc"
    assert from_hex("0xabc") == b"\x0a\xbc"
    assert from_hex(None) == b""
    with pytest.raises(EncodingError):
        from_hex("0xzz")
