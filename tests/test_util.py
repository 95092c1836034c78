import argparse

import pytest

from cldi.util import (
    parse_addr,
    parse_data,
    parse_hash,
    parse_on_off,
    parse_u32,
    parse_u64,
    parse_valid_until,
    parse_value,
)


def test_parse_data_accepts_optional_prefix_and_odd_length() -> None:
    assert parse_data("0xabcd") == b"\xab\xcd"
    assert parse_data("abc") == b"\x0a\xbc"
    assert parse_data("0x") == b""


def test_fixed_length_parsers() -> None:
    assert parse_addr("0x" + "11" * 20) == b"\x11" * 20
    assert parse_hash("22" * 32) == b"\x22" * 32
    with pytest.raises(argparse.ArgumentTypeError, match="address length"):
        parse_addr("0x1234")
    with pytest.raises(argparse.ArgumentTypeError, match="invalid hex"):
        parse_hash("0xnothex")


def test_parse_value_left_pads_to_32_bytes() -> None:
    assert parse_value("0x01") == b"\x00" * 31 + b"\x01"
    with pytest.raises(argparse.ArgumentTypeError):
        parse_value("0x" + "ff" * 33)


def test_integer_ranges() -> None:
    assert parse_u64(str((1 << 64) - 1)) == (1 << 64) - 1
    with pytest.raises(argparse.ArgumentTypeError):
        parse_u64("-1")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_u32(str(1 << 32))


def test_valid_until_and_switch() -> None:
    assert parse_valid_until("+95") == "+95"
    assert parse_valid_until("300") == "300"
    with pytest.raises(argparse.ArgumentTypeError):
        parse_valid_until("+soon")
    assert parse_on_off("ON") is True
    assert parse_on_off("off") is False
    with pytest.raises(argparse.ArgumentTypeError):
        parse_on_off("maybe")
