import pytest

from cldi.account import Account
from cldi.crypto import get_crypto
from cldi.model import SystemConfig, UtxoType
from cldi.sender import (
    ABI_ADDRESS,
    admin_output,
    block_interval_output,
    emergency_brake_output,
    resolve_valid_until_block,
    send_tx,
    send_utxo,
    store_abi_data,
    validators_output,
)


class StubController:
    def __init__(self, height: int = 100) -> None:
        self.height = height
        self.sent = []
        self.config = SystemConfig(
            version=0,
            chain_id=b"\x63" * 32,
            admin_pre_hash=b"\x0a" * 32,
            block_interval_pre_hash=b"\x0b" * 32,
            validators_pre_hash=b"\x0c" * 32,
            emergency_brake_pre_hash=b"\x0d" * 32,
        )

    def get_block_number(self, for_pending=False):
        return self.height

    def get_system_config(self):
        return self.config

    def send_raw(self, raw):
        self.sent.append(raw)
        return raw.transaction_hash


@pytest.fixture
def signer():
    return Account.generate(get_crypto("sm"))


def test_resolve_valid_until_block() -> None:
    controller = StubController(height=100)

    assert resolve_valid_until_block(controller, "+95") == 195
    assert resolve_valid_until_block(controller, "250") == 250
    assert resolve_valid_until_block(controller, 7) == 7


def test_send_tx_uses_chain_identity(signer) -> None:
    controller = StubController()

    tx_hash = send_tx(
        controller, signer, b"\x01" * 20, b"\xbe\xef", b"\x00" * 32, quota=500, valid_until_block=180
    )

    raw = controller.sent[0]
    assert tx_hash == raw.transaction_hash
    assert raw.transaction.chain_id == b"\x63" * 32
    assert raw.transaction.quota == 500
    assert raw.transaction.valid_until_block == 180
    assert raw.transaction.nonce.isdigit()
    assert raw.witness.sender == signer.address


@pytest.mark.parametrize(
    "utxo_type, pre_hash",
    [
        (UtxoType.ADMIN, b"\x0a" * 32),
        (UtxoType.BLOCK_INTERVAL, b"\x0b" * 32),
        (UtxoType.VALIDATORS, b"\x0c" * 32),
        (UtxoType.EMERGENCY_BRAKE, b"\x0d" * 32),
    ],
)
def test_send_utxo_chains_to_previous_change(signer, utxo_type, pre_hash) -> None:
    controller = StubController()

    send_utxo(controller, signer, b"\x01", utxo_type)

    raw = controller.sent[0]
    assert raw.transaction.lock_id == int(utxo_type)
    assert raw.transaction.pre_tx_hash == pre_hash
    assert len(raw.witnesses) == 1


def test_admin_payloads() -> None:
    validators = [b"\x01" * 20, b"\x02" * 20]

    assert admin_output(b"\x05" * 20) == b"\x05" * 20
    assert block_interval_output(3) == b"\x00\x00\x00\x03"
    assert validators_output(validators) == b"\x01" * 20 + b"\x02" * 20
    assert emergency_brake_output(True) == b"\x00"
    assert emergency_brake_output(False) == b""


def test_store_abi_payload() -> None:
    assert len(ABI_ADDRESS) == 20
    assert store_abi_data(b"\x01" * 20, "[]") == b"\x01" * 20 + b"[]"
