import pytest
from gmssl import sm2

from cldi.account import Account
from cldi.crypto import EthCrypto, SmCrypto, get_crypto
from cldi.errors import (
    ConfigurationError,
    InvalidLengthError,
    ProtocolMismatchError,
    SigningError,
    WalletError,
)


@pytest.fixture(params=["sm", "eth"])
def crypto(request):
    return get_crypto(request.param)


def test_sign_and_verify_round_trip(crypto) -> None:
    account = Account.generate(crypto)
    digest = crypto.hash(b"hello cita-cloud")

    signature = account.sign(digest)

    assert len(signature) == crypto.Signature.LENGTH
    assert crypto.verify(account.address, digest, signature)


def test_verify_rejects_other_signer(crypto) -> None:
    signer = Account.generate(crypto)
    other = Account.generate(crypto)
    digest = crypto.hash(b"payload")

    assert not crypto.verify(other.address, digest, signer.sign(digest))


def test_verify_rejects_tampered_digest(crypto) -> None:
    account = Account.generate(crypto)
    signature = account.sign(crypto.hash(b"payload"))

    assert not crypto.verify(account.address, crypto.hash(b"other payload"), signature)


def test_signing_requires_a_digest(crypto) -> None:
    account = Account.generate(crypto)

    with pytest.raises(SigningError):
        account.sign(b"not a 32 byte digest")


def test_address_is_tail_of_public_key_digest(crypto) -> None:
    account = Account.generate(crypto)

    assert len(account.address) == 20
    assert account.address == crypto.hash(account.public_key)[-20:]


def test_public_key_derivation_is_stable(crypto) -> None:
    account = Account.generate(crypto)

    restored = Account.from_private_key(crypto, account.private_key)

    assert restored.public_key == account.public_key
    assert restored.address == account.address


def test_fixed_bytes_reject_wrong_length(crypto) -> None:
    with pytest.raises(InvalidLengthError) as excinfo:
        crypto.Hash.from_slice(b"\x00" * 31)

    assert excinfo.value.expected == 32
    assert excinfo.value.actual == 31
    assert crypto.Address.from_hex("0x" + "ab" * 20).to_hex() == "0x" + "ab" * 20


def test_cross_provider_signature_is_a_protocol_mismatch() -> None:
    sm, eth = SmCrypto(), EthCrypto()
    sm_account = Account.generate(sm)
    digest = sm.hash(b"payload")
    signature = sm_account.sign(digest)

    with pytest.raises(ProtocolMismatchError):
        eth.verify(sm_account.address, digest, signature)


def test_sm_verifier_rejects_eth_signature() -> None:
    sm, eth = SmCrypto(), EthCrypto()
    eth_account = Account.generate(eth)
    digest = eth.hash(b"payload")
    signature = eth_account.sign(digest)

    with pytest.raises(ProtocolMismatchError):
        sm.verify(eth_account.address, digest, signature)


def test_sm_signature_follows_standard_za_form() -> None:
    sm = SmCrypto()
    account = Account.generate(sm)
    digest = sm.hash(b"tx body")

    signature = account.sign(digest)

    engine = sm2.CryptSM2(private_key="", public_key="")
    engine.public_key = account.public_key.hex()
    assert signature[64:] == account.public_key
    assert engine.verify_with_sm3(signature[:64].hex(), bytes(digest))
    assert not engine.verify(signature[:64].hex(), bytes(digest))


def test_provider_refuses_foreign_account() -> None:
    sm_account = Account.generate(SmCrypto())

    with pytest.raises(ProtocolMismatchError):
        EthCrypto().sign(sm_account, b"\x01" * 32)


def test_known_digests() -> None:
    assert (
        SmCrypto().hash(b"abc").hex()
        == "66c7f0f462eeedd9d1f2d46bdc10e4e24167c4875cf2f7a2297da02b8f4ba8e0"
    )
    assert (
        EthCrypto().hash(b"").hex()
        == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_from_keypair_rejects_mismatched_keys(crypto) -> None:
    first = Account.generate(crypto)
    second = Account.generate(crypto)

    with pytest.raises(WalletError):
        Account.from_keypair(crypto, second.public_key, first.private_key)


def test_uncompressed_public_key_prefix_is_accepted(crypto) -> None:
    account = Account.generate(crypto)

    restored = Account.from_keypair(crypto, b"\x04" + account.public_key, account.private_key)

    assert restored.address == account.address


def test_account_repr_hides_private_key(crypto) -> None:
    account = Account.generate(crypto)

    assert account.private_key.hex() not in repr(account)


def test_get_crypto_rejects_unknown_name() -> None:
    assert get_crypto().name == "sm"
    assert get_crypto("ETH").name == "eth"
    with pytest.raises(ConfigurationError):
        get_crypto("rsa")
