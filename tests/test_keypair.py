import base64
import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from eula_encrypt.crypto import keypair
from eula_encrypt.crypto.keypair import (
    RSA_KEY_SIZE,
    export_private_key,
    export_public_key,
    generate_key_pair,
    import_private_key,
    import_public_key,
    max_wrap_payload,
    public_key_fingerprint,
    unwrap,
    wrap,
)
from eula_encrypt.crypto.keys import SymmetricKey
from eula_encrypt.errors import KeyExchangeError, KeyFormatError, KeyGenerationError


@pytest.fixture(scope="module")
def pair() -> keypair.AsymmetricKeyPair:
    return generate_key_pair()


@pytest.fixture(scope="module")
def other_pair() -> keypair.AsymmetricKeyPair:
    return generate_key_pair()


def test_generated_pair_is_2048_bit(pair: keypair.AsymmetricKeyPair) -> None:
    assert RSA_KEY_SIZE == 2048
    assert pair.key_size == 2048
    assert pair.public_key.public_numbers() == pair.private_key.public_key().public_numbers()


def test_generation_failure_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(**_kwargs):
        raise ValueError("key_size must be at least 1024-bits")

    monkeypatch.setattr(keypair.rsa, "generate_private_key", broken)

    with pytest.raises(KeyGenerationError):
        generate_key_pair()


def test_export_import_public(pair: keypair.AsymmetricKeyPair) -> None:
    encoded = export_public_key(pair)
    der = base64.b64decode(encoded)

    assert der == pair.public_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    restored = import_public_key(encoded)
    assert restored.public_numbers() == pair.public_key.public_numbers()
    assert export_public_key(pair.public_key) == encoded


def test_export_import_private(pair: keypair.AsymmetricKeyPair) -> None:
    encoded = export_private_key(pair)

    restored = import_private_key(encoded)

    assert restored.private_numbers() == pair.private_key.private_numbers()


@pytest.mark.parametrize("text", ["", "%%%", base64.b64encode(b"not der").decode()])
def test_import_rejects_malformed(text: str) -> None:
    with pytest.raises(KeyFormatError):
        import_public_key(text)
    with pytest.raises(KeyFormatError):
        import_private_key(text)


def test_import_rejects_non_rsa_keys() -> None:
    ec_key = ec.generate_private_key(ec.SECP256R1())
    public_text = base64.b64encode(
        ec_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
    ).decode()
    private_text = base64.b64encode(
        ec_key.private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    ).decode()

    with pytest.raises(KeyFormatError):
        import_public_key(public_text)
    with pytest.raises(KeyFormatError):
        import_private_key(private_text)


def test_public_key_is_not_a_private_key(pair: keypair.AsymmetricKeyPair) -> None:
    with pytest.raises(KeyFormatError):
        import_private_key(export_public_key(pair))


@pytest.mark.parametrize("wrap_padding", ["oaep", "pkcs1v15"])
def test_wrap_round_trip(pair: keypair.AsymmetricKeyPair, wrap_padding: str) -> None:
    key = SymmetricKey(os.urandom(32))

    wrapped = wrap(key, pair.public_key, wrap_padding=wrap_padding)

    assert len(base64.b64decode(wrapped)) == 256
    assert unwrap(wrapped, pair.private_key, wrap_padding=wrap_padding) == key
    assert unwrap(wrapped, pair, wrap_padding=wrap_padding).material == key.material


def test_wrap_is_randomized(pair: keypair.AsymmetricKeyPair) -> None:
    key = SymmetricKey(os.urandom(32))
    assert wrap(key, pair) != wrap(key, pair)


def test_unwrap_with_wrong_private_key(pair: keypair.AsymmetricKeyPair, other_pair: keypair.AsymmetricKeyPair) -> None:
    wrapped = wrap(SymmetricKey(os.urandom(32)), pair)

    with pytest.raises(KeyExchangeError) as excinfo:
        unwrap(wrapped, other_pair)
    assert excinfo.value.__cause__ is None


def test_unwrap_failures_are_indistinguishable(pair: keypair.AsymmetricKeyPair) -> None:
    wrapped = bytearray(base64.b64decode(wrap(SymmetricKey(os.urandom(32)), pair)))
    wrapped[-1] ^= 0x01
    tampered = base64.b64encode(bytes(wrapped)).decode()
    short = base64.b64encode(b"\x00" * 10).decode()

    messages = set()
    for candidate in (tampered, short, "%%% not base64"):
        with pytest.raises(KeyExchangeError) as excinfo:
            unwrap(candidate, pair)
        messages.add(str(excinfo.value))

    assert len(messages) == 1


def test_unwrap_rejects_payload_of_wrong_length(pair: keypair.AsymmetricKeyPair) -> None:
    from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
    from cryptography.hazmat.primitives import hashes

    raw = pair.public_key.encrypt(
        b"x" * 16,
        asym_padding.OAEP(mgf=asym_padding.MGF1(hashes.SHA256()), algorithm=hashes.SHA256(), label=None),
    )

    with pytest.raises(KeyExchangeError):
        unwrap(base64.b64encode(raw).decode(), pair)


def test_max_wrap_payload() -> None:
    assert max_wrap_payload(2048, "pkcs1v15") == 245
    assert max_wrap_payload(2048, "oaep") == 190
    with pytest.raises(ValueError):
        max_wrap_payload(2048, "none")  # type: ignore[arg-type]


def test_wrap_rejects_oversized_payload(monkeypatch: pytest.MonkeyPatch, pair: keypair.AsymmetricKeyPair) -> None:
    monkeypatch.setattr(keypair, "max_wrap_payload", lambda *_args: 16)

    with pytest.raises(KeyExchangeError):
        wrap(SymmetricKey(os.urandom(32)), pair)


def test_unknown_padding_is_a_key_exchange_error(pair: keypair.AsymmetricKeyPair) -> None:
    key = SymmetricKey(os.urandom(32))

    with pytest.raises(KeyExchangeError):
        wrap(key, pair, wrap_padding="raw")  # type: ignore[arg-type]
    with pytest.raises(KeyExchangeError):
        unwrap(wrap(key, pair), pair, wrap_padding="oaep-typo")  # type: ignore[arg-type]


def test_fingerprint_uses_public_material_only(pair: keypair.AsymmetricKeyPair) -> None:
    fingerprint = public_key_fingerprint(pair)

    assert fingerprint == public_key_fingerprint(pair.public_key)
    assert fingerprint == public_key_fingerprint(import_public_key(export_public_key(pair)))
    assert len(fingerprint) == 64
    assert fingerprint[:16] in repr(pair)
    assert isinstance(pair.private_key, rsa.RSAPrivateKey)
    assert export_private_key(pair) not in repr(pair)
