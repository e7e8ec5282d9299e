"""RSA key pairs, their Base64 DER encodings, and symmetric key wrapping."""
from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from typing import Literal, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from eula_encrypt.crypto.keys import SYMMETRIC_KEY_LEN, SymmetricKey, decode_base64
from eula_encrypt.errors import KeyExchangeError, KeyFormatError, KeyGenerationError

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
PKCS1V15_OVERHEAD = 11
OAEP_HASH_LEN = 32

WrapPadding = Literal["oaep", "pkcs1v15"]
WRAP_PADDINGS: tuple[str, ...] = ("oaep", "pkcs1v15")

# Every unwrap failure surfaces with this one message.
_UNWRAP_FAILED = "Unable to unwrap symmetric key"


@dataclass(frozen=True)
class AsymmetricKeyPair:
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @property
    def key_size(self) -> int:
        return self.public_key.key_size

    def __repr__(self) -> str:
        return f"AsymmetricKeyPair(key_size={self.key_size}, fingerprint={public_key_fingerprint(self.public_key)[:16]!r})"


PublicKeyLike = Union[AsymmetricKeyPair, rsa.RSAPublicKey]
PrivateKeyLike = Union[AsymmetricKeyPair, rsa.RSAPrivateKey]


def generate_key_pair(key_size: int = RSA_KEY_SIZE) -> AsymmetricKeyPair:
    """Generate a fresh RSA key pair."""
    try:
        private_key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size)
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise KeyGenerationError(f"Unable to generate a {key_size}-bit RSA key pair") from exc
    return AsymmetricKeyPair(private_key=private_key, public_key=private_key.public_key())


def _as_public(key: PublicKeyLike) -> rsa.RSAPublicKey:
    return key.public_key if isinstance(key, AsymmetricKeyPair) else key


def _as_private(key: PrivateKeyLike) -> rsa.RSAPrivateKey:
    return key.private_key if isinstance(key, AsymmetricKeyPair) else key


def public_key_der(key: PublicKeyLike) -> bytes:
    """SubjectPublicKeyInfo DER of the public half."""
    return _as_public(key).public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def export_public_key(key: PublicKeyLike) -> str:
    """Base64 of the SubjectPublicKeyInfo DER structure."""
    return base64.b64encode(public_key_der(key)).decode("ascii")


def export_private_key(key: PrivateKeyLike) -> str:
    """Base64 of the unencrypted PKCS8 DER structure."""
    der = _as_private(key).private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(der).decode("ascii")


def import_public_key(text: str) -> rsa.RSAPublicKey:
    der = decode_base64(text, what="public key")
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError("public key is not a valid SubjectPublicKeyInfo structure") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyFormatError("public key is not an RSA key")
    return key


def import_private_key(text: str) -> rsa.RSAPrivateKey:
    der = decode_base64(text, what="private key")
    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError("private key is not a valid PKCS8 structure") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError("private key is not an RSA key")
    return key


def _padding_for(name: WrapPadding) -> padding.AsymmetricPadding:
    if name == "oaep":
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None,
        )
    if name == "pkcs1v15":
        return padding.PKCS1v15()
    raise KeyExchangeError(f"Unknown wrap padding: {name!r}")


def max_wrap_payload(key_size: int = RSA_KEY_SIZE, wrap_padding: WrapPadding = "oaep") -> int:
    """Largest payload in bytes that fits one RSA block with ``wrap_padding``."""
    modulus_len = (key_size + 7) // 8
    if wrap_padding == "pkcs1v15":
        return modulus_len - PKCS1V15_OVERHEAD
    if wrap_padding == "oaep":
        return modulus_len - 2 * OAEP_HASH_LEN - 2
    raise ValueError(f"Unknown wrap padding: {wrap_padding}")


def wrap(
    key: SymmetricKey,
    recipient_public_key: PublicKeyLike,
    *,
    wrap_padding: WrapPadding = "oaep",
) -> str:
    """Encrypt ``key`` under ``recipient_public_key`` and return it as Base64."""
    public_key = _as_public(recipient_public_key)
    scheme = _padding_for(wrap_padding)

    limit = max_wrap_payload(public_key.key_size, wrap_padding)
    if len(key.material) > limit:
        raise KeyExchangeError(
            f"{len(key.material)}-byte key does not fit a {public_key.key_size}-bit modulus (max {limit})"
        )

    try:
        wrapped = public_key.encrypt(key.material, scheme)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyExchangeError("Unable to wrap symmetric key") from exc
    return base64.b64encode(wrapped).decode("ascii")


def unwrap(
    wrapped: str,
    own_private_key: PrivateKeyLike,
    *,
    wrap_padding: WrapPadding = "oaep",
) -> SymmetricKey:
    """Recover a symmetric key wrapped with :func:`wrap`.

    Malformed input, a wrong private key and a padding failure all raise the
    same :class:`KeyExchangeError` so that the failure reason cannot be used
    as a padding oracle.
    """
    private_key = _as_private(own_private_key)
    scheme = _padding_for(wrap_padding)

    try:
        ciphertext = decode_base64(wrapped, what="wrapped key")
    except KeyFormatError as exc:
        raise KeyExchangeError(_UNWRAP_FAILED) from exc

    try:
        plaintext = bytearray(private_key.decrypt(ciphertext, scheme))
    except (ValueError, TypeError, UnsupportedAlgorithm):
        # Cause dropped on purpose; the library message names the failed check.
        raise KeyExchangeError(_UNWRAP_FAILED) from None

    try:
        if len(plaintext) != SYMMETRIC_KEY_LEN:
            raise KeyExchangeError(_UNWRAP_FAILED)
        return SymmetricKey(bytes(plaintext))
    finally:
        _zeroize(plaintext)


def public_key_fingerprint(key: PublicKeyLike) -> str:
    """SHA-256 hex digest of the public key DER. Uses public material only."""
    return hashlib.sha256(public_key_der(key)).hexdigest()


def _zeroize(buffer: bytearray | None) -> None:
    if buffer is None:
        return
    for idx in range(len(buffer)):
        buffer[idx] = 0


__all__ = [
    "AsymmetricKeyPair",
    "RSA_KEY_SIZE",
    "WRAP_PADDINGS",
    "WrapPadding",
    "export_private_key",
    "export_public_key",
    "generate_key_pair",
    "import_private_key",
    "import_public_key",
    "max_wrap_payload",
    "public_key_der",
    "public_key_fingerprint",
    "unwrap",
    "wrap",
]
