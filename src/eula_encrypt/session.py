"""Session facade: one symmetric key and one RSA key pair per instance.

Usage (password mode)::

    encryptor = EulaSession("password123")
    decryptor = EulaSession("password123")
    container = encryptor.encrypt("sample.txt")          # sample.txt.eula
    decryptor.decrypt(container)                         # sample.txt

Usage (key exchange)::

    alice, bob = EulaSession(), EulaSession()
    wrapped = bob.wrap_own_key_for(alice.share_public_key())
    bob.encrypt("sample.txt")
    alice.decrypt("sample.txt.eula", wrapped_key=wrapped)
"""
from __future__ import annotations

import hashlib
import logging
import os
from functools import partial
from pathlib import Path
from typing import Iterable, Literal, Union, overload

from cryptography.hazmat.primitives.asymmetric import rsa

from eula_encrypt.container.batch import BatchResult, run_batch
from eula_encrypt.container.codec import decrypt_file, encrypt_file
from eula_encrypt.crypto.kdf import (
    Argon2Params,
    Pbkdf2Params,
    derive_key,
    derive_key_argon2,
    random_password,
)
from eula_encrypt.crypto.keypair import (
    WRAP_PADDINGS,
    AsymmetricKeyPair,
    WrapPadding,
    export_private_key,
    export_public_key,
    generate_key_pair,
    import_public_key,
    public_key_der,
    unwrap,
    wrap,
)
from eula_encrypt.crypto.keys import SymmetricKey
from eula_encrypt.errors import KeyDerivationError, KeyExchangeError

logger = logging.getLogger(__name__)

KdfName = Literal["pbkdf2", "argon2id"]
PathArg = Union[str, "os.PathLike[str]"]
KeyArg = Union[SymmetricKey, str, None]

FINGERPRINT_LABEL = b"eula-session-v1"


def _derive_session_key(password: str, kdf: KdfName, params: Pbkdf2Params | Argon2Params | None) -> SymmetricKey:
    if kdf == "pbkdf2":
        if params is not None and not isinstance(params, Pbkdf2Params):
            raise KeyDerivationError("pbkdf2 requires Pbkdf2Params")
        return derive_key(password, params)
    if kdf == "argon2id":
        if params is not None and not isinstance(params, Argon2Params):
            raise KeyDerivationError("argon2id requires Argon2Params")
        return derive_key_argon2(password, params=params)
    raise KeyDerivationError(f"Unknown key derivation function: {kdf}")


def _is_single_path(target: object) -> bool:
    return isinstance(target, (str, os.PathLike))


class EulaSession:
    """Encrypts files with its own key and exchanges keys with peers.

    Without a password a random 64-character password seeds the key, so the
    key can only leave the session through :meth:`wrap_own_key_for` or
    :meth:`export_key`. With a password, any session built from the same
    password (and KDF settings) holds the same key. A fresh RSA key pair is
    generated in both cases.
    """

    def __init__(
        self,
        password: str | None = None,
        *,
        kdf: KdfName = "pbkdf2",
        kdf_params: Pbkdf2Params | Argon2Params | None = None,
        wrap_padding: WrapPadding = "oaep",
        max_workers: int | None = None,
    ) -> None:
        if wrap_padding not in WRAP_PADDINGS:
            raise KeyExchangeError(f"Unknown wrap padding: {wrap_padding!r}")
        self.has_password_key = password is not None
        seed = password if password is not None else random_password()
        self._key = _derive_session_key(seed, kdf, kdf_params)
        self._key_pair: AsymmetricKeyPair = generate_key_pair()
        self._wrap_padding: WrapPadding = wrap_padding
        self._max_workers = max_workers
        logger.debug(
            "Session ready (%s key, %d-bit RSA)",
            "password" if self.has_password_key else "random",
            self._key_pair.key_size,
        )

    @property
    def key(self) -> SymmetricKey:
        return self._key

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self._key_pair.public_key

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    @overload
    def encrypt(self, target: PathArg, delete_original: bool = ..., *, key: KeyArg = ...) -> Path: ...

    @overload
    def encrypt(self, target: Iterable[PathArg], delete_original: bool = ..., *, key: KeyArg = ...) -> BatchResult: ...

    def encrypt(self, target, delete_original=False, *, key=None):  # type: ignore[no-untyped-def]
        """Encrypt one path (returns the container path) or many (returns a :class:`BatchResult`)."""
        if _is_single_path(target):
            return encrypt_file(self._resolve_key(key), target, delete_original)
        return self.encrypt_many(target, delete_original, key=key)

    @overload
    def decrypt(
        self,
        target: PathArg,
        delete_encrypted: bool = ...,
        *,
        key: KeyArg = ...,
        wrapped_key: str | None = ...,
    ) -> Path | None: ...

    @overload
    def decrypt(
        self,
        target: Iterable[PathArg],
        delete_encrypted: bool = ...,
        *,
        key: KeyArg = ...,
        wrapped_key: str | None = ...,
    ) -> BatchResult: ...

    def decrypt(self, target, delete_encrypted=False, *, key=None, wrapped_key=None):  # type: ignore[no-untyped-def]
        """Decrypt one container or many.

        ``wrapped_key`` is a key a peer wrapped for this session; it is
        unwrapped with this session's private key before use. Paths without
        the ``.eula`` suffix are skipped (``None`` output).
        """
        resolved = self._resolve_key(key, wrapped_key)
        if _is_single_path(target):
            return decrypt_file(resolved, target, delete_encrypted)
        return self.decrypt_many(target, delete_encrypted, key=resolved)

    def encrypt_many(
        self,
        paths: Iterable[PathArg],
        delete_original: bool = False,
        *,
        key: KeyArg = None,
    ) -> BatchResult:
        operation = partial(encrypt_file, self._resolve_key(key), delete_original=delete_original)
        return run_batch(operation, paths, max_workers=self._max_workers)

    def decrypt_many(
        self,
        paths: Iterable[PathArg],
        delete_encrypted: bool = False,
        *,
        key: KeyArg = None,
        wrapped_key: str | None = None,
    ) -> BatchResult:
        operation = partial(decrypt_file, self._resolve_key(key, wrapped_key), delete_encrypted=delete_encrypted)
        return run_batch(operation, paths, max_workers=self._max_workers)

    def _resolve_key(self, key: KeyArg, wrapped_key: str | None = None) -> SymmetricKey:
        if key is not None and wrapped_key is not None:
            raise ValueError("Pass either key or wrapped_key, not both")
        if wrapped_key is not None:
            return self.unwrap_peer_key(wrapped_key)
        if key is None:
            return self._key
        if isinstance(key, SymmetricKey):
            return key
        return SymmetricKey.from_base64(key)

    # ------------------------------------------------------------------
    # Key exchange
    # ------------------------------------------------------------------

    def share_public_key(self) -> str:
        """Base64 DER of this session's public key, safe to hand to a peer."""
        return export_public_key(self._key_pair)

    def export_private_key(self) -> str:
        return export_private_key(self._key_pair)

    def export_key(self) -> str:
        """Base64 of this session's raw symmetric key."""
        return self._key.to_base64()

    def wrap_own_key_for(self, peer_public_key: str) -> str:
        """Wrap this session's key under ``peer_public_key`` for transport."""
        return wrap(self._key, import_public_key(peer_public_key), wrap_padding=self._wrap_padding)

    def unwrap_peer_key(self, wrapped: str) -> SymmetricKey:
        """Recover a key a peer wrapped with this session's public key."""
        return unwrap(wrapped, self._key_pair, wrap_padding=self._wrap_padding)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def fingerprint(self) -> str:
        """SHA-256 over public fields only: label, RSA key size, public key DER."""
        fields = (
            FINGERPRINT_LABEL,
            str(self._key_pair.key_size).encode("ascii"),
            public_key_der(self._key_pair),
        )
        digest = hashlib.sha256()
        for field in fields:
            digest.update(len(field).to_bytes(4, "big"))
            digest.update(field)
        return digest.hexdigest()

    def __repr__(self) -> str:
        mode = "password" if self.has_password_key else "random"
        return f"EulaSession(mode={mode!r}, fingerprint={self.fingerprint()[:16]!r})"

    __str__ = __repr__


__all__ = ["EulaSession", "KdfName"]
