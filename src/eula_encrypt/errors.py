"""Custom exceptions for Eula Encrypt."""
from __future__ import annotations

from typing import Sequence


class EulaEncryptError(Exception):
    """Base exception for Eula Encrypt."""


class KeyDerivationError(EulaEncryptError):
    """Symmetric key could not be derived from a password."""


class KeyGenerationError(EulaEncryptError):
    """Asymmetric key pair could not be generated."""


class KeyFormatError(EulaEncryptError):
    """Encoded key string is malformed or holds the wrong kind of key."""


class KeyExchangeError(EulaEncryptError):
    """Wrapping or unwrapping a symmetric key failed."""


class CipherError(EulaEncryptError):
    """Encryption or decryption of a container failed (wrong key, corrupt data)."""


class StreamIOError(EulaEncryptError, OSError):
    """Reading or writing a file stream failed."""


class BatchError(EulaEncryptError):
    """One or more files of a batch operation failed."""

    def __init__(self, failures: Sequence[object]) -> None:
        self.failures = list(failures)
        super().__init__(f"{len(self.failures)} file(s) failed")
