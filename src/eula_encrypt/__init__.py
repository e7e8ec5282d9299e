"""Eula Encrypt package."""

from importlib.metadata import PackageNotFoundError, version

from eula_encrypt.crypto.kdf import Argon2Params, Pbkdf2Params, resolve_pbkdf2_params
from eula_encrypt.hashing import FileDigest, sha256_file, sha512_file
from eula_encrypt.session import EulaSession

__all__ = [
    "Argon2Params",
    "EulaSession",
    "FileDigest",
    "Pbkdf2Params",
    "__version__",
    "resolve_pbkdf2_params",
    "sha256_file",
    "sha512_file",
]

try:
    __version__ = version("eula-encrypt")
except PackageNotFoundError:  # pragma: no cover - happens only from source checkout
    __version__ = "0.0.0-dev"
