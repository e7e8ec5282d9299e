"""Key derivation helpers: PBKDF2 for the default profile, Argon2id as an option."""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from argon2.exceptions import Argon2Error
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from eula_encrypt.crypto.keys import SYMMETRIC_KEY_LEN, SymmetricKey
from eula_encrypt.errors import KeyDerivationError

DEFAULT_SALT = b"Eula Lawrence"
DEFAULT_ITERATIONS = 65536
PBKDF2_ITERATIONS_MIN = 10_000
PBKDF2_ITERATIONS_MAX = 10_000_000
PBKDF2_SALT_MIN_LEN = 8

DEFAULT_MEM_COST_KIB = 64 * 1024  # 64 MiB
DEFAULT_TIME_COST = 3
DEFAULT_PARALLELISM = 1
ARGON_SALT_LEN = 16
# Fixed so that equal passwords give equal keys across sessions.
DEFAULT_ARGON_SALT = b"Eula Lawrence v2"

RANDOM_PASSWORD_LEN = 64
# 79 consecutive code points starting at '0'.
PASSWORD_ALPHABET = "".join(chr(code) for code in range(ord("0"), ord("0") + 79))


@dataclass(frozen=True)
class Pbkdf2Params:
    salt: bytes = DEFAULT_SALT
    iterations: int = DEFAULT_ITERATIONS
    key_len: int = SYMMETRIC_KEY_LEN


@dataclass(frozen=True)
class Argon2Params:
    mem_cost_kib: int = DEFAULT_MEM_COST_KIB
    time_cost: int = DEFAULT_TIME_COST
    parallelism: int = DEFAULT_PARALLELISM


# Application-wide profile. Changing it changes every password-derived key.
DEFAULT_PBKDF2_PARAMS = Pbkdf2Params()


def _validate_pbkdf2_params(params: Pbkdf2Params) -> Pbkdf2Params:
    if not (PBKDF2_ITERATIONS_MIN <= params.iterations <= PBKDF2_ITERATIONS_MAX):
        raise KeyDerivationError(
            f"PBKDF2 iterations must be between {PBKDF2_ITERATIONS_MIN} and {PBKDF2_ITERATIONS_MAX}",
        )
    if len(params.salt) < PBKDF2_SALT_MIN_LEN:
        raise KeyDerivationError(f"PBKDF2 salt must be at least {PBKDF2_SALT_MIN_LEN} bytes")
    if params.key_len != SYMMETRIC_KEY_LEN:
        raise KeyDerivationError(f"Derived key length must be {SYMMETRIC_KEY_LEN} bytes")
    return params


def resolve_pbkdf2_params(
    *,
    salt: bytes | None = None,
    iterations: int | None = None,
    base: Pbkdf2Params | None = None,
) -> Pbkdf2Params:
    """Build validated PBKDF2 parameters using overrides when provided."""
    defaults = base or DEFAULT_PBKDF2_PARAMS
    candidate = Pbkdf2Params(
        salt=salt if salt is not None else defaults.salt,
        iterations=iterations if iterations is not None else defaults.iterations,
        key_len=defaults.key_len,
    )
    return _validate_pbkdf2_params(candidate)


def derive_key(password: str, params: Pbkdf2Params | None = None) -> SymmetricKey:
    """Derive a 256-bit AES key from ``password`` with PBKDF2-HMAC-SHA256.

    The same password and parameters always give the same key.
    """
    params = _validate_pbkdf2_params(params or DEFAULT_PBKDF2_PARAMS)
    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=params.key_len,
            salt=params.salt,
            iterations=params.iterations,
        )
        material = kdf.derive(password.encode("utf-8"))
    except (UnsupportedAlgorithm, ValueError, TypeError, AttributeError) as exc:
        raise KeyDerivationError("PBKDF2 key derivation failed") from exc
    return SymmetricKey(material)


def derive_key_argon2(
    password: str,
    salt: bytes = DEFAULT_ARGON_SALT,
    params: Argon2Params | None = None,
) -> SymmetricKey:
    """Derive a 256-bit AES key from ``password`` using Argon2id."""

    if len(salt) != ARGON_SALT_LEN:
        raise KeyDerivationError(f"Salt must be {ARGON_SALT_LEN} bytes long, got {len(salt)}")

    params = params or Argon2Params()
    try:
        material = hash_secret_raw(
            secret=password.encode("utf-8"),
            salt=salt,
            time_cost=params.time_cost,
            memory_cost=params.mem_cost_kib,
            parallelism=params.parallelism,
            hash_len=SYMMETRIC_KEY_LEN,
            type=Type.ID,
            version=19,
        )
    except (Argon2Error, ValueError) as exc:
        raise KeyDerivationError("Argon2id key derivation failed") from exc
    return SymmetricKey(material)


def random_password(length: int = RANDOM_PASSWORD_LEN) -> str:
    """Return a password of ``length`` characters drawn from :data:`PASSWORD_ALPHABET`."""

    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


__all__ = [
    "ARGON_SALT_LEN",
    "Argon2Params",
    "DEFAULT_ARGON_SALT",
    "DEFAULT_ITERATIONS",
    "DEFAULT_PBKDF2_PARAMS",
    "DEFAULT_SALT",
    "PASSWORD_ALPHABET",
    "Pbkdf2Params",
    "RANDOM_PASSWORD_LEN",
    "derive_key",
    "derive_key_argon2",
    "random_password",
    "resolve_pbkdf2_params",
]
