"""Symmetric key value object and its Base64 encoding."""
from __future__ import annotations

import base64
import binascii
import hmac
from dataclasses import dataclass, field

from eula_encrypt.errors import KeyFormatError

SYMMETRIC_ALGORITHM = "AES"
SYMMETRIC_KEY_LEN = 32


@dataclass(frozen=True, eq=False)
class SymmetricKey:
    """A 256-bit AES key held in memory.

    The raw bytes are deliberately kept out of ``repr`` so that a key never
    ends up in a log line or a traceback.
    """

    material: bytes = field(repr=False)
    algorithm: str = SYMMETRIC_ALGORITHM

    def __post_init__(self) -> None:
        if len(self.material) != SYMMETRIC_KEY_LEN:
            raise KeyFormatError(
                f"{self.algorithm} key must be {SYMMETRIC_KEY_LEN} bytes, got {len(self.material)}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymmetricKey):
            return NotImplemented
        return self.algorithm == other.algorithm and hmac.compare_digest(self.material, other.material)

    def __hash__(self) -> int:
        return hash((SymmetricKey, self.algorithm, len(self.material)))

    def __repr__(self) -> str:
        return f"SymmetricKey(algorithm={self.algorithm!r}, bits={len(self.material) * 8})"

    __str__ = __repr__

    def to_base64(self) -> str:
        return base64.b64encode(self.material).decode("ascii")

    @classmethod
    def from_base64(cls, text: str) -> SymmetricKey:
        """Decode a key produced by :meth:`to_base64`."""
        return cls(decode_base64(text, what="symmetric key"))


def decode_base64(text: str | bytes, *, what: str) -> bytes:
    """Strictly decode Base64 text, raising :class:`KeyFormatError` on junk."""
    if isinstance(text, str):
        try:
            text = text.strip().encode("ascii")
        except UnicodeEncodeError as exc:
            raise KeyFormatError(f"{what} is not valid Base64") from exc
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise KeyFormatError(f"{what} is not valid Base64") from exc
    if not decoded:
        raise KeyFormatError(f"{what} is empty")
    return decoded


__all__ = [
    "SYMMETRIC_ALGORITHM",
    "SYMMETRIC_KEY_LEN",
    "SymmetricKey",
    "decode_base64",
]
