"""Layout of the encrypted stream stored (compressed) inside a ``.eula`` container."""

from __future__ import annotations

import os
from dataclasses import dataclass
from struct import Struct

from eula_encrypt.errors import CipherError

MAGIC = b"EULA"
VERSION_V1 = 1
CIPHER_AES_256_GCM = 0x01
NONCE_LEN = 12
TAG_LEN = 16

_HEADER_STRUCT = Struct("<4sBB12s")  # totals 18 bytes
HEADER_LEN = _HEADER_STRUCT.size


@dataclass(frozen=True)
class StreamHeader:
    version: int
    cipher_id: int
    nonce: bytes

    def to_bytes(self) -> bytes:
        return _HEADER_STRUCT.pack(MAGIC, self.version, self.cipher_id, self.nonce)


def new_stream_header() -> StreamHeader:
    """Header for a new container with a fresh random nonce."""
    return StreamHeader(version=VERSION_V1, cipher_id=CIPHER_AES_256_GCM, nonce=os.urandom(NONCE_LEN))


def parse_stream_header(data: bytes) -> StreamHeader:
    """Parse the fixed header at the start of a decompressed container stream."""
    if len(data) < HEADER_LEN:
        raise CipherError("Container stream too short for header")

    magic, version, cipher_id, nonce = _HEADER_STRUCT.unpack(data[:HEADER_LEN])
    if magic != MAGIC:
        raise CipherError("Not a Eula container (bad magic)")
    if version != VERSION_V1:
        raise CipherError(f"Unsupported container version: {version}")
    if cipher_id != CIPHER_AES_256_GCM:
        raise CipherError(f"Unsupported cipher id: {cipher_id}")
    return StreamHeader(version=version, cipher_id=cipher_id, nonce=nonce)


__all__ = [
    "CIPHER_AES_256_GCM",
    "HEADER_LEN",
    "MAGIC",
    "NONCE_LEN",
    "StreamHeader",
    "TAG_LEN",
    "VERSION_V1",
    "new_stream_header",
    "parse_stream_header",
]
