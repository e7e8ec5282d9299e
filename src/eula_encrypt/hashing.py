"""Streaming file digests."""
from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

from eula_encrypt.errors import StreamIOError

CHUNK_SIZE = 65536  # 64KB


def _file_digest(path: os.PathLike[str] | str, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    try:
        with Path(path).open("rb") as f:
            while True:
                data = f.read(CHUNK_SIZE)
                if not data:
                    break
                digest.update(data)
    except OSError as exc:
        raise StreamIOError(f"Unable to read {path} for hashing") from exc
    return digest.hexdigest()


def sha256_file(path: os.PathLike[str] | str) -> str:
    return _file_digest(path, "sha256")


def sha512_file(path: os.PathLike[str] | str) -> str:
    return _file_digest(path, "sha512")


@dataclass(frozen=True)
class FileDigest:
    """SHA-256 and SHA-512 of one file; equal only when both match."""

    sha256: str
    sha512: str

    @classmethod
    def of(cls, path: os.PathLike[str] | str) -> FileDigest:
        return cls(sha256=sha256_file(path), sha512=sha512_file(path))

    def __str__(self) -> str:
        return f"SHA-256 : {self.sha256}\nSHA-512 : {self.sha512}"


__all__ = ["FileDigest", "sha256_file", "sha512_file"]
