import hashlib
import os
from pathlib import Path

import pytest

from eula_encrypt.errors import StreamIOError
from eula_encrypt.hashing import FileDigest, sha256_file, sha512_file


def test_digests_match_hashlib(tmp_path: Path) -> None:
    data = os.urandom(200_000)
    path = tmp_path / "blob.bin"
    path.write_bytes(data)

    assert sha256_file(path) == hashlib.sha256(data).hexdigest()
    assert sha512_file(path) == hashlib.sha512(data).hexdigest()


def test_file_digest_equality(tmp_path: Path) -> None:
    first = tmp_path / "one"
    second = tmp_path / "two"
    first.write_bytes(b"same")
    second.write_bytes(b"same")

    assert FileDigest.of(first) == FileDigest.of(second)
    second.write_bytes(b"different")
    assert FileDigest.of(first) != FileDigest.of(second)
    assert str(FileDigest.of(first)).startswith("SHA-256 : ")


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(StreamIOError):
        sha256_file(tmp_path / "nope")
