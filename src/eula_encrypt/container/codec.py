"""Streaming encrypt/decrypt of single files into ``.eula`` containers.

Pipeline (encrypt)::

    source file --8 KiB chunks--> AES-256-GCM --> LZ4 frame --> <name>.eula

Decryption runs the same stages in reverse. The cipher is the inner stage and
compression the outer one. Output is always staged in a temporary sibling file
and only moved into place once the whole stream has been written (and, for
decryption, authenticated), so a failed call never leaves a half-written result
behind. The result takes the permission bits of the file it was made from.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

import lz4.frame
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from eula_encrypt.container.format import HEADER_LEN, TAG_LEN, new_stream_header, parse_stream_header
from eula_encrypt.crypto.keys import SymmetricKey
from eula_encrypt.errors import CipherError, EulaEncryptError, StreamIOError

logger = logging.getLogger(__name__)

CONTAINER_SUFFIX = ".eula"
STREAM_CHUNK_SIZE = 8 * 1024


def container_path_for(path: os.PathLike[str] | str) -> Path:
    """Return ``path`` with the container suffix appended."""
    return Path(os.fspath(path) + CONTAINER_SUFFIX)


def plaintext_path_for(path: os.PathLike[str] | str) -> Path | None:
    """Return ``path`` without the container suffix, or ``None`` if it has none."""
    text = os.fspath(path)
    if not text.endswith(CONTAINER_SUFFIX) or Path(text).name == CONTAINER_SUFFIX:
        return None
    return Path(text[: -len(CONTAINER_SUFFIX)])


@contextmanager
def _staged_output(target: Path, overwrite: bool, mode_from: Path) -> Iterator[Path]:
    """Yield a temp sibling of ``target``, moved into place with the mode bits of ``mode_from``."""
    if target.exists() and not overwrite:
        raise StreamIOError(f"Refusing to overwrite existing file: {target}")
    try:
        fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
    except OSError as exc:
        raise StreamIOError(f"Unable to create output next to {target}") from exc
    os.close(fd)
    temp_path = Path(temp_name)

    try:
        yield temp_path
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    try:
        shutil.copymode(mode_from, temp_path)
        os.replace(temp_path, target)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise StreamIOError(f"Unable to move output into place: {target}") from exc


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise StreamIOError(f"No such file: {path}")


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except OSError as exc:
        raise StreamIOError(f"Output written but unable to delete {path}") from exc


def _encrypt_stream(in_file: IO[bytes], out_file: IO[bytes], key: SymmetricKey) -> None:
    header = new_stream_header()
    header_bytes = header.to_bytes()
    encryptor = Cipher(algorithms.AES(key.material), modes.GCM(header.nonce)).encryptor()
    encryptor.authenticate_additional_data(header_bytes)

    out_file.write(header_bytes)
    while True:
        chunk = in_file.read(STREAM_CHUNK_SIZE)
        if not chunk:
            break
        ciphertext = encryptor.update(chunk)
        if ciphertext:
            out_file.write(ciphertext)

    final_chunk = encryptor.finalize()
    if final_chunk:
        out_file.write(final_chunk)
    out_file.write(encryptor.tag)


def _decrypt_stream(in_file: IO[bytes], out_file: IO[bytes], key: SymmetricKey) -> None:
    header_bytes = in_file.read(HEADER_LEN)
    header = parse_stream_header(header_bytes)
    decryptor = Cipher(algorithms.AES(key.material), modes.GCM(header.nonce)).decryptor()
    decryptor.authenticate_additional_data(header_bytes)

    # The last TAG_LEN bytes of the stream are the tag, so always hold them back.
    pending = b""
    while True:
        chunk = in_file.read(STREAM_CHUNK_SIZE)
        if not chunk:
            break
        pending += chunk
        if len(pending) > TAG_LEN:
            body, pending = pending[:-TAG_LEN], pending[-TAG_LEN:]
            plaintext = decryptor.update(body)
            if plaintext:
                out_file.write(plaintext)

    if len(pending) != TAG_LEN:
        raise CipherError("Container truncated before authentication tag")

    try:
        final_chunk = decryptor.finalize_with_tag(pending)
    except InvalidTag as exc:
        raise CipherError("Container failed integrity check (wrong key or corrupted data)") from exc
    if final_chunk:
        out_file.write(final_chunk)


def encrypt_file(
    key: SymmetricKey,
    path: os.PathLike[str] | str,
    delete_original: bool = False,
    *,
    overwrite: bool = True,
) -> Path:
    """Encrypt ``path`` into ``path + ".eula"`` and return the container path.

    With ``delete_original`` the source is removed only after the container
    has been fully written.
    """
    source = Path(path)
    target = container_path_for(source)
    _require_file(source)

    with _staged_output(target, overwrite, source) as temp_path:
        try:
            with source.open("rb") as in_file, lz4.frame.open(temp_path, mode="wb") as out_file:
                _encrypt_stream(in_file, out_file, key)
        except EulaEncryptError:
            raise
        except RuntimeError as exc:
            raise CipherError(f"Compression stage failed for {source}") from exc
        except OSError as exc:
            raise StreamIOError(f"Error encrypting {source}") from exc

    logger.debug("Encrypted %s -> %s", source, target)
    if delete_original:
        _remove(source)
    return target


def decrypt_file(
    key: SymmetricKey,
    path: os.PathLike[str] | str,
    delete_encrypted: bool = False,
    *,
    overwrite: bool = True,
) -> Path | None:
    """Decrypt a ``.eula`` container next to itself and return the plaintext path.

    Paths without the container suffix are left alone and ``None`` is
    returned. With ``delete_encrypted`` the container is removed only after
    the plaintext has been authenticated and moved into place.
    """
    container = Path(path)
    target = plaintext_path_for(container)
    if target is None:
        logger.debug("Skipping %s: no %s suffix", container, CONTAINER_SUFFIX)
        return None
    _require_file(container)

    with _staged_output(target, overwrite, container) as temp_path:
        try:
            with lz4.frame.open(container, mode="rb") as in_file, temp_path.open("wb") as out_file:
                _decrypt_stream(in_file, out_file, key)
        except EulaEncryptError:
            raise
        except (RuntimeError, EOFError) as exc:
            raise CipherError(f"{container} is not a valid compressed container") from exc
        except OSError as exc:
            raise StreamIOError(f"Error decrypting {container}") from exc

    logger.debug("Decrypted %s -> %s", container, target)
    if delete_encrypted:
        _remove(container)
    return target


__all__ = [
    "CONTAINER_SUFFIX",
    "STREAM_CHUNK_SIZE",
    "container_path_for",
    "decrypt_file",
    "encrypt_file",
    "plaintext_path_for",
]
