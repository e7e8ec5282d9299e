"""Public container API re-exported for external users.

The objects listed in ``__all__`` form the supported public surface for
Python consumers. Everything else in :mod:`eula_encrypt.container` is
considered internal and may change without notice.
"""
from __future__ import annotations

from eula_encrypt.container.batch import BatchResult, FileOutcome, run_batch
from eula_encrypt.container.codec import (
    CONTAINER_SUFFIX,
    STREAM_CHUNK_SIZE,
    container_path_for,
    decrypt_file,
    encrypt_file,
    plaintext_path_for,
)
from eula_encrypt.container.format import HEADER_LEN, MAGIC, parse_stream_header

__all__ = [
    "BatchResult",
    "CONTAINER_SUFFIX",
    "FileOutcome",
    "HEADER_LEN",
    "MAGIC",
    "STREAM_CHUNK_SIZE",
    "container_path_for",
    "decrypt_file",
    "encrypt_file",
    "parse_stream_header",
    "plaintext_path_for",
    "run_batch",
]
