"""Run a single-file container operation over many files on a thread pool."""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, overload

from eula_encrypt.errors import BatchError, EulaEncryptError

logger = logging.getLogger(__name__)

FileOperation = Callable[[Path], Optional[Path]]


@dataclass(frozen=True)
class FileOutcome:
    source: Path
    output: Path | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchResult(Sequence[FileOutcome]):
    """Per-file outcomes of a batch, in the order the files were given."""

    def __init__(self, outcomes: Iterable[FileOutcome]) -> None:
        self._outcomes = list(outcomes)

    @overload
    def __getitem__(self, index: int) -> FileOutcome: ...

    @overload
    def __getitem__(self, index: slice) -> list[FileOutcome]: ...

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._outcomes[index]

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[FileOutcome]:
        return iter(self._outcomes)

    def __repr__(self) -> str:
        return f"BatchResult(succeeded={len(self.succeeded)}, failed={len(self.failed)})"

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [outcome for outcome in self._outcomes if outcome.ok]

    @property
    def failed(self) -> list[FileOutcome]:
        return [outcome for outcome in self._outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_errors(self) -> None:
        if self.failed:
            raise BatchError(self.failed)


def run_batch(
    operation: FileOperation,
    paths: Iterable[os.PathLike[str] | str],
    *,
    max_workers: int | None = None,
) -> BatchResult:
    """Apply ``operation`` to every path concurrently and collect the outcomes.

    A failing file is recorded in its :class:`FileOutcome` and does not stop
    the others. Only library and OS errors are collected; programming errors
    propagate once all submitted tasks have finished.
    """
    sources = [Path(path) for path in paths]
    if not sources:
        return BatchResult([])

    logger.debug("Running batch over %d file(s)", len(sources))
    outcomes: list[FileOutcome | None] = [None] * len(sources)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures: dict[Future[Path | None], int] = {
            executor.submit(operation, source): idx for idx, source in enumerate(sources)
        }
        for future in as_completed(futures):
            idx = futures[future]
            source = sources[idx]
            try:
                outcomes[idx] = FileOutcome(source=source, output=future.result())
            except (EulaEncryptError, OSError) as exc:
                logger.warning("Batch item %s failed: %s", source, exc)
                outcomes[idx] = FileOutcome(source=source, error=exc)

    return BatchResult(outcome for outcome in outcomes if outcome is not None)


__all__ = [
    "BatchResult",
    "FileOperation",
    "FileOutcome",
    "run_batch",
]
