"""Batch coordinator that fans hashing out across a bounded worker pool."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional

from modules.hasher import ErrorKind, HashResult, cancelled_result, hash_file
from utils.config_loader import ConfigurationError
from utils.hash_tools import DEFAULT_CHUNK_SIZE, Algorithm
from utils.progress import ProgressSink

LOGGER = logging.getLogger(__name__)


def default_worker_count() -> int:
    return os.cpu_count() or 1


@dataclass(slots=True)
class BatchResult:
    """Ordered results of one batch run."""

    algorithm: Algorithm
    results: List[HashResult] = field(default_factory=list)
    aborted: bool = False
    cancelled: bool = False

    @property
    def errors(self) -> list[HashResult]:
        return [result for result in self.results if result.error is not None]

    @property
    def succeeded(self) -> list[HashResult]:
        return [result for result in self.results if result.ok]

    @property
    def total_bytes(self) -> int:
        return sum(result.byte_length for result in self.results if result.ok)

    def counts(self) -> dict[str, int]:
        counts = {"OK": 0}
        counts.update({kind.value: 0 for kind in (ErrorKind.READ_ERROR, ErrorKind.CANCELLED)})
        for result in self.results:
            key = result.error.value if result.error else "OK"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "results": [result.to_dict() for result in self.results],
            "aborted": self.aborted,
            "cancelled": self.cancelled,
            "counts": self.counts(),
            "total_bytes": self.total_bytes,
        }


class BatchCoordinator:
    """Hash many paths concurrently and return results in input order.

    Each input position owns exactly one result slot which only the worker
    handling that position writes, so no locking is needed around the
    results. ``strict`` stops dispatching new files after the first error;
    :meth:`cancel` stops everything at the next chunk boundary.
    """

    def __init__(
        self,
        algorithm: Algorithm | str,
        *,
        workers: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        strict: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> None:
        self._algorithm = Algorithm.parse(algorithm)
        worker_count = default_worker_count() if workers is None else workers
        if int(worker_count) < 1:
            raise ConfigurationError("worker pool size must be at least 1")
        if int(chunk_size) <= 0:
            raise ConfigurationError("chunk_size must be positive")
        self._workers = int(worker_count)
        self._chunk_size = int(chunk_size)
        self._strict = bool(strict)
        self._progress = progress
        self._cancel_event = threading.Event()
        self._abort_event = threading.Event()

    @property
    def algorithm(self) -> Algorithm:
        return self._algorithm

    @property
    def workers(self) -> int:
        return self._workers

    def cancel(self) -> None:
        """Cancel the run in progress, or the next one if called between runs.

        Safe to call from any thread.
        """

        self._cancel_event.set()

    # ------------------------------------------------------------------
    def run(self, paths: Iterable[Path | str]) -> BatchResult:
        ordered = self._unique_paths(paths)
        slots: list[Optional[HashResult]] = [None] * len(ordered)

        if not ordered:
            self._reset_events()
            return BatchResult(algorithm=self._algorithm)

        LOGGER.debug(
            "Dispatching batch",
            extra={"files": len(ordered), "workers": self._workers},
        )

        executor = ThreadPoolExecutor(
            max_workers=min(self._workers, len(ordered)),
            thread_name_prefix="hash-worker",
        )
        futures: list[Future[None]] = []
        interrupted: Optional[BaseException] = None
        try:
            for index, path in enumerate(ordered):
                futures.append(executor.submit(self._work, index, path, slots))
            wait(futures)
        except KeyboardInterrupt as exc:
            LOGGER.info("Batch interrupted, cancelling remaining work")
            interrupted = exc
            self._cancel_event.set()
            wait(futures)
        finally:
            executor.shutdown(wait=True)

        results = [
            slot if slot is not None else cancelled_result(ordered[index], self._algorithm)
            for index, slot in enumerate(slots)
        ]
        batch = BatchResult(
            algorithm=self._algorithm,
            results=results,
            aborted=self._abort_event.is_set(),
            cancelled=self._cancel_event.is_set(),
        )
        self._reset_events()
        if interrupted is not None:
            raise interrupted
        return batch

    def _reset_events(self) -> None:
        # A cancel issued before run() starts applies to that run.
        self._cancel_event.clear()
        self._abort_event.clear()

    # ------------------------------------------------------------------
    def _work(self, index: int, path: str, slots: list[Optional[HashResult]]) -> None:
        if self._cancel_event.is_set():
            slots[index] = cancelled_result(path, self._algorithm)
            return
        if self._abort_event.is_set():
            slots[index] = cancelled_result(path, self._algorithm, "skipped after earlier error")
            return

        try:
            result = hash_file(
                path,
                self._algorithm,
                chunk_size=self._chunk_size,
                progress=self._progress,
                cancel_event=self._cancel_event,
            )
        except Exception as exc:  # pragma: no cover - hash_file captures I/O errors
            LOGGER.exception("Unexpected failure while hashing", extra={"path": path})
            result = HashResult(
                path=path,
                algorithm=self._algorithm,
                error=ErrorKind.READ_ERROR,
                error_detail=str(exc),
            )

        slots[index] = result
        if self._strict and result.error is ErrorKind.READ_ERROR:
            if not self._abort_event.is_set():
                LOGGER.info("Strict mode: stopping after first error", extra={"path": path})
            self._abort_event.set()

    @staticmethod
    def _unique_paths(paths: Iterable[Path | str]) -> list[str]:
        seen: set[str] = set()
        ordered: list[str] = []
        for path in paths:
            text = str(path)
            if text in seen:
                LOGGER.debug("Ignoring repeated path", extra={"path": text})
                continue
            seen.add(text)
            ordered.append(text)
        return ordered


__all__ = ["BatchCoordinator", "BatchResult", "default_worker_count"]
