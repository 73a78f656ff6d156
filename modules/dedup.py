"""Duplicate detection over hashed files and a background scan service."""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from modules.batch import BatchCoordinator
from modules.hasher import HashResult
from utils.hash_tools import DEFAULT_CHUNK_SIZE, Algorithm
from utils.path_tools import collect_paths
from utils.progress import ProgressEvent, ProgressTracker

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    algorithm: Algorithm
    digest_hex: str
    paths: tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.paths)

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "digest_hex": self.digest_hex,
            "paths": list(self.paths),
        }


def find_duplicate_groups(results: Iterable[HashResult]) -> list[DuplicateGroup]:
    """Group successful results sharing an ``(algorithm, digest)`` pair.

    Paths keep first-seen order inside a group. Only groups with two or
    more members are returned, largest first, ties broken by first path.
    """

    buckets: "OrderedDict[tuple[Algorithm, str], list[str]]" = OrderedDict()
    for result in results:
        if not result.ok or result.digest_hex is None:
            continue
        key = (result.algorithm, result.digest_hex.lower())
        members = buckets.setdefault(key, [])
        if result.path not in members:
            members.append(result.path)

    groups = [
        DuplicateGroup(algorithm=algorithm, digest_hex=digest, paths=tuple(paths))
        for (algorithm, digest), paths in buckets.items()
        if len(paths) > 1
    ]
    groups.sort(key=lambda group: (-group.size, group.paths[0]))
    return groups


def duplicate_file_count(groups: Iterable[DuplicateGroup]) -> int:
    """Number of redundant copies, i.e. every member beyond the first."""

    return sum(group.size - 1 for group in groups)


@dataclass
class DedupState:
    running: bool = False
    total_files: int = 0
    processed_files: int = 0
    duplicate_files: int = 0
    duplicate_groups: int = 0
    failed_files: int = 0
    bytes_processed: int = 0
    error: Optional[str] = None
    last_processed: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[int | str | bool]]:
        return {
            "running": self.running,
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "duplicate_files": self.duplicate_files,
            "duplicate_groups": self.duplicate_groups,
            "failed_files": self.failed_files,
            "bytes_processed": self.bytes_processed,
            "error": self.error,
            "last_processed": self.last_processed,
        }


@dataclass(slots=True)
class DedupRunResult:
    results: List[HashResult] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)


class DedupService:
    """Service that manages background duplicate scans of a directory."""

    def __init__(
        self,
        source_dir: Path,
        hash_algorithm: Algorithm | str = Algorithm.SHA256,
        *,
        workers: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        recursive: bool = True,
    ) -> None:
        self._source_dir = Path(source_dir).expanduser().resolve()
        self._hash_algorithm = Algorithm.parse(hash_algorithm)
        self._recursive = recursive
        self._tracker = ProgressTracker(on_complete=self._file_completed)
        self._coordinator = BatchCoordinator(
            self._hash_algorithm,
            workers=workers,
            chunk_size=chunk_size,
            progress=self._tracker,
        )

        self._state = DedupState()
        self._state_lock = threading.Lock()
        self._task_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task[None]] = None
        self._last_run = DedupRunResult()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def start(self) -> bool:
        """Start a duplicate scan. Returns ``False`` if already running."""

        async with self._task_lock:
            if self._task and not self._task.done():
                return False
            self._task = asyncio.create_task(self._run())
        return True

    def status(self) -> Dict[str, Optional[int | str | bool]]:
        with self._state_lock:
            state = self._state.to_dict()
        if state["running"]:
            state["bytes_processed"] = self._tracker.snapshot()["bytes_processed"]
        return state

    def groups(self) -> list[DuplicateGroup]:
        with self._state_lock:
            return list(self._last_run.groups)

    def cancel(self) -> None:
        self._coordinator.cancel()

    async def wait_for_completion(self) -> None:
        async with self._task_lock:
            task = self._task
        if task:
            await task

    # ------------------------------------------------------------------
    async def _run(self) -> None:
        self._set_state(
            running=True,
            error=None,
            last_processed=None,
            processed_files=0,
            failed_files=0,
        )
        try:
            await asyncio.to_thread(self.scan)
        except Exception as exc:  # pragma: no cover - defensive
            LOGGER.exception("Duplicate scan failed")
            self._set_state(error=str(exc))
        finally:
            self._set_state(running=False)
            async with self._task_lock:
                self._task = None

    def scan(self) -> DedupRunResult:
        """Hash every file under the source directory and group duplicates."""

        files = collect_paths([self._source_dir], recursive=self._recursive)
        self._tracker.reset()
        self._set_state(total_files=len(files))

        batch = self._coordinator.run(files)
        groups = find_duplicate_groups(batch.results)
        run = DedupRunResult(results=list(batch.results), groups=groups)

        failed = len(batch.errors)
        if failed:
            LOGGER.warning(
                "Some files could not be hashed",
                extra={"path": str(self._source_dir), "failed": failed},
            )
        with self._state_lock:
            self._last_run = run
            self._state.processed_files = len(batch.results)
            self._state.failed_files = failed
            self._state.duplicate_groups = len(groups)
            self._state.duplicate_files = duplicate_file_count(groups)
            self._state.bytes_processed = batch.total_bytes
        return run

    def _file_completed(self, event: ProgressEvent) -> None:
        with self._state_lock:
            self._state.processed_files += 1
            self._state.last_processed = event.path

    def _set_state(self, **updates: Optional[int | str | bool]) -> None:
        with self._state_lock:
            for key, value in updates.items():
                if hasattr(self._state, key):
                    setattr(self._state, key, value)


__all__ = [
    "DedupRunResult",
    "DedupService",
    "DedupState",
    "DuplicateGroup",
    "duplicate_file_count",
    "find_duplicate_groups",
]
