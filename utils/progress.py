"""Progress events emitted while files are being hashed."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Snapshot of how far a single file has been read."""

    path: str
    bytes_processed: int
    total_bytes: Optional[int]
    rate_bytes_per_sec: float

    @property
    def complete(self) -> bool:
        return self.total_bytes is not None and self.bytes_processed >= self.total_bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "bytes_processed": self.bytes_processed,
            "total_bytes": self.total_bytes,
            "rate_bytes_per_sec": self.rate_bytes_per_sec,
        }


ProgressSink = Callable[[ProgressEvent], None]


def emit_progress(sink: Optional[ProgressSink], event: ProgressEvent) -> None:
    """Deliver *event* to *sink*, never letting a sink failure escape."""

    if sink is None:
        return
    try:
        sink(event)
    except Exception:
        LOGGER.debug("Progress sink failed", extra={"path": event.path}, exc_info=True)


class BoundedProgressQueue:
    """Sink that buffers events for a consumer thread and drops when full."""

    def __init__(self, maxsize: int = 1024) -> None:
        self._queue: "queue.Queue[ProgressEvent]" = queue.Queue(maxsize=maxsize)
        self._dropped = 0
        self._lock = threading.Lock()

    def __call__(self, event: ProgressEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[ProgressEvent]:
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class ProgressTracker:
    """Thread-safe aggregate of per-file progress for status reporting."""

    def __init__(self, on_complete: Optional[ProgressSink] = None) -> None:
        self._lock = threading.Lock()
        self._bytes: Dict[str, int] = {}
        self._completed: set[str] = set()
        self._last_path: Optional[str] = None
        self._on_complete = on_complete

    def __call__(self, event: ProgressEvent) -> None:
        finished = False
        with self._lock:
            self._bytes[event.path] = event.bytes_processed
            self._last_path = event.path
            if event.complete and event.path not in self._completed:
                self._completed.add(event.path)
                finished = True
        # Callback runs outside the lock.
        if finished and self._on_complete is not None:
            self._on_complete(event)

    def reset(self) -> None:
        with self._lock:
            self._bytes.clear()
            self._completed.clear()
            self._last_path = None

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "bytes_processed": sum(self._bytes.values()),
                "files_started": len(self._bytes),
                "files_completed": len(self._completed),
                "last_path": self._last_path,
            }


__all__ = [
    "BoundedProgressQueue",
    "ProgressEvent",
    "ProgressSink",
    "ProgressTracker",
    "emit_progress",
]
