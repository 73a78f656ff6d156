"""Single-file hashing with bounded memory and captured failures."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from utils.hash_tools import DEFAULT_CHUNK_SIZE, Algorithm, create_digest
from utils.progress import ProgressEvent, ProgressSink, emit_progress

LOGGER = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    READ_ERROR = "READ_ERROR"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True, slots=True)
class HashResult:
    """Outcome of hashing one path, successful or not."""

    path: str
    algorithm: Algorithm
    digest_hex: Optional[str] = None
    byte_length: int = 0
    error: Optional[ErrorKind] = None
    error_detail: Optional[str] = None
    missing: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.digest_hex is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "algorithm": self.algorithm.value,
            "digest_hex": self.digest_hex,
            "byte_length": self.byte_length,
            "error": self.error.value if self.error else None,
            "error_detail": self.error_detail,
            "missing": self.missing,
        }


def cancelled_result(path: str, algorithm: Algorithm, detail: str = "cancelled") -> HashResult:
    return HashResult(
        path=path,
        algorithm=algorithm,
        error=ErrorKind.CANCELLED,
        error_detail=detail,
    )


def _read_error(
    path: str, algorithm: Algorithm, detail: str, *, missing: bool = False
) -> HashResult:
    LOGGER.warning("Failed to hash file", extra={"path": path, "reason": detail})
    return HashResult(
        path=path,
        algorithm=algorithm,
        error=ErrorKind.READ_ERROR,
        error_detail=detail,
        missing=missing,
    )


def hash_file(
    path: Path | str,
    algorithm: Algorithm | str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress: Optional[ProgressSink] = None,
    cancel_event: Optional[threading.Event] = None,
) -> HashResult:
    """Hash *path* and return a :class:`HashResult`.

    Open and read failures never raise; they come back as ``READ_ERROR``
    results so a batch can carry on. When *cancel_event* is set the read
    stops at the next chunk boundary and the result is ``CANCELLED``.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    algo = Algorithm.parse(algorithm)
    path_str = str(path)
    file_path = Path(path)

    if cancel_event is not None and cancel_event.is_set():
        return cancelled_result(path_str, algo)

    if file_path.is_dir():
        return _read_error(path_str, algo, "is a directory")

    digest = create_digest(algo)
    bytes_read = 0
    try:
        with file_path.open("rb") as handle:
            try:
                total: Optional[int] = file_path.stat().st_size
            except OSError:
                total = None
            last_tick = time.monotonic()
            emitted = False
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                digest.update(chunk)
                bytes_read += len(chunk)
                now = time.monotonic()
                elapsed = now - last_tick
                last_tick = now
                rate = len(chunk) / elapsed if elapsed > 0 else 0.0
                emit_progress(progress, ProgressEvent(path_str, bytes_read, total, rate))
                emitted = True
                if cancel_event is not None and cancel_event.is_set():
                    LOGGER.info("Hashing cancelled", extra={"path": path_str})
                    return cancelled_result(path_str, algo)
            if not emitted:
                emit_progress(progress, ProgressEvent(path_str, 0, total, 0.0))
    except FileNotFoundError:
        return _read_error(path_str, algo, "no such file", missing=True)
    except IsADirectoryError:
        return _read_error(path_str, algo, "is a directory")
    except OSError as exc:
        return _read_error(path_str, algo, exc.strerror or str(exc))

    return HashResult(
        path=path_str,
        algorithm=algo,
        digest_hex=digest.hexdigest(),
        byte_length=bytes_read,
    )


__all__ = ["ErrorKind", "HashResult", "cancelled_result", "hash_file"]
