"""Helpers that turn user input into the ordered list of paths to hash."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Iterable, List

from utils.config_loader import ConfigurationError

LOGGER = logging.getLogger(__name__)


def read_path_list(stream: IO[str] | Iterable[str]) -> list[str]:
    """Read one path per line, ignoring blank lines and line endings."""

    paths: list[str] = []
    for line in stream:
        text = line.rstrip("\r\n")
        if text.strip():
            paths.append(text)
    return paths


def _walk(root: Path) -> List[Path]:
    return sorted(
        (path for path in root.rglob("*") if path.is_file()),
        key=lambda p: str(p),
    )


def collect_paths(paths: Iterable[Path | str], *, recursive: bool = False) -> list[str]:
    """Expand *paths* into the candidate list handed to the coordinator.

    Directories are walked when *recursive* is set; everything else,
    including paths that do not exist, is passed through untouched so the
    hasher can report it. Raises :class:`ConfigurationError` when a
    directory could not be listed and nothing at all was found.
    """

    collected: list[str] = []
    unreadable: list[str] = []
    for raw in paths:
        candidate = Path(raw)
        if recursive and candidate.is_dir():
            try:
                collected.extend(str(path) for path in _walk(candidate))
            except OSError as exc:
                LOGGER.warning(
                    "Unable to list directory",
                    extra={"path": str(candidate), "reason": str(exc)},
                )
                unreadable.append(str(candidate))
            continue
        collected.append(str(raw))

    if unreadable and not collected:
        raise ConfigurationError(f"No files found; unreadable: {', '.join(unreadable)}")
    return collected


__all__ = ["collect_paths", "read_path_list"]
