"""Utilities for computing file hashes."""

from __future__ import annotations

import hashlib
from enum import Enum
from pathlib import Path
from typing import Any

import blake3

from utils.config_loader import ConfigurationError

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB
MIN_CHUNK_SIZE = 64 * 1024
MAX_CHUNK_SIZE = 16 * 1024 * 1024


class UnsupportedAlgorithmError(ConfigurationError):
    """Raised when an algorithm name does not map to a supported digest."""


class Algorithm(str, Enum):
    """Digest algorithms understood by the hashing engine."""

    MD5 = "MD5"
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"
    BLAKE3 = "BLAKE3"

    @property
    def hex_length(self) -> int:
        return _HEX_LENGTHS[self]

    @property
    def token(self) -> str:
        """Canonical uppercase name used in BSD-style checksum lines."""

        return self.value

    @classmethod
    def parse(cls, name: "Algorithm | str") -> "Algorithm":
        """Return the algorithm named by *name*.

        Matching ignores case as well as ``-`` and ``_`` separators so that
        ``sha256``, ``SHA-256`` and ``Sha_256`` all resolve to ``SHA256``.
        """

        if isinstance(name, Algorithm):
            return name
        normalized = str(name or "").strip().upper().replace("-", "").replace("_", "")
        try:
            return cls(normalized)
        except ValueError as exc:
            raise UnsupportedAlgorithmError(f"Unsupported hash algorithm: {name}") from exc

    @classmethod
    def from_hex_length(cls, length: int) -> "Algorithm | None":
        """Infer an algorithm from a hex digest length.

        SHA256 and BLAKE3 share a length; SHA256 wins since that is what
        untagged ``sha256sum`` files contain.
        """

        return _LENGTH_TO_ALGORITHM.get(length)


_HEX_LENGTHS = {
    Algorithm.MD5: 32,
    Algorithm.SHA1: 40,
    Algorithm.SHA256: 64,
    Algorithm.SHA512: 128,
    Algorithm.BLAKE3: 64,
}

_LENGTH_TO_ALGORITHM = {
    32: Algorithm.MD5,
    40: Algorithm.SHA1,
    64: Algorithm.SHA256,
    128: Algorithm.SHA512,
}

KNOWN_HEX_LENGTHS = frozenset(_HEX_LENGTHS.values())


class StreamingDigest:
    """Uniform streaming interface over ``hashlib`` and ``blake3`` hashers."""

    __slots__ = ("algorithm", "_hasher", "_digest")

    def __init__(self, algorithm: Algorithm) -> None:
        self.algorithm = algorithm
        self._hasher = _new_hasher(algorithm)
        self._digest: bytes | None = None

    def update(self, chunk: bytes) -> "StreamingDigest":
        if self._digest is not None:
            raise RuntimeError("digest already finalized")
        self._hasher.update(chunk)
        return self

    def finalize(self) -> bytes:
        if self._digest is not None:
            raise RuntimeError("digest already finalized")
        self._digest = self._hasher.digest()
        return self._digest

    def hexdigest(self) -> str:
        return to_hex(self.finalize())


def _new_hasher(algorithm: Algorithm) -> Any:
    if algorithm is Algorithm.BLAKE3:
        return blake3.blake3()
    return hashlib.new(algorithm.value.lower())


def create_digest(algorithm: Algorithm | str) -> StreamingDigest:
    """Return a fresh streaming digest for *algorithm*."""

    return StreamingDigest(Algorithm.parse(algorithm))


def to_hex(digest: bytes) -> str:
    """Lowercase hex encoding of raw digest bytes."""

    return digest.hex()


def validate_chunk_size(chunk_size: int) -> int:
    try:
        value = int(chunk_size)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid chunk size: {chunk_size!r}") from exc
    if not MIN_CHUNK_SIZE <= value <= MAX_CHUNK_SIZE:
        raise ConfigurationError(
            f"chunk_size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE} bytes"
        )
    return value


def compute_file_hash(
    path: Path | str,
    algorithm: Algorithm | str = Algorithm.SHA256,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Return the hex digest of *path*: the one-shot library entry point.

    The file is streamed in ``chunk_size`` chunks. There is no progress
    reporting or cancellation, and I/O errors propagate to the caller; use
    :func:`modules.hasher.hash_file` when failures should be captured as
    data instead.
    """

    normalized_path = Path(path).expanduser().resolve()
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    digest = create_digest(algorithm)
    with normalized_path.open("rb") as file_handle:
        for chunk in iter(lambda: file_handle.read(chunk_size), b""):
            digest.update(chunk)

    return digest.hexdigest()


__all__ = [
    "Algorithm",
    "StreamingDigest",
    "UnsupportedAlgorithmError",
    "compute_file_hash",
    "create_digest",
    "to_hex",
    "validate_chunk_size",
    "DEFAULT_CHUNK_SIZE",
    "KNOWN_HEX_LENGTHS",
    "MAX_CHUNK_SIZE",
    "MIN_CHUNK_SIZE",
]
