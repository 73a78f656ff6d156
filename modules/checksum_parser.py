"""Parsing and formatting of GNU and BSD style checksum lines.

GNU lines look like ``<hex>  <path>`` (text mode) or ``<hex> *<path>``
(binary mode), as written by ``sha256sum``. BSD lines look like
``SHA256 (<path>) = <hex>``, as written by ``shasum --tag`` and the BSD
``md5`` family. Every line is parsed on its own; a bad line produces a
:class:`ParseFailure` without affecting its neighbours.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from utils.hash_tools import KNOWN_HEX_LENGTHS, Algorithm, UnsupportedAlgorithmError

LOGGER = logging.getLogger(__name__)

STYLE_GNU = "gnu"
STYLE_BSD = "bsd"

_BSD_PATTERN = re.compile(
    r"^(?P<algo>[A-Za-z][A-Za-z0-9_-]*)\s*\((?P<path>.*)\)\s*=\s*(?P<digest>[0-9A-Fa-f]+)\s*$"
)
_GNU_PATTERN = re.compile(
    r"^(?P<digest>[0-9A-Fa-f]+)(?: (?P<mode>[ *])| (?=[^ *]))(?P<path>.+)$"
)


@dataclass(frozen=True, slots=True)
class ChecksumRecord:
    """Expected digest for one path, as read from a checksum line."""

    expected_digest_hex: str
    path: str
    algorithm_hint: Optional[Algorithm] = None
    binary: bool = False
    line_number: Optional[int] = None
    style: str = STYLE_GNU

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_digest_hex": self.expected_digest_hex,
            "path": self.path,
            "algorithm_hint": self.algorithm_hint.value if self.algorithm_hint else None,
            "binary": self.binary,
            "line_number": self.line_number,
            "style": self.style,
        }


@dataclass(frozen=True, slots=True)
class ParseFailure:
    line_number: Optional[int]
    line: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"line_number": self.line_number, "line": self.line, "reason": self.reason}


@dataclass(slots=True)
class ParseResult:
    records: list[ChecksumRecord] = field(default_factory=list)
    failures: list[ParseFailure] = field(default_factory=list)


ParsedLine = Union[ChecksumRecord, ParseFailure, None]


def _check_length(
    digest: str, algorithm: Optional[Algorithm]
) -> tuple[Optional[Algorithm], Optional[str]]:
    length = len(digest)
    if algorithm is not None:
        if length != algorithm.hex_length:
            return None, (
                f"digest length {length} does not match {algorithm.value} "
                f"({algorithm.hex_length})"
            )
        return algorithm, None
    if length not in KNOWN_HEX_LENGTHS:
        return None, f"digest length {length} matches no known algorithm"
    return Algorithm.from_hex_length(length), None


def parse_checksum_line(
    line: str,
    *,
    algorithm: Algorithm | str | None = None,
    line_number: Optional[int] = None,
) -> ParsedLine:
    """Parse a single checksum line.

    Returns ``None`` for blank lines and ``#`` comments, a
    :class:`ChecksumRecord` on success and a :class:`ParseFailure`
    otherwise. *algorithm* is the algorithm the caller will recompute with
    for GNU lines; without it the algorithm is inferred from the digest
    length. BSD lines always carry their own algorithm name.
    """

    text = line.rstrip("\r\n")
    stripped = text.strip()
    if not stripped or stripped.startswith("#"):
        return None

    caller_algorithm = Algorithm.parse(algorithm) if algorithm is not None else None

    gnu = _GNU_PATTERN.match(text.lstrip())
    bsd = _BSD_PATTERN.match(stripped)
    named: Optional[Algorithm] = None
    if bsd is not None:
        try:
            named = Algorithm.parse(bsd.group("algo"))
        except UnsupportedAlgorithmError:
            # A hex digest starting with a letter also fits the BSD name slot.
            if gnu is None:
                return ParseFailure(
                    line_number, text, f"unknown algorithm {bsd.group('algo')!r}"
                )

    if bsd is not None and named is not None:
        digest = bsd.group("digest")
        resolved, problem = _check_length(digest, named)
        path = bsd.group("path")
        if problem is not None or resolved is None:
            return ParseFailure(line_number, text, problem or "invalid digest")
        if not path:
            return ParseFailure(line_number, text, "missing path")
        return ChecksumRecord(
            expected_digest_hex=digest.lower(),
            path=path,
            algorithm_hint=resolved,
            line_number=line_number,
            style=STYLE_BSD,
        )

    if gnu is None:
        return ParseFailure(line_number, text, "unrecognized checksum line")
    digest = gnu.group("digest")
    resolved, problem = _check_length(digest, caller_algorithm)
    if problem is not None:
        return ParseFailure(line_number, text, problem)
    return ChecksumRecord(
        expected_digest_hex=digest.lower(),
        path=gnu.group("path"),
        algorithm_hint=resolved,
        binary=gnu.group("mode") == "*",
        line_number=line_number,
        style=STYLE_GNU,
    )


def parse_checksum_lines(
    lines: Iterable[str], *, algorithm: Algorithm | str | None = None
) -> ParseResult:
    result = ParseResult()
    for number, line in enumerate(lines, start=1):
        parsed = parse_checksum_line(line, algorithm=algorithm, line_number=number)
        if parsed is None:
            continue
        if isinstance(parsed, ParseFailure):
            LOGGER.warning(
                "Skipping malformed checksum line",
                extra={"line_number": number, "reason": parsed.reason},
            )
            result.failures.append(parsed)
        else:
            result.records.append(parsed)
    return result


def parse_checksum_text(text: str, *, algorithm: Algorithm | str | None = None) -> ParseResult:
    return parse_checksum_lines(text.splitlines(), algorithm=algorithm)


def parse_checksum_file(
    path: Path | str, *, algorithm: Algorithm | str | None = None
) -> ParseResult:
    """Parse every line of the checksum file at *path*.

    Opening or decoding the file is the caller's problem and raises; the
    lines inside it never do.
    """

    with Path(path).open("r", encoding="utf-8", errors="replace") as handle:
        return parse_checksum_lines(handle, algorithm=algorithm)


def format_gnu_line(digest_hex: str, path: str, *, binary: bool = False) -> str:
    separator = " *" if binary else "  "
    return f"{digest_hex.lower()}{separator}{path}"


def format_bsd_line(algorithm: Algorithm | str, path: str, digest_hex: str) -> str:
    return f"{Algorithm.parse(algorithm).token} ({path}) = {digest_hex.lower()}"


__all__ = [
    "ChecksumRecord",
    "ParseFailure",
    "ParseResult",
    "STYLE_BSD",
    "STYLE_GNU",
    "format_bsd_line",
    "format_gnu_line",
    "parse_checksum_file",
    "parse_checksum_line",
    "parse_checksum_lines",
    "parse_checksum_text",
]
