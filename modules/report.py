"""Plain-text rendering of hashing, verification and duplicate results.

Everything here is a pure function of its inputs, so the same results
always render to the same text.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from modules.batch import BatchResult
from modules.checksum_parser import format_bsd_line, format_gnu_line
from modules.dedup import DuplicateGroup, duplicate_file_count
from modules.hasher import HashResult
from modules.verifier import (
    EXIT_ERROR,
    EXIT_OK,
    EXIT_VERIFY_FAILED,
    VerificationOutcome,
    VerificationReport,
    VerificationStatus,
)

FORMAT_PLAIN = "plain"
FORMAT_GNU = "gnu"
FORMAT_BSD = "bsd"
OUTPUT_FORMATS = (FORMAT_PLAIN, FORMAT_GNU, FORMAT_BSD)

_STATUS_LABELS = {
    VerificationStatus.OK: "OK",
    VerificationStatus.MISMATCH: "FAILED",
    VerificationStatus.MISSING_FILE: "MISSING",
    VerificationStatus.READ_ERROR: "READ ERROR",
    VerificationStatus.UNPARSEABLE: "UNPARSEABLE",
}


def format_hash_line(
    result: HashResult,
    style: str = FORMAT_PLAIN,
    *,
    quiet: bool = False,
    binary: bool = False,
) -> str:
    if not result.ok or result.digest_hex is None:
        reason = result.error_detail or (result.error.value if result.error else "unknown error")
        kind = result.error.value if result.error else "ERROR"
        return f"{result.path}: {kind} {reason}"
    if quiet:
        return result.digest_hex
    if style == FORMAT_GNU:
        return format_gnu_line(result.digest_hex, result.path, binary=binary)
    if style == FORMAT_BSD:
        return format_bsd_line(result.algorithm, result.path, result.digest_hex)
    return f"{result.digest_hex} {result.path}"


def format_hash_report(
    results: Iterable[HashResult],
    style: str = FORMAT_PLAIN,
    *,
    quiet: bool = False,
    binary: bool = False,
) -> list[str]:
    return [format_hash_line(result, style, quiet=quiet, binary=binary) for result in results]


def format_verification_line(outcome: VerificationOutcome) -> str:
    label = _STATUS_LABELS[outcome.status]
    if outcome.status is VerificationStatus.UNPARSEABLE:
        where = f"line {outcome.line_number}" if outcome.line_number else "line"
        return f"{where}: {label} ({outcome.reason})"
    if outcome.status is VerificationStatus.OK:
        return f"{outcome.path}: {label}"
    if outcome.status is VerificationStatus.MISMATCH:
        return f"{outcome.path}: {label} (expected {outcome.expected}, got {outcome.actual})"
    return f"{outcome.path}: {label} ({outcome.reason})"


def format_verification_report(report: VerificationReport) -> list[str]:
    return [format_verification_line(outcome) for outcome in report.outcomes]


def format_duplicate_groups(groups: Sequence[DuplicateGroup]) -> list[str]:
    lines: list[str] = []
    for group in groups:
        if lines:
            lines.append("")
        lines.append(f"Duplicate files ({group.algorithm.value} {group.digest_hex}):")
        lines.extend(f"  {path}" for path in group.paths)
    return lines


def _join_counts(counts: dict[str, int]) -> str:
    return ", ".join(f"{key}={value}" for key, value in counts.items())


def summarize_batch(batch: BatchResult) -> str:
    suffix = ""
    if batch.cancelled:
        suffix = " (cancelled)"
    elif batch.aborted:
        suffix = " (stopped after first error)"
    return f"{len(batch.results)} files hashed with {batch.algorithm.value}: {_join_counts(batch.counts())}{suffix}"


def summarize_verification(report: VerificationReport) -> str:
    return f"{len(report.outcomes)} entries verified: {_join_counts(report.counts())}"


def summarize_duplicates(groups: Sequence[DuplicateGroup]) -> str:
    return f"{len(groups)} duplicate groups, {duplicate_file_count(groups)} redundant files"


def hash_exit_code(batch: BatchResult) -> int:
    return EXIT_ERROR if batch.errors else EXIT_OK


__all__ = [
    "EXIT_ERROR",
    "EXIT_OK",
    "EXIT_VERIFY_FAILED",
    "FORMAT_BSD",
    "FORMAT_GNU",
    "FORMAT_PLAIN",
    "OUTPUT_FORMATS",
    "format_duplicate_groups",
    "format_hash_line",
    "format_hash_report",
    "format_verification_line",
    "format_verification_report",
    "hash_exit_code",
    "summarize_batch",
    "summarize_duplicates",
    "summarize_verification",
]
