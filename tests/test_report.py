from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from modules.batch import BatchResult
from modules.dedup import DuplicateGroup
from modules.hasher import ErrorKind, HashResult
from modules.report import (
    EXIT_ERROR,
    EXIT_OK,
    format_duplicate_groups,
    format_hash_line,
    format_verification_line,
    hash_exit_code,
    summarize_batch,
    summarize_duplicates,
    summarize_verification,
)
from modules.verifier import VerificationOutcome, VerificationReport, VerificationStatus
from utils.hash_tools import Algorithm

DIGEST = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
OK_RESULT = HashResult(path="a.txt", algorithm=Algorithm.SHA256, digest_hex=DIGEST)
BAD_RESULT = HashResult(
    path="b.txt",
    algorithm=Algorithm.SHA256,
    error=ErrorKind.READ_ERROR,
    error_detail="no such file",
    missing=True,
)


def test_hash_line_styles() -> None:
    assert format_hash_line(OK_RESULT) == f"{DIGEST} a.txt"
    assert format_hash_line(OK_RESULT, "gnu") == f"{DIGEST}  a.txt"
    assert format_hash_line(OK_RESULT, "gnu", binary=True) == f"{DIGEST} *a.txt"
    assert format_hash_line(OK_RESULT, "bsd") == f"SHA256 (a.txt) = {DIGEST}"
    assert format_hash_line(OK_RESULT, "bsd", quiet=True) == DIGEST


def test_failed_hash_line_names_reason() -> None:
    assert format_hash_line(BAD_RESULT) == "b.txt: READ_ERROR no such file"


def test_verification_lines() -> None:
    ok = VerificationOutcome(path="a", status=VerificationStatus.OK, expected="x", actual="x")
    bad = VerificationOutcome(
        path="b", status=VerificationStatus.MISMATCH, expected="aa", actual="bb"
    )
    missing = VerificationOutcome(
        path="c", status=VerificationStatus.MISSING_FILE, reason="file not found"
    )
    garbage = VerificationOutcome(
        path="junk", status=VerificationStatus.UNPARSEABLE, reason="unrecognized checksum line", line_number=4
    )

    assert format_verification_line(ok) == "a: OK"
    assert format_verification_line(bad) == "b: FAILED (expected aa, got bb)"
    assert format_verification_line(missing) == "c: MISSING (file not found)"
    assert format_verification_line(garbage) == "line 4: UNPARSEABLE (unrecognized checksum line)"

    report = VerificationReport(outcomes=[ok, bad, missing, garbage])
    assert summarize_verification(report) == (
        "4 entries verified: OK=1, MISMATCH=1, MISSING_FILE=1, READ_ERROR=0, UNPARSEABLE=1"
    )


def test_duplicate_listing_and_summary() -> None:
    groups = [
        DuplicateGroup(algorithm=Algorithm.MD5, digest_hex="d1", paths=("a", "c", "e")),
        DuplicateGroup(algorithm=Algorithm.MD5, digest_hex="d2", paths=("b", "d")),
    ]

    assert format_duplicate_groups(groups) == [
        "Duplicate files (MD5 d1):",
        "  a",
        "  c",
        "  e",
        "",
        "Duplicate files (MD5 d2):",
        "  b",
        "  d",
    ]
    assert summarize_duplicates(groups) == "2 duplicate groups, 3 redundant files"


def test_batch_summary_and_exit_code() -> None:
    clean = BatchResult(algorithm=Algorithm.SHA256, results=[OK_RESULT])
    dirty = BatchResult(algorithm=Algorithm.SHA256, results=[OK_RESULT, BAD_RESULT], aborted=True)

    assert hash_exit_code(clean) == EXIT_OK
    assert hash_exit_code(dirty) == EXIT_ERROR
    assert summarize_batch(clean) == "1 files hashed with SHA256: OK=1, READ_ERROR=0, CANCELLED=0"
    assert summarize_batch(dirty).endswith("(stopped after first error)")
