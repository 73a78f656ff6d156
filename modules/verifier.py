"""Verification of computed digests against expected checksum records."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from modules.batch import BatchCoordinator
from modules.checksum_parser import (
    ChecksumRecord,
    ParseFailure,
    parse_checksum_file,
    parse_checksum_text,
)
from modules.hasher import HashResult
from utils.config_loader import ConfigurationError
from utils.hash_tools import DEFAULT_CHUNK_SIZE, Algorithm
from utils.progress import ProgressSink

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VERIFY_FAILED = 1
EXIT_ERROR = 2


class VerificationStatus(str, Enum):
    OK = "OK"
    MISMATCH = "MISMATCH"
    MISSING_FILE = "MISSING_FILE"
    READ_ERROR = "READ_ERROR"
    UNPARSEABLE = "UNPARSEABLE"


FAILED_STATUSES = {VerificationStatus.MISMATCH, VerificationStatus.MISSING_FILE}
ERROR_STATUSES = {VerificationStatus.READ_ERROR, VerificationStatus.UNPARSEABLE}


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    path: str
    status: VerificationStatus
    expected: Optional[str] = None
    actual: Optional[str] = None
    algorithm: Optional[Algorithm] = None
    reason: Optional[str] = None
    line_number: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "expected": self.expected,
            "actual": self.actual,
            "algorithm": self.algorithm.value if self.algorithm else None,
            "reason": self.reason,
            "line_number": self.line_number,
        }


@dataclass(slots=True)
class VerificationReport:
    outcomes: List[VerificationOutcome] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in VerificationStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def all_ok(self) -> bool:
        return all(outcome.status is VerificationStatus.OK for outcome in self.outcomes)

    @property
    def failures(self) -> list[VerificationOutcome]:
        return [o for o in self.outcomes if o.status is not VerificationStatus.OK]

    @property
    def exit_code(self) -> int:
        statuses = {outcome.status for outcome in self.outcomes}
        if statuses & FAILED_STATUSES:
            return EXIT_VERIFY_FAILED
        if statuses & ERROR_STATUSES:
            return EXIT_ERROR
        return EXIT_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "counts": self.counts(),
            "all_ok": self.all_ok,
            "exit_code": self.exit_code,
        }


def digests_match(expected: Optional[str], actual: Optional[str]) -> bool:
    if expected is None or actual is None:
        return False
    return expected.strip().lower() == actual.strip().lower()


def classify(record: ChecksumRecord, result: Optional[HashResult]) -> VerificationOutcome:
    """Compare one expected record against its computed result."""

    expected = record.expected_digest_hex
    common = {
        "path": record.path,
        "expected": expected,
        "algorithm": result.algorithm if result else record.algorithm_hint,
        "line_number": record.line_number,
    }
    if result is None or result.missing:
        return VerificationOutcome(
            status=VerificationStatus.MISSING_FILE, reason="file not found", **common
        )
    if not result.ok:
        return VerificationOutcome(
            status=VerificationStatus.READ_ERROR,
            reason=result.error_detail or (result.error.value if result.error else None),
            **common,
        )
    if digests_match(expected, result.digest_hex):
        return VerificationOutcome(
            status=VerificationStatus.OK, actual=result.digest_hex, **common
        )
    return VerificationOutcome(
        status=VerificationStatus.MISMATCH,
        actual=result.digest_hex,
        reason="digest mismatch",
        **common,
    )


def _unparseable(failure: ParseFailure) -> VerificationOutcome:
    return VerificationOutcome(
        path=failure.line.strip(),
        status=VerificationStatus.UNPARSEABLE,
        reason=failure.reason,
        line_number=failure.line_number,
    )


class Verifier:
    """Recompute digests for checksum records and classify each one."""

    def __init__(
        self,
        *,
        algorithm: Algorithm | str | None = None,
        workers: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress: Optional[ProgressSink] = None,
        base_dir: Path | str | None = None,
    ) -> None:
        self._algorithm = Algorithm.parse(algorithm) if algorithm is not None else None
        self._workers = workers
        self._chunk_size = chunk_size
        self._progress = progress
        self._base_dir = Path(base_dir).expanduser() if base_dir else None

    # ------------------------------------------------------------------
    def verify_records(
        self,
        records: Sequence[ChecksumRecord],
        failures: Iterable[ParseFailure] = (),
        *,
        base_dir: Path | str | None = None,
    ) -> VerificationReport:
        root = Path(base_dir).expanduser() if base_dir else self._base_dir

        grouped: "OrderedDict[Algorithm, list[str]]" = OrderedDict()
        for record in records:
            algorithm = self._effective_algorithm(record)
            grouped.setdefault(algorithm, []).append(self._resolve(record.path, root))

        computed: Dict[tuple[Algorithm, str], HashResult] = {}
        for algorithm, paths in grouped.items():
            coordinator = BatchCoordinator(
                algorithm,
                workers=self._workers,
                chunk_size=self._chunk_size,
                progress=self._progress,
            )
            batch = coordinator.run(paths)
            for result in batch.results:
                computed[(algorithm, result.path)] = result

        outcomes: list[tuple[int, int, VerificationOutcome]] = []
        for position, record in enumerate(records):
            key = (self._effective_algorithm(record), self._resolve(record.path, root))
            outcome = classify(record, computed.get(key))
            if outcome.status is not VerificationStatus.OK:
                LOGGER.warning(
                    "Verification failed",
                    extra={"path": record.path, "status": outcome.status.value},
                )
            outcomes.append((record.line_number or 0, position, outcome))
        for position, failure in enumerate(failures, start=len(records)):
            outcomes.append((failure.line_number or 0, position, _unparseable(failure)))

        outcomes.sort(key=lambda item: (item[0], item[1]))
        return VerificationReport(outcomes=[outcome for _, _, outcome in outcomes])

    def verify_inline(
        self, paths: Sequence[Path | str], expected: str
    ) -> VerificationReport:
        """Check every path in *paths* against the single digest *expected*."""

        digest = expected.strip()
        algorithm = self._algorithm or Algorithm.from_hex_length(len(digest))
        if algorithm is None:
            raise ConfigurationError(
                f"Cannot infer an algorithm for a {len(digest)}-character digest"
            )
        records = [
            ChecksumRecord(expected_digest_hex=digest.lower(), path=str(path), algorithm_hint=algorithm)
            for path in paths
        ]
        return self.verify_records(records)

    def verify_text(
        self, text: str, *, base_dir: Path | str | None = None
    ) -> VerificationReport:
        parsed = parse_checksum_text(text, algorithm=self._algorithm)
        return self.verify_records(parsed.records, parsed.failures, base_dir=base_dir)

    def verify_checksum_file(
        self, checksum_file: Path | str, *, base_dir: Path | str | None = None
    ) -> VerificationReport:
        """Verify every record in *checksum_file*.

        Relative paths resolve against *base_dir*, then the verifier's own
        ``base_dir``, then the directory holding the checksum file.
        """

        checksum_path = Path(checksum_file).expanduser()
        parsed = parse_checksum_file(checksum_path, algorithm=self._algorithm)
        root = base_dir or self._base_dir or checksum_path.parent
        return self.verify_records(parsed.records, parsed.failures, base_dir=root)

    # ------------------------------------------------------------------
    def _effective_algorithm(self, record: ChecksumRecord) -> Algorithm:
        if record.algorithm_hint is not None:
            return record.algorithm_hint
        if self._algorithm is not None:
            return self._algorithm
        inferred = Algorithm.from_hex_length(len(record.expected_digest_hex))
        return inferred or Algorithm.SHA256

    @staticmethod
    def _resolve(path: str, root: Optional[Path]) -> str:
        if root is None or Path(path).is_absolute():
            return path
        return str(root / path)


__all__ = [
    "EXIT_ERROR",
    "EXIT_OK",
    "EXIT_VERIFY_FAILED",
    "VerificationOutcome",
    "VerificationReport",
    "VerificationStatus",
    "Verifier",
    "classify",
    "digests_match",
]
