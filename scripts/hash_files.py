#!/usr/bin/env python3
"""Command line front end: hash, verify and find duplicate files."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import IO, Any, Optional, Sequence

from modules.dedup import find_duplicate_groups
from modules.report import (
    EXIT_ERROR,
    OUTPUT_FORMATS,
    format_duplicate_groups,
    format_hash_report,
    format_verification_report,
    hash_exit_code,
    summarize_batch,
    summarize_duplicates,
    summarize_verification,
)
from modules.verifier import VerificationReport
from utils.config_loader import ConfigurationError, load_config, merge_configs
from utils.path_tools import collect_paths, read_path_list
from utils.progress import BoundedProgressQueue, ProgressEvent, ProgressSink, ProgressTracker
from utils.service_container import HashingSettings, build_hashing_settings

EXIT_INTERRUPTED = 130


class ProgressPrinter:
    """Prints finished files from a bounded queue on its own thread.

    Workers only enqueue. Events that do not fit in the queue are counted
    and reported on exit.
    """

    def __init__(self, stream: IO[str], maxsize: int = 1024) -> None:
        self._stream = stream
        self.queue = BoundedProgressQueue(maxsize)
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, name="progress-printer", daemon=True
        )

    def __enter__(self) -> "ProgressPrinter":
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        self._thread.join()
        for event in self.queue.drain():
            self._write(event)
        if self.queue.dropped:
            self._stream.write(f"[progress] {self.queue.dropped} events dropped\n")
        self._stream.flush()

    def _loop(self) -> None:
        while not self._stop.is_set():
            event = self.queue.get(timeout=0.1)
            if event is not None:
                self._write(event)

    def _write(self, event: ProgressEvent) -> None:
        self._stream.write(f"[progress] {event.path}: {event.bytes_processed} bytes\n")
        self._stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hash-file",
        description="Calculate and verify cryptographic hashes of files",
    )
    parser.add_argument("paths", nargs="*", help="Files or directories to hash")
    parser.add_argument(
        "-a",
        "--algorithm",
        help="md5, sha1, sha256, sha512 or blake3 (default from config: sha256)",
    )
    parser.add_argument(
        "-v",
        "--verify",
        metavar="CHECKSUM",
        help="Verify against a digest, or against a checksum file if one exists at that path",
    )
    parser.add_argument(
        "-c", "--check", metavar="FILE", help="Verify every entry of a checksum file"
    )
    parser.add_argument("-r", "--recursive", action="store_true", help="Walk directories")
    parser.add_argument("-q", "--quiet", action="store_true", help="Output only hash values")
    parser.add_argument("-f", "--format", choices=OUTPUT_FORMATS, help="Output line style")
    parser.add_argument(
        "--binary", action="store_true", help="Mark GNU lines as binary mode ('*')"
    )
    parser.add_argument("--duplicates", action="store_true", help="Find duplicate files")
    parser.add_argument("--stdin", action="store_true", help="Read file list from stdin")
    parser.add_argument("-j", "--workers", type=int, help="Number of hashing threads")
    parser.add_argument(
        "--strict", action="store_true", help="Stop dispatching files after the first error"
    )
    parser.add_argument(
        "--progress", action="store_true", help="Report finished files on stderr"
    )
    parser.add_argument("--config", type=Path, help="Optional configuration file")
    parser.add_argument("--log-level", help="Logging level (default from config)")
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    hashing: dict[str, Any] = {}
    if args.algorithm:
        hashing["algorithm"] = args.algorithm
    if args.workers is not None:
        # 0 means "auto" only in the config file.
        if args.workers < 1:
            raise ConfigurationError("worker pool size must be at least 1")
        hashing["workers"] = args.workers
    if args.strict:
        hashing["strict"] = True
    overrides: dict[str, Any] = {"hashing": hashing}
    if args.format:
        overrides["output"] = {"format": args.format}
    return overrides


def _log_level(value: Any) -> int:
    name = str(value or "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {value}")
    return level


def _emit(lines: Sequence[str], stream: IO[str]) -> None:
    for line in lines:
        stream.write(f"{line}\n")


def _finish_verification(
    report: VerificationReport, stdout: IO[str], stderr: IO[str]
) -> int:
    _emit(format_verification_report(report), stdout)
    stderr.write(f"{summarize_verification(report)}\n")
    return report.exit_code


def run(
    args: argparse.Namespace,
    settings: HashingSettings,
    *,
    stdin: IO[str],
    stdout: IO[str],
    stderr: IO[str],
) -> int:
    if not args.progress:
        return _dispatch(args, settings, None, stdin=stdin, stdout=stdout, stderr=stderr)
    with ProgressPrinter(stderr) as printer:
        tracker = ProgressTracker(on_complete=printer.queue)
        return _dispatch(args, settings, tracker, stdin=stdin, stdout=stdout, stderr=stderr)


def _dispatch(
    args: argparse.Namespace,
    settings: HashingSettings,
    progress: Optional[ProgressSink],
    *,
    stdin: IO[str],
    stdout: IO[str],
    stderr: IO[str],
) -> int:
    # An explicit -a pins the algorithm; otherwise digests pick their own.
    verify_algorithm = settings.algorithm if args.algorithm else None

    if args.check:
        verifier = settings.create_verifier(algorithm=verify_algorithm, progress=progress)
        return _finish_verification(verifier.verify_checksum_file(args.check), stdout, stderr)

    if args.stdin:
        paths = read_path_list(stdin)
    else:
        paths = collect_paths(args.paths, recursive=args.recursive)

    if args.verify is not None:
        verifier = settings.create_verifier(algorithm=verify_algorithm, progress=progress)
        if Path(args.verify).is_file():
            report = verifier.verify_checksum_file(args.verify)
        else:
            if not paths:
                raise ConfigurationError("No files specified for verification")
            report = verifier.verify_inline(paths, args.verify)
        return _finish_verification(report, stdout, stderr)

    coordinator = settings.create_coordinator(progress=progress)
    batch = coordinator.run(paths)

    if args.duplicates:
        groups = find_duplicate_groups(batch.results)
        _emit(format_duplicate_groups(groups), stdout)
        _emit(format_hash_report(batch.errors), stderr)
        stderr.write(f"{summarize_duplicates(groups)}\n")
        return hash_exit_code(batch)

    _emit(
        format_hash_report(
            batch.results,
            settings.output_format,
            quiet=args.quiet,
            binary=args.binary,
        ),
        stdout,
    )
    stderr.write(f"{summarize_batch(batch)}\n")
    return hash_exit_code(batch)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    stdin: Optional[IO[str]] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        config = dict(merge_configs(config, _overrides(args)))
        settings = build_hashing_settings(config)
        log_level = _log_level(args.log_level or config.get("system", {}).get("log_level"))
    except ConfigurationError as exc:
        stderr.write(f"hash-file: {exc}\n")
        return EXIT_ERROR

    logging.basicConfig(
        level=log_level,
        stream=stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args, settings, stdin=stdin, stdout=stdout, stderr=stderr)
    except ConfigurationError as exc:
        stderr.write(f"hash-file: {exc}\n")
        return EXIT_ERROR
    except OSError as exc:
        stderr.write(f"hash-file: {exc}\n")
        return EXIT_ERROR
    except KeyboardInterrupt:  # pragma: no cover - user interaction
        stderr.write("\nInterrupted\n")
        return EXIT_INTERRUPTED


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
