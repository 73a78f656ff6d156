from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from scripts import hash_files
from utils.hash_tools import compute_file_hash
from utils.progress import ProgressEvent


def _run(tmp_path: Path, *argv: str, stdin: str = "") -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    code = hash_files.main(
        ["--config", str(tmp_path / "absent.yaml"), *argv],
        stdin=io.StringIO(stdin),
        stdout=stdout,
        stderr=stderr,
    )
    return code, stdout.getvalue(), stderr.getvalue()


@pytest.fixture
def sample(tmp_path: Path) -> Path:
    path = tmp_path / "sample.txt"
    path.write_text("sample contents", encoding="utf-8")
    return path


def test_hash_prints_digest_and_path(tmp_path: Path, sample: Path) -> None:
    code, out, err = _run(tmp_path, str(sample))

    assert code == 0
    assert out == f"{compute_file_hash(sample)} {sample}\n"
    assert "1 files hashed with SHA256" in err


def test_quiet_and_formats(tmp_path: Path, sample: Path) -> None:
    digest = compute_file_hash(sample, "md5")

    _, quiet, _ = _run(tmp_path, "-a", "md5", "-q", str(sample))
    _, gnu, _ = _run(tmp_path, "-a", "md5", "-f", "gnu", "--binary", str(sample))
    _, bsd, _ = _run(tmp_path, "-a", "md5", "-f", "bsd", str(sample))

    assert quiet == f"{digest}\n"
    assert gnu == f"{digest} *{sample}\n"
    assert bsd == f"MD5 ({sample}) = {digest}\n"


def test_stdin_file_list(tmp_path: Path, sample: Path) -> None:
    other = tmp_path / "other.txt"
    other.write_text("other", encoding="utf-8")

    code, out, _ = _run(tmp_path, "--stdin", "-q", stdin=f"{other}\r\n\n{sample}\n")

    assert code == 0
    assert out.splitlines() == [compute_file_hash(other), compute_file_hash(sample)]


def test_missing_file_exits_with_error(tmp_path: Path, sample: Path) -> None:
    missing = tmp_path / "missing.txt"

    code, out, _ = _run(tmp_path, str(sample), str(missing))

    assert code == 2
    lines = out.splitlines()
    assert lines[0].endswith(str(sample))
    assert lines[1].startswith(f"{missing}: READ_ERROR")


def test_inline_verify(tmp_path: Path, sample: Path) -> None:
    digest = compute_file_hash(sample, "sha1")

    ok_code, ok_out, _ = _run(tmp_path, "-a", "sha1", "-v", digest.upper(), str(sample))
    bad_code, bad_out, _ = _run(tmp_path, "-a", "sha1", "-v", "0" * 40, str(sample))

    assert ok_code == 0
    assert ok_out == f"{sample}: OK\n"
    assert bad_code == 1
    assert bad_out.startswith(f"{sample}: FAILED (expected {'0' * 40}, got {digest})")


def test_verify_without_paths_is_a_usage_error(tmp_path: Path) -> None:
    code, _, err = _run(tmp_path, "-v", "0" * 64)

    assert code == 2
    assert "No files specified" in err


def test_check_reads_checksum_file(tmp_path: Path, sample: Path) -> None:
    checksum_file = tmp_path / "SHA256SUMS"
    checksum_file.write_text(
        f"{compute_file_hash(sample)}  sample.txt\n"
        f"{'1' * 64}  gone.txt\n",
        encoding="utf-8",
    )

    code, out, err = _run(tmp_path, "-c", str(checksum_file))

    assert code == 1
    assert out.splitlines() == [
        "sample.txt: OK",
        "gone.txt: MISSING (file not found)",
    ]
    assert "2 entries verified" in err


def test_verify_option_accepts_checksum_file(tmp_path: Path, sample: Path) -> None:
    checksum_file = tmp_path / "sums.md5"
    checksum_file.write_text(
        f"MD5 (sample.txt) = {compute_file_hash(sample, 'md5')}\n", encoding="utf-8"
    )

    code, out, _ = _run(tmp_path, "-v", str(checksum_file))

    assert code == 0
    assert out == "sample.txt: OK\n"


def test_duplicates(tmp_path: Path) -> None:
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    unique = tmp_path / "c.txt"
    first.write_text("same", encoding="utf-8")
    second.write_text("same", encoding="utf-8")
    unique.write_text("different", encoding="utf-8")

    code, out, err = _run(tmp_path, "--duplicates", str(first), str(second), str(unique))

    assert code == 0
    assert out.splitlines() == [
        f"Duplicate files (SHA256 {compute_file_hash(first)}):",
        f"  {first}",
        f"  {second}",
    ]
    assert "1 duplicate groups, 1 redundant files" in err


def test_recursive_directory(tmp_path: Path) -> None:
    tree = tmp_path / "tree"
    (tree / "nested").mkdir(parents=True)
    (tree / "one.txt").write_text("1", encoding="utf-8")
    (tree / "nested" / "two.txt").write_text("2", encoding="utf-8")

    code, out, _ = _run(tmp_path, "-r", str(tree))

    assert code == 0
    assert [line.split(" ", 1)[1] for line in out.splitlines()] == [
        str(tree / "nested" / "two.txt"),
        str(tree / "one.txt"),
    ]


def test_progress_goes_to_stderr(tmp_path: Path, sample: Path) -> None:
    _, out, err = _run(tmp_path, "--progress", str(sample))

    assert "[progress]" not in out
    assert f"[progress] {sample}: 15 bytes" in err


@pytest.mark.parametrize(
    "argv, message",
    [
        (["--workers", "0", "x"], "worker pool size"),
        (["-a", "crc32", "x"], "crc32"),
        (["--log-level", "chatty", "x"], "Unknown log level"),
    ],
)
def test_configuration_errors_exit_before_hashing(
    tmp_path: Path, argv: list[str], message: str
) -> None:
    code, out, err = _run(tmp_path, *argv)

    assert code == 2
    assert out == ""
    assert message in err


def test_inline_verify_infers_algorithm_from_digest_length(tmp_path: Path, sample: Path) -> None:
    digest = compute_file_hash(sample, "md5")

    code, out, _ = _run(tmp_path, "-v", digest, str(sample))

    assert code == 0
    assert out == f"{sample}: OK\n"


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "must be a mapping"),
        ("hashing: [unclosed\n", "invalid YAML"),
    ],
)
def test_malformed_config_file_exits_with_error(
    tmp_path: Path, sample: Path, content: str, message: str
) -> None:
    config_path = tmp_path / "broken.yaml"
    config_path.write_text(content, encoding="utf-8")
    stdout = io.StringIO()
    stderr = io.StringIO()

    code = hash_files.main(
        ["--config", str(config_path), str(sample)],
        stdin=io.StringIO(),
        stdout=stdout,
        stderr=stderr,
    )

    assert code == 2
    assert stdout.getvalue() == ""
    assert message in stderr.getvalue()


def test_progress_printer_reports_dropped_events(tmp_path: Path) -> None:
    stream = io.StringIO()
    printer = hash_files.ProgressPrinter(stream, maxsize=1)
    for name in ("a", "b", "c"):
        printer.queue(ProgressEvent(str(tmp_path / name), 4, 4, 0.0))

    with printer:
        pass

    assert stream.getvalue().splitlines() == [
        f"[progress] {tmp_path / 'a'}: 4 bytes",
        "[progress] 2 events dropped",
    ]
