from __future__ import annotations

import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from api.dedup_router import dedup_groups, dedup_status, start_dedup
from modules.dedup import DedupService, find_duplicate_groups
from modules.hasher import ErrorKind, HashResult
from utils.hash_tools import Algorithm


def _result(path: str, digest: str | None, algorithm: Algorithm = Algorithm.SHA256) -> HashResult:
    if digest is None:
        return HashResult(path=path, algorithm=algorithm, error=ErrorKind.READ_ERROR)
    return HashResult(path=path, algorithm=algorithm, digest_hex=digest)


def test_groups_only_shared_digests() -> None:
    groups = find_duplicate_groups([_result("a", "d1"), _result("b", "d2"), _result("c", "d1")])

    assert len(groups) == 1
    assert groups[0].digest_hex == "d1"
    assert list(groups[0].paths) == ["a", "c"]


def test_groups_sorted_by_size_then_first_path() -> None:
    results = [
        _result("z1", "small"),
        _result("m1", "big"),
        _result("z2", "small"),
        _result("m2", "big"),
        _result("a1", "tie"),
        _result("m3", "big"),
        _result("a2", "tie"),
    ]

    groups = find_duplicate_groups(results)

    assert [group.digest_hex for group in groups] == ["big", "tie", "small"]
    assert [group.size for group in groups] == [3, 2, 2]


def test_failed_results_and_other_algorithms_are_kept_apart() -> None:
    results = [
        _result("a", "same"),
        _result("b", None),
        _result("c", "same", Algorithm.BLAKE3),
        _result("d", "same"),
    ]

    groups = find_duplicate_groups(results)

    assert len(groups) == 1
    assert groups[0].algorithm is Algorithm.SHA256
    assert list(groups[0].paths) == ["a", "d"]


def test_dedup_service_scans_and_reports(tmp_path: Path) -> None:
    asyncio.run(_run_dedup_service(tmp_path))


async def _run_dedup_service(tmp_path: Path) -> None:
    source_dir = tmp_path / "source"
    (source_dir / "nested").mkdir(parents=True)

    (source_dir / "file1.txt").write_text("hello world", encoding="utf-8")
    (source_dir / "nested" / "file2.txt").write_text("hello world", encoding="utf-8")
    (source_dir / "file3.txt").write_text("unique", encoding="utf-8")

    service = DedupService(source_dir, "sha256", workers=2)

    started = await service.start()
    assert started is True
    await service.wait_for_completion()

    status = service.status()
    assert status["running"] is False
    assert status["total_files"] == 3
    assert status["processed_files"] == 3
    assert status["duplicate_files"] == 1
    assert status["duplicate_groups"] == 1
    assert status["error"] is None

    groups = service.groups()
    assert len(groups) == 1
    assert sorted(Path(p).name for p in groups[0].paths) == ["file1.txt", "file2.txt"]

    (source_dir / "file4.txt").write_text("unique", encoding="utf-8")
    started_again = await service.start()
    assert started_again is True
    await service.wait_for_completion()

    status_after = service.status()
    assert status_after["total_files"] == 4
    assert status_after["duplicate_files"] == 2
    assert status_after["duplicate_groups"] == 2


def test_dedup_router_start_status_and_groups(tmp_path: Path) -> None:
    asyncio.run(_run_router_scenario(tmp_path))


async def _run_router_scenario(tmp_path: Path) -> None:
    source_dir = tmp_path / "source"
    source_dir.mkdir()

    (source_dir / "one.txt").write_text("same", encoding="utf-8")
    (source_dir / "two.txt").write_text("same", encoding="utf-8")

    service = DedupService(source_dir, Algorithm.MD5, workers=1)

    response = await start_dedup(service=service)
    assert response.started is True

    await service.wait_for_completion()

    status_response = await dedup_status(service=service)
    assert status_response.total_files == 2
    assert status_response.processed_files == 2
    assert status_response.duplicate_files == 1

    groups_response = await dedup_groups(service=service)
    assert len(groups_response.groups) == 1
    assert groups_response.groups[0].algorithm == "MD5"
    assert [Path(p).name for p in groups_response.groups[0].paths] == ["one.txt", "two.txt"]

    response_second = await start_dedup(service=service)
    assert response_second.started is True
    await service.wait_for_completion()


def test_cancel_before_scan_is_not_lost(tmp_path: Path) -> None:
    for idx in range(3):
        (tmp_path / f"file{idx}.txt").write_text("same", encoding="utf-8")

    service = DedupService(tmp_path, workers=1)
    service.cancel()
    run = service.scan()

    assert len(run.results) == 3
    assert all(result.error is ErrorKind.CANCELLED for result in run.results)
    assert run.groups == []
    assert service.status()["failed_files"] == 3
