from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from utils.config_loader import ConfigurationError
from utils import path_tools
from utils.path_tools import collect_paths, read_path_list


def test_read_path_list_tolerates_missing_trailing_newline() -> None:
    stream = io.StringIO("a.txt\r\n\nsub dir/b.txt\nlast.txt")

    assert read_path_list(stream) == ["a.txt", "sub dir/b.txt", "last.txt"]


def test_collect_paths_walks_directories_in_sorted_order(tmp_path: Path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "two.txt").write_text("2", encoding="utf-8")
    (tmp_path / "a.txt").write_text("1", encoding="utf-8")

    collected = collect_paths([tmp_path], recursive=True)

    assert collected == [str(tmp_path / "a.txt"), str(tmp_path / "b" / "two.txt")]


def test_collect_paths_passes_through_non_directories(tmp_path: Path) -> None:
    missing = tmp_path / "missing.txt"

    assert collect_paths([missing, tmp_path]) == [str(missing), str(tmp_path)]


def test_unlistable_root_with_no_files_is_fatal(tmp_path: Path, monkeypatch) -> None:
    def refuse(root: Path) -> list[Path]:
        raise PermissionError("denied")

    monkeypatch.setattr(path_tools, "_walk", refuse)

    with pytest.raises(ConfigurationError):
        collect_paths([tmp_path], recursive=True)


def test_unlistable_root_is_tolerated_when_other_files_exist(tmp_path: Path, monkeypatch) -> None:
    other = tmp_path / "file.txt"
    other.write_text("x", encoding="utf-8")

    def refuse(root: Path) -> list[Path]:
        raise PermissionError("denied")

    monkeypatch.setattr(path_tools, "_walk", refuse)

    assert collect_paths([tmp_path, other], recursive=True) == [str(other)]
