"""Tests for backup directory scans."""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from bookvault.retention import Category, FileInventory, ScanFailure

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def _touch(path: Path, moment: datetime, content: str = "{}") -> Path:
    path.write_text(content, encoding="utf-8")
    stamp = moment.timestamp()
    os.utime(path, (stamp, stamp))
    return path


def test_list_files_orders_by_modification_time(tmp_path: Path) -> None:
    _touch(tmp_path / "Bookmarks_c.json", BASE_TIME)
    _touch(tmp_path / "Bookmarks_a.json", BASE_TIME + timedelta(hours=2))
    _touch(tmp_path / "Bookmarks_b.json", BASE_TIME + timedelta(hours=1))

    files = FileInventory().list_files(tmp_path, Category.JSON)

    assert [item.name for item in files] == [
        "Bookmarks_c.json",
        "Bookmarks_b.json",
        "Bookmarks_a.json",
    ]
    assert all(item.category is Category.JSON for item in files)
    assert all(item.modified_at.tzinfo is not None for item in files)


def test_list_files_breaks_ties_on_filename(tmp_path: Path) -> None:
    for name in ("Bookmarks_2.md", "Bookmarks_1.md", "Bookmarks_3.md"):
        _touch(tmp_path / name, BASE_TIME)

    files = FileInventory().list_files(tmp_path, Category.MARKDOWN)

    assert [item.name for item in files] == ["Bookmarks_1.md", "Bookmarks_2.md", "Bookmarks_3.md"]


def test_list_files_filters_extension_prefix_and_directories(tmp_path: Path) -> None:
    _touch(tmp_path / "Bookmarks_1.html", BASE_TIME)
    _touch(tmp_path / "Bookmarks_2.HTML", BASE_TIME + timedelta(minutes=1))
    _touch(tmp_path / "Other_1.html", BASE_TIME)
    _touch(tmp_path / "Bookmarks_1.csv", BASE_TIME)
    (tmp_path / "Bookmarks_dir.html").mkdir()

    files = FileInventory(prefix="Bookmarks").list_files(tmp_path, Category.HTML)

    assert [item.name for item in files] == ["Bookmarks_1.html", "Bookmarks_2.HTML"]


def test_list_files_missing_directory_is_empty(tmp_path: Path) -> None:
    assert FileInventory().list_files(tmp_path / "absent", Category.CSV) == []


def test_list_files_raises_scan_failure_when_unlistable(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _broken_iterdir(self: Path):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "iterdir", _broken_iterdir)

    with pytest.raises(ScanFailure) as excinfo:
        FileInventory().list_files(tmp_path, Category.JSON)

    assert excinfo.value.path == tmp_path
