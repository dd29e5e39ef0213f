"""Tests for live-to-archive moves."""

import os
from datetime import datetime, timedelta
from pathlib import Path

from bookvault.config import RetentionPolicy
from bookvault.retention import Archiver, Category, DryRunGate, FileInventory, RunLog

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def _write_backups(directory: Path, count: int, extension: str = ".json") -> list[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for index in range(count):
        moment = BASE_TIME + timedelta(days=index)
        path = directory / f"Bookmarks_{moment:%Y-%m-%d_%H-%M-%S}{extension}"
        path.write_text(f"backup {index}", encoding="utf-8")
        os.utime(path, (moment.timestamp(), moment.timestamp()))
        paths.append(path)
    return paths


def test_decide_selects_oldest_surplus(tmp_path: Path) -> None:
    paths = _write_backups(tmp_path / "live", 6)
    live = FileInventory().list_files(tmp_path / "live", Category.JSON)
    archiver = Archiver(tmp_path / "live" / "Archive", RunLog(tmp_path / "run.log"))

    decision = archiver.decide(live, RetentionPolicy())

    assert [move.file.path for move in decision.moves] == paths[:2]
    assert [item.path for item in decision.retained] == paths[2:]
    assert decision.moves[0].destination == tmp_path / "live" / "Archive" / paths[0].name


def test_decide_within_cap_is_empty(tmp_path: Path) -> None:
    _write_backups(tmp_path, 4)
    live = FileInventory().list_files(tmp_path, Category.JSON)

    decision = Archiver(tmp_path / "Archive", RunLog(tmp_path / "run.log")).decide(
        live, RetentionPolicy()
    )

    assert decision.is_empty
    assert len(decision.retained) == 4


def test_apply_moves_files_and_keeps_latest(tmp_path: Path) -> None:
    live_dir = tmp_path / "live"
    archive_dir = live_dir / "Archive"
    paths = _write_backups(live_dir, 6)
    run_log = RunLog(tmp_path / "run.log")
    archiver = Archiver(archive_dir, run_log)
    policy = RetentionPolicy(latest_copies=1, max_unarchived=4)

    decision = archiver.decide(FileInventory().list_files(live_dir, Category.JSON), policy)
    assert archiver.apply(decision, DryRunGate()) is True

    remaining = FileInventory().list_files(live_dir, Category.JSON)
    assert len(remaining) == 4
    assert remaining[-1].path == paths[-1]
    assert sorted(path.name for path in archive_dir.iterdir()) == [p.name for p in paths[:2]]
    assert run_log.messages == [
        f"Archive JSON backup {paths[0].name} -> Archive/",
        f"Archive JSON backup {paths[1].name} -> Archive/",
    ]


def test_apply_dry_run_only_logs(tmp_path: Path) -> None:
    live_dir = tmp_path / "live"
    paths = _write_backups(live_dir, 5, ".html")
    run_log = RunLog(tmp_path / "run.log")
    archiver = Archiver(live_dir / "Archive", run_log)

    decision = archiver.decide(
        FileInventory().list_files(live_dir, Category.HTML), RetentionPolicy()
    )

    assert archiver.apply(decision, DryRunGate(True)) is False
    assert all(path.exists() for path in paths)
    assert not (live_dir / "Archive").exists()
    assert run_log.messages == [f"[DRY RUN] Archive HTML backup {paths[0].name} -> Archive/"]


def test_apply_records_conflicting_destination(tmp_path: Path) -> None:
    live_dir = tmp_path / "live"
    archive_dir = live_dir / "Archive"
    paths = _write_backups(live_dir, 6)
    archive_dir.mkdir()
    (archive_dir / paths[0].name).write_text("older copy", encoding="utf-8")
    archiver = Archiver(archive_dir, RunLog(tmp_path / "run.log"))

    decision = archiver.decide(
        FileInventory().list_files(live_dir, Category.JSON), RetentionPolicy()
    )
    archiver.apply(decision, DryRunGate())

    assert len(archiver.failures) == 1
    assert archiver.failures[0].path == paths[0]
    assert paths[0].exists()
    assert (archive_dir / paths[0].name).read_text(encoding="utf-8") == "older copy"
    assert (archive_dir / paths[1].name).exists()
