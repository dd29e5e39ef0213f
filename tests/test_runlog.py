"""Tests for the run log format and pruning."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bookvault.retention import DryRunGate, RunLog, WriteFailure, cutoff_for
from bookvault.retention.runlog import LogEntry, decode_timestamp, encode_line


def _clock(*moments: datetime):
    pending = list(moments)

    def _next() -> datetime:
        return pending.pop(0)

    return _next


def test_append_writes_bracketed_timestamp_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "bookvault.log"
    run_log = RunLog(
        path,
        clock=_clock(datetime(2024, 3, 1, 9, 5, 7, 123456), datetime(2024, 3, 1, 9, 5, 8)),
    )

    run_log.append("Archive JSON backup a.json -> Archive/")
    run_log.append("[DRY RUN] Rewrite JSON container")

    assert path.read_text(encoding="utf-8").splitlines() == [
        "[2024-03-01 09:05:07] Archive JSON backup a.json -> Archive/",
        "[2024-03-01 09:05:08] [DRY RUN] Rewrite JSON container",
    ]
    assert run_log.messages == [
        "Archive JSON backup a.json -> Archive/",
        "[DRY RUN] Rewrite JSON container",
    ]
    assert run_log.failures == []


def test_encoded_timestamp_decodes_to_same_instant() -> None:
    entry = LogEntry(timestamp=datetime(2023, 12, 31, 23, 59, 59), message="done")

    line = encode_line(entry)

    assert line == "[2023-12-31 23:59:59] done"
    assert decode_timestamp(line) == entry.timestamp
    assert decode_timestamp("no timestamp here") is None
    assert decode_timestamp("[2023-13-40 99:00:00] broken") is None


def test_append_failure_is_recorded_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    run_log = RunLog(blocker / "bookvault.log")

    entry = run_log.append("hello")

    assert entry.message == "hello"
    assert len(run_log.failures) == 1
    assert isinstance(run_log.failures[0], WriteFailure)


def test_prune_removes_only_lines_strictly_older_than_cutoff(tmp_path: Path) -> None:
    path = tmp_path / "bookvault.log"
    path.write_text(
        "[2024-01-01 10:00:00] old run\n"
        "Traceback line without a timestamp\n"
        "[2024-02-01 00:00:00] boundary run\n"
        "[2024-03-01 10:00:00] new run\n",
        encoding="utf-8",
    )

    result = RunLog(path).prune_older_than(datetime(2024, 2, 1, 0, 0, 0))

    assert result.applied is True
    assert result.removed == ["[2024-01-01 10:00:00] old run"]
    assert result.kept == 3
    assert path.read_text(encoding="utf-8") == (
        "Traceback line without a timestamp\n"
        "[2024-02-01 00:00:00] boundary run\n"
        "[2024-03-01 10:00:00] new run\n"
    )


def test_prune_dry_run_leaves_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "bookvault.log"
    original = "[2020-01-01 00:00:00] ancient\n[2030-01-01 00:00:00] future\n"
    path.write_text(original, encoding="utf-8")

    result = RunLog(path).prune_older_than(datetime(2024, 1, 1), DryRunGate(True))

    assert result.applied is False
    assert result.removed == ["[2020-01-01 00:00:00] ancient"]
    assert path.read_text(encoding="utf-8") == original


def test_prune_missing_log_is_noop(tmp_path: Path) -> None:
    result = RunLog(tmp_path / "absent.log").prune_older_than(datetime(2024, 1, 1))

    assert result.removed == []
    assert result.applied is False
    assert not (tmp_path / "absent.log").exists()


def test_prune_then_append_keeps_recent_history(tmp_path: Path) -> None:
    path = tmp_path / "bookvault.log"
    run_log = RunLog(
        path,
        clock=_clock(
            datetime(2024, 1, 1, 8, 0, 0),
            datetime(2024, 2, 15, 8, 0, 0),
            datetime(2024, 3, 1, 8, 0, 0),
        ),
    )
    run_log.append("first")
    run_log.append("second")

    run_log.prune_older_than(cutoff_for(30, now=datetime(2024, 3, 1, 8, 0, 0)))
    run_log.append("third")

    assert path.read_text(encoding="utf-8").splitlines() == [
        "[2024-02-15 08:00:00] second",
        "[2024-03-01 08:00:00] third",
    ]


def test_cutoff_for_converts_aware_times_to_local() -> None:
    aware = datetime(2024, 3, 2, 12, 0, 0, tzinfo=timezone.utc)

    cutoff = cutoff_for(30, now=aware)

    assert cutoff.tzinfo is None
    assert cutoff == aware.astimezone().replace(tzinfo=None) - timedelta(days=30)
    assert cutoff_for(30, now=datetime(2024, 3, 2)) == datetime(2024, 1, 31)


def test_prune_write_failure_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "bookvault.log"
    path.write_text("[2020-01-01 00:00:00] ancient\n", encoding="utf-8")

    def _fail_replace(*_: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("bookvault.retention.runlog.os.replace", _fail_replace)

    with pytest.raises(WriteFailure):
        RunLog(path).prune_older_than(datetime(2024, 1, 1))

    assert path.read_text(encoding="utf-8") == "[2020-01-01 00:00:00] ancient\n"
    assert not (tmp_path / "bookvault.log.tmp").exists()


def test_prune_keeps_undecodable_bytes_intact(tmp_path: Path) -> None:
    path = tmp_path / "bookvault.log"
    path.write_bytes(
        b"[2000-01-01 00:00:00] caf\xe9 old line\n"
        b"legacy note caf\xe9 without timestamp\n"
        b"[2030-01-01 00:00:00] caf\xe9 recent line\n"
    )

    result = RunLog(path).prune_older_than(datetime(2020, 1, 1))

    assert result.applied is True
    assert result.removed == ["[2000-01-01 00:00:00] caf� old line"]
    assert result.kept == 2
    assert path.read_bytes() == (
        b"legacy note caf\xe9 without timestamp\n" b"[2030-01-01 00:00:00] caf\xe9 recent line\n"
    )
