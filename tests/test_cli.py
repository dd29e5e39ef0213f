"""CLI tests for backup, retention, log pruning, and status commands."""

import json
import os
import zipfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from bookvault.cli import cli

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

SOURCE_DOCUMENT = {
    "version": 1,
    "roots": {
        "bookmark_bar": {
            "type": "folder",
            "name": "Bookmarks bar",
            "children": [
                {"type": "url", "name": "Python", "url": "https://www.python.org/"},
                {"type": "url", "name": "PyPI", "url": "https://pypi.org/"},
            ],
        },
        "other": {"type": "folder", "name": "Other bookmarks", "children": []},
    },
}


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    return env


def _source(tmp_path: Path) -> Path:
    path = tmp_path / "Bookmarks"
    path.write_text(json.dumps(SOURCE_DOCUMENT), encoding="utf-8")
    return path


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


def test_cli_help_lists_commands() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("backup", "retain", "prune-logs", "status", "locate", "config"):
        assert command in result.output


def test_backup_writes_all_formats(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"

    result = runner.invoke(
        cli, ["backup", "--source", str(_source(tmp_path)), "--root", str(root)], env=env
    )

    assert result.exit_code == 0, result.output
    assert len(list(root.glob("Bookmarks_*.json"))) == 1
    assert len(list(root.glob("Bookmarks_*.html"))) == 1
    assert len(list(root.glob("Bookmarks_*.csv"))) == 1
    assert len(list(root.glob("Bookmarks_*.md"))) == 1
    assert "Backup summary" in result.output
    log_text = (root / "bookvault.log").read_text(encoding="utf-8")
    assert "Backup run started" in log_text
    assert "Exported 2 bookmarks in 2 folders" in log_text


def test_backup_json_reports_retention(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    _write_backups(root, 4)

    result = runner.invoke(
        cli,
        ["backup", "--source", str(_source(tmp_path)), "--root", str(root), "--json"],
        env=env,
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["counts"]["written"] == 4
    assert payload["counts"]["moved"] == 1
    assert payload["errors"] == {}
    assert payload["context"]["dry_run"] is False
    assert len(list(root.glob("*.json"))) == 4
    assert len(list((root / "Archive").glob("*.json"))) == 1


def test_backup_dry_run_leaves_backups_untouched(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    existing = _write_backups(root, 6)

    result = runner.invoke(
        cli,
        [
            "backup",
            "--source",
            str(_source(tmp_path)),
            "--root",
            str(root),
            "--dry-run",
            "--json",
        ],
        env=env,
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["context"]["dry_run"] is True
    assert payload["counts"]["moved"] == 2
    assert sorted(root.glob("*.json")) == existing
    assert not (root / "Archive").exists()
    log_lines = (root / "bookvault.log").read_text(encoding="utf-8").splitlines()
    assert log_lines
    assert all("[DRY RUN] " in line for line in log_lines)


def test_backup_rejects_invalid_policy_override(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"

    result = runner.invoke(
        cli,
        [
            "backup",
            "--source",
            str(_source(tmp_path)),
            "--root",
            str(root),
            "--max-unarchived",
            "0",
            "--json",
        ],
        env=env,
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "invalid_policy"
    assert not root.exists()


def test_retain_archives_and_packs(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    paths = _write_backups(root, 8, ".html")

    result = runner.invoke(cli, ["retain", "--root", str(root), "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["counts"] == {"moved": 4, "packed": 4, "evicted": 0, "errors": 0}
    assert sorted(root.glob("*.html")) == paths[4:]
    container = root / "Archive" / "Bookmarks_html_archive.zip"
    with zipfile.ZipFile(container) as archive:
        assert archive.namelist() == [path.name for path in paths[:4]]


def test_retain_reports_corrupt_container(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    _write_backups(root / "Archive", 4, ".csv")
    (root / "Archive" / "Bookmarks_csv_archive.zip").write_bytes(b"garbage")

    result = runner.invoke(cli, ["retain", "--root", str(root)], env=env)

    assert result.exit_code == 0, result.output
    assert "Errors encountered" in result.output
    assert "csv" in result.output


def test_prune_logs_removes_old_lines(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    root.mkdir()
    log_path = root / "bookvault.log"
    recent = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    log_path.write_text(
        f"[2001-01-01 00:00:00] ancient run\nstack trace\n[{recent}] recent run\n",
        encoding="utf-8",
    )

    preview = runner.invoke(
        cli, ["prune-logs", "--root", str(root), "--days", "30", "--dry-run"], env=env
    )
    assert preview.exit_code == 0, preview.output
    assert "Would remove 1 log line(s)" in preview.output
    assert "ancient run" in log_path.read_text(encoding="utf-8")

    result = runner.invoke(cli, ["prune-logs", "--root", str(root), "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["removed"] == 1
    assert payload["kept"] == 2
    assert log_path.read_text(encoding="utf-8") == f"stack trace\n[{recent}] recent run\n"


def test_status_counts_each_location(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    root = tmp_path / "backups"
    live = _write_backups(root, 3, ".md")
    _write_backups(root / "Archive", 2, ".md")

    result = runner.invoke(cli, ["status", "--root", str(root), "--json"], env=env)

    assert result.exit_code == 0, result.output
    rows = {row["category"]: row for row in json.loads(result.output)["categories"]}
    assert rows["markdown"]["live"] == 3
    assert rows["markdown"]["archived"] == 2
    assert rows["markdown"]["latest"] == live[-1].name
    assert rows["markdown"]["container"] == 0
    assert rows["json"]["live"] == 0


def test_locate_prints_configured_path(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    source = _source(tmp_path)
    env["BOOKVAULT__SOURCE__PATH"] = str(source)

    result = runner.invoke(cli, ["locate"], env=env)

    assert result.exit_code == 0, result.output
    assert result.output.strip() == str(source)
