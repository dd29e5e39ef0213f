"""Write timestamped bookmark backups into the live directory."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from bookvault.bookmarks import (
    BookmarkCounts,
    BookmarkTree,
    count_nodes,
    load_bookmarks,
    render_csv,
    render_html,
    render_markdown,
)
from bookvault.retention import Category, DryRunGate, RunLog, WriteFailure

FILENAME_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"

_RENDERERS: dict[Category, Callable[[BookmarkTree], str]] = {
    Category.HTML: render_html,
    Category.CSV: render_csv,
    Category.MARKDOWN: render_markdown,
}


@dataclass(slots=True)
class ExportResult:
    """Outcome of a single export run.

    Attributes:
        source: Bookmarks file that was exported.
        stem: Shared filename stem of the written files.
        written: Files written (or, in dry-run, planned) per category.
        failures: Per-format write failures.
        counts: Folder and link totals of the exported tree.
        dry_run: Whether the run was simulated.
    """

    source: Path
    stem: str
    written: dict[Category, Path] = field(default_factory=dict)
    failures: list[WriteFailure] = field(default_factory=list)
    counts: BookmarkCounts = BookmarkCounts(0, 0)
    dry_run: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "source": self.source.as_posix(),
            "stem": self.stem,
            "dry_run": self.dry_run,
            "written": {category.value: path.as_posix() for category, path in self.written.items()},
            "folders": self.counts.folders,
            "bookmarks": self.counts.urls,
            "errors": [str(failure) for failure in self.failures],
        }


class BackupExporter:
    """Copy the source JSON and render the other formats under one timestamped stem."""

    def __init__(
        self,
        backup_root: Path,
        run_log: RunLog,
        *,
        prefix: str = "Bookmarks",
        gate: DryRunGate | None = None,
    ) -> None:
        self._backup_root = backup_root
        self._run_log = run_log
        self._prefix = prefix
        self._gate = gate or DryRunGate()

    def export(
        self,
        source: Path,
        categories: Iterable[Category] | None = None,
        *,
        now: datetime | None = None,
    ) -> ExportResult:
        """Export ``source`` into each requested category.

        Args:
            source: Browser bookmarks file.
            categories: Categories to write; defaults to all of them.
            now: Run timestamp used for filenames and modification times.

        Returns:
            ExportResult: Written paths and per-format failures.

        Raises:
            BookmarkSourceError: If the source cannot be read.
            BookmarkParseError: If the source is not a bookmarks document.
        """
        stamp = now or datetime.now()
        selected = list(categories) if categories is not None else list(Category)
        tree = load_bookmarks(source)
        stem = self._unique_stem(stamp, selected)
        result = ExportResult(
            source=source, stem=stem, counts=count_nodes(tree), dry_run=self._gate.active
        )

        for category in selected:
            target = self._backup_root / f"{stem}{category.extension}"
            message = f"Write {category.label} backup {target.name}"
            if self._gate.active:
                self._run_log.append(self._gate.label(message))
                result.written[category] = target
                continue
            try:
                self._backup_root.mkdir(parents=True, exist_ok=True)
                if category is Category.JSON:
                    shutil.copyfile(source, target)
                else:
                    target.write_text(_RENDERERS[category](tree), encoding="utf-8")
                timestamp = stamp.timestamp()
                os.utime(target, (timestamp, timestamp))
            except OSError as exc:
                failure = WriteFailure(
                    f"Failed to write {category.label} backup {target.name}: {exc}", path=target
                )
                result.failures.append(failure)
                self._run_log.append(f"ERROR: {failure}", level=logging.WARNING)
                continue
            result.written[category] = target
            self._run_log.append(message)

        self._run_log.append(
            self._gate.label(
                f"Exported {result.counts.urls} bookmarks in {result.counts.folders} folders "
                f"from {source}"
            )
        )
        return result

    def _unique_stem(self, stamp: datetime, categories: list[Category]) -> str:
        base = f"{self._prefix}_{stamp.strftime(FILENAME_TIME_FORMAT)}"
        stem = base
        counter = 1
        while any((self._backup_root / f"{stem}{c.extension}").exists() for c in categories):
            stem = f"{base}_{counter}"
            counter += 1
        return stem


__all__ = ["BackupExporter", "ExportResult", "FILENAME_TIME_FORMAT"]
