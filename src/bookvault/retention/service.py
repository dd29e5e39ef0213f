"""Per-run orchestration of archival and container packing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from bookvault.config.models import RetentionPolicy

from .archiver import Archiver
from .errors import ContainerCorrupt, RetentionError, WriteFailure
from .gate import DryRunGate
from .inventory import FileInventory, sort_key
from .models import ArchiveDecision, Category, ContainerDecision, ContainerEntry, TrackedFile
from .packer import ContainerPacker
from .runlog import RunLog

DEFAULT_CONTAINER_TEMPLATE = "{prefix}_{category}_archive.zip"


@dataclass(slots=True)
class CategoryReport:
    """Outcome of one category's retention pass.

    Attributes:
        category: Category processed.
        moved: Files moved (or, in dry-run, to be moved) into the archive.
        packed: Archived files that ended up inside the container.
        evicted: Container entries dropped for exceeding capacity.
        container_entries: Container size after the pass.
        errors: Failures isolated to this category.
        warnings: Non-fatal remarks such as a corrupt container set aside.
        archive_decision: Archival plan computed for the pass.
        container_decision: Packing plan computed for the pass.
    """

    category: Category
    moved: int = 0
    packed: int = 0
    evicted: int = 0
    container_entries: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    archive_decision: Optional[ArchiveDecision] = None
    container_decision: Optional[ContainerDecision] = None

    def summary_line(self) -> str:
        return (
            f"{self.category.label}: moved={self.moved} packed={self.packed} "
            f"evicted={self.evicted} container_entries={self.container_entries} "
            f"errors={len(self.errors)}"
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "moved": self.moved,
            "packed": self.packed,
            "evicted": self.evicted,
            "container_entries": self.container_entries,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "archive": self.archive_decision.model_dump(mode="json")
            if self.archive_decision is not None
            else None,
            "container": self.container_decision.model_dump(mode="json")
            if self.container_decision is not None
            else None,
        }


@dataclass(slots=True)
class RunSummary:
    """Aggregated outcome of a retention run."""

    dry_run: bool
    reports: list[CategoryReport] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "moved": sum(report.moved for report in self.reports),
            "packed": sum(report.packed for report in self.reports),
            "evicted": sum(report.evicted for report in self.reports),
            "errors": sum(len(report.errors) for report in self.reports),
        }

    @property
    def errors(self) -> dict[str, list[str]]:
        return {
            report.category.value: list(report.errors) for report in self.reports if report.errors
        }

    def report_for(self, category: Category) -> CategoryReport:
        for report in self.reports:
            if report.category is category:
                return report
        raise KeyError(category)

    def to_payload(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "counts": self.counts,
            "categories": [report.to_payload() for report in self.reports],
        }


class RetentionService:
    """Run archival and packing for each category with per-category isolation."""

    def __init__(
        self,
        policy: RetentionPolicy,
        *,
        live_dir: Path,
        archive_dir: Path,
        run_log: RunLog,
        gate: DryRunGate | None = None,
        prefix: str | None = None,
        container_template: str = DEFAULT_CONTAINER_TEMPLATE,
    ) -> None:
        """Initialize the service; the policy is validated before any I/O.

        Args:
            policy: Retention limits.
            live_dir: Directory holding the most recent backups.
            archive_dir: Directory holding archived, not yet packed backups.
            run_log: Log receiving every decision.
            gate: Dry-run switch; defaults to inactive.
            prefix: Optional filename prefix restricting scans.
            container_template: Container filename template with ``{prefix}`` and
                ``{category}`` fields.

        Raises:
            InvalidPolicy: If ``policy`` violates its invariants.
        """
        self._policy = policy.ensure_valid()
        self._live_dir = live_dir
        self._archive_dir = archive_dir
        self._run_log = run_log
        self._gate = gate or DryRunGate()
        self._prefix = prefix or ""
        self._container_template = container_template
        self._inventory = FileInventory(prefix=prefix)

    @property
    def policy(self) -> RetentionPolicy:
        return self._policy

    def container_path(self, category: Category) -> Path:
        """Return the container location for ``category``."""
        name = self._container_template.format(prefix=self._prefix, category=category.value)
        return self._archive_dir / name

    def run(self, categories: Iterable[Category] | None = None) -> RunSummary:
        """Process each category in turn.

        A failure in one category is recorded on its report and logged; the
        remaining categories still run.
        """
        summary = RunSummary(dry_run=self._gate.active)
        for category in categories if categories is not None else list(Category):
            report = CategoryReport(category=category)
            try:
                self._run_category(category, report)
            except RetentionError as exc:
                report.errors.append(str(exc))
                self._run_log.append(
                    self._gate.label(f"ERROR: {category.label} retention skipped: {exc}"),
                    level=logging.ERROR,
                )
            summary.reports.append(report)
            self._run_log.append(self._gate.label(report.summary_line()))
        return summary

    def _run_category(self, category: Category, report: CategoryReport) -> None:
        live_files = self._inventory.list_files(self._live_dir, category)
        archiver = Archiver(self._archive_dir, self._run_log)
        archive_decision = archiver.decide(live_files, self._policy)
        report.archive_decision = archive_decision
        archiver.apply(archive_decision, self._gate)
        report.moved = len(archive_decision.moves) - len(archiver.failures)
        report.errors.extend(str(failure) for failure in archiver.failures)

        archived = self._inventory.list_files(self._archive_dir, category)
        if self._gate.active:
            archived = _with_simulated_moves(archived, archive_decision)

        container = self.container_path(category)
        packer = ContainerPacker(self._run_log)
        try:
            existing = packer.read_entries(container)
        except ContainerCorrupt as exc:
            if self._policy.on_corrupt_container == "fail":
                raise
            existing = self._set_aside(container, exc, report)

        decision = packer.decide(
            archived, existing, self._policy, category=category, container_path=container
        )
        report.container_decision = decision
        report.container_entries = len(existing)
        packer.apply(decision, self._gate)
        report.errors.extend(str(failure) for failure in packer.failures)
        if decision.is_empty or _rewrite_failed(packer.failures, container):
            return
        report.packed = len(decision.packed)
        report.evicted = len(decision.evicted)
        report.container_entries = len(decision.final_entries)

    def _set_aside(
        self, container: Path, exc: ContainerCorrupt, report: CategoryReport
    ) -> list[ContainerEntry]:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = container.with_name(f"{container.name}.corrupt-{stamp}")
        message = f"Set aside corrupt container {container.name} -> {target.name} ({exc})"
        report.warnings.append(message)
        self._run_log.append(self._gate.label(message), level=logging.WARNING)
        if not self._gate.active:
            try:
                container.rename(target)
            except OSError as rename_exc:
                raise WriteFailure(
                    f"Unable to set aside corrupt container {container.name}: {rename_exc}",
                    path=container,
                ) from rename_exc
        return []


def _with_simulated_moves(
    archived: list[TrackedFile], decision: ArchiveDecision
) -> list[TrackedFile]:
    simulated = list(archived)
    for move in decision.moves:
        if move.destination.exists():
            continue
        simulated.append(move.file.model_copy(update={"path": move.destination}))
    simulated.sort(key=sort_key)
    return simulated


def _rewrite_failed(failures: Iterable[WriteFailure], container: Path) -> bool:
    return any(failure.path == container for failure in failures)


__all__ = ["RetentionService", "RunSummary", "CategoryReport", "DEFAULT_CONTAINER_TEMPLATE"]
