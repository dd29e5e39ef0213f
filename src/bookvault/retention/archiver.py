"""Move older live backups into the archive directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from bookvault.config.models import RetentionPolicy

from .errors import MoveFailure
from .gate import DryRunGate
from .models import ArchiveDecision, ArchiveMove, TrackedFile
from .runlog import RunLog


class Archiver:
    """Decide and apply live-to-archive moves for one category."""

    def __init__(self, archive_dir: Path, run_log: RunLog) -> None:
        self._archive_dir = archive_dir
        self._run_log = run_log
        self.failures: list[MoveFailure] = []

    @property
    def archive_dir(self) -> Path:
        return self._archive_dir

    def decide(self, live_files: Sequence[TrackedFile], policy: RetentionPolicy) -> ArchiveDecision:
        """Select the oldest live files beyond ``policy.max_unarchived``.

        Args:
            live_files: Live inventory ordered oldest first.
            policy: Retention limits.

        Returns:
            ArchiveDecision: Moves for the surplus files; empty when within the cap.
        """
        surplus = len(live_files) - policy.max_unarchived
        if surplus <= 0:
            return ArchiveDecision(retained=list(live_files))

        moves = [
            ArchiveMove(file=item, destination=self._archive_dir / item.name)
            for item in live_files[:surplus]
        ]
        return ArchiveDecision(moves=moves, retained=list(live_files[surplus:]))

    def apply(self, decision: ArchiveDecision, gate: DryRunGate) -> bool:
        """Execute ``decision`` unless the gate is active.

        Args:
            decision: Moves produced by :meth:`decide`.
            gate: Dry-run switch.

        Returns:
            bool: ``True`` when moves were attempted, ``False`` for dry-run or an
            empty decision. Individual failures are collected on ``failures``; a
            dry-run reports a taken destination the same way.
        """
        if decision.is_empty:
            return False

        for move in decision.moves:
            try:
                if move.destination.exists():
                    raise FileExistsError(f"Destination already exists: {move.destination}")
                if gate.active:
                    self._run_log.append(gate.label(self._describe(move)))
                    continue
                move.destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(move.file.path), str(move.destination))
            except OSError as exc:
                failure = MoveFailure(
                    f"Failed to archive {move.file.name}: {exc}", path=move.file.path
                )
                self.failures.append(failure)
                self._run_log.append(gate.label(f"ERROR: {failure}"), level=logging.WARNING)
                continue
            self._run_log.append(self._describe(move))
        return not gate.active

    def _describe(self, move: ArchiveMove) -> str:
        return (
            f"Archive {move.file.category.label} backup {move.file.name} "
            f"-> {move.destination.parent.name}/"
        )


__all__ = ["Archiver"]
