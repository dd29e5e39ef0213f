"""Consolidate archived backups into capped per-category ZIP containers."""

from __future__ import annotations

import logging
import os
import zipfile
import zlib
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path
from typing import Sequence

from bookvault.config.models import RetentionPolicy

from .errors import ContainerCorrupt, WriteFailure
from .gate import DryRunGate
from .models import Category, ContainerDecision, ContainerEntry, TrackedFile
from .runlog import RunLog

# Raised by zipfile for damaged deflate streams, unsupported compression or
# encrypted members, on top of the usual format errors.
_UNREADABLE = (
    zipfile.BadZipFile,
    zlib.error,
    OSError,
    EOFError,
    NotImplementedError,
    RuntimeError,
    ValueError,
)


def _entry_key(entry: ContainerEntry) -> tuple[datetime, str]:
    return (entry.modified_at, entry.name)


class ContainerPacker:
    """Decide and apply container consolidation for one category."""

    def __init__(self, run_log: RunLog) -> None:
        self._run_log = run_log
        self.failures: list[WriteFailure] = []

    def read_entries(self, container_path: Path) -> list[ContainerEntry]:
        """Return the members of an existing container, oldest first.

        Member timestamps come from the ZIP headers, which store local time at
        two-second resolution.

        Raises:
            ContainerCorrupt: If the container exists but cannot be read.
        """
        if not container_path.exists():
            return []

        try:
            with zipfile.ZipFile(container_path) as archive:
                bad_member = archive.testzip()
                infos = archive.infolist()
        except _UNREADABLE as exc:
            raise ContainerCorrupt(
                f"Unable to unpack container {container_path.name}: {exc}", path=container_path
            ) from exc
        if bad_member is not None:
            raise ContainerCorrupt(
                f"Container {container_path.name} has a damaged member: {bad_member}",
                path=container_path,
            )

        entries = [
            ContainerEntry(name=info.filename, modified_at=datetime(*info.date_time).astimezone())
            for info in infos
            if not info.is_dir()
        ]
        entries.sort(key=_entry_key)
        return entries

    def decide(
        self,
        archived_files: Sequence[TrackedFile],
        existing_entries: Sequence[ContainerEntry],
        policy: RetentionPolicy,
        *,
        category: Category,
        container_path: Path,
    ) -> ContainerDecision:
        """Plan a container rewrite for ``category``.

        Args:
            archived_files: Archive-directory inventory, oldest first.
            existing_entries: Members of the current container.
            policy: Retention limits.
            category: Category being packed.
            container_path: Container location.

        Returns:
            ContainerDecision: Empty when fewer than ``container_threshold`` files
            are archived; otherwise the merged, capacity-trimmed listing.
        """
        decision = ContainerDecision(category=category, container_path=container_path)
        if len(archived_files) < policy.container_threshold:
            return decision

        by_name = {entry.name: entry for entry in existing_entries}
        incoming: list[ContainerEntry] = []
        for item in archived_files:
            if by_name.pop(item.name, None) is not None:
                decision.notes.append(f"{item.name} replaces the copy already in the container")
            incoming.append(
                ContainerEntry(name=item.name, modified_at=item.modified_at, source=item.path)
            )

        merged = sorted([*by_name.values(), *incoming], key=_entry_key)
        surplus = max(0, len(merged) - policy.max_entries_per_container)

        decision.unpack_existing = bool(existing_entries)
        decision.incoming = list(archived_files)
        decision.evicted = merged[:surplus]
        decision.final_entries = merged[surplus:]
        return decision

    def apply(self, decision: ContainerDecision, gate: DryRunGate) -> bool:
        """Rewrite the container described by ``decision`` unless the gate is active.

        The new container is written next to the old one and swapped in with an
        atomic replace; archive files are removed only afterwards. Evicted
        entries are not copied and their archive files are deleted.

        Returns:
            bool: ``True`` when storage was mutated or a mutation was attempted,
            ``False`` for dry-run or an empty decision.
        """
        if decision.is_empty:
            return False

        messages = self._describe(decision)
        if gate.active:
            for message in messages:
                self._run_log.append(gate.label(message))
            return False

        container = decision.container_path
        temp_path = container.with_name(container.name + ".tmp")
        try:
            self._write_container(decision, temp_path)
            os.replace(temp_path, container)
        except (OSError, KeyError, ContainerCorrupt) as exc:
            temp_path.unlink(missing_ok=True)
            failure = WriteFailure(
                f"Failed to rewrite container {container.name}: {exc}", path=container
            )
            self.failures.append(failure)
            self._run_log.append(gate.label(f"ERROR: {failure}"), level=logging.WARNING)
            return True

        for message in messages:
            self._run_log.append(message)

        for item in decision.incoming:
            try:
                item.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                failure = WriteFailure(
                    f"Packed {item.name} but could not remove it from the archive: {exc}",
                    path=item.path,
                )
                self.failures.append(failure)
                self._run_log.append(gate.label(f"ERROR: {failure}"), level=logging.WARNING)
        return True

    def _write_container(self, decision: ContainerDecision, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        needs_existing = any(not entry.from_archive for entry in decision.final_entries)
        with ExitStack() as stack:
            existing = None
            if decision.unpack_existing and needs_existing:
                try:
                    existing = stack.enter_context(zipfile.ZipFile(decision.container_path))
                except _UNREADABLE as exc:
                    raise ContainerCorrupt(
                        f"Unable to reopen container: {exc}", path=decision.container_path
                    ) from exc
            output = stack.enter_context(
                zipfile.ZipFile(
                    target, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
                )
            )
            for entry in decision.final_entries:
                if entry.source is not None:
                    output.write(entry.source, arcname=entry.name)
                    continue
                if existing is None:
                    raise FileNotFoundError(f"No existing container holds {entry.name}")
                info = existing.getinfo(entry.name)
                try:
                    payload = existing.read(info)
                except _UNREADABLE as exc:
                    raise ContainerCorrupt(
                        f"Unable to read {entry.name} from the container: {exc}",
                        path=decision.container_path,
                    ) from exc
                output.writestr(info, payload)

    def _describe(self, decision: ContainerDecision) -> list[str]:
        name = decision.container_path.name
        label = decision.category.label
        messages = [
            f"Evict {entry.name} from {label} container {name}" for entry in decision.evicted
        ]
        messages.extend(
            f"Pack {entry.name} into {label} container {name}" for entry in decision.packed
        )
        messages.append(
            f"Rewrite {label} container {name} with {len(decision.final_entries)} entries "
            f"(packed={len(decision.packed)}, evicted={len(decision.evicted)})"
        )
        return messages


__all__ = ["ContainerPacker"]
