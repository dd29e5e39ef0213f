"""Dry-run switch shared by every storage-mutating operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True, slots=True)
class DryRunGate:
    """Carry the dry-run flag for a single run.

    Attributes:
        active: When true, operations log their decisions without touching storage.
    """

    MARKER: ClassVar[str] = "[DRY RUN] "

    active: bool = False

    @property
    def marker(self) -> str:
        """Return the prefix applied to log messages for this run."""
        return self.MARKER if self.active else ""

    def label(self, message: str) -> str:
        """Return ``message`` prefixed with the dry-run marker when active."""
        return f"{self.marker}{message}"


__all__ = ["DryRunGate"]
