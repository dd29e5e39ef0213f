"""Data models for the backup retention lifecycle."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Tracked output formats; each is archived and packed independently."""

    JSON = "json"
    HTML = "html"
    CSV = "csv"
    MARKDOWN = "markdown"

    @property
    def extension(self) -> str:
        """Return the file extension (with leading dot) for this category."""
        return _EXTENSIONS[self]

    @property
    def label(self) -> str:
        """Return the human-readable label for this category."""
        return _LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Resolve a category from its name, value, or label (case-insensitive).

        Raises:
            ValueError: If ``value`` does not name a known category.
        """
        normalized = value.strip().lower()
        for member in cls:
            if normalized in {member.value, member.name.lower(), member.label.lower()}:
                return member
        raise ValueError(f"Unknown category: {value!r}")


_EXTENSIONS = {
    Category.JSON: ".json",
    Category.HTML: ".html",
    Category.CSV: ".csv",
    Category.MARKDOWN: ".md",
}
_LABELS = {
    Category.JSON: "JSON",
    Category.HTML: "HTML",
    Category.CSV: "CSV",
    Category.MARKDOWN: "Markdown",
}


class TrackedFile(BaseModel):
    """Snapshot of a backup file taken during a directory scan.

    Attributes:
        path: Absolute path of the file when it was scanned.
        category: Output format the file belongs to.
        modified_at: Last-modified timestamp (timezone-aware).
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    category: Category
    modified_at: datetime

    @property
    def name(self) -> str:
        return self.path.name


class ContainerEntry(BaseModel):
    """A member of a category container, existing or about to be packed.

    Attributes:
        name: Member name inside the container.
        modified_at: Last-modified timestamp used for eviction order.
        source: Archive-directory file backing the entry; ``None`` when the entry
            already lives inside the container.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    modified_at: datetime
    source: Optional[Path] = None

    @property
    def from_archive(self) -> bool:
        return self.source is not None


class ArchiveMove(BaseModel):
    """Move of one live file into the archive directory."""

    file: TrackedFile
    destination: Path


class ArchiveDecision(BaseModel):
    """Files that leave the live directory during a run.

    Attributes:
        moves: Oldest live files selected for archival, oldest first.
        retained: Live files that stay in place, oldest first.
    """

    moves: List[ArchiveMove] = Field(default_factory=list)
    retained: List[TrackedFile] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.moves


class ContainerDecision(BaseModel):
    """Consolidation plan for one category container.

    Attributes:
        category: Category the container holds.
        container_path: Location of the container file.
        unpack_existing: Whether entries of an existing container are merged.
        incoming: Archived files merged into the working set; all of them leave
            the archive directory once the container is rewritten.
        evicted: Entries dropped for exceeding capacity, oldest first.
        final_entries: Container listing after the rewrite, oldest first.
        notes: Free-form remarks about the merge.
    """

    category: Category
    container_path: Path
    unpack_existing: bool = False
    incoming: List[TrackedFile] = Field(default_factory=list)
    evicted: List[ContainerEntry] = Field(default_factory=list)
    final_entries: List[ContainerEntry] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.incoming

    @property
    def packed(self) -> List[ContainerEntry]:
        """Return surviving entries that come from the archive directory."""
        return [entry for entry in self.final_entries if entry.from_archive]


__all__ = [
    "Category",
    "TrackedFile",
    "ContainerEntry",
    "ArchiveMove",
    "ArchiveDecision",
    "ContainerDecision",
]
