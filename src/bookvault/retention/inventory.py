"""Directory scans producing ordered backup inventories."""

from __future__ import annotations

import stat
from datetime import datetime, timezone
from pathlib import Path

from .errors import ScanFailure
from .models import Category, TrackedFile


def sort_key(item: TrackedFile) -> tuple[datetime, str]:
    """Order by modification time, then filename."""
    return (item.modified_at, item.name)


class FileInventory:
    """List backup files of one category inside a single directory."""

    def __init__(self, *, prefix: str | None = None) -> None:
        """Initialize the inventory.

        Args:
            prefix: Optional filename prefix every listed file must start with.
        """
        self.prefix = prefix

    def list_files(self, directory: Path, category: Category) -> list[TrackedFile]:
        """Return files of ``category`` directly inside ``directory``.

        Args:
            directory: Directory to scan (not recursed).
            category: Category whose extension filters the scan.

        Returns:
            list[TrackedFile]: Files ordered oldest first; ties break on filename.

        Raises:
            ScanFailure: If the directory or one of its entries cannot be read.
        """
        if not directory.exists():
            return []

        try:
            children = list(directory.iterdir())
        except OSError as exc:
            raise ScanFailure(f"Unable to list {directory}: {exc}", path=directory) from exc

        found: list[TrackedFile] = []
        for path in children:
            if path.suffix.lower() != category.extension:
                continue
            if self.prefix and not path.name.startswith(self.prefix):
                continue
            try:
                info = path.stat()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise ScanFailure(f"Unable to stat {path}: {exc}", path=path) from exc
            if not stat.S_ISREG(info.st_mode):
                continue
            found.append(
                TrackedFile(
                    path=path,
                    category=category,
                    modified_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
                )
            )

        found.sort(key=sort_key)
        return found


__all__ = ["FileInventory", "sort_key"]
