"""Errors raised by the backup retention lifecycle."""

from __future__ import annotations

from pathlib import Path

from bookvault.config.exceptions import InvalidPolicy


class RetentionError(Exception):
    """Base exception for retention, archival, and packing failures."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ScanFailure(RetentionError):
    """Raised when a backup directory cannot be listed."""


class MoveFailure(RetentionError):
    """Raised when a file cannot be moved into the archive directory."""


class WriteFailure(RetentionError):
    """Raised when a file or container cannot be written or removed."""


class ContainerCorrupt(RetentionError):
    """Raised when an existing archive container cannot be unpacked."""


__all__ = [
    "RetentionError",
    "InvalidPolicy",
    "ScanFailure",
    "MoveFailure",
    "WriteFailure",
    "ContainerCorrupt",
]
