"""Backup retention lifecycle: archival, container packing, and run logs."""

from .archiver import Archiver
from .errors import (
    ContainerCorrupt,
    InvalidPolicy,
    MoveFailure,
    RetentionError,
    ScanFailure,
    WriteFailure,
)
from .gate import DryRunGate
from .inventory import FileInventory
from .models import (
    ArchiveDecision,
    ArchiveMove,
    Category,
    ContainerDecision,
    ContainerEntry,
    TrackedFile,
)
from .packer import ContainerPacker
from .runlog import LogEntry, PruneResult, RunLog, cutoff_for
from .service import CategoryReport, RetentionService, RunSummary

__all__ = [
    "Archiver",
    "ArchiveDecision",
    "ArchiveMove",
    "Category",
    "CategoryReport",
    "ContainerCorrupt",
    "ContainerDecision",
    "ContainerEntry",
    "ContainerPacker",
    "DryRunGate",
    "FileInventory",
    "InvalidPolicy",
    "LogEntry",
    "MoveFailure",
    "PruneResult",
    "RetentionError",
    "RetentionService",
    "RunLog",
    "RunSummary",
    "ScanFailure",
    "TrackedFile",
    "WriteFailure",
    "cutoff_for",
]
