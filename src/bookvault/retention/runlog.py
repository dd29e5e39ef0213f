"""Append-only run log with timestamp-based pruning.

Each line has the form ``[yyyy-MM-dd HH:mm:ss] <message>`` in local time.
Pruning parses that prefix, so the format is treated as a versioned contract:
``encode_line`` and ``decode_timestamp`` are the only places that know it.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from .errors import WriteFailure
from .gate import DryRunGate

LOGGER = logging.getLogger(__name__)

LOG_FORMAT_VERSION = 1
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_LINE_PATTERN = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]")


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A single run log line.

    Attributes:
        timestamp: Local wall-clock time without timezone, second precision.
        message: Free-text message.
    """

    timestamp: datetime
    message: str


@dataclass(slots=True)
class PruneResult:
    """Outcome of a log pruning pass.

    Attributes:
        cutoff: Lines stamped strictly before this time are removed.
        removed: Removed (or, in dry-run, removable) lines without newlines;
            undecodable bytes show as U+FFFD.
        kept: Number of lines left in the log.
        applied: Whether the log file was rewritten.
    """

    cutoff: datetime
    removed: list[str] = field(default_factory=list)
    kept: int = 0
    applied: bool = False


def encode_line(entry: LogEntry) -> str:
    """Serialize ``entry`` without a trailing newline."""
    return f"[{entry.timestamp.strftime(TIMESTAMP_FORMAT)}] {entry.message}"


def decode_timestamp(line: str) -> datetime | None:
    """Return the embedded timestamp of ``line`` or ``None`` when it has none."""
    match = _LINE_PATTERN.match(line)
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def cutoff_for(days: int, now: datetime | None = None) -> datetime:
    """Return the pruning cutoff for a retention window of ``days``."""
    reference = now if now is not None else datetime.now()
    return _to_local_naive(reference) - timedelta(days=days)


def _readable(line: str) -> str:
    return line.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class RunLog:
    """Append decisions to a log file and prune stale lines."""

    def __init__(self, path: Path, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._path = path
        self._clock = clock
        self._entries: list[LogEntry] = []
        self.failures: list[WriteFailure] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entries(self) -> list[LogEntry]:
        """Return entries appended by this instance, in append order."""
        return list(self._entries)

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self._entries]

    def append(self, message: str, *, level: int = logging.INFO) -> LogEntry:
        """Record ``message`` in memory, in the log file, and on the Python logger.

        A file write failure is recorded on ``failures`` and reported through the
        logger; the in-memory entry is kept so callers can still surface it.
        """
        timestamp = _to_local_naive(self._clock()).replace(microsecond=0)
        entry = LogEntry(timestamp=timestamp, message=message)
        self._entries.append(entry)
        LOGGER.log(level, "%s", message)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8", errors="surrogateescape") as handle:
                handle.write(encode_line(entry) + "\n")
        except OSError as exc:
            failure = WriteFailure(f"Unable to write run log {self._path}: {exc}", path=self._path)
            self.failures.append(failure)
            LOGGER.error("%s", failure)
        return entry

    def prune_older_than(self, cutoff: datetime, gate: DryRunGate | None = None) -> PruneResult:
        """Drop lines stamped strictly before ``cutoff`` and rewrite the log.

        Lines without a recognizable timestamp are always kept verbatim, and the
        relative order of kept lines is preserved. Bytes that are not valid
        UTF-8 survive the rewrite unchanged.

        Args:
            cutoff: Oldest timestamp that survives; aware values are converted
                to local time.
            gate: Dry-run switch; when active the file is left untouched.

        Returns:
            PruneResult: Lines removed (or removable) and the number kept.

        Raises:
            WriteFailure: If the log cannot be read or rewritten.
        """
        gate = gate or DryRunGate()
        cutoff = _to_local_naive(cutoff)
        result = PruneResult(cutoff=cutoff)
        if not self._path.exists():
            return result

        try:
            text = self._path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as exc:
            raise WriteFailure(
                f"Unable to read run log {self._path}: {exc}", path=self._path
            ) from exc
        lines = text.splitlines(keepends=True)

        kept: list[str] = []
        for line in lines:
            stamp = decode_timestamp(line)
            if stamp is not None and stamp < cutoff:
                result.removed.append(_readable(line.rstrip("\r\n")))
            else:
                kept.append(line)
        result.kept = len(kept)

        for line in result.removed:
            LOGGER.info("%s", gate.label(f"Prune log line: {line}"))
        if gate.active or not result.removed:
            return result

        temp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            temp_path.write_text("".join(kept), encoding="utf-8", errors="surrogateescape")
            os.replace(temp_path, self._path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise WriteFailure(
                f"Unable to rewrite run log {self._path}: {exc}", path=self._path
            ) from exc
        result.applied = True
        return result


__all__ = [
    "LOG_FORMAT_VERSION",
    "TIMESTAMP_FORMAT",
    "LogEntry",
    "PruneResult",
    "RunLog",
    "encode_line",
    "decode_timestamp",
    "cutoff_for",
]
