"""Bookmark export into the backup live directory."""

from .exporter import FILENAME_TIME_FORMAT, BackupExporter, ExportResult

__all__ = ["BackupExporter", "ExportResult", "FILENAME_TIME_FORMAT"]
