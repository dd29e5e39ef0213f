"""Configuration models describing Bookvault settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidPolicy

BrowserName = Literal["chrome", "edge", "brave", "chromium"]
FormatName = Literal["json", "html", "csv", "markdown"]


class BookvaultBaseModel(BaseModel):
    """Shared configuration for Bookvault Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class SourceSettings(BookvaultBaseModel):
    """Settings describing where the browser bookmarks file lives.

    Attributes:
        browser: Chromium-family browser whose profile should be read.
        profile: Profile directory name inside the browser's user data folder.
        path: Explicit bookmarks file path; overrides browser discovery when set.
    """

    browser: BrowserName = "chrome"
    profile: str = "Default"
    path: Optional[str] = None


class StorageSettings(BookvaultBaseModel):
    """Backup directory layout.

    Attributes:
        backup_root: Live directory receiving fresh exports.
        archive_dirname: Archive folder name relative to the backup root.
        file_prefix: Filename prefix shared by every exported file.
        container_template: Filename template for per-category archive containers.
    """

    backup_root: str = "~/BookmarkBackups"
    archive_dirname: str = "Archive"
    file_prefix: str = "Bookmarks"
    container_template: str = "{prefix}_{category}_archive.zip"


class RetentionPolicy(BookvaultBaseModel):
    """Numeric limits governing the backup lifecycle.

    Attributes:
        latest_copies: Copies per category that always stay uncompressed.
        max_unarchived: Copies per category kept in the live directory.
        container_threshold: Archived files required before consolidation runs.
        max_entries_per_container: Hard cap on entries in a category container.
        on_corrupt_container: Strategy when an existing container cannot be read.
    """

    latest_copies: int = 1
    max_unarchived: int = 4
    container_threshold: int = 4
    max_entries_per_container: int = 30
    on_corrupt_container: Literal["fail", "reset"] = "fail"

    def violations(self) -> list[str]:
        """Return human-readable descriptions of every violated invariant."""
        problems: list[str] = []
        for name in (
            "latest_copies",
            "max_unarchived",
            "container_threshold",
            "max_entries_per_container",
        ):
            if getattr(self, name) < 0:
                problems.append(f"{name} must be non-negative (got {getattr(self, name)})")
        if self.latest_copies < 1:
            problems.append("latest_copies must be at least 1")
        if self.max_unarchived < self.latest_copies:
            problems.append(
                f"max_unarchived ({self.max_unarchived}) must be >= "
                f"latest_copies ({self.latest_copies})"
            )
        if self.container_threshold < 1:
            problems.append("container_threshold must be at least 1")
        if self.max_entries_per_container < self.container_threshold:
            problems.append(
                f"max_entries_per_container ({self.max_entries_per_container}) must be >= "
                f"container_threshold ({self.container_threshold})"
            )
        return problems

    def ensure_valid(self) -> "RetentionPolicy":
        """Validate the policy and return it unchanged.

        Raises:
            InvalidPolicy: If any limit violates the policy invariants.
        """
        problems = self.violations()
        if problems:
            raise InvalidPolicy("Invalid retention policy: " + "; ".join(problems))
        return self


class ExportSettings(BookvaultBaseModel):
    """Settings controlling which formats are written each run.

    Attributes:
        formats: Output formats produced by `bookvault backup`.
    """

    formats: List[FormatName] = Field(
        default_factory=lambda: ["json", "html", "csv", "markdown"]
    )


class LoggingSettings(BookvaultBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        log_filename: Run log filename stored in the backup root.
        retention_days: Age in days after which run log lines are pruned.
    """

    level: str = "WARNING"
    log_filename: str = "bookvault.log"
    retention_days: int = 30


class CLIOptions(BookvaultBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class BookvaultConfig(BookvaultBaseModel):
    """Top-level configuration struct for Bookvault.

    Attributes:
        source: Bookmark source settings.
        storage: Backup directory layout.
        retention: Retention policy limits.
        export: Export format selection.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    source: SourceSettings = Field(default_factory=SourceSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    retention: RetentionPolicy = Field(default_factory=RetentionPolicy)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "BookvaultBaseModel",
    "SourceSettings",
    "StorageSettings",
    "RetentionPolicy",
    "ExportSettings",
    "LoggingSettings",
    "CLIOptions",
    "BookvaultConfig",
]
