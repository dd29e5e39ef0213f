"""Click entry points for bookmark backups, retention and configuration."""

from __future__ import annotations

import difflib
import functools
import logging
from pathlib import Path
from typing import Any, Callable

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from bookvault.bookmarks import (
    SUPPORTED_BROWSERS,
    BookmarkError,
    bookmarks_path,
    locate_bookmarks_file,
)
from bookvault.config import (
    BookvaultConfig,
    ConfigError,
    ConfigManager,
    InvalidPolicy,
    resolve_with_precedence,
)
from bookvault.config.resolver import expand_dotted, merge_layers
from bookvault.export import BackupExporter, ExportResult
from bookvault.retention import (
    Category,
    ContainerCorrupt,
    ContainerPacker,
    DryRunGate,
    FileInventory,
    PruneResult,
    RetentionError,
    RetentionService,
    RunLog,
    RunSummary,
    cutoff_for,
)

console = Console()
LOGGER = logging.getLogger(__name__)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Report a run-fatal error and stop the command.

    In JSON mode the error is printed as `{"error": {"code", "message"}}` and the
    process exits with status 1; otherwise a `click.ClickException` is raised.

    Args:
        message: Text shown to the user.
        code: Stable identifier such as `invalid_policy` or `source_error`.
        json_output: Whether the command runs in JSON mode.
        details: Extra structured data for the JSON payload.
        original: Exception to chain from.
    """

    if json_output:
        error: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            error["details"] = details
        console.print_json(data={"error": error})
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print `message` unless quiet or summary mode hides its `mode`.

    Errors always print; summary mode also keeps `summary` and `warning` lines.
    """

    if mode == "error" or (not quiet and (not summary_only or mode != "detail")):
        console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: BookvaultConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Return `(quiet, summary_only)` from flags, falling back to `cli.*` defaults.

    Raises:
        click.ClickException: If `--json` meets `--quiet`/`--summary`, or quiet and
            summary end up both enabled.
    """

    def _from_flag(name: str, flag: bool, default: bool) -> tuple[bool, bool]:
        explicit = ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE
        return explicit, flag if explicit else default

    quiet_flagged, quiet_enabled = _from_flag("quiet", quiet, config.cli.quiet_default)
    summary_flagged, summary_only = _from_flag(
        "summary_mode", summary_mode, config.cli.summary_default
    )

    if json_output:
        for flagged, enabled, flag in (
            (quiet_flagged, quiet_enabled, "--quiet"),
            (summary_flagged, summary_only, "--summary"),
        ):
            if flagged and enabled:
                raise click.ClickException(f"--json cannot be combined with {flag}.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary output are both enabled; set only one via flags or cli.* config."
        )
    return quiet_enabled, summary_only


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    package_logger = logging.getLogger("bookvault")
    package_logger.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
        )


def _load_config(overrides: dict[str, Any]) -> BookvaultConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load(cli_overrides=overrides or None)
    _configure_logging(config.logging.level)
    return config


def _storage_layout(config: BookvaultConfig) -> tuple[Path, Path, Path]:
    """Return the live directory, archive directory, and run log path."""

    live_dir = Path(config.storage.backup_root).expanduser().resolve()
    archive_dir = live_dir / config.storage.archive_dirname
    return live_dir, archive_dir, live_dir / config.logging.log_filename


def _collect_overrides(
    root: str | None,
    latest_copies: int | None = None,
    max_unarchived: int | None = None,
    container_threshold: int | None = None,
    max_container_entries: int | None = None,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if root:
        overrides["storage.backup_root"] = root
    for key, value in (
        ("retention.latest_copies", latest_copies),
        ("retention.max_unarchived", max_unarchived),
        ("retention.container_threshold", container_threshold),
        ("retention.max_entries_per_container", max_container_entries),
    ):
        if value is not None:
            overrides[key] = value
    return overrides


def _policy_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach retention policy override options to a command."""

    options = [
        click.option("--latest-copies", type=int, help="Copies that always stay uncompressed."),
        click.option("--max-unarchived", type=int, help="Copies kept in the live directory."),
        click.option(
            "--container-threshold",
            type=int,
            help="Archived files required before packing into the container.",
        ),
        click.option(
            "--max-container-entries", type=int, help="Maximum entries per category container."
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _output_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the shared dry-run/JSON/summary/quiet flags to a command."""

    options = [
        click.option("--dry-run", is_flag=True, help="Preview changes without modifying files."),
        click.option("--json", "json_output", is_flag=True, help="Emit JSON output."),
        click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines."),
        click.option("--quiet", is_flag=True, help="Suppress non-error output."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _command_errors(action: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Translate run-fatal exceptions into CLI errors for commands taking `json_output`."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            json_enabled = bool(kwargs.get("json_output"))
            try:
                return func(*args, **kwargs)
            except InvalidPolicy as exc:
                _handle_cli_error(
                    str(exc), code="invalid_policy", json_output=json_enabled, original=exc
                )
            except ConfigError as exc:
                _handle_cli_error(
                    str(exc), code="config_error", json_output=json_enabled, original=exc
                )
            except BookmarkError as exc:
                _handle_cli_error(
                    str(exc), code="source_error", json_output=json_enabled, original=exc
                )
            except click.ClickException as exc:
                _handle_cli_error(
                    str(exc), code="cli_error", json_output=json_enabled, original=exc
                )
            except Exception as exc:
                _handle_cli_error(
                    f"Unexpected error while {action}: {exc}",
                    code="internal_error",
                    json_output=json_enabled,
                    details={"exception": type(exc).__name__},
                    original=exc,
                )

        return wrapper

    return decorator


def _emit_retention(summary: RunSummary, *, quiet: bool, summary_only: bool) -> None:
    """Render a per-category retention table plus errors and warnings."""

    title = "Retention preview" if summary.dry_run else "Retention results"
    table = Table(title=title)
    table.add_column("Category")
    table.add_column("Moved", justify="right")
    table.add_column("Packed", justify="right")
    table.add_column("Evicted", justify="right")
    table.add_column("Container", justify="right")
    table.add_column("Errors", justify="right")
    for report in summary.reports:
        table.add_row(
            report.category.label,
            str(report.moved),
            str(report.packed),
            str(report.evicted),
            str(report.container_entries),
            str(len(report.errors)),
        )
    _emit_message(table, mode="detail", quiet=quiet, summary_only=summary_only)

    for report in summary.reports:
        for warning in report.warnings:
            _emit_message(
                f"[yellow]{report.category.label}: {warning}[/yellow]",
                mode="warning",
                quiet=quiet,
                summary_only=summary_only,
            )
    if summary.errors:
        _emit_message(
            "[red]Errors encountered:[/red]", mode="error", quiet=quiet, summary_only=summary_only
        )
        for category, messages in summary.errors.items():
            for message in messages:
                _emit_message(
                    f"  - {category}: {message}",
                    mode="error",
                    quiet=quiet,
                    summary_only=summary_only,
                )


def _emit_export(result: ExportResult, *, quiet: bool, summary_only: bool) -> None:
    verb = "Would write" if result.dry_run else "Wrote"
    for category, path in result.written.items():
        _emit_message(
            f"[cyan]{verb} {category.label} backup {path.name}[/cyan]",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )
    for failure in result.failures:
        _emit_message(f"[red]{failure}[/red]", mode="error", quiet=quiet, summary_only=summary_only)


def _prune_payload(result: PruneResult | None, error: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": error}
    if result is not None:
        payload.update(
            {
                "cutoff": result.cutoff.isoformat(sep=" "),
                "removed": len(result.removed),
                "kept": result.kept,
                "applied": result.applied,
                "lines": list(result.removed),
            }
        )
    return payload


def _prune_log(
    run_log: RunLog, days: int, gate: DryRunGate
) -> tuple[PruneResult | None, str | None]:
    try:
        return run_log.prune_older_than(cutoff_for(days), gate), None
    except RetentionError as exc:
        return None, str(exc)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="bookvault")
def cli() -> None:
    """Bookvault backs up browser bookmarks as JSON, HTML, CSV, and Markdown."""


@cli.command()
@click.option(
    "--source",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Bookmarks file to export instead of the browser's default.",
)
@click.option("--root", type=click.Path(file_okay=False, path_type=str), help="Backup directory.")
@click.option("--browser", type=click.Choice(SUPPORTED_BROWSERS), help="Browser to read from.")
@click.option("--skip-retention", is_flag=True, help="Export without archiving or packing.")
@_policy_options
@_output_options
@click.pass_context
@_command_errors("backing up bookmarks")
def backup(
    ctx: click.Context,
    source: str | None,
    root: str | None,
    browser: str | None,
    skip_retention: bool,
    latest_copies: int | None,
    max_unarchived: int | None,
    container_threshold: int | None,
    max_container_entries: int | None,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Export bookmarks, then apply retention and log pruning.

    Args:
        ctx: Active Click context; flag sources decide output modes.
        source: Explicit bookmarks file path.
        root: Backup directory override.
        browser: Browser override for source discovery.
        skip_retention: When True, only export.
        latest_copies: Policy override for always-uncompressed copies.
        max_unarchived: Policy override for the live-directory cap.
        container_threshold: Policy override for the packing threshold.
        max_container_entries: Policy override for container capacity.
        dry_run: Log decisions without touching backup files.
        json_output: Print the export and retention results as JSON.
        summary_mode: Print only summary and warning lines.
        quiet: Print errors only.
    """

    overrides = _collect_overrides(
        root, latest_copies, max_unarchived, container_threshold, max_container_entries
    )
    if browser:
        overrides["source.browser"] = browser
    config = _load_config(overrides)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
    )
    policy = config.retention.ensure_valid()

    if source:
        source_path = Path(source).expanduser().resolve()
    elif config.source.path:
        source_path = Path(config.source.path).expanduser()
        if not source_path.is_file():
            raise BookmarkError(f"Configured bookmarks file does not exist: {source_path}")
    else:
        source_path = locate_bookmarks_file(config.source.browser, config.source.profile)

    live_dir, archive_dir, log_path = _storage_layout(config)
    gate = DryRunGate(dry_run)
    run_log = RunLog(log_path)
    run_log.append(gate.label(f"Backup run started for {source_path}"))

    exporter = BackupExporter(live_dir, run_log, prefix=config.storage.file_prefix, gate=gate)
    export_result = exporter.export(
        source_path, [Category.parse(name) for name in config.export.formats]
    )

    summary: RunSummary | None = None
    if not skip_retention:
        service = RetentionService(
            policy,
            live_dir=live_dir,
            archive_dir=archive_dir,
            run_log=run_log,
            gate=gate,
            prefix=config.storage.file_prefix,
            container_template=config.storage.container_template,
        )
        summary = service.run()

    prune_result, prune_error = _prune_log(run_log, config.logging.retention_days, gate)

    errors: dict[str, list[str]] = {}
    if export_result.failures:
        errors["export"] = [str(failure) for failure in export_result.failures]
    if summary is not None:
        errors.update(summary.errors)
    if prune_error:
        errors["log"] = [prune_error]
    if run_log.failures:
        errors.setdefault("log", []).extend(str(failure) for failure in run_log.failures)

    retention_counts = summary.counts if summary is not None else {}
    counts = {
        "written": len(export_result.written),
        "moved": retention_counts.get("moved", 0),
        "packed": retention_counts.get("packed", 0),
        "evicted": retention_counts.get("evicted", 0),
        "log_pruned": len(prune_result.removed) if prune_result else 0,
        "errors": sum(len(messages) for messages in errors.values()),
    }

    if json_output:
        console.print_json(
            data={
                "context": {
                    "source": source_path.as_posix(),
                    "root": live_dir.as_posix(),
                    "archive": archive_dir.as_posix(),
                    "log": log_path.as_posix(),
                    "dry_run": dry_run,
                },
                "export": export_result.to_payload(),
                "retention": summary.to_payload() if summary is not None else None,
                "log_prune": _prune_payload(prune_result, prune_error),
                "counts": counts,
                "errors": errors,
            }
        )
        return

    if dry_run:
        _emit_message(
            "[yellow]Dry run: no backup files were written, moved, or deleted.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    _emit_export(export_result, quiet=quiet_enabled, summary_only=summary_only)
    if summary is not None:
        _emit_retention(summary, quiet=quiet_enabled, summary_only=summary_only)
    if prune_error:
        _emit_message(
            f"[red]{prune_error}[/red]",
            mode="error",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    if dry_run:
        counts["dry_run"] = True
    _emit_message(
        _format_summary_line("Backup", live_dir, counts),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.option("--root", type=click.Path(file_okay=False, path_type=str), help="Backup directory.")
@_policy_options
@_output_options
@click.pass_context
@_command_errors("applying retention")
def retain(
    ctx: click.Context,
    root: str | None,
    latest_copies: int | None,
    max_unarchived: int | None,
    container_threshold: int | None,
    max_container_entries: int | None,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Archive older backups and pack archived files into capped containers.

    Args:
        ctx: Active Click context; flag sources decide output modes.
        root: Backup directory override.
        latest_copies: Policy override for always-uncompressed copies.
        max_unarchived: Policy override for the live-directory cap.
        container_threshold: Policy override for the packing threshold.
        max_container_entries: Policy override for container capacity.
        dry_run: If True, only log the decisions.
        json_output: If True, emit JSON describing the decisions.
        summary_mode: Print only summary and warning lines.
        quiet: Print errors only.
    """

    config = _load_config(
        _collect_overrides(
            root, latest_copies, max_unarchived, container_threshold, max_container_entries
        )
    )
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
    )
    live_dir, archive_dir, log_path = _storage_layout(config)
    gate = DryRunGate(dry_run)
    run_log = RunLog(log_path)
    service = RetentionService(
        config.retention,
        live_dir=live_dir,
        archive_dir=archive_dir,
        run_log=run_log,
        gate=gate,
        prefix=config.storage.file_prefix,
        container_template=config.storage.container_template,
    )
    summary = service.run()

    if json_output:
        payload = summary.to_payload()
        payload["context"] = {
            "root": live_dir.as_posix(),
            "archive": archive_dir.as_posix(),
            "log": log_path.as_posix(),
        }
        payload["errors"] = summary.errors
        console.print_json(data=payload)
        return

    _emit_retention(summary, quiet=quiet_enabled, summary_only=summary_only)
    metrics: dict[str, Any] = dict(summary.counts)
    if dry_run:
        metrics["dry_run"] = True
    _emit_message(
        _format_summary_line("Retention", live_dir, metrics),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command("prune-logs")
@click.option("--root", type=click.Path(file_okay=False, path_type=str), help="Backup directory.")
@click.option("--days", type=int, help="Remove log lines older than this many days.")
@click.option("--dry-run", is_flag=True, help="Report removable lines without rewriting the log.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@_command_errors("pruning the run log")
def prune_logs(root: str | None, days: int | None, dry_run: bool, json_output: bool) -> None:
    """Drop run log lines older than the retention window.

    Args:
        root: Backup directory override.
        days: Retention window override in days.
        dry_run: If True, leave the log file untouched.
        json_output: If True, emit JSON output.
    """

    config = _load_config(_collect_overrides(root))
    window = days if days is not None else config.logging.retention_days
    if window < 0:
        raise click.ClickException("--days must be zero or positive.")
    _, _, log_path = _storage_layout(config)
    run_log = RunLog(log_path)
    result, error = _prune_log(run_log, window, DryRunGate(dry_run))

    if json_output:
        payload = _prune_payload(result, error)
        payload["log"] = log_path.as_posix()
        payload["dry_run"] = dry_run
        console.print_json(data=payload)
        return

    if error or result is None:
        raise click.ClickException(error or "Unable to prune the run log.")
    verb = "Would remove" if dry_run else "Removed"
    for line in result.removed:
        console.print(f"  - {line}", markup=False, highlight=False)
    console.print(
        f"[green]{verb} {len(result.removed)} log line(s) older than "
        f"{result.cutoff:%Y-%m-%d %H:%M:%S}; {result.kept} kept in {log_path}.[/green]"
    )


@cli.command()
@click.option("--root", type=click.Path(file_okay=False, path_type=str), help="Backup directory.")
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
@_command_errors("reading backup status")
def status(root: str | None, json_output: bool) -> None:
    """Show per-category counts of live, archived, and packed backups.

    Args:
        root: Backup directory override.
        json_output: If True, emit JSON output.
    """

    config = _load_config(_collect_overrides(root))
    live_dir, archive_dir, log_path = _storage_layout(config)
    inventory = FileInventory(prefix=config.storage.file_prefix)
    packer = ContainerPacker(RunLog(log_path))

    rows: list[dict[str, Any]] = []
    for category in Category:
        row: dict[str, Any] = {"category": category.value, "error": None}
        container = archive_dir / config.storage.container_template.format(
            prefix=config.storage.file_prefix, category=category.value
        )
        try:
            live = inventory.list_files(live_dir, category)
            archived = inventory.list_files(archive_dir, category)
            row["live"] = len(live)
            row["archived"] = len(archived)
            row["latest"] = live[-1].name if live else None
        except RetentionError as exc:
            row.update({"live": None, "archived": None, "latest": None, "error": str(exc)})
        try:
            row["container"] = len(packer.read_entries(container))
        except ContainerCorrupt as exc:
            row["container"] = None
            row["error"] = str(exc)
        rows.append(row)

    if json_output:
        console.print_json(
            data={
                "context": {"root": live_dir.as_posix(), "archive": archive_dir.as_posix()},
                "categories": rows,
            }
        )
        return

    table = Table(title=f"Backup status for {live_dir}")
    table.add_column("Category")
    table.add_column("Live", justify="right")
    table.add_column("Archived", justify="right")
    table.add_column("Container", justify="right")
    table.add_column("Latest", overflow="fold")
    for row in rows:
        table.add_row(
            Category.parse(row["category"]).label,
            "?" if row["live"] is None else str(row["live"]),
            "?" if row["archived"] is None else str(row["archived"]),
            "corrupt" if row["container"] is None else str(row["container"]),
            row["latest"] or "-",
        )
    console.print(table)
    for row in rows:
        if row["error"]:
            console.print(f"[red]{row['category']}: {row['error']}[/red]")


@cli.command()
@click.option("--browser", type=click.Choice(SUPPORTED_BROWSERS), help="Browser to look up.")
@click.option("--profile", type=str, help="Browser profile directory name.")
def locate(browser: str | None, profile: str | None) -> None:
    """Print the bookmarks file path for the configured browser.

    Args:
        browser: Browser override.
        profile: Profile override.

    Raises:
        click.ClickException: If the bookmarks file does not exist.
    """
    try:
        config = _load_config({})
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    chosen_browser = browser or config.source.browser
    chosen_profile = profile or config.source.profile
    if config.source.path and browser is None and profile is None:
        console.print(config.source.path, markup=False, highlight=False, soft_wrap=True)
        return
    try:
        path = locate_bookmarks_file(chosen_browser, chosen_profile)
    except BookmarkError as exc:
        expected = bookmarks_path(chosen_browser, chosen_profile)
        raise click.ClickException(f"{exc}. Expected location: {expected}") from exc
    console.print(str(path), markup=False, highlight=False, soft_wrap=True)


@cli.group()
def config() -> None:
    """Inspect and change the Bookvault configuration file."""


def _config_diff(before: str, after: str) -> list[str]:
    """Return unified diff lines, ignoring the rewritten "Last updated" stamp."""

    stamp = "# Last updated:"
    lines = difflib.unified_diff(
        [line for line in before.splitlines() if not line.startswith(stamp)],
        [line for line in after.splitlines() if not line.startswith(stamp)],
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    return list(lines)


def _store_validated(manager: ConfigManager, data: dict[str, Any]) -> list[str]:
    """Validate ``data`` as a full config file, save it, and return the diff.

    Raises:
        click.ClickException: If the data does not form a valid configuration.
    """

    try:
        resolved = resolve_with_precedence(defaults=BookvaultConfig(), file_overrides=data)
        resolved.retention.ensure_valid()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = manager.read_text()
    manager.save(data)
    return _config_diff(before, manager.read_text())


@config.command("view")
@click.option("--no-env", is_flag=True, help="Show the file and defaults without BOOKVAULT__ vars.")
def config_view(no_env: bool) -> None:
    """Print the effective configuration as YAML.

    Args:
        no_env: If True, skip environment overrides.
    """
    manager = ConfigManager()
    try:
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    rendered = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(rendered, "yaml", word_wrap=True))
    console.print(f"[dim]Source: {manager.config_path}[/dim]", highlight=False)


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal assigned to KEY.")
def config_set(key: str, value: str) -> None:
    """Write VALUE at the dotted KEY, e.g. `retention.max_unarchived`.

    Args:
        key: Dotted path of the setting.
        value: YAML literal, so `4`, `true`, and `[json, csv]` keep their types.
    """
    dotted = ".".join(part.strip() for part in key.split(".") if part.strip())
    if not dotted:
        raise click.ClickException("KEY must be a dotted path such as 'retention.max_unarchived'.")
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"VALUE is not valid YAML: {exc}") from exc

    manager = ConfigManager()
    manager.ensure_exists()
    try:
        data = merge_layers(
            manager.load_file_overrides(), expand_dotted({dotted: parsed}, source="cli")
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    diff = _store_validated(manager, data)
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {dotted}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the configuration file in $EDITOR and validate the result."""
    manager = ConfigManager()
    manager.ensure_exists()

    current = manager.read_text()
    edited = click.edit(current, extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == current:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        data = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Edited file is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise click.ClickException("The configuration must be a YAML mapping.")

    _store_validated(manager, data)
    console.print("[green]Configuration updated.[/green]")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
