"""Command-line interface for dotlink."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.table import Table

from .config import Config, ConfigError, default_log_file, load_config
from .errors import DotlinkError, NoBackupFound, UnsupportedPlatform
from .ledger import BackupLedger
from .log import configure_logging, log_success
from .models import (
    ApplyResult,
    FileResult,
    RestoreResult,
    RollbackReport,
    RunMode,
    ValidationEntry,
    ValidationReport,
    ValidationState,
)
from .reconciler import Reconciler
from .rollback import RollbackEngine
from .system import PlatformInfo, ToolStatus, check_tools, detect_platform

app = typer.Typer(
    help="Link bundled dotfiles into place, backing up whatever they replace.",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

# Exit status click uses for usage errors in standalone mode.
USAGE_ERROR_EXIT_CODE = 2


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        logger.error("Permission denied: %s", exc)
        console.print("[red]Permission denied.[/red] Check write access to your home and config directories.")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        logger.error("%s", exc)
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    if isinstance(exc, NoBackupFound):
        logger.error("%s", exc)
        console.print(f"[red]{exc}[/red]")
        console.print("[yellow]Nothing to roll back: no backup set has been created yet.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, UnsupportedPlatform):
        logger.error("%s", exc)
        console.print(f"[red]{exc}[/red] dotlink supports macOS and Linux.")
        raise typer.Exit(code=1)
    if isinstance(exc, DotlinkError):
        logger.error("%s", exc)
        console.print(f"[red]{exc}[/red]")
        console.print(
            "[yellow]The run stopped at the first failure. Fix the cause and re-run, "
            "or use 'dotlink --rollback' to restore the latest backup.[/yellow]"
        )
        raise typer.Exit(code=1)
    raise exc


def _format_apply_results(results: Iterable[ApplyResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Target", overflow="fold")
    table.add_column("Source", overflow="fold")
    table.add_column("Action")
    table.add_column("Details", overflow="fold")

    for result in results:
        details = result.details or ""
        if result.backup is not None:
            details = f"backup: {result.backup.stored_path}"
        table.add_row(str(result.spec.target), str(result.spec.source), result.action.value, details)

    console.print(table)


def _report_file(result: FileResult) -> None:
    details = result.details or ""
    if result.backup is not None:
        details = f"backup: {result.backup.stored_path}"
    console.print(f"{result.path}: {result.action.value}" + (f" ({details})" if details else ""))


def _format_restore_results(results: Iterable[RestoreResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Path", overflow="fold")
    table.add_column("Action")
    table.add_column("Details", overflow="fold")

    for result in results:
        table.add_row(str(result.path), result.action.value, result.details or "")

    console.print(table)


def _format_validation(report: ValidationReport) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Check", overflow="fold")
    table.add_column("State")
    table.add_column("Details", overflow="fold")

    state_styles = {
        ValidationState.OK: "green",
        ValidationState.WARNING: "yellow",
        ValidationState.ERROR: "red",
    }

    for entry in report.entries:
        style = state_styles[entry.state]
        table.add_row(entry.subject, f"[{style}]{entry.state.value}[/{style}]", entry.details or "")

    console.print(table)


def _report_tools(statuses: list[ToolStatus], info: PlatformInfo) -> None:
    missing = [status.name for status in statuses if not status.installed]
    if not missing:
        console.print("[green]All checked tools are installed.[/green]")
        return
    console.print(
        f"[yellow]Missing tools: {', '.join(missing)}. "
        f"Install them with {info.package_manager} before using the linked configuration.[/yellow]"
    )


def _tool_entries(statuses: Iterable[ToolStatus]) -> list[ValidationEntry]:
    return [
        ValidationEntry(f"tool:{status.name}", ValidationState.OK)
        if status.installed
        else ValidationEntry(f"tool:{status.name}", ValidationState.WARNING, "not installed")
        for status in statuses
    ]


def _run_apply(config: Config, ledger: BackupLedger) -> None:
    if config.dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]")

    info = detect_platform()
    console.print(f"[green]Detected {info.describe()}[/green]")

    if config.skip_tools:
        logger.info("Skipping tool check (--skip-tools)")
        console.print("Skipping tool check (--skip-tools)")
    else:
        _report_tools(check_tools(config.settings.tools), info)

    reconciler = Reconciler(ledger)
    results = reconciler.apply(config.plan, config.mode)
    _format_apply_results(results)

    settings = config.settings
    if settings.zshrc is not None and settings.zdotdir is not None:
        result = reconciler.ensure_zshrc(settings.zshrc, settings.zdotdir, home=config.home, mode=config.mode)
        _report_file(result)

    if config.dry_run:
        return

    report = reconciler.validate(config.plan)
    if not config.skip_tools:
        report = ValidationReport(entries=report.entries + tuple(_tool_entries(check_tools(config.settings.tools))))
    _format_validation(report)

    if ledger.current is not None:
        console.print(f"Backups: {ledger.current.path}")
    console.print(f"Log file: {config.settings.log_file}")

    if report.errors:
        logger.error("Validation failed with %d error(s)", report.errors)
        console.print(f"[red]Validation failed with {report.errors} error(s).[/red]")
        raise typer.Exit(code=1)

    log_success(logger, "Validation passed")
    console.print("[green]Setup complete.[/green]")


def _run_rollback(config: Config, ledger: BackupLedger, *, assume_yes: bool) -> None:
    engine = RollbackEngine(ledger, config.plan, zshrc=config.settings.zshrc)
    confirm = None if assume_yes else (lambda prompt: typer.confirm(prompt, default=False))
    report: RollbackReport = engine.rollback(dry_run=config.dry_run, confirm=confirm)

    console.print(f"Using backup from: {report.backup_set}")
    if report.cancelled:
        console.print("Rollback cancelled.")
        return

    _format_restore_results(report.results)
    if config.dry_run:
        console.print("[yellow]DRY RUN - nothing was changed.[/yellow]")
    else:
        console.print("[green]Rollback complete.[/green]")


@app.command()
def main(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without making changes"),
    rollback: bool = typer.Option(False, "--rollback", help="Restore the latest backup and remove symlinks"),
    skip_tools: bool = typer.Option(False, "--skip-tools", help="Skip the tool check, only link configuration"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation before rolling back"),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        "-r",
        help="Dotfiles repository root (defaults to the current directory)",
        file_okay=False,
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotlink.toml"),
) -> None:
    """Link bundled configuration into place, or roll the last run back."""

    # Until the configuration is read, everything goes to the default log.
    log_file = default_log_file()
    configure_logging(log_file, dry_run=dry_run)

    if rollback and skip_tools:
        logger.error("--skip-tools cannot be combined with --rollback")
        console.print("[red]--skip-tools cannot be combined with --rollback.[/red]")
        raise typer.Exit(code=1)

    mode = RunMode.ROLLBACK if rollback else (RunMode.DRY_RUN if dry_run else RunMode.APPLY)

    try:
        config_obj = load_config(repo, config, mode=mode, dry_run=dry_run, skip_tools=skip_tools)
        if config_obj.settings.log_file != log_file:
            configure_logging(config_obj.settings.log_file, dry_run=dry_run)
        logger.info("dotlink started (mode=%s)", mode.value)
        ledger = BackupLedger(config_obj.settings.backup_root)

        if rollback:
            _run_rollback(config_obj, ledger, assume_yes=yes)
        else:
            _run_apply(config_obj, ledger)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def run() -> None:
    """Entry point used for console_script bindings.

    Usage errors such as unknown flags exit with status 1 rather than 2.
    """

    try:
        app()
    except SystemExit as exc:
        if exc.code == USAGE_ERROR_EXIT_CODE:
            configure_logging(default_log_file())
            logger.error("Invalid command line: %s", " ".join(sys.argv[1:]))
            raise SystemExit(1) from None
        raise
