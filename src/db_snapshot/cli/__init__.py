"""CLI module for database snapshot export and import.

Usage:
    DB_PROFILE=local db-snapshot export
    db-snapshot export --profile rds --tables parents,children --output snap.json
    db-snapshot validate data-exports/latest.json
    db-snapshot check data-exports/latest.json --profile aws
    db-snapshot import data-exports/latest.json --profile aws --yes
    db-snapshot profiles

Commands:
    export    - Export configured tables to a JSON snapshot
    import    - Clear target tables and load a snapshot
    validate  - Check snapshot file structure (no database)
    check     - Compare snapshot tables/columns against a target schema
    profiles  - List available profiles
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.table import Table

from db_snapshot.artifact.reader import read_artifact, validate_artifact
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import DatabaseConfig
from db_snapshot.errors import SnapshotError
from db_snapshot.factory import connect_and_validate, get_adapter, read_profile_lock
from db_snapshot.schema.comparator import artifact_columns
from db_snapshot.snapshot.exporter import SnapshotExporter
from db_snapshot.snapshot.importer import SnapshotImporter
from db_snapshot.snapshot.models import ImportSummary, TableOutcome
from db_snapshot.snapshot.orchestrator import LoadOrchestrator

console = Console()
logger = logging.getLogger("db_snapshot")

_STATUS_STYLES = {
    "exported": "green",
    "imported": "green",
    "skipped": "dim",
    "failed": "bold red",
}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> DatabaseConfig:
    """Load db.toml; a missing default file yields an empty config.

    Raises:
        FileNotFoundError: If ``--config`` names a file that doesn't exist.
    """
    config_path = getattr(args, "config", None)
    if config_path is not None:
        return load_db_config(Path(config_path))
    try:
        return load_db_config()
    except FileNotFoundError:
        return DatabaseConfig()


def _config_path(args: argparse.Namespace) -> Path | None:
    config_path = getattr(args, "config", None)
    return Path(config_path) if config_path is not None else None


def _outcome_table(title: str, outcomes: list[TableOutcome]) -> Table:
    """Render per-table outcomes."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Notes")

    for outcome in outcomes:
        style = _STATUS_STYLES.get(outcome.status, "")
        notes = outcome.error or outcome.reason or ""
        if outcome.dropped_columns:
            notes = f"dropped: {', '.join(outcome.dropped_columns)}"
        if outcome.truncated_columns:
            notes = f"truncated: {', '.join(outcome.truncated_columns)}"
        if outcome.sequences:
            seqs = ", ".join(f"{c}->{v}" for c, v in outcome.sequences.items())
            notes = f"{notes}; next {seqs}" if notes else f"next {seqs}"
        table.add_row(
            outcome.table,
            f"[{style}]{outcome.status}[/{style}]" if style else outcome.status,
            str(outcome.rows) if outcome.rows else "-",
            notes,
        )
    return table


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_export(args: argparse.Namespace) -> int:
    """Async implementation for export command.

    Returns:
        0 on success (including degraded exports), 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        config = _load_config(args)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    settings = config.snapshot
    tables = (
        [t.strip() for t in args.tables.split(",") if t.strip()]
        if args.tables
        else settings.tables
    )
    if not tables:
        console.print("[red]Error: No tables to export.[/red]")
        console.print(
            "[dim]Set[/dim] [cyan]tables[/cyan] [dim]in the [snapshot] section "
            "of db.toml or pass[/dim] [cyan]--tables a,b,c[/cyan]"
        )
        return 1

    try:
        adapter = await get_adapter(
            profile_name=args.profile,
            env_prefix=env_prefix,
            config_path=_config_path(args),
        )
    except (SnapshotError, FileNotFoundError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        return 1

    exporter = SnapshotExporter(
        adapter,
        tables,
        export_dir=args.export_dir or settings.export_dir,
        latest_name=settings.latest_name,
        max_text_length=settings.max_text_length,
    )
    try:
        summary = await exporter.export(args.output)
    except Exception as e:
        logger.error("Export failed: %s", e)
        console.print(f"\n[bold red]x[/bold red] Export failed: {e}")
        return 1
    finally:
        await adapter.close()

    console.print()
    console.print(_outcome_table("Export Summary", summary.tables))
    console.print(
        f"\n[bold green]v[/bold green] Exported {len(summary.exported_tables)} "
        f"tables, {summary.total_rows} rows"
    )
    console.print(f"  File: [cyan]{summary.artifact_path}[/cyan]")
    console.print(f"  Latest: [cyan]{summary.latest_path}[/cyan]")
    if summary.degraded:
        console.print(
            f"  [yellow]Missing from snapshot: "
            f"{', '.join(summary.failed_tables)}[/yellow]"
        )
    return 0


async def _async_import(args: argparse.Namespace) -> int:
    """Async implementation for import command.

    Artifact problems are reported before connecting to the target.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    if not args.artifact:
        console.print("Usage: db-snapshot import <export-file>")
        return 1

    artifact_path = Path(args.artifact)
    try:
        artifact = read_artifact(artifact_path)
        config = _load_config(args)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"Import file: [cyan]{artifact_path}[/cyan]")
    console.print(f"  Exported: {artifact.export_timestamp}")
    console.print(f"  Tables: [dim]{', '.join(artifact.table_names)}[/dim]")

    if not args.yes and sys.stdin.isatty():
        if not Confirm.ask(
            "All listed tables in the target will be truncated. Continue?"
        ):
            console.print("[yellow]Aborted.[/yellow]")
            return 1

    try:
        adapter = await get_adapter(
            profile_name=args.profile,
            env_prefix=env_prefix,
            config_path=_config_path(args),
        )
    except (SnapshotError, FileNotFoundError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        return 1

    importer = SnapshotImporter(
        adapter, sequence_columns=config.snapshot.sequence_columns
    )
    summary = ImportSummary(
        artifact_path=str(artifact_path),
        export_timestamp=artifact.export_timestamp,
    )
    try:
        await LoadOrchestrator(adapter, importer).load(artifact, summary)
    except Exception as e:
        console.print()
        if summary.tables:
            console.print(_outcome_table("Import Summary", summary.tables))
        console.print(f"[bold red]x[/bold red] Import failed: {e}")
        console.print(f"  [dim]States: {' -> '.join(summary.history)}[/dim]")
        return 1
    finally:
        await adapter.close()

    console.print()
    console.print(_outcome_table("Import Summary", summary.tables))
    console.print(
        f"\n[bold green]v[/bold green] Imported {len(summary.imported_tables)}"
        f"/{len(artifact.tables)} tables, {summary.total_rows} rows"
    )
    for warning in summary.warnings:
        console.print(f"  [yellow]{warning}[/yellow]")
    return 0


async def _async_check(args: argparse.Namespace) -> int:
    """Async implementation for check command.

    Returns:
        0 if every artifact table exists in the target, 1 otherwise.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        artifact = read_artifact(args.artifact)
    except SnapshotError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print("Connecting to database...", style="dim")

    result = await connect_and_validate(
        profile_name=args.profile,
        expected_columns=artifact_columns(artifact),
        env_prefix=env_prefix,
        config_path=_config_path(args),
    )

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected to profile: "
            f"[bold cyan]{result.profile_name or 'DATABASE_URL'}[/bold cyan]"
        )
        console.print("  Schema check: [green]PASSED[/green]")
        if result.schema_report and result.schema_report.missing_columns:
            console.print(result.schema_report.format_report())
        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] {result.error}")
    if result.schema_report:
        console.print("\n[bold]Schema check report:[/bold]")
        console.print(result.schema_report.format_report())
    return 1


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_export(args: argparse.Namespace) -> int:
    """Export tables to a snapshot file."""
    return asyncio.run(_async_export(args))


def cmd_import(args: argparse.Namespace) -> int:
    """Load a snapshot file into the target database."""
    return asyncio.run(_async_import(args))


def cmd_check(args: argparse.Namespace) -> int:
    """Compare a snapshot against the target schema."""
    return asyncio.run(_async_check(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate snapshot file structure.

    Reads only the local file -- no database calls.

    Returns:
        0 if valid, 1 otherwise.
    """
    report = validate_artifact(args.artifact)

    table = Table(title="Snapshot Validation", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("File", str(args.artifact))
    table.add_row("Tables", str(report["tables"]))
    table.add_row("Rows", str(report["rows"]))
    console.print(table)

    for error in report["errors"]:
        console.print(f"  [red]x {error}[/red]")
    for warning in report["warnings"]:
        console.print(f"  [yellow]! {warning}[/yellow]")

    if report["valid"]:
        console.print("[bold green]v[/bold green] Snapshot is valid")
        return 0
    console.print("[bold red]x[/bold red] Snapshot is invalid")
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config(_config_path(args))
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(
        title="Database Profiles", show_header=True, header_style="bold"
    )
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("SSL")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.sslmode or "",
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = last checked profile")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="db-snapshot",
        description="PostgreSQL snapshot export and import",
    )

    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # export command
    p_export = subparsers.add_parser(
        "export",
        help="Export configured tables to a JSON snapshot",
    )
    p_export.add_argument("--profile", "-p", help="Source profile")
    p_export.add_argument(
        "--tables",
        help="Comma-separated tables in dependency order (overrides db.toml)",
    )
    p_export.add_argument("--output", "-o", help="Snapshot file path")
    p_export.add_argument("--export-dir", help="Directory for snapshot files")
    p_export.set_defaults(func=cmd_export)

    # import command
    p_import = subparsers.add_parser(
        "import",
        help="Clear target tables and load a snapshot",
    )
    p_import.add_argument("artifact", nargs="?", help="Snapshot file to import")
    p_import.add_argument("--profile", "-p", help="Target profile")
    p_import.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )
    p_import.set_defaults(func=cmd_import)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Check snapshot file structure",
    )
    p_validate.add_argument("artifact", help="Snapshot file to validate")
    p_validate.set_defaults(func=cmd_validate)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Compare snapshot tables/columns against the target schema",
    )
    p_check.add_argument("artifact", help="Snapshot file to check")
    p_check.add_argument("--profile", "-p", help="Target profile")
    p_check.set_defaults(func=cmd_check)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
