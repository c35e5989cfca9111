"""CLI module for MySQL schema extraction, export, comparison and import.

Usage:
    DB_PROFILE=local schema-kit extract --format json
    schema-kit profiles
    schema-kit export schema-exports/shop.json --format markdown
    schema-kit compare old.json new.json
    schema-kit apply shop.json --tables users,orders --dry-run
    schema-kit validate shop.json
    schema-kit clone shop.json --target shop_staging
    schema-kit create-db shop.json --name shop_test --drop-if-exists

Commands:
    profiles   - List available profiles
    extract    - Extract the live schema and save it in one format
    export     - Convert a saved snapshot to another format
    compare    - Diff two saved snapshots
    apply      - Apply a snapshot to the profile's database
    validate   - Dry-run a snapshot and report problems
    clone      - Apply a snapshot into another database
    create-db  - Create a database and apply a snapshot into it
    backup     - Extract the live schema into a dated JSON backup
    stats      - Show statistics and relationships of a snapshot
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from schema_kit.config.loader import load_config
from schema_kit.config.models import SchemaKitConfig, SchemaSettings
from schema_kit.errors import ObjectCreationError, SchemaKitError
from schema_kit.factory import get_active_profile_name, get_gateway
from schema_kit.schema.analysis import (
    schema_statistics,
    summarize_changes,
    table_relationships,
)
from schema_kit.schema.comparator import compare_schemas
from schema_kit.schema.exporters import export_schema, resolve_format
from schema_kit.schema.extractor import SchemaExtractor
from schema_kit.schema.importer import SchemaImporter
from schema_kit.schema.models import (
    CloneOptions,
    CreateDatabaseOptions,
    ExportFormat,
    ExtractionOptions,
    ImportOptions,
    ImportResult,
)
from schema_kit.schema.storage import (
    create_schema_backup,
    load_schema_from_file,
    save_schema_to_file,
)

console = Console()
err_console = Console(stderr=True)

_EXTENSIONS = {
    ExportFormat.SQL: "sql",
    ExportFormat.JSON: "json",
    ExportFormat.TYPESCRIPT: "ts",
    ExportFormat.PYTHON: "py",
    ExportFormat.MARKDOWN: "md",
}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config) if getattr(args, "config", None) else None


def _load_config_or_none(args: argparse.Namespace) -> SchemaKitConfig | None:
    try:
        return load_config(_config_path(args))
    except FileNotFoundError:
        return None


def _schema_settings(args: argparse.Namespace) -> SchemaSettings:
    config = _load_config_or_none(args)
    return config.schema_settings if config else SchemaSettings()


def _split_names(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _gateway(args: argparse.Namespace):
    return get_gateway(
        profile_name=getattr(args, "profile", None),
        env_prefix=getattr(args, "env_prefix", ""),
        config_path=_config_path(args),
    )


def _write_or_print(content: str, output: str | None) -> None:
    if output is None or output == "-":
        console.print(content, markup=False, highlight=False, soft_wrap=True)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    console.print(f"[bold green]v[/bold green] Written to [cyan]{path}[/cyan]")


def _print_import_result(result: ImportResult, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Created", justify="right")
    table.add_column("Names")

    for kind, names in (
        ("tables", result.tables_created),
        ("views", result.views_created),
        ("functions", result.functions_created),
        ("procedures", result.procedures_created),
        ("triggers", result.triggers_created),
        ("events", result.events_created),
    ):
        table.add_row(kind, str(len(names)), ", ".join(names))

    console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")
    for failure in result.errors:
        console.print(f"[red]x {failure.object_name}: {failure.error}[/red]")

    if result.success:
        console.print("[bold green]v[/bold green] Completed without errors")
    else:
        console.print(f"[bold red]x[/bold red] {len(result.errors)} object(s) failed")


def _import_options(args: argparse.Namespace) -> dict:
    return {
        "drop_existing": args.drop_existing,
        "skip_errors": args.skip_errors,
        "dry_run": getattr(args, "dry_run", False),
    }


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_extract(args: argparse.Namespace) -> int:
    """Async implementation for extract command.

    Returns:
        0 on success, 1 on failure.
    """
    fmt = resolve_format(args.format)
    options = ExtractionOptions(
        include_tables=not args.no_tables,
        include_views=not args.no_views,
        include_procedures=not args.no_procedures,
        include_functions=not args.no_functions,
        include_triggers=not args.no_triggers,
        include_events=not args.no_events,
        table_filter=_split_names(args.tables) or args.pattern,
        exclude_system_tables=not args.include_system_tables,
    )
    settings = _schema_settings(args)

    async with _gateway(args) as gateway:
        extractor = SchemaExtractor(
            gateway, system_table_prefixes=settings.system_table_prefixes
        )
        console.print(f"Extracting [bold]{extractor.database_name}[/bold]...", style="dim")
        schema = await extractor.extract_full_schema(options)

    output = args.output
    if output is None:
        output = str(
            Path(settings.output_dir) / f"{schema.database_name}.{_EXTENSIONS[fmt]}"
        )

    if output == "-":
        _write_or_print(export_schema(schema, fmt), output)
        return 0

    path = save_schema_to_file(output, fmt, schema)

    table = Table(title=f"Schema: {schema.database_name}", show_header=False)
    table.add_column("Kind", style="dim")
    table.add_column("Count", justify="right")
    table.add_row("Tables", str(len(schema.tables)))
    table.add_row("Views", str(len(schema.views)))
    table.add_row("Functions", str(len(schema.functions)))
    table.add_row("Procedures", str(len(schema.procedures)))
    table.add_row("Triggers", str(len(schema.triggers)))
    table.add_row("Events", str(len(schema.events)))
    console.print(table)
    console.print(f"[bold green]v[/bold green] Saved {fmt.value} to [cyan]{path}[/cyan]")
    return 0


async def _async_apply(args: argparse.Namespace) -> int:
    """Async implementation for apply command."""
    schema = load_schema_from_file(args.snapshot)
    options = ImportOptions(**_import_options(args))
    tables = _split_names(args.tables)

    async with _gateway(args) as gateway:
        importer = SchemaImporter(gateway)
        if tables:
            result = await importer.apply_specific_tables(schema, tables, options)
        else:
            result = await importer.apply_schema(schema, options)

    title = "Dry Run" if options.dry_run else "Applied"
    _print_import_result(result, f"{title}: {schema.database_name}")
    if options.dry_run:
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
    return 0 if result.success else 1


async def _async_validate(args: argparse.Namespace) -> int:
    """Async implementation for validate command."""
    schema = load_schema_from_file(args.snapshot)

    async with _gateway(args) as gateway:
        report = await SchemaImporter(gateway).validate_schema(schema)

    if report.valid:
        console.print(f"[bold green]v[/bold green] {report.format_report()}")
        return 0

    console.print(f"[bold red]x[/bold red] {report.format_report()}")
    return 1


async def _async_clone(args: argparse.Namespace) -> int:
    """Async implementation for clone command."""
    schema = load_schema_from_file(args.snapshot)
    options = CloneOptions(
        **_import_options(args),
        create_database=not args.no_create_database,
        drop_database=args.drop_database,
    )

    async with _gateway(args) as gateway:
        result = await SchemaImporter(gateway).clone_schema(schema, args.target, options)

    _print_import_result(result, f"Cloned: {schema.database_name} -> {args.target}")
    return 0 if result.success else 1


async def _async_create_db(args: argparse.Namespace) -> int:
    """Async implementation for create-db command."""
    schema = load_schema_from_file(args.snapshot)
    options = CreateDatabaseOptions(
        **_import_options(args),
        drop_if_exists=args.drop_if_exists,
    )

    async with _gateway(args) as gateway:
        result = await SchemaImporter(gateway).create_database(args.name, schema, options)

    _print_import_result(result, f"Created database: {args.name}")
    return 0 if result.success else 1


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command."""
    settings = _schema_settings(args)

    async with _gateway(args) as gateway:
        extractor = SchemaExtractor(
            gateway, system_table_prefixes=settings.system_table_prefixes
        )
        schema = await extractor.extract_full_schema()

    path = create_schema_backup(schema, args.backup_dir or settings.backup_dir)
    console.print(f"[bold green]v[/bold green] Backup written to [cyan]{path}[/cyan]")
    return 0


def _run(coro_fn, args: argparse.Namespace) -> int:
    """Run an async command, turning library errors into exit code 1."""
    try:
        return asyncio.run(coro_fn(args))
    except ObjectCreationError as e:
        if e.result is not None:
            _print_import_result(e.result, "Aborted")
        console.print(f"\n[red]Error: {e}[/red]")
        return 1
    except (SchemaKitError, SQLAlchemyError, FileNotFoundError, ValueError) as e:
        # ValueError covers invalid TOML and config validation failures
        console.print(f"\n[red]Error: {e}[/red]")
        return 1


# ============================================================================
# Sync command implementations
# ============================================================================


def cmd_extract(args: argparse.Namespace) -> int:
    """Extract the live schema.

    Wraps the async implementation with ``asyncio.run()``.

    Returns:
        0 on success, 1 on failure.
    """
    return _run(_async_extract, args)


def cmd_apply(args: argparse.Namespace) -> int:
    """Apply a snapshot to the profile's database."""
    return _run(_async_apply, args)


def cmd_validate(args: argparse.Namespace) -> int:
    """Dry-run a snapshot.

    Returns:
        0 on valid snapshot, 1 otherwise.
    """
    return _run(_async_validate, args)


def cmd_clone(args: argparse.Namespace) -> int:
    """Apply a snapshot into another database."""
    return _run(_async_clone, args)


def cmd_create_db(args: argparse.Namespace) -> int:
    """Create a database and apply a snapshot into it."""
    return _run(_async_create_db, args)


def cmd_backup(args: argparse.Namespace) -> int:
    """Write a dated JSON backup of the live schema."""
    return _run(_async_backup, args)


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from schema-kit.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if the config file is not found.
    """
    try:
        config = load_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(
            getattr(args, "profile", None), args.env_prefix, config
        )
    except SchemaKitError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(
            marker,
            f"[bold cyan]{name}[/bold cyan]" if name == current else name,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Convert a saved snapshot to another format (no database calls)."""
    try:
        schema = load_schema_from_file(args.snapshot)
        content = export_schema(schema, args.format)
    except (SchemaKitError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    _write_or_print(content, args.output)
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Diff two saved snapshots.

    Returns:
        0 always when both files load (informational command).
    """
    try:
        old = load_schema_from_file(args.old)
        new = load_schema_from_file(args.new)
    except (SchemaKitError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    comparison = compare_schemas(old, new)
    summary = summarize_changes(comparison)

    console.print(f"[bold]{old.database_name}[/bold] -> [bold]{new.database_name}[/bold]")
    console.print(comparison.format_report(), markup=False, highlight=False)
    console.print()
    style = "yellow" if summary.has_changes else "green"
    console.print(f"[{style}]{summary.summary}[/{style}]")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show statistics and foreign-key relationships of a snapshot."""
    try:
        schema = load_schema_from_file(args.snapshot)
    except (SchemaKitError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    stats = schema_statistics(schema)

    table = Table(title=f"Statistics: {schema.database_name}", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Tables", str(stats.total_tables))
    table.add_row("Columns", str(stats.total_columns))
    table.add_row("Indexes", str(stats.total_indexes))
    table.add_row("Foreign keys", str(stats.total_foreign_keys))
    table.add_row("Avg columns/table", f"{stats.average_columns_per_table:.1f}")
    for engine, count in sorted(stats.tables_by_engine.items()):
        table.add_row(f"Engine {engine}", str(count))
    console.print(table)

    relationships = table_relationships(schema)
    if relationships:
        rel_table = Table(title="Relationships", show_header=True, header_style="bold")
        rel_table.add_column("From")
        rel_table.add_column("To")
        for rel in relationships:
            rel_table.add_row(
                f"{rel.from_table}.{rel.on_column}",
                f"{rel.to_table}.{rel.referenced_column}",
            )
        console.print(rel_table)

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_import_arguments(parser: argparse.ArgumentParser, dry_run: bool = True) -> None:
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop each object before recreating it",
    )
    parser.add_argument(
        "--skip-errors",
        action="store_true",
        help="Record failures and continue instead of stopping at the first one",
    )
    if dry_run:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be created without executing DDL",
        )


def build_parser() -> argparse.ArgumentParser:
    """Build the ``schema-kit`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="schema-kit",
        description="MySQL schema extraction, export, comparison and import",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to schema-kit.toml (default: ./schema-kit.toml)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile name from the config file",
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
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    formats = [f.value for f in ExportFormat]

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # extract command
    p_extract = subparsers.add_parser("extract", help="Extract the live schema")
    p_extract.add_argument("--format", choices=formats, default="json")
    p_extract.add_argument(
        "--output",
        "-o",
        default=None,
        help="Output file ('-' for stdout; default: <output_dir>/<database>.<ext>)",
    )
    p_extract.add_argument(
        "--tables",
        default=None,
        help="Comma-separated list of tables to extract",
    )
    p_extract.add_argument(
        "--pattern",
        default=None,
        help="Regular expression selecting tables to extract",
    )
    p_extract.add_argument(
        "--include-system-tables",
        action="store_true",
        help="Keep tables matching the system prefixes",
    )
    for kind in ("tables", "views", "procedures", "functions", "triggers", "events"):
        p_extract.add_argument(
            f"--no-{kind}",
            action="store_true",
            help=f"Skip {kind}",
        )
    p_extract.set_defaults(func=cmd_extract)

    # export command
    p_export = subparsers.add_parser("export", help="Convert a saved snapshot")
    p_export.add_argument("snapshot", help="Path to a JSON snapshot")
    p_export.add_argument("--format", choices=formats, required=True)
    p_export.add_argument("--output", "-o", default=None, help="Output file")
    p_export.set_defaults(func=cmd_export)

    # compare command
    p_compare = subparsers.add_parser("compare", help="Diff two saved snapshots")
    p_compare.add_argument("old", help="Path to the older JSON snapshot")
    p_compare.add_argument("new", help="Path to the newer JSON snapshot")
    p_compare.set_defaults(func=cmd_compare)

    # apply command
    p_apply = subparsers.add_parser("apply", help="Apply a snapshot")
    p_apply.add_argument("snapshot", help="Path to a JSON snapshot")
    p_apply.add_argument(
        "--tables",
        default=None,
        help="Comma-separated list of tables to apply (skips all other kinds)",
    )
    _add_import_arguments(p_apply)
    p_apply.set_defaults(func=cmd_apply)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Dry-run a snapshot")
    p_validate.add_argument("snapshot", help="Path to a JSON snapshot")
    p_validate.set_defaults(func=cmd_validate)

    # clone command
    p_clone = subparsers.add_parser("clone", help="Apply a snapshot into another database")
    p_clone.add_argument("snapshot", help="Path to a JSON snapshot")
    p_clone.add_argument("--target", required=True, help="Target database name")
    p_clone.add_argument(
        "--drop-database",
        action="store_true",
        help="Drop the target database first if it exists",
    )
    p_clone.add_argument(
        "--no-create-database",
        action="store_true",
        help="Fail instead of creating a missing target database",
    )
    _add_import_arguments(p_clone)
    p_clone.set_defaults(func=cmd_clone)

    # create-db command
    p_create = subparsers.add_parser(
        "create-db", help="Create a database and apply a snapshot into it"
    )
    p_create.add_argument("snapshot", help="Path to a JSON snapshot")
    p_create.add_argument("--name", required=True, help="Database name")
    p_create.add_argument(
        "--drop-if-exists",
        action="store_true",
        help="Drop the database first if it exists",
    )
    _add_import_arguments(p_create)
    p_create.set_defaults(func=cmd_create_db)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Write a dated JSON backup")
    p_backup.add_argument(
        "--backup-dir",
        default=None,
        help="Backup directory (default: [schema].backup_dir)",
    )
    p_backup.set_defaults(func=cmd_backup)

    # stats command
    p_stats = subparsers.add_parser("stats", help="Show snapshot statistics")
    p_stats.add_argument("snapshot", help="Path to a JSON snapshot")
    p_stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
