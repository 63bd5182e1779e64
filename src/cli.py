#!/usr/bin/env python3
"""Command Line Interface for the Nashville housing cleaner.

Usage:
    cd src
    python cli.py load data/nashville_housing.csv   # Load the raw export
    python cli.py preview                           # Show what a run would change
    python cli.py run --apply --yes                 # Clean the table in place
    python cli.py info                              # Show configuration
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from cleaning.pipeline import build_plan, run_cleaning_pipeline
from cleaning.migration import check_schema_state
from cleaning.store import HousingStore
from core.config import get_settings
from core.db import get_engine, get_session, init_db, validate_database
from core.exceptions import HousingCleanerError
from core.logging_config import get_logger, setup_logging
from core.types import PipelineReport

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

app = typer.Typer(help="Nashville housing record cleaner")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Clean the Nashville housing sales table."""
    log_level = "DEBUG" if verbose else SETTINGS.log_level
    setup_logging(
        level=log_level,
        log_file=SETTINGS.log_file,
        json_format=SETTINGS.log_format == "json",
    )


def _engine() -> Engine:
    return get_engine()


def _print_report(report: PipelineReport, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(report.as_dict(), indent=2, default=str))
        return

    mode = "Applied" if report.applied else "Dry run"
    typer.echo(f"{mode} (run {report.run_id})")
    for stage in report.stages:
        status = "✓" if stage.success else "✗"
        typer.echo(
            f"  {status} {stage.stage}: seen={stage.records_seen}, "
            f"changed={stage.records_changed}, errors={len(stage.errors)}"
        )
        for error in stage.errors:
            typer.echo(f"      [{error.kind}] {error.unique_id}: {error.message}")
        for notice in stage.notices:
            typer.echo(f"      note: {notice}")

    typer.echo(f"  Planned updates: {report.planned_updates}")
    typer.echo(f"  Planned deletions: {len(report.planned_deletions)}")
    if report.backup_path:
        typer.echo(f"  Backup: {report.backup_path}")

    if report.fatal_error:
        typer.secho(f"✗ Failed at {report.failed_stage}: {report.fatal_error}", fg="red")
    elif report.record_errors:
        typer.secho(f"! Completed with {len(report.record_errors)} record errors", fg="yellow")
    else:
        typer.secho("✓ Completed", fg="green")


# =============================================================================
# Commands
# =============================================================================


@app.command("load")
def load_csv(
    csv_path: Path = typer.Argument(..., help="Path to the housing CSV export"),
) -> None:
    """Load the raw CSV export into the housing table."""
    from ingestion.housing_csv import ingest_housing_file

    engine = _engine()
    typer.echo(f"Loading housing data from: {csv_path}")
    try:
        init_db(bind=engine)
        with get_session(engine) as session:
            stats = ingest_housing_file(session, csv_path)
    except HousingCleanerError as e:
        typer.secho(f"✗ Load failed: {e}", fg="red")
        raise typer.Exit(1)

    typer.secho(
        f"✓ Loaded {stats.created_records} new, {stats.updated_records} updated "
        f"({stats.rows_skipped} skipped, {stats.errors} errors)",
        fg="green",
    )


@app.command("preview")
def preview(
    limit: int = typer.Option(20, help="Rows to show"),
) -> None:
    """Compute every stage and show the result without touching the table."""
    store = HousingStore(_engine())
    try:
        check_schema_state(store.columns())
        plan = build_plan(store.read_all(), workers=SETTINGS.cleaner_workers)
    except (HousingCleanerError, SQLAlchemyError) as e:
        typer.secho(f"✗ Preview failed: {e}", fg="red")
        raise typer.Exit(1)

    frame = plan.preview_frame(limit)
    typer.echo(frame.to_string(index=False) if not frame.empty else "No records.")
    for stage in plan.reports:
        typer.echo(
            f"  {stage.stage}: changed={stage.records_changed}, errors={len(stage.errors)}"
        )
    typer.echo(f"  Planned updates: {len(plan.updates)}")
    typer.echo(f"  Planned deletions: {len(plan.deletions)}")


@app.command("run")
def run(
    apply: bool = typer.Option(False, "--apply", help="Write changes (overrides DRY_RUN)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm the destructive apply"),
    backup_dir: Optional[Path] = typer.Option(None, "--backup-dir", help="Backup directory"),
    no_backup: bool = typer.Option(False, "--no-backup", help="Skip the CSV backup"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Run the cleaning pipeline, applying it when allowed."""
    if no_backup and backup_dir is not None:
        typer.secho("✗ --backup-dir and --no-backup are mutually exclusive", fg="red")
        raise typer.Exit(1)

    dry_run = False if apply else SETTINGS.dry_run
    confirm = yes
    if not dry_run and not yes:
        confirm = typer.confirm(
            "This deletes duplicate rows and rewrites the table schema. Continue?",
            default=False,
        )

    store = HousingStore(_engine())
    report = run_cleaning_pipeline(
        store,
        dry_run=dry_run,
        confirm=confirm,
        backup=not no_backup,
        backup_dir=backup_dir,
    )
    _print_report(report, as_json)
    raise typer.Exit(report.exit_code)


@app.command("info")
def show_info() -> None:
    """Show application configuration info."""
    engine = _engine()
    typer.echo("Housing Cleaner Configuration:")
    typer.echo(f"  Environment: {SETTINGS.environment}")
    status = validate_database(bind=engine)
    typer.echo(f"  Database: {status['database_url']} ({status['status']})")
    for error in status["errors"]:
        typer.echo(f"    {error}")
    typer.echo(f"  Table: {SETTINGS.housing_table}")
    typer.echo(f"  Dry Run: {SETTINGS.dry_run}")
    typer.echo(f"  Backup Dir: {SETTINGS.backup_dir}")
    typer.echo(f"  Workers: {SETTINGS.cleaner_workers}")
    typer.echo(f"  Batch Size: {SETTINGS.update_batch_size}")
    typer.echo(f"  Log Level: {SETTINGS.log_level}")
    typer.echo(f"  Log Format: {SETTINGS.log_format}")


if __name__ == "__main__":
    app()
