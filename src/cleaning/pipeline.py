"""Cleaning pipeline orchestrator for the housing sales table.

A run has two phases. The compute phase reads one snapshot and runs the five
stages in memory:

    dates -> backfill -> addresses -> categorical -> dedupe

and produces a CleaningPlan. The apply phase writes the plan back in a
single transaction. Applying is opt-in: it needs dry_run disabled and an
explicit confirmation, and it takes a CSV backup first unless told not to.
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from cleaning.addresses import AddressDecomposer
from cleaning.backfill import AddressBackfiller
from cleaning.backup import create_backup
from cleaning.base import CleaningStage
from cleaning.categorical import CategoricalStandardizer
from cleaning.dates import DateNormalizer
from cleaning.dedupe import Deduplicator
from cleaning.migration import (
    add_split_columns,
    check_schema_state,
    drop_source_columns,
    migrate_sale_date,
    plan_schema_steps,
)
from cleaning.records import SaleRecord, record_changes
from cleaning.store import HousingStore
from core.config import get_settings
from core.exceptions import ConfirmationRequiredError, HousingCleanerError
from core.logging_config import get_context_logger, get_logger
from core.types import PipelineReport, StageReport

LOGGER = get_logger(__name__)
SETTINGS = get_settings()


@dataclass
class CleaningPlan:
    """Everything the apply phase needs, computed from one snapshot."""

    original: List[SaleRecord]
    transformed: List[SaleRecord]
    survivors: List[SaleRecord]
    dates: Dict[int, Optional[date]]
    updates: Dict[int, Dict[str, Any]]
    deletions: List[int]
    reports: List[StageReport] = field(default_factory=list)

    def preview_frame(self, limit: int = 20) -> pd.DataFrame:
        """Side-by-side view of raw and cleaned values for the first rows."""
        rows = []
        for before, after in list(zip(self.original, self.transformed))[:limit]:
            rows.append(
                {
                    "unique_id": before.unique_id,
                    "raw_sale_date": before.sale_date,
                    "sale_date": after.sale_date,
                    "property_address": after.property_address,
                    "property_street": after.property_street,
                    "property_city": after.property_city,
                    "owner_address": before.owner_address,
                    "owner_street": after.owner_street,
                    "owner_city": after.owner_city,
                    "owner_state": after.owner_state,
                    "sold_as_vacant": after.sold_as_vacant,
                    "deleted": before.unique_id in self.deletions,
                }
            )
        return pd.DataFrame(rows)


def build_stages(workers: int = 1) -> List[CleaningStage]:
    """The five stages in execution order."""
    return [
        DateNormalizer(workers=workers),
        AddressBackfiller(),
        AddressDecomposer(workers=workers),
        CategoricalStandardizer(workers=workers),
        Deduplicator(),
    ]


class StageFailure(HousingCleanerError):
    """A stage raised instead of collecting per-record errors."""

    def __init__(self, stage: str, cause: Exception) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


def build_plan(records: Sequence[SaleRecord], workers: int = 1) -> CleaningPlan:
    """
    Run every stage over the snapshot and collect the resulting mutations.

    Args:
        records: Full table snapshot.
        workers: Thread count for per-record stages.

    Returns:
        CleaningPlan with updates, deletions and per-stage reports.

    Raises:
        StageFailure: If a stage fails as a whole.
    """
    original = list(records)
    current = original
    reports: List[StageReport] = []
    dates: Dict[int, Optional[date]] = {}
    transformed: List[SaleRecord] = []
    deletions: List[int] = []

    for stage in build_stages(workers):
        try:
            if isinstance(stage, Deduplicator):
                transformed = current
            current, report = stage.run(current)
        except Exception as exc:
            LOGGER.exception("Stage %s FAILED: %s", stage.name, exc)
            raise StageFailure(stage.name, exc) from exc

        reports.append(report)
        if isinstance(stage, DateNormalizer):
            dates = {record.unique_id: record.sale_date for record in current}
        if isinstance(stage, Deduplicator):
            deletions = list(stage.deletions)

    by_id = {record.unique_id: record for record in original}
    updates: Dict[int, Dict[str, Any]] = {}
    for record in current:
        changes = record_changes(by_id[record.unique_id], record)
        if changes:
            updates[record.unique_id] = changes

    return CleaningPlan(
        original=original,
        transformed=transformed,
        survivors=current,
        dates=dates,
        updates=updates,
        deletions=deletions,
        reports=reports,
    )


def apply_plan(store: HousingStore, plan: CleaningPlan) -> None:
    """
    Write a plan to the store in one transaction.

    Order: sale date column swap, split columns, field updates, deletions,
    then the source column drop.
    """
    with store.transaction():
        migrate_sale_date(store, plan.dates)
        add_split_columns(store)
        store.update_many(plan.updates)
        removed = store.delete_many(plan.deletions)
        if removed != len(plan.deletions):
            LOGGER.warning("Expected to delete %d rows, deleted %d", len(plan.deletions), removed)
        drop_source_columns(store)


def run_cleaning_pipeline(
    store: HousingStore,
    dry_run: Optional[bool] = None,
    confirm: bool = False,
    backup: bool = True,
    backup_dir: Optional[Path] = None,
    workers: Optional[int] = None,
) -> PipelineReport:
    """
    Execute the full cleaning workflow.

    Args:
        store: Housing table access.
        dry_run: Only compute and report (defaults to DRY_RUN).
        confirm: Required to apply when dry_run is off.
        backup: Write a CSV snapshot before applying.
        backup_dir: Where to write the snapshot (defaults to BACKUP_DIR).
        workers: Threads for per-record stages (defaults to CLEANER_WORKERS).

    Returns:
        PipelineReport describing every stage, the planned mutations and,
        on failure, which stage failed and why.
    """
    dry_run = SETTINGS.dry_run if dry_run is None else dry_run
    workers = workers or SETTINGS.cleaner_workers
    run_id = uuid.uuid4().hex[:12]
    logger = get_context_logger(__name__, run_id=run_id)
    start_time = time.time()

    report = PipelineReport(
        run_id=run_id,
        dry_run=dry_run,
        started_at=datetime.now(timezone.utc),
        schema_steps=[step.describe() for step in plan_schema_steps()],
    )

    def _fail(stage: str, exc: Exception) -> PipelineReport:
        report.failed_stage = stage
        report.fatal_error = f"{type(exc).__name__}: {exc}"
        report.completed_at = datetime.now(timezone.utc)
        logger.error("Cleaning run failed at %s: %s", stage, exc)
        return report

    logger.info("Starting cleaning run on %s (dry_run=%s)", store.table_name, dry_run)

    # Preflight: nothing may change unless the table is in its raw layout
    try:
        check_schema_state(store.columns())
        records = store.read_all()
    except (HousingCleanerError, SQLAlchemyError) as exc:
        return _fail("preflight", exc)

    logger.info("Read %d records", len(records))

    try:
        plan = build_plan(records, workers=workers)
    except StageFailure as exc:
        return _fail(exc.stage, exc.cause)

    report.stages = plan.reports
    report.planned_updates = len(plan.updates)
    report.planned_deletions = plan.deletions

    if dry_run:
        logger.info("Dry run: %s", report.summary())
        report.completed_at = datetime.now(timezone.utc)
        return report

    if not confirm:
        return _fail(
            "apply",
            ConfirmationRequiredError(
                f"Refusing to apply {len(plan.deletions)} deletions and the schema migration "
                "without confirmation"
            ),
        )

    if backup:
        try:
            result = create_backup(store, backup_dir)
        except (HousingCleanerError, SQLAlchemyError) as exc:
            return _fail("backup", exc)
        if not result.success:
            return _fail("backup", HousingCleanerError(result.error or "backup failed"))
        report.backup_path = str(result.path)

    try:
        apply_plan(store, plan)
    except (HousingCleanerError, SQLAlchemyError) as exc:
        LOGGER.exception("Apply phase failed")
        return _fail("apply", exc)

    report.applied = True
    report.completed_at = datetime.now(timezone.utc)
    logger.info(
        "Cleaning run complete in %.2f seconds: %s",
        time.time() - start_time,
        report.summary(),
    )
    return report


__all__ = [
    "CleaningPlan",
    "StageFailure",
    "build_stages",
    "build_plan",
    "apply_plan",
    "run_cleaning_pipeline",
]
