"""Test the end-to-end cleaning run."""
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from cleaning.pipeline import StageFailure, build_plan, run_cleaning_pipeline
from core.exceptions import BackfillAmbiguityWarning, StoreError

from conftest import make_record, make_sale


def _two_sales_of_p1(insert_sales):
    """Same sale recorded twice, one copy missing its address."""
    insert_sales(
        make_sale(1, "P1", property_address=None, sold_as_vacant="N"),
        make_sale(2, "P1", property_address="10 Oak Ave, Nashville", sold_as_vacant="N"),
    )


def test_build_plan_collects_mutations():
    records = [
        make_record(1, property_address=None, sold_as_vacant="Y"),
        make_record(2, sold_as_vacant="Y"),
        make_record(3, "P2", property_address="5 Elm St, Madison"),
    ]

    plan = build_plan(records)

    assert [r.stage for r in plan.reports] == ["dates", "backfill", "addresses", "categorical", "dedupe"]
    assert plan.deletions == [2]
    assert [r.unique_id for r in plan.survivors] == [1, 3]
    assert plan.dates == {1: date(2013, 4, 9), 2: date(2013, 4, 9), 3: date(2013, 4, 9)}
    assert plan.updates[1]["property_street"] == "10 Oak Ave"
    assert plan.updates[1]["sold_as_vacant"] == "Yes"
    assert 2 not in plan.updates
    # Snapshot is left untouched
    assert records[0].property_address is None


def test_preview_frame_marks_deletions():
    plan = build_plan([make_record(1), make_record(2)])

    frame = plan.preview_frame()

    assert list(frame["unique_id"]) == [1, 2]
    assert list(frame["deleted"]) == [False, True]
    assert frame.loc[0, "property_city"] == "Nashville"


def test_build_plan_stage_failure(monkeypatch):
    from cleaning import categorical

    def explode(value):
        raise RuntimeError("boom")

    monkeypatch.setattr(categorical, "standardize_sold_as_vacant", explode)

    with pytest.raises(StageFailure) as exc_info:
        build_plan([make_record(1)])
    assert exc_info.value.stage == "categorical"


def test_apply_end_to_end(store, insert_sales, tmp_path):
    _two_sales_of_p1(insert_sales)

    report = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup_dir=tmp_path)

    assert report.applied is True
    assert report.exit_code == 0
    assert report.planned_deletions == [2]

    records = store.read_all()
    assert len(records) == 1
    survivor = records[0]
    assert survivor.unique_id == 1
    assert survivor.property_street == "10 Oak Ave"
    assert survivor.property_city == "Nashville"
    assert (survivor.owner_street, survivor.owner_city, survivor.owner_state) == ("10 Oak Ave", "Nashville", "TN")
    assert survivor.sale_date == date(2013, 4, 9)
    assert survivor.sold_as_vacant == "No"

    columns = set(store.columns())
    assert not {"property_address", "owner_address", "tax_district", "sale_date_converted"} & columns

    # Backup holds the pre-run table
    backups = list(tmp_path.glob("nashville_housing_*.csv"))
    assert len(backups) == 1
    assert report.backup_path == str(backups[0])
    assert "property_address" in backups[0].read_text().splitlines()[0]


def test_dry_run_mutates_nothing(store, insert_sales, tmp_path):
    _two_sales_of_p1(insert_sales)
    columns_before = store.columns()

    report = run_cleaning_pipeline(store, dry_run=True, confirm=True, backup_dir=tmp_path)

    assert report.applied is False
    assert report.exit_code == 0
    assert report.planned_deletions == [2]
    # The duplicate is deleted rather than updated
    assert report.planned_updates == 1
    assert store.columns() == columns_before
    assert store.count() == 2
    assert {r.unique_id: r.property_address for r in store.read_all()}[1] is None
    assert list(tmp_path.iterdir()) == []


def test_dry_run_defaults_to_settings(store, insert_sales):
    _two_sales_of_p1(insert_sales)

    report = run_cleaning_pipeline(store)

    assert report.dry_run is True
    assert store.count() == 2


def test_apply_requires_confirmation(store, insert_sales):
    _two_sales_of_p1(insert_sales)

    report = run_cleaning_pipeline(store, dry_run=False, confirm=False, backup=False)

    assert report.applied is False
    assert report.exit_code == 1
    assert report.failed_stage == "apply"
    assert "ConfirmationRequiredError" in report.fatal_error
    assert store.count() == 2


def test_second_run_is_refused(store, insert_sales):
    _two_sales_of_p1(insert_sales)
    first = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup=False)
    assert first.applied is True

    second = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup=False)

    assert second.exit_code == 1
    assert second.failed_stage == "preflight"
    assert "SchemaStateError" in second.fatal_error
    assert second.stages == []
    assert store.count() == 1


def test_record_errors_do_not_stop_the_run(store, insert_sales):
    insert_sales(
        make_sale(1, sale_date="not a date"),
        make_sale(2, "P2", property_address="No Comma Road"),
        make_sale(3, "P3"),
    )

    report = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup=False)

    assert report.applied is True
    assert report.exit_code == 2
    assert sorted((e.stage, e.unique_id) for e in report.record_errors) == [("addresses", 2), ("dates", 1)]

    records = {r.unique_id: r for r in store.read_all()}
    assert records[1].sale_date is None
    assert records[2].property_street == "No Comma Road"
    assert records[2].property_city is None
    assert records[3].sale_date == date(2013, 4, 9)


def test_ambiguous_backfill_is_reported(store, insert_sales):
    insert_sales(
        make_sale(1, property_address="1 A St, Nashville"),
        make_sale(2, property_address="2 B St, Nashville"),
        make_sale(3, property_address=None, legal_reference="other"),
    )

    with pytest.warns(BackfillAmbiguityWarning):
        report = run_cleaning_pipeline(store, dry_run=True)

    backfill = next(s for s in report.stages if s.stage == "backfill")
    assert backfill.records_changed == 1
    assert len(backfill.notices) == 1
    assert report.exit_code == 0


def test_missing_table_fails_preflight(engine):
    from cleaning.store import HousingStore

    report = run_cleaning_pipeline(HousingStore(engine, table_name="missing"), dry_run=True)

    assert report.failed_stage == "preflight"
    assert report.exit_code == 1


def test_report_as_dict(store, insert_sales):
    _two_sales_of_p1(insert_sales)

    data = run_cleaning_pipeline(store, dry_run=True).as_dict()

    assert data["dry_run"] is True
    assert data["exit_code"] == 0
    assert [s["stage"] for s in data["stages"]] == ["dates", "backfill", "addresses", "categorical", "dedupe"]
    assert data["planned_deletions"] == [2]
    assert data["schema_steps"][0] == "add sale_date_converted DATE"


def test_failed_apply_leaves_raw_table(store, insert_sales, monkeypatch):
    from cleaning import pipeline

    _two_sales_of_p1(insert_sales)
    columns_before = store.columns()

    def fail_drop(store):
        raise StoreError("disk full")

    monkeypatch.setattr(pipeline, "drop_source_columns", fail_drop)
    report = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup=False)

    assert report.failed_stage == "apply"
    assert report.exit_code == 1
    assert store.columns() == columns_before
    assert store.count() == 2

    # Nothing from the failed attempt blocks a retry
    monkeypatch.undo()
    retry = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup=False)
    assert retry.applied is True
    assert store.count() == 1


def test_backup_database_error_is_reported(store, insert_sales, tmp_path, monkeypatch):
    _two_sales_of_p1(insert_sales)

    def locked():
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "fetch_frame", locked)
    report = run_cleaning_pipeline(store, dry_run=False, confirm=True, backup_dir=tmp_path)

    assert report.failed_stage == "backup"
    assert report.exit_code == 1
    assert "database is locked" in report.fatal_error
    assert report.applied is False
    assert store.count() == 2
