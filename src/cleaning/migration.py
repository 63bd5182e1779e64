"""One-shot schema migration for the cleaning run.

Schema changes are kept apart from the per-record transformations. They run
once, in this order:

1. sale_date is replaced by a DATE column (add, populate, drop, rename)
2. derived property address columns are added
3. derived owner address columns are added
4. the compound and unused source columns are dropped

The steps are not idempotent. `check_schema_state` refuses to start when the
table does not look like the raw export.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional

from sqlalchemy import Date, String
from sqlalchemy.types import TypeEngine

from cleaning.store import HousingStore
from core.exceptions import SchemaStateError
from core.logging_config import get_logger

LOGGER = get_logger(__name__)

SALE_DATE_COLUMN = "sale_date"
CONVERTED_DATE_COLUMN = "sale_date_converted"

# Columns the raw export must carry for a run to start
REQUIRED_RAW_COLUMNS = (
    "unique_id",
    "parcel_id",
    "property_address",
    "sale_date",
    "sale_price",
    "legal_reference",
    "sold_as_vacant",
    "owner_address",
    "tax_district",
)

PROPERTY_SPLIT_COLUMNS = ("property_street", "property_city")
OWNER_SPLIT_COLUMNS = ("owner_street", "owner_city", "owner_state")
DROPPED_COLUMNS = ("property_address", "tax_district", "owner_address")

# Columns this migration creates; any of them present means a previous run
CREATED_COLUMNS = (CONVERTED_DATE_COLUMN,) + PROPERTY_SPLIT_COLUMNS + OWNER_SPLIT_COLUMNS

SPLIT_COLUMN_LENGTH = 255


@dataclass(frozen=True)
class SchemaStep:
    """A single DDL operation against the housing table."""

    operation: str  # "add", "drop" or "rename"
    column: str
    new_name: Optional[str] = None
    type_: Optional[TypeEngine] = None

    def describe(self) -> str:
        if self.operation == "add":
            return f"add {self.column} {self.type_}"
        if self.operation == "rename":
            return f"rename {self.column} -> {self.new_name}"
        return f"drop {self.column}"

    def apply(self, store: HousingStore) -> None:
        if self.operation == "add":
            store.add_field(self.column, self.type_)
        elif self.operation == "drop":
            store.drop_field(self.column)
        elif self.operation == "rename":
            store.rename_field(self.column, self.new_name)
        else:
            raise ValueError(f"Unknown schema operation: {self.operation}")


def _split_column_steps(columns: Iterable[str]) -> List[SchemaStep]:
    return [SchemaStep("add", name, type_=String(SPLIT_COLUMN_LENGTH)) for name in columns]


DATE_STEPS = [
    SchemaStep("add", CONVERTED_DATE_COLUMN, type_=Date()),
    SchemaStep("drop", SALE_DATE_COLUMN),
    SchemaStep("rename", CONVERTED_DATE_COLUMN, new_name=SALE_DATE_COLUMN),
]
PROPERTY_STEPS = _split_column_steps(PROPERTY_SPLIT_COLUMNS)
OWNER_STEPS = _split_column_steps(OWNER_SPLIT_COLUMNS)
DROP_STEPS = [SchemaStep("drop", name) for name in DROPPED_COLUMNS]


def plan_schema_steps() -> List[SchemaStep]:
    """Every schema step of a run, in execution order."""
    return DATE_STEPS + PROPERTY_STEPS + OWNER_STEPS + DROP_STEPS


def check_schema_state(columns: Iterable[str]) -> None:
    """
    Verify the table still has its raw layout.

    Raises:
        SchemaStateError: If raw columns are missing or columns created by a
            previous run are present.
    """
    present = set(columns)
    missing = [name for name in REQUIRED_RAW_COLUMNS if name not in present]
    leftovers = [name for name in CREATED_COLUMNS if name in present]

    problems = []
    if missing:
        problems.append(f"missing raw columns {missing}")
    if leftovers:
        problems.append(f"found columns from a previous run {leftovers}")
    if problems:
        raise SchemaStateError(
            "Housing table is not in its raw layout (" + "; ".join(problems) + "). "
            "The cleaning run is one-time only; restore the table from a backup to re-run."
        )


def migrate_sale_date(store: HousingStore, dates: Mapping[int, Optional[date]]) -> None:
    """
    Replace the untyped sale_date column with a DATE column.

    Args:
        store: Target store, normally inside a transaction.
        dates: Normalized date per unique_id; None leaves the row NULL.
    """
    add_converted, drop_raw, rename_converted = DATE_STEPS
    add_converted.apply(store)
    populated = store.update_many(
        {uid: {CONVERTED_DATE_COLUMN: value} for uid, value in dates.items() if value is not None}
    )
    LOGGER.info("Populated %d of %d sale dates", populated, len(dates))
    drop_raw.apply(store)
    rename_converted.apply(store)


def add_split_columns(store: HousingStore) -> None:
    for step in PROPERTY_STEPS + OWNER_STEPS:
        step.apply(store)


def drop_source_columns(store: HousingStore) -> None:
    """Drop the compound address columns and tax_district in one rebuild."""
    store.drop_fields([step.column for step in DROP_STEPS])


__all__ = [
    "SchemaStep",
    "REQUIRED_RAW_COLUMNS",
    "CREATED_COLUMNS",
    "DROPPED_COLUMNS",
    "PROPERTY_SPLIT_COLUMNS",
    "OWNER_SPLIT_COLUMNS",
    "plan_schema_steps",
    "check_schema_state",
    "migrate_sale_date",
    "add_split_columns",
    "drop_source_columns",
]
