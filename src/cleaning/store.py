"""Data store access for the housing table.

The pipeline sees the table only through HousingStore: a full snapshot read,
point updates and deletes by unique_id, and a handful of one-shot schema
operations. The table is reflected on every call because the cleaning run
changes its layout.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence

import pandas as pd
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Column, MetaData, Table, bindparam, delete, func, inspect, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.types import TypeEngine

from cleaning.records import SaleRecord
from core.config import get_settings
from core.exceptions import StoreError
from core.logging_config import get_logger

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

KEY_COLUMN = "unique_id"


def _chunks(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class HousingStore:
    """Read/write access to one housing table."""

    def __init__(
        self,
        engine: Engine,
        table_name: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> None:
        self.engine = engine
        self.table_name = table_name or SETTINGS.housing_table
        self.batch_size = batch_size or SETTINGS.update_batch_size
        self._conn: Optional[Connection] = None

    # -------------------------------------------------------------------------
    # Connection handling
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["HousingStore"]:
        """
        Bind every store call inside the block to one transaction.

        Commits on success and rolls back if the block raises. Nested use
        joins the outer transaction.
        """
        if self._conn is not None:
            yield self
            return

        with self.engine.begin() as conn:
            self._conn = conn
            try:
                yield self
            finally:
                self._conn = None

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            with self.engine.begin() as conn:
                yield conn

    def _table(self, conn: Connection) -> Table:
        try:
            return Table(self.table_name, MetaData(), autoload_with=conn)
        except NoSuchTableError as exc:
            raise StoreError(f"Table {self.table_name!r} does not exist") from exc

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def exists(self) -> bool:
        with self._connection() as conn:
            return inspect(conn).has_table(self.table_name)

    def columns(self) -> List[str]:
        """Return the current column names of the table."""
        with self._connection() as conn:
            if not inspect(conn).has_table(self.table_name):
                raise StoreError(f"Table {self.table_name!r} does not exist")
            return [col["name"] for col in inspect(conn).get_columns(self.table_name)]

    def read_all(self) -> List[SaleRecord]:
        """Read a full snapshot of the table ordered by unique_id."""
        with self._connection() as conn:
            table = self._table(conn)
            rows = conn.execute(select(table).order_by(table.c[KEY_COLUMN])).mappings().all()
        LOGGER.debug("Read %d rows from %s", len(rows), self.table_name)
        return [SaleRecord.from_row(row) for row in rows]

    def fetch_frame(self) -> pd.DataFrame:
        """Read the whole table, every column included, as a DataFrame."""
        with self._connection() as conn:
            table = self._table(conn)
            return pd.read_sql_query(select(table).order_by(table.c[KEY_COLUMN]), conn)

    def count(self) -> int:
        with self._connection() as conn:
            table = self._table(conn)
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def update(self, unique_id: int, field_updates: Mapping[str, Any]) -> None:
        """
        Update one record by unique_id.

        Raises:
            StoreError: If no record has that id.
        """
        if not field_updates:
            return
        with self._connection() as conn:
            table = self._table(conn)
            result = conn.execute(
                update(table).where(table.c[KEY_COLUMN] == unique_id).values(**field_updates)
            )
            if result.rowcount == 0:
                raise StoreError(f"No record with unique_id={unique_id}")

    def update_many(self, updates: Mapping[int, Mapping[str, Any]]) -> int:
        """
        Apply point updates in batches.

        Updates touching the same set of fields share one executemany call.

        Returns:
            Number of records updated.
        """
        by_fields: Dict[FrozenSet[str], List[Dict[str, Any]]] = {}
        for unique_id, values in updates.items():
            if not values:
                continue
            params = {f"v_{name}": value for name, value in values.items()}
            params["k_unique_id"] = unique_id
            by_fields.setdefault(frozenset(values), []).append(params)

        total = 0
        with self._connection() as conn:
            table = self._table(conn)
            for names, param_rows in by_fields.items():
                stmt = (
                    update(table)
                    .where(table.c[KEY_COLUMN] == bindparam("k_unique_id"))
                    .values({name: bindparam(f"v_{name}") for name in sorted(names)})
                )
                for chunk in _chunks(param_rows, self.batch_size):
                    conn.execute(stmt, list(chunk))
                    total += len(chunk)
        LOGGER.debug("Updated %d rows in %s", total, self.table_name)
        return total

    def delete(self, unique_id: int) -> None:
        """
        Delete one record by unique_id.

        Raises:
            StoreError: If no record has that id.
        """
        with self._connection() as conn:
            table = self._table(conn)
            result = conn.execute(delete(table).where(table.c[KEY_COLUMN] == unique_id))
            if result.rowcount == 0:
                raise StoreError(f"No record with unique_id={unique_id}")

    def delete_many(self, unique_ids: Iterable[int]) -> int:
        """Delete records in batches. Returns the number of rows removed."""
        ids = sorted(set(unique_ids))
        removed = 0
        with self._connection() as conn:
            table = self._table(conn)
            for chunk in _chunks(ids, self.batch_size):
                result = conn.execute(delete(table).where(table.c[KEY_COLUMN].in_(list(chunk))))
                removed += result.rowcount
        LOGGER.debug("Deleted %d rows from %s", removed, self.table_name)
        return removed

    # -------------------------------------------------------------------------
    # Schema evolution
    # -------------------------------------------------------------------------

    @contextmanager
    def _batch(self, conn: Connection):
        # Batch mode lets SQLite rebuild the table for DROP/RENAME COLUMN
        operations = Operations(MigrationContext.configure(conn))
        with operations.batch_alter_table(self.table_name) as batch:
            yield batch

    def add_field(self, name: str, type_: TypeEngine) -> None:
        with self._connection() as conn:
            with self._batch(conn) as batch:
                batch.add_column(Column(name, type_, nullable=True))
        LOGGER.info("Added column %s.%s", self.table_name, name)

    def drop_field(self, name: str) -> None:
        with self._connection() as conn:
            with self._batch(conn) as batch:
                batch.drop_column(name)
        LOGGER.info("Dropped column %s.%s", self.table_name, name)

    def drop_fields(self, names: Sequence[str]) -> None:
        """Drop several columns in one table rebuild."""
        with self._connection() as conn:
            with self._batch(conn) as batch:
                for name in names:
                    batch.drop_column(name)
        LOGGER.info("Dropped columns %s.%s", self.table_name, list(names))

    def rename_field(self, old: str, new: str) -> None:
        with self._connection() as conn:
            with self._batch(conn) as batch:
                batch.alter_column(old, new_column_name=new)
        LOGGER.info("Renamed column %s.%s -> %s", self.table_name, old, new)


__all__ = ["HousingStore", "KEY_COLUMN"]
