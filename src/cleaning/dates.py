"""Sale date normalization."""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, List, Tuple

import pandas as pd

from cleaning.base import RecordStage
from cleaning.records import SaleRecord, is_missing
from core.exceptions import CleaningError, MalformedDateError


def normalize_sale_date(value: Any, unique_id: int | None = None) -> date:
    """
    Convert a loosely typed date/time value into a calendar date.

    Accepts date and datetime objects (pandas Timestamps included) and any
    string pandas can parse, e.g. "April 9, 2013" or "2013-04-09 00:00:00".
    The time of day, if any, is discarded.

    Args:
        value: Raw sale date.
        unique_id: Record id, used for error reporting only.

    Returns:
        The calendar date.

    Raises:
        MalformedDateError: If the value is missing or cannot be parsed.
    """
    if is_missing(value):
        raise MalformedDateError("sale date is missing", unique_id=unique_id, value=value)

    if isinstance(value, datetime):
        if pd.isna(value):
            raise MalformedDateError("sale date is NaT", unique_id=unique_id, value=value)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise MalformedDateError(
            f"unsupported sale date type {type(value).__name__}",
            unique_id=unique_id,
            value=value,
        )

    try:
        parsed = pd.to_datetime(value.strip())
    except (ValueError, TypeError, OverflowError) as exc:
        raise MalformedDateError(
            f"cannot parse sale date {value!r}: {exc}",
            unique_id=unique_id,
            value=value,
        ) from exc

    if pd.isna(parsed):
        raise MalformedDateError(f"cannot parse sale date {value!r}", unique_id=unique_id, value=value)
    return parsed.date()


class DateNormalizer(RecordStage):
    """Replace every record's sale date with a pure calendar date."""

    name = "dates"

    def transform(self, record: SaleRecord) -> Tuple[SaleRecord, List[CleaningError]]:
        try:
            normalized = normalize_sale_date(record.sale_date, unique_id=record.unique_id)
        except MalformedDateError as exc:
            # The converted column stays NULL for this row
            return replace(record, sale_date=None), [exc]
        return replace(record, sale_date=normalized), []


__all__ = ["normalize_sale_date", "DateNormalizer"]
