"""Canonical display values for categorical columns."""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from cleaning.base import RecordStage
from cleaning.records import SaleRecord
from core.exceptions import CleaningError

SOLD_AS_VACANT_MAP = {
    "Y": "Yes",
    "N": "No",
}


def standardize_sold_as_vacant(value: Optional[str]) -> Optional[str]:
    """Map Y/N to Yes/No; every other value passes through unchanged."""
    return SOLD_AS_VACANT_MAP.get(value, value)


class CategoricalStandardizer(RecordStage):
    name = "categorical"

    def transform(self, record: SaleRecord) -> Tuple[SaleRecord, List[CleaningError]]:
        value = standardize_sold_as_vacant(record.sold_as_vacant)
        if value == record.sold_as_vacant:
            return record, []
        return replace(record, sold_as_vacant=value), []


__all__ = ["SOLD_AS_VACANT_MAP", "standardize_sold_as_vacant", "CategoricalStandardizer"]
