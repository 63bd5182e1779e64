"""Nashville housing CSV export ingestion utilities."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
from sqlalchemy.orm import Session

from core.exceptions import IngestionError
from core.logging_config import get_logger
from core.models import HousingSale

LOGGER = get_logger(__name__)

# Export header -> table column
COLUMN_MAP = {
    "UniqueID": "unique_id",
    "ParcelID": "parcel_id",
    "LandUse": "land_use",
    "PropertyAddress": "property_address",
    "SaleDate": "sale_date",
    "SalePrice": "sale_price",
    "LegalReference": "legal_reference",
    "SoldAsVacant": "sold_as_vacant",
    "OwnerName": "owner_name",
    "OwnerAddress": "owner_address",
    "Acreage": "acreage",
    "TaxDistrict": "tax_district",
    "LandValue": "land_value",
    "BuildingValue": "building_value",
    "TotalValue": "total_value",
    "YearBuilt": "year_built",
    "Bedrooms": "bedrooms",
    "FullBath": "full_bath",
    "HalfBath": "half_bath",
}
REQUIRED_COLUMNS = ("unique_id", "parcel_id")
CURRENCY_COLUMNS = ("sale_price", "land_value", "building_value", "total_value")
FLOAT_COLUMNS = ("acreage",)
INT_COLUMNS = ("year_built", "bedrooms", "full_bath", "half_bath")

# Batch settings
BATCH_COMMIT_SIZE = 1000


@dataclass
class HousingIngestionStats:
    """Statistics from a CSV load."""

    rows_processed: int = 0
    rows_skipped: int = 0
    created_records: int = 0
    updated_records: int = 0
    errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "rows_processed": self.rows_processed,
            "rows_skipped": self.rows_skipped,
            "created_records": self.created_records,
            "updated_records": self.updated_records,
            "errors": self.errors,
        }


def _parse_currency(value: Any) -> Optional[float]:
    """Parse currency string to float."""
    if pd.isna(value) or value == "":
        return None
    try:
        clean = str(value).replace("$", "").replace(",", "").strip()
        return float(clean)
    except (ValueError, TypeError):
        return None


def _parse_float(value: Any) -> Optional[float]:
    if pd.isna(value) or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _parse_int(value: Any) -> Optional[int]:
    number = _parse_float(value)
    return int(number) if number is not None else None


def _parse_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _row_values(row: pd.Series) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for column in COLUMN_MAP.values():
        raw = row.get(column)
        if column in CURRENCY_COLUMNS:
            values[column] = _parse_currency(raw)
        elif column in FLOAT_COLUMNS:
            values[column] = _parse_float(raw)
        elif column in INT_COLUMNS:
            values[column] = _parse_int(raw)
        else:
            values[column] = _parse_text(raw)
    return values


def read_housing_csv(file_path: Path | str) -> pd.DataFrame:
    """
    Read the raw export and rename its headers to table columns.

    Raises:
        IngestionError: If the file is missing, unreadable, or lacks the
            identity columns.
    """
    path = Path(file_path)
    if not path.exists():
        raise IngestionError(f"File not found: {path}")

    try:
        # Everything as text; typed parsing happens per row
        df = pd.read_csv(path, dtype=str, keep_default_na=True, low_memory=False)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise IngestionError(f"Failed to read CSV {path}: {e}") from e

    # The county export pads some headers ("UniqueID ")
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=COLUMN_MAP)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise IngestionError(f"CSV {path} is missing required columns: {missing}")
    return df


def ingest_housing_file(session: Session, file_path: Path | str) -> HousingIngestionStats:
    """
    Load a housing CSV export into the housing table.

    Rows are upserted on unique_id, so loading the same file twice leaves
    one copy of each row.

    Args:
        session: Database session.
        file_path: Path to CSV file.

    Returns:
        HousingIngestionStats object.
    """
    stats = HousingIngestionStats()
    LOGGER.info(f"Reading housing file: {file_path}")
    df = read_housing_csv(file_path)
    LOGGER.info(f"Processing {len(df)} rows...")

    for idx, row in df.iterrows():
        stats.rows_processed += 1

        try:
            values = _row_values(row)
            unique_id = _parse_int(row.get("unique_id"))
            if unique_id is None or not values["parcel_id"]:
                stats.rows_skipped += 1
                continue
            values["unique_id"] = unique_id

            sale = session.get(HousingSale, unique_id)
            if sale is None:
                session.add(HousingSale(**values))
                stats.created_records += 1
            else:
                for column, value in values.items():
                    setattr(sale, column, value)
                stats.updated_records += 1

            if stats.rows_processed % BATCH_COMMIT_SIZE == 0:
                session.commit()
                LOGGER.info(f"Processed {stats.rows_processed} rows...")

        except (ValueError, TypeError) as e:
            LOGGER.error(f"Error processing row {idx}: {e}")
            stats.errors += 1
            continue

    session.commit()
    LOGGER.info(f"Ingestion complete. Stats: {stats.as_dict()}")
    return stats


__all__ = ["ingest_housing_file", "read_housing_csv", "HousingIngestionStats", "COLUMN_MAP"]
