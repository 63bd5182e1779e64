"""Ingestion subpackage exports."""
from .housing_csv import (
    COLUMN_MAP,
    HousingIngestionStats,
    ingest_housing_file,
    read_housing_csv,
)

__all__ = [
    "COLUMN_MAP",
    "HousingIngestionStats",
    "ingest_housing_file",
    "read_housing_csv",
]
