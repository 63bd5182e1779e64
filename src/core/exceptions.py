"""Custom exceptions for the housing_cleaner application."""
from __future__ import annotations

from typing import Any, Optional


class HousingCleanerError(Exception):
    """Base exception for all application errors."""

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(HousingCleanerError):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(HousingCleanerError):
    """Base exception for database-related errors."""

    pass


class StoreError(DatabaseError):
    """Raised when a read, write or schema operation on the housing table fails."""

    pass


# =============================================================================
# Ingestion Errors
# =============================================================================


class IngestionError(HousingCleanerError):
    """Raised when the raw housing export cannot be loaded."""

    pass


# =============================================================================
# Cleaning Errors
# =============================================================================


class CleaningError(HousingCleanerError):
    """Base exception for per-record cleaning failures."""

    kind = "cleaning_error"

    def __init__(self, message: str, unique_id: Optional[int] = None, value: Any = None) -> None:
        super().__init__(message)
        self.unique_id = unique_id
        self.value = value


class MalformedDateError(CleaningError):
    """Raised when a sale date cannot be parsed as a calendar date."""

    kind = "malformed_date"


class AddressFormatError(CleaningError):
    """Raised when a compound address lacks the expected delimiters."""

    kind = "address_format"


class SchemaStateError(HousingCleanerError):
    """Raised when the table is not in the raw, pre-clean layout.

    Usually means the pipeline already ran against this table.
    """

    pass


class ConfirmationRequiredError(HousingCleanerError):
    """Raised when destructive changes are requested without confirmation."""

    pass


# =============================================================================
# Warnings
# =============================================================================


class BackfillAmbiguityWarning(UserWarning):
    """Issued when a parcel group offers conflicting backfill addresses."""

    pass


__all__ = [
    # Base
    "HousingCleanerError",
    # Configuration
    "ConfigurationError",
    # Database
    "DatabaseError",
    "StoreError",
    # Ingestion
    "IngestionError",
    # Cleaning
    "CleaningError",
    "MalformedDateError",
    "AddressFormatError",
    "SchemaStateError",
    "ConfirmationRequiredError",
    # Warnings
    "BackfillAmbiguityWarning",
]
