"""Core module exports."""
from __future__ import annotations

from core.config import Settings, get_settings, reload_settings
from core.db import Base, SessionLocal, get_engine, get_session, init_db
from core.exceptions import (
    # Base
    HousingCleanerError,
    # Configuration
    ConfigurationError,
    # Database
    DatabaseError,
    StoreError,
    # Ingestion
    IngestionError,
    # Cleaning
    CleaningError,
    MalformedDateError,
    AddressFormatError,
    SchemaStateError,
    ConfirmationRequiredError,
    BackfillAmbiguityWarning,
)
from core.logging_config import (
    setup_logging,
    get_logger,
    get_context_logger,
    log_stage_result,
    JSONFormatter,
    ContextLogger,
)
from core.models import HousingSale
from core.types import PipelineReport, RecordError, StageReport

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "reload_settings",
    # Database
    "Base",
    "SessionLocal",
    "get_engine",
    "get_session",
    "init_db",
    # Models
    "HousingSale",
    # Types
    "PipelineReport",
    "RecordError",
    "StageReport",
    # Exceptions
    "HousingCleanerError",
    "ConfigurationError",
    "DatabaseError",
    "StoreError",
    "IngestionError",
    "CleaningError",
    "MalformedDateError",
    "AddressFormatError",
    "SchemaStateError",
    "ConfirmationRequiredError",
    "BackfillAmbiguityWarning",
    # Logging
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_stage_result",
    "JSONFormatter",
    "ContextLogger",
]
