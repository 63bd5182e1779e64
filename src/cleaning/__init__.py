"""Cleaning subpackage exports."""
from .records import SaleRecord, is_missing, record_changes
from .dates import DateNormalizer, normalize_sale_date
from .backfill import AddressBackfiller, build_parcel_index, pick_backfill_address
from .addresses import (
    AddressDecomposer,
    OwnerAddressParts,
    PropertyAddressParts,
    split_owner_address,
    split_property_address,
)
from .categorical import CategoricalStandardizer, standardize_sold_as_vacant
from .dedupe import Deduplicator, find_duplicates, group_by_dedup_key, rank_group
from .store import HousingStore
from .migration import SchemaStep, check_schema_state, plan_schema_steps
from .backup import BackupResult, create_backup
from .pipeline import CleaningPlan, apply_plan, build_plan, run_cleaning_pipeline

__all__ = [
    # Records
    "SaleRecord",
    "is_missing",
    "record_changes",
    # Stages
    "DateNormalizer",
    "normalize_sale_date",
    "AddressBackfiller",
    "build_parcel_index",
    "pick_backfill_address",
    "AddressDecomposer",
    "PropertyAddressParts",
    "OwnerAddressParts",
    "split_property_address",
    "split_owner_address",
    "CategoricalStandardizer",
    "standardize_sold_as_vacant",
    "Deduplicator",
    "find_duplicates",
    "group_by_dedup_key",
    "rank_group",
    # Store / migration
    "HousingStore",
    "SchemaStep",
    "check_schema_state",
    "plan_schema_steps",
    "BackupResult",
    "create_backup",
    # Pipeline
    "CleaningPlan",
    "apply_plan",
    "build_plan",
    "run_cleaning_pipeline",
]
