"""In-memory representation of housing sale records."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple

# Fields that stages may change and the apply phase writes back
DERIVED_FIELDS = (
    "property_street",
    "property_city",
    "owner_street",
    "owner_city",
    "owner_state",
)
WRITABLE_FIELDS = ("property_address", "sold_as_vacant") + DERIVED_FIELDS


def is_missing(value: Any) -> bool:
    """Return True for None and for blank strings."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


@dataclass
class SaleRecord:
    """A single row of the housing table, limited to the fields the pipeline reads."""

    unique_id: int
    parcel_id: str
    property_address: Optional[str] = None
    owner_address: Optional[str] = None
    sale_date: Any = None
    sale_price: Optional[float] = None
    legal_reference: Optional[str] = None
    sold_as_vacant: Optional[str] = None
    tax_district: Optional[str] = None
    property_street: Optional[str] = None
    property_city: Optional[str] = None
    owner_street: Optional[str] = None
    owner_city: Optional[str] = None
    owner_state: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SaleRecord":
        """Build a record from a row mapping, ignoring columns it does not model."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in row.items() if key in known})

    @property
    def dedup_key(self) -> Tuple[Any, ...]:
        return (
            self.parcel_id,
            self.property_address,
            self.sale_price,
            self.sale_date,
            self.legal_reference,
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def record_changes(before: SaleRecord, after: SaleRecord) -> Dict[str, Any]:
    """
    Diff two versions of a record over the writable fields.

    The sale date is handled separately by the date migration and is not
    part of the diff.
    """
    changes: Dict[str, Any] = {}
    for name in WRITABLE_FIELDS:
        new_value = getattr(after, name)
        if getattr(before, name) != new_value:
            changes[name] = new_value
    return changes


__all__ = [
    "DERIVED_FIELDS",
    "WRITABLE_FIELDS",
    "SaleRecord",
    "is_missing",
    "record_changes",
]
