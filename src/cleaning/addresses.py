"""Split compound address strings into structured fields.

Two formats are handled:

- property address: "<street>, <city>" (split on the first comma)
- owner address: "<street>, <city>, <state>" (split right to left on ", ")
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from cleaning.base import RecordStage
from cleaning.records import SaleRecord, is_missing
from core.exceptions import AddressFormatError, CleaningError

OWNER_SEPARATOR = ", "


@dataclass(slots=True, frozen=True)
class PropertyAddressParts:
    street: Optional[str]
    city: Optional[str]


@dataclass(slots=True, frozen=True)
class OwnerAddressParts:
    street: Optional[str]
    city: Optional[str]
    state: Optional[str]


def split_property_address(value: Optional[str], unique_id: int | None = None) -> PropertyAddressParts:
    """
    Split "<street>, <city>" on the first comma.

    The street is stripped; the city skips one leading space after the comma
    and is right-trimmed. Empty parts come back as None.

    Raises:
        AddressFormatError: If the value has no comma.
    """
    if is_missing(value):
        return PropertyAddressParts(street=None, city=None)

    head, sep, tail = value.partition(",")
    if not sep:
        raise AddressFormatError(
            f"property address {value!r} has no comma",
            unique_id=unique_id,
            value=value,
        )

    if tail.startswith(" "):
        tail = tail[1:]
    city = tail.rstrip()
    return PropertyAddressParts(street=head.strip() or None, city=city or None)


def split_owner_address(value: Optional[str], unique_id: int | None = None) -> OwnerAddressParts:
    """
    Split "<street>, <city>, <state>" from the right on ", ".

    State is the last segment and city the one before it. Anything left of
    those two, extra separators included, is the street.

    Raises:
        AddressFormatError: If fewer than three segments are present.
    """
    if is_missing(value):
        return OwnerAddressParts(street=None, city=None, state=None)

    segments = value.rsplit(OWNER_SEPARATOR, 2)
    if len(segments) < 3:
        raise AddressFormatError(
            f"owner address {value!r} has {len(segments)} segment(s), expected 3",
            unique_id=unique_id,
            value=value,
        )

    street, city, state = (segment.strip() or None for segment in segments)
    return OwnerAddressParts(street=street, city=city, state=state)


class AddressDecomposer(RecordStage):
    """Populate the derived street/city/state fields of every record."""

    name = "addresses"

    def transform(self, record: SaleRecord) -> Tuple[SaleRecord, List[CleaningError]]:
        errors: List[CleaningError] = []

        try:
            prop = split_property_address(record.property_address, unique_id=record.unique_id)
        except AddressFormatError as exc:
            errors.append(exc)
            # Whole value is kept as the street rather than being truncated
            prop = PropertyAddressParts(street=record.property_address.strip(), city=None)

        try:
            owner = split_owner_address(record.owner_address, unique_id=record.unique_id)
        except AddressFormatError as exc:
            errors.append(exc)
            owner = OwnerAddressParts(street=None, city=None, state=None)

        updated = replace(
            record,
            property_street=prop.street,
            property_city=prop.city,
            owner_street=owner.street,
            owner_city=owner.city,
            owner_state=owner.state,
        )
        return updated, errors


__all__ = [
    "PropertyAddressParts",
    "OwnerAddressParts",
    "split_property_address",
    "split_owner_address",
    "AddressDecomposer",
]
