"""SQLAlchemy ORM model for the raw housing sales table.

The model describes the table as exported from the county records, before
the cleaning pipeline runs. After a successful run the table layout differs
(see cleaning.migration), so the pipeline itself works against a reflected
table rather than this class.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from core.config import get_settings
from core.db import Base

SETTINGS = get_settings()


class HousingSale(Base):
    """
    One sale record of the housing table.

    Compound columns (property_address, owner_address) and the loosely typed
    sale_date are split and normalized by the cleaning pipeline.
    """

    __tablename__ = SETTINGS.housing_table

    unique_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    parcel_id: Mapped[str] = mapped_column(String(50), nullable=False)
    land_use: Mapped[Optional[str]] = mapped_column(String(100))
    property_address: Mapped[Optional[str]] = mapped_column(String(255))
    # Raw text: the export mixes "April 9, 2013" and timestamps
    sale_date: Mapped[Optional[str]] = mapped_column(String(50))
    sale_price: Mapped[Optional[float]] = mapped_column(Float)
    legal_reference: Mapped[Optional[str]] = mapped_column(String(100))
    sold_as_vacant: Mapped[Optional[str]] = mapped_column(String(10))
    owner_name: Mapped[Optional[str]] = mapped_column(String(255))
    owner_address: Mapped[Optional[str]] = mapped_column(String(255))
    acreage: Mapped[Optional[float]] = mapped_column(Float)
    tax_district: Mapped[Optional[str]] = mapped_column(String(100))
    land_value: Mapped[Optional[float]] = mapped_column(Float)
    building_value: Mapped[Optional[float]] = mapped_column(Float)
    total_value: Mapped[Optional[float]] = mapped_column(Float)
    year_built: Mapped[Optional[int]] = mapped_column(Integer)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer)
    full_bath: Mapped[Optional[int]] = mapped_column(Integer)
    half_bath: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index(f"ix_{SETTINGS.housing_table}_parcel_id", "parcel_id"),
    )

    def __repr__(self) -> str:
        return f"<HousingSale(unique_id={self.unique_id}, parcel_id={self.parcel_id!r})>"


__all__ = ["HousingSale"]
