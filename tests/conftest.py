"""Pytest configuration and fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Set test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DRY_RUN", "true")
os.environ.setdefault("ENVIRONMENT", "test")

from cleaning.records import SaleRecord
from cleaning.store import HousingStore
from core.db import Base, enable_sqlite_transactions
from core.models import HousingSale


# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


def make_sale(unique_id: int, parcel_id: str = "P1", **overrides: Any) -> Dict[str, Any]:
    """Column values for one raw sale row; overrides win."""
    values: Dict[str, Any] = {
        "unique_id": unique_id,
        "parcel_id": parcel_id,
        "land_use": "SINGLE FAMILY",
        "property_address": "10 Oak Ave, Nashville",
        "sale_date": "April 9, 2013",
        "sale_price": 240000.0,
        "legal_reference": "20130412-0036474",
        "sold_as_vacant": "No",
        "owner_name": "DOE, JOHN",
        "owner_address": "10 Oak Ave, Nashville, TN",
        "tax_district": "URBAN SERVICES DISTRICT",
    }
    values.update(overrides)
    return values


def make_record(unique_id: int, parcel_id: str = "P1", **overrides: Any) -> SaleRecord:
    """In-memory SaleRecord with the same defaults as make_sale."""
    return SaleRecord.from_row(make_sale(unique_id, parcel_id, **overrides))


@pytest.fixture
def engine() -> Engine:
    """
    Fresh in-memory database per test.

    The cleaning run rewrites the table layout, so tables are not shared
    between tests.
    """
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_transactions(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def insert_sales(engine) -> Callable[..., None]:
    """Insert raw sale rows built with make_sale."""

    def _insert(*rows: Dict[str, Any]) -> None:
        with Session(engine) as session:
            session.add_all([HousingSale(**row) for row in rows])
            session.commit()

    return _insert


@pytest.fixture
def store(engine) -> HousingStore:
    # Small batches so chunking is exercised
    return HousingStore(engine, batch_size=2)
