"""Test property address backfill."""
from __future__ import annotations

import warnings

import pytest

from cleaning.backfill import AddressBackfiller, build_parcel_index, pick_backfill_address
from core.exceptions import BackfillAmbiguityWarning

from conftest import make_record


def test_build_parcel_index_orders_members():
    records = [make_record(5, "P1"), make_record(2, "P2"), make_record(1, "P1")]

    index = build_parcel_index(records)

    assert set(index) == {"P1", "P2"}
    assert [r.unique_id for r in index["P1"]] == [1, 5]


def test_pick_backfill_address_lowest_unique_id_wins():
    members = [
        make_record(1, property_address=None),
        make_record(2, property_address="1 A St, Nashville"),
        make_record(3, property_address="2 B St, Nashville"),
    ]
    assert pick_backfill_address(members) == "1 A St, Nashville"


def test_pick_backfill_address_none_known():
    members = [make_record(1, property_address=None), make_record(2, property_address="  ")]
    assert pick_backfill_address(members) is None


def test_backfill_fills_missing_from_same_parcel():
    records = [
        make_record(1, "P1", property_address=None),
        make_record(2, "P1", property_address="10 Oak Ave, Nashville"),
        make_record(3, "P2", property_address=None),
    ]

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        cleaned, report = AddressBackfiller().run(records)

    assert cleaned[0].property_address == "10 Oak Ave, Nashville"
    assert cleaned[1].property_address == "10 Oak Ave, Nashville"
    # No other member of P2 knows an address
    assert cleaned[2].property_address is None
    assert report.records_changed == 1
    assert report.notices == []


def test_backfill_never_overwrites_known_addresses():
    records = [
        make_record(1, property_address="1 A St, Nashville"),
        make_record(2, property_address="2 B St, Nashville"),
    ]

    cleaned, report = AddressBackfiller().run(records)

    assert [r.property_address for r in cleaned] == ["1 A St, Nashville", "2 B St, Nashville"]
    assert report.records_changed == 0


def test_backfill_disagreeing_addresses_warn():
    records = [
        make_record(3, property_address="2 B St, Nashville"),
        make_record(1, property_address="1 A St, Nashville"),
        make_record(2, property_address=""),
    ]

    with pytest.warns(BackfillAmbiguityWarning):
        cleaned, report = AddressBackfiller().run(records)

    assert cleaned[2].property_address == "1 A St, Nashville"
    assert len(report.notices) == 1
    assert "P1" in report.notices[0]


def test_backfill_result_comes_from_group():
    """Every filled address equals some member's original address."""
    records = [
        make_record(1, "P1", property_address=None),
        make_record(2, "P1", property_address="10 Oak Ave, Nashville"),
        make_record(3, "P2", property_address="5 Elm St, Madison"),
        make_record(4, "P2", property_address=None),
    ]
    originals = {}
    for r in records:
        originals.setdefault(r.parcel_id, set()).add(r.property_address)

    cleaned, _ = AddressBackfiller().run(records)

    for r in cleaned:
        assert r.property_address in originals[r.parcel_id]
        assert r.property_address is not None
