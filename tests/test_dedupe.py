"""Test duplicate sale elimination."""
from __future__ import annotations

from datetime import date

from cleaning.dedupe import Deduplicator, find_duplicates, group_by_dedup_key, rank_group

from conftest import make_record


def test_group_by_dedup_key():
    records = [
        make_record(1),
        make_record(2),
        make_record(3, sale_price=1.0),
        make_record(4, "P2"),
    ]

    groups = group_by_dedup_key(records)

    assert len(groups) == 3
    assert sorted(len(members) for members in groups.values()) == [1, 1, 2]


def test_rank_group_orders_by_unique_id():
    members = [make_record(9), make_record(3), make_record(5)]
    ranked = rank_group(members)
    assert [(rank, r.unique_id) for rank, r in ranked] == [(1, 3), (2, 5), (3, 9)]


def test_find_duplicates_keeps_lowest_unique_id():
    records = [make_record(4), make_record(2), make_record(7), make_record(1, "P2")]
    assert find_duplicates(records) == [4, 7]


def test_find_duplicates_none():
    records = [make_record(1), make_record(2, legal_reference="other")]
    assert find_duplicates(records) == []


def test_deduplicator_survivors_have_unique_keys():
    records = [
        make_record(1, sale_date=date(2013, 4, 9)),
        make_record(2, sale_date=date(2013, 4, 9)),
        make_record(3, sale_date=date(2014, 1, 1)),
        make_record(4, "P2"),
        make_record(5, "P2"),
        make_record(6, "P2"),
    ]
    stage = Deduplicator()

    survivors, report = stage.run(records)

    keys = [r.dedup_key for r in survivors]
    assert len(keys) == len(set(keys))
    assert len(survivors) == len(group_by_dedup_key(records))
    assert [r.unique_id for r in survivors] == [1, 3, 4]
    assert stage.deletions == [2, 5, 6]
    assert report.records_changed == 3


def test_deduplicator_missing_values_compare_equal():
    records = [make_record(1, property_address=None), make_record(2, property_address=None)]
    survivors, _ = Deduplicator().run(records)
    assert [r.unique_id for r in survivors] == [1]
