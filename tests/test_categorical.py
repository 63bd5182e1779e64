"""Test categorical standardization."""
from __future__ import annotations

import pytest

from cleaning.categorical import CategoricalStandardizer, standardize_sold_as_vacant

from conftest import make_record


@pytest.mark.parametrize(
    "raw, expected",
    [("Y", "Yes"), ("N", "No"), ("Yes", "Yes"), ("No", "No"), ("Maybe", "Maybe"), (None, None)],
)
def test_standardize_sold_as_vacant(raw, expected):
    assert standardize_sold_as_vacant(raw) == expected


def test_standardize_is_case_sensitive():
    assert standardize_sold_as_vacant("y") == "y"


def test_standardizer_is_idempotent():
    records = [make_record(i, sold_as_vacant=v) for i, v in enumerate(["Y", "N", "Yes", "Maybe"], start=1)]
    stage = CategoricalStandardizer()

    once, first = stage.run(records)
    twice, second = stage.run(once)

    assert [r.sold_as_vacant for r in once] == ["Yes", "No", "Yes", "Maybe"]
    assert once == twice
    assert first.records_changed == 2
    assert second.records_changed == 0
