"""Duplicate sale detection and elimination."""
from __future__ import annotations

import time
from collections import defaultdict
from typing import Any, Dict, List, Sequence, Tuple

from cleaning.base import CleaningStage, StageOutput
from cleaning.records import SaleRecord
from core.logging_config import get_logger
from core.types import StageReport

LOGGER = get_logger(__name__)

DedupKey = Tuple[Any, ...]


def group_by_dedup_key(records: Sequence[SaleRecord]) -> Dict[DedupKey, List[SaleRecord]]:
    """
    Partition records on (parcel_id, property_address, sale_price, sale_date, legal_reference).

    Returns:
        Mapping of key tuple to its members, in input order.
    """
    groups: Dict[DedupKey, List[SaleRecord]] = defaultdict(list)
    for record in records:
        groups[record.dedup_key].append(record)
    return dict(groups)


def rank_group(members: Sequence[SaleRecord]) -> List[Tuple[int, SaleRecord]]:
    """
    Rank group members 1..k.

    Members share a parcel id, so ordering by it alone cannot separate them;
    unique_id breaks the tie and the lowest one ranks first.
    """
    ordered = sorted(members, key=lambda r: (r.parcel_id, r.unique_id))
    return list(enumerate(ordered, start=1))


def find_duplicates(records: Sequence[SaleRecord]) -> List[int]:
    """Return the unique ids of every record ranked above 1 in its group."""
    doomed: List[int] = []
    for members in group_by_dedup_key(records).values():
        if len(members) < 2:
            continue
        doomed.extend(record.unique_id for rank, record in rank_group(members) if rank > 1)
    return sorted(doomed)


class Deduplicator(CleaningStage):
    """Keep one representative per dedup key; mark the rest for deletion."""

    name = "dedupe"

    def __init__(self) -> None:
        self.deletions: List[int] = []

    def run(self, records: Sequence[SaleRecord]) -> StageOutput:
        started = time.perf_counter()
        report = StageReport(stage=self.name, records_seen=len(records))

        groups = group_by_dedup_key(records)
        duplicated_keys = sum(1 for members in groups.values() if len(members) > 1)
        self.deletions = find_duplicates(records)
        doomed = set(self.deletions)
        survivors = [record for record in records if record.unique_id not in doomed]

        report.records_changed = len(self.deletions)
        if self.deletions:
            LOGGER.info(
                "%d duplicate records across %d keys",
                len(self.deletions),
                duplicated_keys,
            )
        return survivors, self._finish(report, started)


__all__ = ["group_by_dedup_key", "rank_group", "find_duplicates", "Deduplicator"]
