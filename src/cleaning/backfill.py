"""Backfill missing property addresses from records of the same parcel."""
from __future__ import annotations

import time
import warnings
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from cleaning.base import CleaningStage, StageOutput
from cleaning.records import SaleRecord, is_missing
from core.exceptions import BackfillAmbiguityWarning
from core.logging_config import get_logger
from core.types import StageReport

LOGGER = get_logger(__name__)


def build_parcel_index(records: Sequence[SaleRecord]) -> Dict[str, List[SaleRecord]]:
    """
    Group records by parcel id.

    Members of each group are ordered by ascending unique_id.
    """
    index: Dict[str, List[SaleRecord]] = defaultdict(list)
    for record in records:
        index[record.parcel_id].append(record)
    for members in index.values():
        members.sort(key=lambda r: r.unique_id)
    return dict(index)


def pick_backfill_address(members: Sequence[SaleRecord]) -> Optional[str]:
    """
    Return the address to copy into the group's missing rows.

    The first member (lowest unique_id) with a known address wins. Members
    must already be sorted by unique_id.
    """
    for member in members:
        if not is_missing(member.property_address):
            return member.property_address
    return None


class AddressBackfiller(CleaningStage):
    """Fill missing property addresses from another sale of the same parcel."""

    name = "backfill"

    def run(self, records: Sequence[SaleRecord]) -> StageOutput:
        started = time.perf_counter()
        report = StageReport(stage=self.name, records_seen=len(records))

        fills: Dict[int, str] = {}
        for parcel_id, members in build_parcel_index(records).items():
            missing = [m for m in members if is_missing(m.property_address)]
            if not missing:
                continue

            address = pick_backfill_address(members)
            if address is None:
                LOGGER.debug("No address known for parcel %s (%d rows)", parcel_id, len(missing))
                continue

            known = {m.property_address for m in members if not is_missing(m.property_address)}
            if len(known) > 1:
                message = (
                    f"parcel {parcel_id} has {len(known)} distinct addresses; "
                    f"using {address!r} from the lowest unique_id"
                )
                warnings.warn(message, BackfillAmbiguityWarning, stacklevel=2)
                report.notices.append(message)

            for member in missing:
                fills[member.unique_id] = address

        cleaned: List[SaleRecord] = []
        for record in records:
            if record.unique_id in fills:
                cleaned.append(replace(record, property_address=fills[record.unique_id]))
            else:
                cleaned.append(record)

        report.records_changed = len(fills)
        return cleaned, self._finish(report, started)


__all__ = ["build_parcel_index", "pick_backfill_address", "AddressBackfiller"]
