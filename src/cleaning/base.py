"""Common machinery for cleaning stages."""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

from cleaning.records import SaleRecord
from core.exceptions import CleaningError
from core.logging_config import get_logger, log_stage_result
from core.types import RecordError, StageReport

LOGGER = get_logger(__name__)

StageOutput = Tuple[List[SaleRecord], StageReport]


class CleaningStage:
    """A stage that takes the whole record set and returns a new one."""

    name: str = "stage"

    def run(self, records: Sequence[SaleRecord]) -> StageOutput:
        raise NotImplementedError

    def _finish(self, report: StageReport, started: float) -> StageReport:
        report.duration_seconds = time.perf_counter() - started
        log_stage_result(
            LOGGER,
            stage=self.name,
            records_seen=report.records_seen,
            records_changed=report.records_changed,
            errors=len(report.errors),
            duration_ms=report.duration_seconds * 1000,
        )
        return report


class RecordStage(CleaningStage):
    """
    A stage whose work is independent per record.

    Subclasses implement `transform`. Records may be processed on a thread
    pool since no record reads another.
    """

    def __init__(self, workers: int = 1) -> None:
        self.workers = max(1, workers)

    def transform(self, record: SaleRecord) -> Tuple[SaleRecord, List[CleaningError]]:
        raise NotImplementedError

    def run(self, records: Sequence[SaleRecord]) -> StageOutput:
        started = time.perf_counter()
        report = StageReport(stage=self.name, records_seen=len(records))

        if self.workers > 1 and len(records) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(self.transform, records))
        else:
            results = [self.transform(record) for record in records]

        cleaned: List[SaleRecord] = []
        for original, (updated, errors) in zip(records, results):
            cleaned.append(updated)
            if updated != original:
                report.records_changed += 1
            for error in errors:
                report.errors.append(
                    RecordError(
                        stage=self.name,
                        unique_id=original.unique_id,
                        kind=error.kind,
                        message=str(error),
                    )
                )

        return cleaned, self._finish(report, started)


__all__ = ["CleaningStage", "RecordStage", "StageOutput"]
