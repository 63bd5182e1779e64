"""Shared dataclasses and type helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(slots=True, frozen=True)
class RecordError:
    """A per-record failure collected by a cleaning stage."""

    stage: str
    unique_id: int
    kind: str
    message: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "unique_id": self.unique_id,
            "kind": self.kind,
            "message": self.message,
        }


@dataclass
class StageReport:
    """Outcome of one cleaning stage over the snapshot."""

    stage: str
    records_seen: int = 0
    records_changed: int = 0
    errors: List[RecordError] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "success": self.success,
            "records_seen": self.records_seen,
            "records_changed": self.records_changed,
            "errors": [e.as_dict() for e in self.errors],
            "notices": list(self.notices),
            "duration_seconds": round(self.duration_seconds, 4),
        }


@dataclass
class PipelineReport:
    """Result of a full cleaning run, dry or applied."""

    run_id: str
    dry_run: bool
    started_at: datetime
    stages: List[StageReport] = field(default_factory=list)
    schema_steps: List[str] = field(default_factory=list)
    planned_updates: int = 0
    planned_deletions: List[int] = field(default_factory=list)
    applied: bool = False
    backup_path: Optional[str] = None
    failed_stage: Optional[str] = None
    fatal_error: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def record_errors(self) -> List[RecordError]:
        return [error for stage in self.stages for error in stage.errors]

    @property
    def success(self) -> bool:
        return self.fatal_error is None and not self.record_errors

    @property
    def exit_code(self) -> int:
        """0 on full success, 1 on a fatal error, 2 when records failed."""
        if self.fatal_error is not None:
            return 1
        if self.record_errors:
            return 2
        return 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "applied": self.applied,
            "success": self.success,
            "exit_code": self.exit_code,
            "failed_stage": self.failed_stage,
            "fatal_error": self.fatal_error,
            "stages": [s.as_dict() for s in self.stages],
            "schema_steps": list(self.schema_steps),
            "planned_updates": self.planned_updates,
            "planned_deletions": list(self.planned_deletions),
            "backup_path": self.backup_path,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def summary(self) -> str:
        """Return a compact human-readable summary for logging/CLI output."""
        parts = [
            f"{s.stage}(changed={s.records_changed}, errors={len(s.errors)})"
            for s in self.stages
        ]
        mode = "applied" if self.applied else "dry-run"
        return f"[{mode}] " + " | ".join(parts) + f" | deletions={len(self.planned_deletions)}"

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return self.summary()


__all__ = ["RecordError", "StageReport", "PipelineReport"]
