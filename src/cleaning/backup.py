"""Snapshot backups taken before the cleaning run changes the table."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from cleaning.store import HousingStore
from core.config import get_settings
from core.logging_config import get_logger

LOGGER = get_logger(__name__)
SETTINGS = get_settings()


@dataclass
class BackupResult:
    success: bool
    backup_id: str
    path: Optional[Path] = None
    rows: int = 0
    error: Optional[str] = None


def create_backup(store: HousingStore, backup_dir: Optional[Path] = None) -> BackupResult:
    """
    Write every row and column of the housing table to a timestamped CSV.

    Args:
        store: Store to snapshot.
        backup_dir: Target directory (defaults to BACKUP_DIR).

    Returns:
        BackupResult with the file path on success.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    target_dir = Path(backup_dir or SETTINGS.backup_dir)
    result = BackupResult(success=True, backup_id=timestamp)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        frame = store.fetch_frame()
        path = target_dir / f"{store.table_name}_{timestamp}.csv"
        frame.to_csv(path, index=False)
    except OSError as e:
        result.success = False
        result.error = f"backup write failed: {e}"
        LOGGER.error(result.error)
        return result

    result.path = path
    result.rows = len(frame)
    LOGGER.info(f"Backed up {result.rows} rows of {store.table_name} -> {path}")
    return result


__all__ = ["BackupResult", "create_backup"]
