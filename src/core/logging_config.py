"""Logging setup for the cleaning pipeline, text or JSON lines."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes copied into JSON output when a caller attached them
CONTEXT_FIELDS = ("run_id", "stage", "unique_id")

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Carries the run context (run_id, stage, unique_id) and any `extra_data`
    mapping passed via `extra=`.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        extra_data = getattr(record, "extra_data", None)
        if extra_data is not None:
            log_data["extra"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that stamps fixed context onto every record.

    Usage:
        logger = get_context_logger(__name__, run_id="abc123")
        logger.info("Read 56477 records")  # record.run_id == "abc123"
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    return logging.Formatter(TEXT_LOG_FORMAT, DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        json_format: If True, use JSON structured logging.
    """
    formatter = _build_formatter(json_format)

    # stderr keeps stdout free for the run report
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # BackfillAmbiguityWarning and friends end up in the same stream
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with __name__."""
    return logging.getLogger(name)


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    """
    Get a logger whose records all carry the given context.

    Example:
        logger = get_context_logger(__name__, run_id="abc123", stage="dedupe")
        logger.info("Ranking groups")
    """
    return ContextLogger(logging.getLogger(name), context)


def log_stage_result(
    logger: logging.Logger | ContextLogger,
    stage: str,
    records_seen: int,
    records_changed: int,
    errors: int,
    duration_ms: float,
    **extra: Any,
) -> None:
    """
    Log the outcome of one cleaning stage with standard fields.

    Stages with per-record errors log at WARNING, clean stages at INFO.

    Args:
        logger: Logger instance to use.
        stage: Stage name (e.g., "dates", "dedupe").
        records_seen: Records the stage looked at.
        records_changed: Records the stage modified or marked.
        errors: Per-record errors collected by the stage.
        duration_ms: Duration of the stage in milliseconds.
        **extra: Additional context to log.
    """
    log_data = {
        "stage": stage,
        "records_seen": records_seen,
        "records_changed": records_changed,
        "errors": errors,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }
    message = f"Stage {stage}: {records_changed}/{records_seen} records changed"

    if errors:
        logger.warning(
            f"{message}, {errors} record errors in {duration_ms:.2f}ms",
            extra={"extra_data": log_data},
        )
    else:
        logger.info(f"{message} in {duration_ms:.2f}ms", extra={"extra_data": log_data})


__all__ = [
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_stage_result",
    "JSONFormatter",
    "ContextLogger",
]
