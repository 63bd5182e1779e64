"""Test structured logging helpers."""
from __future__ import annotations

import json
import logging

from core.logging_config import JSONFormatter, get_context_logger, log_stage_result


def _record(logger_name: str = "housing.test", **attrs) -> logging.LogRecord:
    record = logging.LogRecord(logger_name, logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    data = json.loads(JSONFormatter().format(_record(run_id="abc", stage="dates", unique_id=7)))

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["run_id"] == "abc"
    assert data["stage"] == "dates"
    assert data["unique_id"] == 7


def test_json_formatter_extra_data():
    data = json.loads(JSONFormatter().format(_record(extra_data={"records_seen": 3})))
    assert data["extra"] == {"records_seen": 3}


def test_context_logger_adds_run_id(caplog):
    logger = get_context_logger("housing.test", run_id="run-1")

    with caplog.at_level(logging.INFO, logger="housing.test"):
        logger.info("starting")

    assert caplog.records[0].run_id == "run-1"


def test_log_stage_result_levels(caplog):
    logger = logging.getLogger("housing.stages")

    with caplog.at_level(logging.INFO, logger="housing.stages"):
        log_stage_result(logger, "dates", records_seen=10, records_changed=9, errors=0, duration_ms=1.5)
        log_stage_result(logger, "addresses", records_seen=10, records_changed=8, errors=2, duration_ms=2.0)

    clean, failed = caplog.records
    assert clean.levelno == logging.INFO
    assert clean.extra_data["records_changed"] == 9
    assert failed.levelno == logging.WARNING
    assert failed.extra_data["errors"] == 2
    assert "2 record errors" in failed.getMessage()
