"""
Tests for structured JSON log records.
"""

import json
import logging

from src.shared.logging import StructuredFormatter, log_with_context


def _format(logger_name: str, message: str, extra: dict) -> dict:
    logger = logging.getLogger(logger_name)
    record = logger.makeRecord(logger_name, logging.INFO, __file__, 1, message, (), None, extra=extra)
    return json.loads(StructuredFormatter().format(record))


def test_context_fields_emitted_once():
    data = _format(
        "engine.test",
        "Check-in failed, intervention open",
        {"student_id": "S001", "action": "checkin_failed", "intervention_id": "abc123"},
    )

    assert data["message"] == "Check-in failed, intervention open"
    assert data["level"] == "INFO"
    assert data["student_id"] == "S001"
    assert data["action"] == "checkin_failed"
    assert data["intervention_id"] == "abc123"
    assert "msg" not in data and "args" not in data


def test_extra_fields_keep_json_types():
    data = _format("engine.test", "Check-in passed", {"quiz_score": 9, "reused_episode": False})

    assert data["quiz_score"] == 9
    assert data["reused_episode"] is False


def test_non_json_values_are_stringified(tmp_path):
    data = _format("engine.test", "Store opened", {"db_path": tmp_path / "engine.db"})

    assert data["db_path"] == str(tmp_path / "engine.db")


def test_log_with_context_passes_fields(caplog):
    logger = logging.getLogger("engine.context")

    with caplog.at_level(logging.INFO, logger="engine.context"):
        log_with_context(
            logger, logging.INFO, "Task completed by S002",
            student_id="S002", action="task_completed", quiz_score=None
        )

    record = caplog.records[-1]
    assert record.student_id == "S002"
    assert record.action == "task_completed"
    assert not hasattr(record, "intervention_id")
    assert json.loads(StructuredFormatter().format(record))["action"] == "task_completed"
