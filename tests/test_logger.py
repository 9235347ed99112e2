"""
Logger helper tests

Run:
    python -m pytest tests/test_logger.py -v
"""

import json
import logging

from logger import (
    _ContextFilter,
    _JsonFormatter,
    clear_run_context,
    get_logger,
    log_execution_time,
    set_run_context,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("loopguard.strategies", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogger:
    def test_child_of_project_logger(self):
        assert get_logger("loopguard.termination.strategies").name == "loopguard.strategies"

    def test_root(self):
        assert get_logger().name == "loopguard"

    def test_cached(self):
        assert get_logger("a.b") is get_logger("c.b")


class TestRunContext:
    def teardown_method(self):
        clear_run_context()

    def test_context_stamped_on_records(self):
        set_run_context(run_id="run-1", turn=3)
        record = _record()
        _ContextFilter().filter(record)
        assert (record.run_id, record.turn) == ("run-1", "3")

    def test_cleared_context(self):
        set_run_context(run_id="run-1", turn=3)
        clear_run_context()
        record = _record()
        _ContextFilter().filter(record)
        assert (record.run_id, record.turn) == ("-", "-")


class TestJsonFormatter:
    def test_one_json_object(self):
        record = _record("max turns reached", run_id="run-9", turn="4", duration_ms=1.5)
        data = json.loads(_JsonFormatter().format(record))
        assert data["msg"] == "max turns reached"
        assert data["logger"] == "strategies"
        assert data["run"] == "run-9"
        assert data["turn"] == "4"
        assert data["duration_ms"] == 1.5


class TestLogExecutionTime:
    def test_logs_duration_at_debug(self, caplog):
        test_logger = logging.getLogger("loopguard.test_timing")
        with caplog.at_level(logging.DEBUG, logger="loopguard.test_timing"):
            with log_execution_time("jury evaluation", test_logger):
                pass

        record = caplog.records[-1]
        assert record.getMessage() == "jury evaluation finished"
        assert record.operation == "jury evaluation"
        assert record.duration_ms >= 0
