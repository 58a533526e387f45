"""Tests for clau logging utilities."""

import json
import logging

from clau.utils.log import StructuredFormatter, get_logger, init_logger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("clau", logging.INFO, __file__, 1, "[process] started", (), None)
    record.__dict__.update(extra)
    return record


class TestStructuredFormatter:
    """Extra context and timestamps in formatted records."""

    def test_extra_fields_are_appended_as_json(self):
        line = StructuredFormatter("%(message)s").format(_record(pid=42, binary="/bin/claude"))
        message, context = line.split(" | ", 1)
        assert message == "[process] started"
        assert json.loads(context) == {"binary": "/bin/claude", "pid": 42}

    def test_plain_record_has_no_context(self):
        assert StructuredFormatter("%(message)s").format(_record()) == "[process] started"

    def test_timestamp_is_utc_iso(self):
        stamp = StructuredFormatter().formatTime(_record())
        assert stamp.endswith("Z")
        assert "T" in stamp


def test_log_file_receives_debug_records(tmp_path):
    log_file = tmp_path / "logs" / "clau.log"
    logger = init_logger(log_file)
    assert logger is get_logger()

    try:
        get_logger().debug("[parser] skipped line", extra={"skipped": 2})
    finally:
        handler = logger._file_handler
        logger.logger.removeHandler(handler)
        handler.close()
        logger._file_handler = None

    content = log_file.read_text(encoding="utf-8")
    assert "[DEBUG] [parser] skipped line" in content
    assert '"skipped": 2' in content
