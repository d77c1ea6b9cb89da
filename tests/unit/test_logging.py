"""
Unit tests for logging utilities.
"""

import json
import logging
import sys

from confsync.core.logging import StructuredFormatter, setup_logging


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def make_record(self, msg="Refresh finished", exc_info=None):
        return logging.LogRecord(
            name="confsync.runner.content_sync",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )

    def test_formats_json(self):
        entry = json.loads(StructuredFormatter().format(self.make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "confsync.runner.content_sync"
        assert entry["message"] == "Refresh finished"
        assert "timestamp" in entry

    def test_without_timestamp(self):
        entry = json.loads(StructuredFormatter(include_timestamp=False).format(self.make_record()))

        assert "timestamp" not in entry

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self.make_record(exc_info=sys.exc_info())

        entry = json.loads(StructuredFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_levels(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(verbose=True)
            assert root.level == logging.DEBUG

            setup_logging(verbose=False, json_logs=True)
            assert root.level == logging.INFO
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
