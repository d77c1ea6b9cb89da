"""
Logging utilities for the sync engine.

Provides a JSON formatter for machine-readable logs and a setup helper
used by the CLI.
"""

import json
import logging
import sys
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes the standard fields (timestamp, level, logger,
    message, thread) plus the exception text when present.
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """
    Configure root logging.

    Args:
        verbose: Log at DEBUG instead of INFO
        json_logs: Emit JSON lines instead of the human-readable format
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    if json_logs:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logging.basicConfig(level=log_level, handlers=[handler], force=True)
        return

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    # urllib3 is chatty at DEBUG
    if not verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
