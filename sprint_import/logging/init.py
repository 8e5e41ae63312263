from __future__ import annotations

import logging
import sys

"""CLI logging: one "LABEL message" line per record on stdout.

Labels are DEBUG|INFO|WARN|ERROR plus SUMMARY, a level of its own between
INFO and WARNING reserved for the run's summary line. Library modules log via
logging.getLogger(__name__), i.e. below the "sprint_import" logger, and reach
stdout through its single handler.
"""

LOGGER_NAME = "sprint_import"
SUMMARY_LEVEL = 25
SUMMARY_PREFIX = "SUMMARY "

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        SUMMARY_LEVEL: "SUMMARY",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
    }

    def format(self, record: logging.LogRecord) -> str:
        return f"{self.LABELS.get(record.levelno, record.levelname)} {record.getMessage()}"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the stdout handler once; later calls return the same logger."""
    global _configured
    if _configured is not None:
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LabeledFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    _configured = logger
    return logger


def log_summary(line: str) -> None:
    """Emit a rendered summary line; its "SUMMARY " prefix becomes the label."""
    if line.startswith(SUMMARY_PREFIX):
        line = line[len(SUMMARY_PREFIX):]
    setup_logging().log(SUMMARY_LEVEL, line)


def reset_logging() -> None:
    """Forget the configured logger so the next setup_logging() rebinds stdout (tests)."""
    global _configured
    _configured = None
