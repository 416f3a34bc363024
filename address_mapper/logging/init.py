from __future__ import annotations

import logging
import sys

"""Labeled stdout logging for the address_mapper CLI.

Lines look like ``INFO ...``, ``WARN ...``, ``ERROR ...`` or ``SUMMARY ...``.
Module loggers (``logging.getLogger(__name__)``) sit under ``address_mapper``
and reach the single handler installed by setup_logging().
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "log_summary",
    "reset_logging",
    "setup_logging",
]

LOGGER_NAME = "address_mapper"
SUMMARY_LEVEL = 25  # INFO と WARNING の間

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        return f"{self.LABELS.get(record.levelno, record.levelname)} {record.getMessage()}"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Install the stdout handler once; a later ``debug=True`` call only lowers the level."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO

    if _configured is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        logger = logging.getLogger(LOGGER_NAME)
        for h in logger.handlers[:]:
            logger.removeHandler(h)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(LabeledFormatter())
        logger.addHandler(handler)
        logger.propagate = False  # root への二重出力を防ぐ
        _configured = logger
    elif not debug:
        return _configured

    _configured.setLevel(level)
    for h in _configured.handlers:
        h.setLevel(level)
    return _configured


def log_summary(message: str) -> None:
    setup_logging().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Drop the installed handler (tests start each case from a clean logger)."""
    global _configured
    if _configured is not None:
        for h in _configured.handlers[:]:
            _configured.removeHandler(h)
    _configured = None
