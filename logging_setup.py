"""Logging initialization with labeled prefixes.

The interactive UI owns the terminal, so it logs to a file under the config
directory. Batch runs log to stderr instead.
"""
import logging
import sys

__all__ = [
    "setup_logging",
    "get_logger",
    "reset_logging",
]

ROOT_LOGGER_NAME = "gridspace"

_configured = False


class LabeledFormatter(logging.Formatter):
    """Prefix every record with a short level label (INFO, WARN, ERROR)."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def __init__(self, with_time: bool = False):
        super().__init__()
        self.with_time = with_time

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        text = f"{label} {record.name}: {record.getMessage()}"
        if self.with_time:
            text = f"{self.formatTime(record, '%Y-%m-%d %H:%M:%S')} {text}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(level: str = "INFO", log_path: str | None = None) -> logging.Logger:
    """Configure the application logger once.

    With ``log_path`` records go to that file; otherwise to stderr. Calling
    again is a no-op until ``reset_logging`` runs.
    """
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return logger

    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if log_path:
        try:
            handler = logging.FileHandler(log_path, encoding="utf-8")
            handler.setFormatter(LabeledFormatter(with_time=True))
        except OSError:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(LabeledFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(LabeledFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child of the application logger.

    Modules call this at import time, before setup_logging has run; records
    only reach a handler once the application configures one.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Drop configured handlers. Mainly for testing purposes."""
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    _configured = False
