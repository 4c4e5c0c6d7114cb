"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PACKAGE_LOGGER = "deploykit"
REDACTED = "***REDACTED***"

_LOGGING_CONFIGURED = False
_TRACEBACK_FORMATTER = logging.Formatter()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=DATE_FORMAT)
        # basicConfig is a no-op when the root logger already has handlers.
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.INFO)
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def set_verbose(verbose: bool) -> None:
    get_logger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.INFO)


class RedactingFilter(logging.Filter):
    """Masks secret values in every record that passes through."""

    def __init__(self, secrets: Iterable[Optional[str]]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = redact(message, self._secrets)
        if redacted != message:
            record.msg = redacted
            record.args = None
        # Formatters reuse exc_text when it is set, so tracebacks get masked too.
        if record.exc_info and not record.exc_text:
            record.exc_text = _TRACEBACK_FORMATTER.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text, self._secrets)
        if record.stack_info:
            record.stack_info = redact(record.stack_info, self._secrets)
        return True


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def open_run_log(path: Path, secrets: Iterable[Optional[str]] = ()) -> logging.Handler:
    """Attach an append-only file handler for one run to the package logger."""
    get_logger()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(logging.DEBUG)
    redacting = RedactingFilter(secrets)
    handler.addFilter(redacting)
    # Console output is filtered too; handler filters only see records
    # that reach that handler.
    for console in logging.getLogger().handlers:
        console.addFilter(redacting)
    logger = get_logger(PACKAGE_LOGGER)
    logger.addHandler(handler)
    return handler


def close_run_log(handler: logging.Handler) -> None:
    logger = get_logger(PACKAGE_LOGGER)
    logger.removeHandler(handler)
    for filt in list(handler.filters):
        for console in logging.getLogger().handlers:
            console.removeFilter(filt)
    handler.close()
