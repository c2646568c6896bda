"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Iterable

from .io_utils import RunPaths

LOG_FILENAME = "prefiller.log"
PACKAGE_LOGGER = "prefiller"
REDACTED = "***"


class RedactingFilter(logging.Filter):
    """Replace registered secrets in a record before any handler formats it."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets = {secret for secret in secrets if secret}

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        for secret in self.secrets:
            message = message.replace(secret, REDACTED)
        record.msg = message
        record.args = ()
        return True


def build_logger(run_paths: RunPaths, verbose: bool = False) -> logging.Logger:
    """Return the run's logger and route library module logs to the same sinks.

    Modules that log through ``logging.getLogger(__name__)`` sit under the
    ``prefiller`` package logger, which gets the run's handlers so their
    records also land in the run log.
    """
    logger_name = f"{PACKAGE_LOGGER}.{run_paths.run_id}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    if not logger.handlers:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
        redactor = RedactingFilter()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(redactor)
        logger.addHandler(console_handler)

        file_handler = logging.FileHandler(run_paths.base_dir / LOG_FILENAME, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)

    _share_handlers(logger, verbose)
    return logger


def _share_handlers(run_logger: logging.Logger, verbose: bool) -> None:
    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(logging.DEBUG if verbose else logging.INFO)
    package.propagate = False
    # Only the latest run's sinks stay attached.
    for handler in list(package.handlers):
        package.removeHandler(handler)
    for handler in run_logger.handlers:
        package.addHandler(handler)


def redact_secret(logger: logging.Logger, secret: str | None) -> None:
    """Mask ``secret`` in everything the logger's handlers emit from now on."""
    if not secret:
        return
    for handler in logger.handlers:
        for log_filter in handler.filters:
            if isinstance(log_filter, RedactingFilter):
                log_filter.secrets.add(secret)


__all__ = ["LOG_FILENAME", "RedactingFilter", "build_logger", "redact_secret"]
