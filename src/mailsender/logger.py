"""Logging utilities for the mail sender.

This module provides a centralized logging configuration helper. Library
modules only call :func:`get_logger`; handlers and format are installed once
by the entry point through :func:`configure_logging`.

Example:
    Typical usage in a module::

        from mailsender.logger import get_logger

        logger = get_logger("MyModule")
        logger.info("Operation completed")
"""

import logging
import os

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "MailSender") -> logging.Logger:
    """Retrieve a logger instance.

    This function returns a standard library logger with the specified name.
    It does not configure handlers or formatters; that responsibility lies
    with the application entry point.

    Args:
        name: The logger name. Defaults to "MailSender".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)


def configure_logging(level: str | None = None) -> str:
    """Configure the root logger for an entry point.

    Args:
        level: Level name. Falls back to ``MAILSENDER_LOG_LEVEL`` and then
            ``INFO``; unknown names resolve to ``INFO``.

    Returns:
        The level name actually applied.
    """
    name = (level or os.getenv("MAILSENDER_LOG_LEVEL", "INFO")).upper()
    if not isinstance(logging.getLevelName(name), int):
        name = "INFO"
    logging.basicConfig(
        level=getattr(logging, name),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,  # Force reconfiguration to avoid duplicate handlers
    )
    return name
