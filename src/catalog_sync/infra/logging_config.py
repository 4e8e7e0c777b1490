"""
Logging configuration for catalog_sync.

Installs a single stdout handler on the package logger; modules keep using
``logging.getLogger(__name__)``.
"""

import logging
import sys

from catalog_sync.infra.config import log_level

PACKAGE_LOGGER = "catalog_sync"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Log level name (defaults to the LOG_LEVEL environment variable)

    Returns:
        The ``catalog_sync`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel((level or log_level()).upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

    # Avoid duplicate lines through the root logger
    logger.propagate = False
    return logger
