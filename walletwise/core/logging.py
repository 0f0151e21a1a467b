# ==============================================================================
# LOGGING - Process-wide Logging Configuration
# ==============================================================================
# Modules log through logging.getLogger(__name__); this configures the
# "walletwise" logger tree once at startup
# ==============================================================================

from __future__ import annotations

import logging
import sys
from typing import Optional

from walletwise.core.settings import settings


ROOT_LOGGER_NAME = "walletwise"


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the application logger tree.

    Safe to call more than once; handlers are replaced, not stacked.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        format_string: Custom format string (defaults to settings.LOG_FORMAT)
        log_file: Optional file to write logs to

    Returns:
        The configured "walletwise" logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(format_string or settings.LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
