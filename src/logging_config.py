"""
Logging configuration for the rendering script.

The solver modules only create module loggers; nothing is printed unless a
caller installs handlers through ``setup_logging``.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional


FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int = logging.INFO, log_file: Optional[str] = None, name: Optional[str] = None
) -> None:
    """
    Configures the root logger, or the logger called ``name``.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        name: Logger to configure instead of the root logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate output when called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(FORMAT, datefmt="%H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
