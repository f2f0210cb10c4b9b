"""
Logging setup for lighthouse-routes.

This module provides:
- Centralized logging configuration
- Console handler, optional rotating file handler
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv


# Load environment
load_dotenv()


ROOT_LOGGER = "lighthouse_routes"


def setup_logging(
    name: str = ROOT_LOGGER,
    log_level: str = None,
    log_file: str = None,
) -> logging.Logger:
    """
    Setup logging with console and (optionally) file handlers.

    Args:
        name: Logger name (default: "lighthouse_routes")
        log_level: Log level (default: from LOG_LEVEL env var or INFO)
        log_file: Log file path (default: $LIGHTHOUSE_LOG_DIR/{name}.log,
                  no file handler when LIGHTHOUSE_LOG_DIR is unset)

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()
    logger.propagate = False

    console_formatter = logging.Formatter(
        "%(levelname)s - %(message)s"
    )

    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file is None:
        log_dir = os.getenv("LIGHTHOUSE_LOG_DIR")
        if log_dir:
            logs_dir = Path(log_dir)
            logs_dir.mkdir(parents=True, exist_ok=True)
            log_file = logs_dir / f"{name}.log"

    if log_file is not None:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized: level={log_level}, file={log_file}")

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get or create a logger instance.

    Loggers under "lighthouse_routes." get no handlers of their own; they
    propagate to the package logger, so its level and handlers apply.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    if name.startswith(f"{ROOT_LOGGER}."):
        get_logger(ROOT_LOGGER)
        return logging.getLogger(name)

    logger = logging.getLogger(name)

    # If logger hasn't been setup, initialize it
    if not logger.handlers:
        setup_logging(name)

    return logger


def set_verbose(logger: logging.Logger, verbose: bool) -> None:
    """Force DEBUG on a logger and on every handler its records reach."""
    if not verbose:
        return
    logger.setLevel(logging.DEBUG)

    current = logger
    while current is not None:
        for handler in current.handlers:
            handler.setLevel(logging.DEBUG)
        current = current.parent if current.propagate else None
