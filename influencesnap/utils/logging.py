"""Logging configuration for InfluenceSnap."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from influencesnap.utils.config import LOG_FILE, APP_NAME

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the package logger once per process.
    
    Every module logger from get_logger(__name__) sits under the
    "influencesnap" namespace, so these handlers cover the whole package.
    Calling again only updates the level.
    
    Args:
        level: Console level (default: INFO)
        log_file: Rotating log file (default: from config)
    
    Returns:
        The package logger
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(logging.DEBUG)
    
    if logger.handlers:
        for handler in logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(level)
        return logger
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)
    
    # The file always gets DEBUG detail, rotated at 10 MB
    file_handler = RotatingFileHandler(
        log_file or LOG_FILE,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)
    
    # Per-request client logging is noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance (default: the package logger)."""
    return logging.getLogger(name or APP_NAME)
