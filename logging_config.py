"""
Logging configuration for the Price Manager service.

Every module logs through a child of the ``price_manager`` logger, so a single
call to :func:`setup_logging` at startup routes all service output to the
console and, when ``LOG_FILE`` is set, to a file as well.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from config import settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "price_manager"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Initialise the ``price_manager`` logger and return it.

    Repeated calls only adjust the level; handlers are attached once.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Prevent duplicate handlers on repeated calls (e.g. tests, reloads)
    if root_logger.handlers:
        return root_logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    log_path = log_file if log_file is not None else settings.LOG_FILE
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)
        root_logger.info("Logging to file %s", path)

    return root_logger
