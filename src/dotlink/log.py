"""Append-only action log for dotlink."""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "dotlink"
SUCCESS = 25
DRY_RUN_PREFIX = "[DRY RUN] "
LOG_FORMAT = "[%(asctime)s] {prefix}%(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.addLevelName(SUCCESS, "SUCCESS")


def configure_logging(log_file: Path, *, dry_run: bool = False) -> logging.Logger:
    """Route the ``dotlink`` logger to ``log_file``.

    Any handler from a previous call is closed and replaced so repeated runs in
    one process never write twice.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    prefix = DRY_RUN_PREFIX if dry_run else ""
    handler.setFormatter(logging.Formatter(LOG_FORMAT.format(prefix=prefix), datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def log_success(logger: logging.Logger, message: str, *args: object) -> None:
    logger.log(SUCCESS, message, *args)
