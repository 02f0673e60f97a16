#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
dfw_logging.py

Logging for the importer. The CLI calls `setup_logging` once; every run gets
its own file, `dfw_YYYYMMDD_HHMMSS.log`, in the logs directory
(default ~/.discogs_to_woocommerce/logs), and console output is kept at a
separate, usually quieter, level.

Library modules only ever do `logging.getLogger(__name__)` or `get_logger`.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(name)s: %(message)s"


def setup_logging(
    level: int = logging.DEBUG,
    log_root: Optional[str] = None,
    console_level: int = logging.INFO,
) -> str:
    """Install the run's file and console handlers on the root logger; returns the log file path."""
    root_logger = logging.getLogger()

    # Drop whatever an earlier call (or a stray logging call) installed.
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    log_root = log_root or os.path.expanduser("~/.discogs_to_woocommerce/logs")
    os.makedirs(log_root, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_root, f"dfw_{stamp}.log")

    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    root_logger.setLevel(min(level, console_level))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root_logger.info("Writing log to %s", log_file)
    return log_file


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name if name is not None else __name__)
