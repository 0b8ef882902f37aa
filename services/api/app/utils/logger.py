"""Logging configuration for the checkout service.

A single package logger configured from LOG_LEVEL; modules ask for children of it.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("tally")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

# Keep records out of the root logger so uvicorn does not print them twice.
logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"tally.{name}")
    return logger
