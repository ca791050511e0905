"""
Logging setup.

Every module logs through the root logger; this configures it once for the
process with a file handler and a console handler.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request access lines would drown out scan events
QUIET_LOGGERS = ("uvicorn.access",)


def setup_logging(log_path: str, log_level: str, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
