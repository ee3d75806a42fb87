"""Console logging setup for CueWatch scripts."""
from __future__ import annotations

import logging


def setup_logging(level: int | str = logging.INFO) -> None:
    """Route cuewatch loggers to the console with a uniform format."""
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("cuewatch")
    logger.setLevel(level)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.propagate = False
