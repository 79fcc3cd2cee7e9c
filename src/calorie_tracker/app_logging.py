"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(levelname)s: %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the calorie_tracker logger once; later calls only set the level."""
    logger = logging.getLogger("calorie_tracker")
    logger.setLevel(level.upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
