"""Tests for logging configuration."""

import logging

from calorie_tracker.app_logging import configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("calorie_tracker")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1


def test_configure_logging_sets_level() -> None:
    logger = logging.getLogger("calorie_tracker")

    configure_logging("debug")

    assert logger.level == logging.DEBUG
    configure_logging()
    assert logger.level == logging.INFO
