from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from locale_bucket.core.logging import PACKAGE_LOGGER, configure_logging


@pytest.fixture
def restore_levels() -> Iterator[None]:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    root_logger = logging.getLogger()
    saved = (package_logger.level, root_logger.level)
    yield
    package_logger.setLevel(saved[0])
    root_logger.setLevel(saved[1])


def test_level_applies_to_package_loggers_only(restore_levels: None) -> None:
    root_level = logging.getLogger().level

    configure_logging("debug")

    assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
    assert logging.getLogger("locale_bucket.services.refresh").getEffectiveLevel() == logging.DEBUG
    assert logging.getLogger().level == root_level


def test_unknown_level_falls_back_to_info(restore_levels: None) -> None:
    assert configure_logging("chatty") is logging.getLogger(PACKAGE_LOGGER)
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO
