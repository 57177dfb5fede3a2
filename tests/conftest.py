"""Shared fixtures."""

import logging
from collections.abc import Iterator

import pytest

from issue_make.logging import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_issue_make_logger() -> Iterator[None]:
    """Drop handlers main() attached to captured streams, restore propagation."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
