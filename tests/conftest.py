import logging

import pytest

from entityforge.logging_config import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_entityforge_logger():
    """Drop handlers a test's setup_logging() bound to its captured stderr."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
