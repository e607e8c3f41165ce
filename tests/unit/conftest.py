import sys

import pytest
from loguru import logger

from graceterm.modules.registry import ConnectionRegistry
from tests.utils.test_logger import create_test_logger


@pytest.fixture
def test_logger():
    """Create a test logger instance."""
    return create_test_logger()


@pytest.fixture
def registry(test_logger):
    return ConnectionRegistry(test_logger)


@pytest.fixture(autouse=True)
def restore_loguru():
    """The CLI loggers reconfigure loguru globally; put the default sink back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)
