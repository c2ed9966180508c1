"""Pytest configuration and fixtures."""

import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from tmdemo.main import CONSOLE_HANDLER_NAME  # noqa: E402


@pytest.fixture(autouse=True)
def reset_console_logging() -> Generator[None, None, None]:
    """Drop the console handler installed by setup_logging after each test."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            root_logger.removeHandler(handler)
    root_logger.setLevel(level)
