"""
Pytest configuration and shared fixtures.

This file contains pytest configuration and fixtures that are available
to all test modules in the project.
"""

import io
import logging
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

# Import all fixtures from the fixtures module
from tests.fixtures import *


def pytest_configure(config):
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )
    config.addinivalue_line(
        "markers", "config: Configuration-related tests"
    )
    config.addinivalue_line(
        "markers", "selftest: Route self-test harness tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location and content."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "config" in item.name:
            item.add_marker(pytest.mark.config)

        if "selftest" in str(item.fspath) or "self_test" in item.name:
            item.add_marker(pytest.mark.selftest)


@pytest.fixture
def temp_directory():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_environment_variables():
    """Provide a context manager for mocking environment variables."""
    def _mock_env(**kwargs):
        return patch.dict(os.environ, kwargs)

    return _mock_env


@pytest.fixture
def capture_logs():
    """Capture log output during tests."""
    log_buffer = io.StringIO()

    handler = logging.StreamHandler(log_buffer)
    handler.setLevel(logging.DEBUG)

    murl_logger = logging.getLogger("murl")
    murl_logger.addHandler(handler)
    original_level = murl_logger.level
    murl_logger.setLevel(logging.DEBUG)

    yield log_buffer

    murl_logger.removeHandler(handler)
    murl_logger.setLevel(original_level)
