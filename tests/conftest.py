"""Root conftest.py for the Vigil test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import os
from collections.abc import Generator
from typing import Any

import pytest
from loguru import logger


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )

    # The module-level app is created on import; keep it from writing log files
    os.environ.setdefault("LOG_CONFIG__ENABLE_FILE_LOGGING", "false")


@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]]]:
    """Capture Loguru records emitted during the test.

    Yields:
        list[dict[str, Any]]: Records in emission order.
    """
    records: list[dict[str, Any]] = []

    def sink(message: Any) -> None:  # noqa: ANN401 - loguru message
        records.append(message.record)

    handler_id = logger.add(sink, level="TRACE", format="{message}")
    yield records
    logger.remove(handler_id)
