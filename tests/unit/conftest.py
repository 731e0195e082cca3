"""Shared fixtures for unit tests."""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest
from pytest_mock import MockerFixture, MockType

from src.core.config import Settings, get_settings
from src.core.context import RequestContext
from src.core.logging import _state


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide a Settings object with test defaults.

    Returns:
        Settings: Settings object with test defaults.
    """
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    monkeypatch.setenv("LOG_CONFIG__ENABLE_FILE_LOGGING", "false")

    return Settings()


@pytest.fixture
def production_settings() -> Settings:
    """Provide production Settings without file logging.

    Returns:
        Settings: Settings with environment set to production.
    """
    return Settings(
        environment="production",
        log_config={"enable_file_logging": False},
    )


@pytest.fixture
def mock_uvicorn(mocker: MockerFixture) -> MockType:
    """Mock uvicorn.run to prevent server startup.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        MockType: The mock for assertion purposes.
    """
    return mocker.patch("uvicorn.run")


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Isolate environment variables for testing.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    monkeypatch.delenv("PORT", raising=False)
    return monkeypatch


@pytest.fixture
def mock_main_dependencies(
    mocker: MockerFixture,
    mock_settings: Settings,
) -> dict[str, MockType]:
    """Mock common main.py dependencies.

    Args:
        mocker: Pytest mocker fixture.
        mock_settings: Mock settings fixture.

    Returns:
        dict[str, MockType]: Dictionary of mocked dependencies.
    """
    mocks = {
        "get_settings": mocker.patch("main.get_settings"),
        "setup_logging": mocker.patch("main.setup_logging"),
        "logger": mocker.patch("main.logger"),
        "uvicorn_run": mocker.patch("uvicorn.run"),
    }
    mocks["get_settings"].return_value = mock_settings
    return mocks


@pytest.fixture
def isolated_logging_state() -> Generator[Any]:
    """Reset the logging configured flag for the test and restore it after.

    Yields:
        _LoggingState: The module logging state, unconfigured.
    """
    original = _state.configured
    _state.configured = False
    yield _state
    _state.configured = original


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear the LRU cache before and after each test to ensure isolation.

    This fixture is autouse to ensure all tests start with a fresh cache
    and don't interfere with each other.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[pytest.MonkeyPatch]:
    """Backup and restore environment variables to prevent test interference.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    original_env = os.environ.copy()

    env_prefixes = [
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "LOG_CONFIG__",
        "CORS_CONFIG__",
    ]
    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield monkeypatch

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def sample_sensitive_data() -> dict[str, Any]:
    """Provide nested data with sensitive fields at various depths.

    Returns:
        dict[str, Any]: Nested data with sensitive fields.
    """
    return {
        "username": "john_doe",
        "password": "secret123",
        "user_data": {
            "email": "john@example.com",
            "profile": {
                "name": "John Doe",
                "Secret_Answer": "blue",
                "preferences": {"theme": "dark", "api_token": "tok_123"},
            },
        },
        "items": [
            {"id": 1, "name": "Item 1", "token": "item_token_1"},
            {"id": 2, "name": "Item 2"},
        ],
        "pair": ("public", {"credit_card_number": "4111111111111111"}),
    }


@pytest.fixture
def make_scope() -> Callable[..., dict[str, Any]]:
    """Factory for minimal HTTP ASGI scopes.

    Returns:
        Callable[..., dict[str, Any]]: Builds a scope for the given request.
    """

    def _make_scope(
        method: str = "GET",
        path: str = "/items",
        query_string: bytes = b"",
        headers: list[tuple[bytes, bytes]] | None = None,
        client: tuple[str, int] | None = ("10.0.0.1", 50000),
    ) -> dict[str, Any]:
        return {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query_string,
            "headers": headers or [],
            "client": client,
            "state": {},
        }

    return _make_scope


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear context before and after each test to ensure isolation.

    This fixture is autouse to ensure all tests start with a clean context
    and don't interfere with each other.
    """
    RequestContext.clear()
    yield
    RequestContext.clear()
