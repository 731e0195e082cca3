"""Shared fixtures for integration tests.

The application under test is the real composition root with a few extra
routes that succeed or fail in the ways the error pipeline distinguishes.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from src.api.main import create_app
from src.core.config import LogConfig, Settings, get_settings
from src.core.context import RequestContext
from src.core.exceptions import NotFoundError


class LibraryError(Exception):
    """Third-party style exception declaring an HTTP status."""

    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"


class UserIn(BaseModel):
    """Payload for creating a user."""

    name: str
    email: str
    password: str


def build_app(settings: Settings) -> FastAPI:
    """Create the application with test routes.

    Args:
        settings: Settings for the application.

    Returns:
        FastAPI: The application.
    """
    app = create_app(settings)

    @app.get("/users/{user_id}")
    async def get_user(user_id: str) -> dict[str, str]:
        if user_id == "missing":
            raise NotFoundError("User not found")
        return {"id": user_id}

    @app.post("/users", status_code=201)
    async def create_user(user: UserIn) -> dict[str, str]:
        return {"name": user.name, "email": user.email}

    @app.get("/boom")
    async def boom() -> dict[str, str]:
        msg = "database password is hunter2"
        raise RuntimeError(msg)

    @app.get("/upstream")
    async def upstream() -> dict[str, str]:
        raise LibraryError("upstream timed out")

    return app


def make_settings(**overrides: object) -> Settings:
    """Settings for integration tests, without log files."""
    return Settings(
        log_config=LogConfig(enable_file_logging=False),
        **overrides,  # type: ignore[arg-type]
    )


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Client for the development application."""
    transport = ASGITransport(app=build_app(make_settings()))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def client_production() -> AsyncGenerator[AsyncClient]:
    """Client for the application in production mode."""
    transport = ASGITransport(app=build_app(make_settings(environment="production")))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Automatically clear settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Automatically clear RequestContext before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()
