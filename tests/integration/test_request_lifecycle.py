"""Integration tests for the request lifecycle logging pipeline."""

import re
from typing import Any

import pytest
from httpx import AsyncClient

from src.core.constants import REDACTED
from src.core.logging import HTTP_LEVEL

REQUEST_ID_PATTERN = re.compile(r"^[0-9a-f]{16}$")


def by_message(records: list[dict[str, Any]], message: str) -> list[dict[str, Any]]:
    """Select records with the given message."""
    return [r for r in records if r["message"] == message]


@pytest.mark.integration
class TestSuccessfulRequest:
    """A successful request produces one ingress and one completion record."""

    @pytest.mark.timeout(10)
    async def test_ingress_and_completion_share_request_id(
        self, client: AsyncClient, log_records: list[dict[str, Any]]
    ) -> None:
        """Test the info and http records carry the same request ID."""
        response = await client.get("/users/7", params={"verbose": "1"})

        assert response.status_code == 200
        assert response.json() == {"id": "7"}
        request_id = response.headers["x-request-id"]
        assert REQUEST_ID_PATTERN.match(request_id)

        ingress = by_message(log_records, "Incoming request")
        completion = by_message(log_records, "Request completed")
        assert len(ingress) == 1
        assert len(completion) == 1

        assert ingress[0]["level"].name == "INFO"
        assert ingress[0]["extra"]["metadata"]["request_id"] == request_id
        assert ingress[0]["extra"]["metadata"]["url"] == "/users/7?verbose=1"

        performance = completion[0]["extra"]["metadata"]
        assert completion[0]["level"].name == HTTP_LEVEL
        assert performance["request_id"] == request_id
        assert performance["status"] == 200
        assert performance["duration_ms"] >= 0
        assert all(value >= 0 for value in performance["memory"].values())

        assert by_message(log_records, "Error occurred") == []
        assert by_message(log_records, "Caught async error") == []

    @pytest.mark.timeout(10)
    async def test_request_ids_differ_between_requests(
        self, client: AsyncClient
    ) -> None:
        """Test each request gets its own ID."""
        first = await client.get("/users/1")
        second = await client.get("/users/1")

        assert first.headers["x-request-id"] != second.headers["x-request-id"]

    @pytest.mark.timeout(10)
    async def test_body_is_logged_sanitized_and_still_readable(
        self, client: AsyncClient, log_records: list[dict[str, Any]]
    ) -> None:
        """Test the handler reads the body the ingress log recorded."""
        payload = {"name": "Ann", "email": "ann@example.com", "password": "s3cret"}

        response = await client.post("/users", json=payload)

        assert response.status_code == 201
        assert response.json() == {"name": "Ann", "email": "ann@example.com"}
        body = by_message(log_records, "Incoming request")[0]["extra"]["metadata"][
            "body"
        ]
        assert body == {**payload, "password": REDACTED}
        assert all("s3cret" not in str(r["extra"]) for r in log_records)

    @pytest.mark.timeout(10)
    async def test_health_is_not_logged(
        self, client: AsyncClient, log_records: list[dict[str, Any]]
    ) -> None:
        """Test excluded paths produce neither ingress nor completion records."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert "x-request-id" in response.headers
        assert by_message(log_records, "Incoming request") == []
        assert by_message(log_records, "Request completed") == []


@pytest.mark.integration
class TestBuiltInRoutes:
    """Test the application's own endpoints."""

    @pytest.mark.timeout(10)
    async def test_info(self, client: AsyncClient) -> None:
        """Test the info endpoint reports the application settings."""
        response = await client.get("/info")

        assert response.status_code == 200
        assert response.json() == {
            "app_name": "Vigil",
            "version": "0.1.0",
            "environment": "development",
            "debug": False,
        }

    @pytest.mark.timeout(10)
    async def test_cors_preflight(self, client: AsyncClient) -> None:
        """Test allowed origins pass preflight and see the request ID header."""
        response = await client.options(
            "/users/7",
            headers={
                "Origin": "http://localhost:8085",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert (
            response.headers["access-control-allow-origin"] == "http://localhost:8085"
        )

    @pytest.mark.timeout(10)
    async def test_cors_exposes_request_id(self, client: AsyncClient) -> None:
        """Test cross-origin responses expose the request ID header."""
        response = await client.get(
            "/users/7", headers={"Origin": "http://localhost:8085"}
        )

        assert "x-request-id" in response.headers[
            "access-control-expose-headers"
        ].lower()

    @pytest.mark.timeout(10)
    async def test_cors_rejects_unknown_origin(self, client: AsyncClient) -> None:
        """Test preflight from an unknown origin is refused."""
        response = await client.options(
            "/users/7",
            headers={
                "Origin": "https://evil.example",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 400
