"""Standardized error response schema for consistent API error handling.

Every error the API returns, operational or not, has the same seven fields
so clients can handle failures without special-casing:

- ``message``: human-readable, client-safe description
- ``statusCode``: HTTP status code of the response
- ``status``: ``fail`` for 4xx, ``error`` otherwise
- ``code``: machine-readable error code, may be null
- ``timestamp``: ISO 8601 UTC time the error was created
- ``requestId``: request ID for correlating with server logs, may be null
- ``isOperational``: whether the error is an anticipated condition

Stack traces never appear in this schema; they are written to logs only.
"""

from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field

from src.core.exceptions import ErrorDetails


class ErrorResponse(BaseModel):
    """Standardized error response model for API errors."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "message": "User not found",
                    "statusCode": 404,
                    "status": "fail",
                    "code": "NOT_FOUND",
                    "timestamp": "2024-06-14T12:00:00.000Z",
                    "requestId": "3f2a9c1b7d4e8a60",
                    "isOperational": True,
                },
                {
                    "message": "An internal server error occurred",
                    "statusCode": 500,
                    "status": "error",
                    "code": None,
                    "timestamp": "2024-06-14T12:00:03.000Z",
                    "requestId": "9b1c0e2f4a6d8c31",
                    "isOperational": False,
                },
            ]
        },
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Invalid email format", "User not found"],
    )

    status_code: int = Field(
        ...,
        alias="statusCode",
        description="HTTP status code",
        examples=[400, 404, 500],
    )

    status: Literal["fail", "error"] = Field(
        ...,
        description="'fail' for client errors (4xx), 'error' otherwise",
    )

    code: str | None = Field(
        default=None,
        description="Machine-readable error code",
        examples=["VALIDATION_ERROR", "NOT_FOUND", "UNAUTHORIZED"],
    )

    timestamp: str = Field(
        ...,
        description="Time the error was created (ISO 8601, UTC)",
        examples=["2024-06-14T12:00:00.000Z"],
    )

    request_id: str | None = Field(
        default=None,
        alias="requestId",
        description="Request ID for correlating the response with server logs",
        examples=["3f2a9c1b7d4e8a60"],
    )

    is_operational: bool = Field(
        ...,
        alias="isOperational",
        description="True for anticipated conditions, False for internal faults",
    )

    @classmethod
    def from_details(cls, details: ErrorDetails) -> Self:
        """Build the response model from canonical error details.

        Args:
            details: Canonical error details.

        Returns:
            ErrorResponse: Response model with the same fields.
        """
        return cls.model_validate(details.to_dict())
