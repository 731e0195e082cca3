"""Structured application errors and the failure variants seen by handlers.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **AppError**: Deliberately raised, operational error carrying an HTTP status
- **Specialized exceptions**: Type-specific errors (validation, auth, etc.)
- **ErrorDetails**: The canonical, client-safe form of any failure
- **OperationalFailure / UnexpectedFailure**: The classified result handed
  from the error pipeline to the terminal handler

Handlers raise AppError subclasses where a failure is detected; everything
else (programmer faults, library errors) reaches the API boundary as an
arbitrary exception and is classified there as unexpected.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from src.core.context import RequestContext

type StatusClass = Literal["fail", "error"]


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed due to invalid or malformed data."""

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""

    # Authentication/Authorization errors
    UNAUTHORIZED = "UNAUTHORIZED"
    """Authentication failed."""

    FORBIDDEN = "FORBIDDEN"
    """The caller is authenticated but not allowed to perform this action."""


def status_class(status_code: int) -> StatusClass:
    """Derive the status class from an HTTP status code.

    Args:
        status_code: HTTP status code.

    Returns:
        StatusClass: "fail" for 4xx codes, "error" for everything else.
    """
    return "fail" if str(status_code).startswith("4") else "error"


def utc_timestamp() -> str:
    """Current time as an ISO 8601 UTC string with millisecond precision.

    Returns:
        str: Timestamp such as ``2024-06-14T12:00:00.123Z``.
    """
    return (
        datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


@dataclass(frozen=True, slots=True)
class ErrorDetails:
    """Canonical structured form of an error.

    Every field is always present so consumers can rely on a stable shape;
    ``code`` and ``request_id`` may be None.
    """

    message: str
    status_code: int
    status: StatusClass
    code: str | None
    timestamp: str
    request_id: str | None
    is_operational: bool

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape used in logs and response bodies.

        Returns:
            dict[str, Any]: camelCase mapping with all seven fields.
        """
        return {
            "message": self.message,
            "statusCode": self.status_code,
            "status": self.status,
            "code": self.code,
            "timestamp": self.timestamp,
            "requestId": self.request_id,
            "isOperational": self.is_operational,
        }


class AppError(Exception):
    """Base exception for deliberately raised, operational errors.

    The request ID is taken from the request context at construction time
    when one is active. All fields are read-only; the request ID alone can
    be backfilled once via bind_request_id().

    Args:
        message: Human-readable error message
        status_code: HTTP status code to respond with
        error_code: Optional machine-readable code (string or ErrorCode enum)
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str | ErrorCode | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._status_code = status_code
        self._code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self._timestamp = utc_timestamp()
        self._request_id = RequestContext.get_request_id()

    @property
    def message(self) -> str:
        return self._message

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def status(self) -> StatusClass:
        return status_class(self._status_code)

    @property
    def code(self) -> str | None:
        return self._code

    @property
    def timestamp(self) -> str:
        return self._timestamp

    @property
    def request_id(self) -> str | None:
        return self._request_id

    @property
    def is_operational(self) -> bool:
        """Errors raised through this type are always expected conditions."""
        return True

    def bind_request_id(self, request_id: str | None) -> None:
        """Attach a request ID if none was captured at construction.

        Args:
            request_id: Request ID of the request this error belongs to.
        """
        if self._request_id is None:
            self._request_id = request_id

    @property
    def details(self) -> ErrorDetails:
        """The canonical structured form of this error."""
        return ErrorDetails(
            message=self._message,
            status_code=self._status_code,
            status=self.status,
            code=self._code,
            timestamp=self._timestamp,
            request_id=self._request_id,
            is_operational=self.is_operational,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the canonical wire shape.

        Returns:
            dict[str, Any]: See ErrorDetails.to_dict().
        """
        return self.details.to_dict()

    def __str__(self) -> str:
        if self._code:
            return f"[{self._code}] {self._message}"
        return self._message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(message='{self._message}', "
            f"status_code={self._status_code}, error_code={self._code!r})"
        )


class ValidationError(AppError):
    """Exception raised when input validation fails.

    Args:
        message: Description of the validation failure
        error_code: Error code (defaults to VALIDATION_ERROR)
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
    ) -> None:
        super().__init__(message, 400, error_code)


class UnauthorizedError(AppError):
    """Exception raised when authentication fails.

    Args:
        message: Description of the authentication failure
        error_code: Error code (defaults to UNAUTHORIZED)
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(message, 401, error_code)


class ForbiddenError(AppError):
    """Exception raised when an authenticated caller lacks permission.

    Args:
        message: Description of the denied action
        error_code: Error code (defaults to FORBIDDEN)
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.FORBIDDEN,
    ) -> None:
        super().__init__(message, 403, error_code)


class NotFoundError(AppError):
    """Exception raised when a requested resource cannot be found.

    Args:
        message: Description of what resource was not found
        error_code: Error code (defaults to NOT_FOUND)
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.NOT_FOUND,
    ) -> None:
        super().__init__(message, 404, error_code)


@dataclass(frozen=True, slots=True)
class OperationalFailure:
    """An anticipated failure whose message is safe to show the client."""

    details: ErrorDetails
    error: BaseException


@dataclass(frozen=True, slots=True)
class UnexpectedFailure:
    """A programmer or runtime fault; the client only sees a generic message."""

    details: ErrorDetails
    error: BaseException


type Failure = OperationalFailure | UnexpectedFailure
