"""Classification of exceptions into operational and unexpected failures.

This is the boundary between handler logic and the terminal error handler:
whatever was raised, the rest of the error pipeline only deals with an
OperationalFailure or an UnexpectedFailure carrying client-safe details.
"""

from http import HTTPStatus

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from src.api.constants import HTTP_500_INTERNAL_SERVER_ERROR
from src.core.constants import VALIDATION_ERROR_MESSAGE
from src.core.exceptions import (
    AppError,
    ErrorCode,
    ErrorDetails,
    Failure,
    OperationalFailure,
    UnexpectedFailure,
    status_class,
    utc_timestamp,
)

MIN_ERROR_STATUS = 400
MAX_ERROR_STATUS = 599
GENERIC_ERROR_MESSAGE = "An internal server error occurred"


def declared_status_code(exc: BaseException) -> int:
    """Get the HTTP status an exception declares, or 500.

    Args:
        exc: Any exception.

    Returns:
        int: The exception's ``status_code`` when it is an integer error
            status (400-599), otherwise 500.
    """
    status_code = getattr(exc, "status_code", None)
    if (
        isinstance(status_code, int)
        and not isinstance(status_code, bool)
        and MIN_ERROR_STATUS <= status_code <= MAX_ERROR_STATUS
    ):
        return status_code
    return HTTP_500_INTERNAL_SERVER_ERROR


def _status_name(status_code: int) -> str | None:
    try:
        return HTTPStatus(status_code).name
    except ValueError:
        return None


def _operational(
    exc: BaseException,
    message: str,
    status_code: int,
    code: str | None,
    request_id: str | None,
) -> OperationalFailure:
    return OperationalFailure(
        details=ErrorDetails(
            message=message,
            status_code=status_code,
            status=status_class(status_code),
            code=code,
            timestamp=utc_timestamp(),
            request_id=request_id,
            is_operational=True,
        ),
        error=exc,
    )


def classify_error(
    exc: BaseException,
    *,
    request_id: str | None = None,
    production: bool = True,
) -> Failure:
    """Classify an exception for logging and the client response.

    Args:
        exc: The exception that reached the error pipeline.
        request_id: Request ID of the failing request, backfilled into
            AppError instances that were created outside request scope.
        production: Hide even the exception type from unexpected errors.

    Returns:
        Failure: OperationalFailure for AppError, framework HTTP and
            validation errors; UnexpectedFailure for anything else.
    """
    if isinstance(exc, AppError):
        exc.bind_request_id(request_id)
        return OperationalFailure(details=exc.details, error=exc)

    if isinstance(exc, RequestValidationError):
        return _operational(
            exc,
            VALIDATION_ERROR_MESSAGE,
            422,
            ErrorCode.VALIDATION_ERROR.value,
            request_id,
        )

    if isinstance(exc, HTTPException):
        return _operational(
            exc,
            str(exc.detail),
            exc.status_code,
            _status_name(exc.status_code),
            request_id,
        )

    status_code = declared_status_code(exc)
    code = getattr(exc, "code", None)
    message = (
        GENERIC_ERROR_MESSAGE
        if production
        else f"Internal server error: {type(exc).__name__}"
    )
    return UnexpectedFailure(
        details=ErrorDetails(
            message=message,
            status_code=status_code,
            status=status_class(status_code),
            code=code if isinstance(code, str) else None,
            timestamp=utc_timestamp(),
            request_id=request_id,
            is_operational=False,
        ),
        error=exc,
    )
