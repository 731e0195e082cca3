"""Global error handling for the FastAPI application.

Every error path of a request ends here. Whatever was raised is classified
into an operational or unexpected failure, passed through the error logger,
and turned into one uniform response::

    {message, statusCode, status, code, timestamp, requestId, isOperational}

Two entry points feed handle_exception(), the error logger followed by the
terminal handler:

- Exception handlers registered with FastAPI for AppError, HTTPException and
  RequestValidationError (these never leave the framework's exception
  middleware)
- ErrorHandlerMiddleware, a catch-all for every other exception, so no
  error ever reaches the server unhandled

The handler never raises and never puts a stack trace in the response body;
stack traces are written to the logs only.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.api.constants import HTTP_500_INTERNAL_SERVER_ERROR
from src.api.middleware.request_logging import log_error
from src.api.schemas.errors import ErrorResponse
from src.api.utils.errors import GENERIC_ERROR_MESSAGE, classify_error
from src.api.utils.request_info import get_request_id, get_request_settings
from src.api.utils.responses import ORJSONResponse
from src.core.exceptions import AppError, Failure, status_class, utc_timestamp


def build_error_response(failure: Failure) -> Response:
    """Render a classified failure as the client response.

    Args:
        failure: The classified failure.

    Returns:
        Response: ORJSONResponse with the canonical error body.
    """
    details = failure.details
    # Keep headers such as Allow or WWW-Authenticate set by HTTP exceptions
    headers = (
        failure.error.headers if isinstance(failure.error, HTTPException) else None
    )
    return ORJSONResponse(
        status_code=details.status_code,
        content=ErrorResponse.from_details(details).model_dump(by_alias=True),
        headers=headers,
    )


def _fallback_response(request_id: str | None) -> Response:
    return ORJSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": GENERIC_ERROR_MESSAGE,
            "statusCode": HTTP_500_INTERNAL_SERVER_ERROR,
            "status": status_class(HTTP_500_INTERNAL_SERVER_ERROR),
            "code": None,
            "timestamp": utc_timestamp(),
            "requestId": request_id,
            "isOperational": False,
        },
    )


async def global_error_handler(request: Request, exc: Exception) -> Response:
    """Terminal handler turning any exception into the client response.

    The failure is classified and rendered. Should that fail, a static 500
    body is returned instead.

    Args:
        request: The request that failed.
        exc: The exception raised while handling it.

    Returns:
        Response: ORJSONResponse with the canonical error body.
    """
    request_id = get_request_id(request)

    try:
        settings = get_request_settings(request)
        failure = classify_error(
            exc, request_id=request_id, production=settings.is_production
        )
        return build_error_response(failure)
    except Exception:  # noqa: BLE001 - the terminal handler must always respond
        logger.opt(exception=True).error(
            "Error handler failed while handling {}", type(exc).__name__
        )
        return _fallback_response(request_id)


async def handle_exception(request: Request, exc: Exception) -> Response:
    """Pass an exception through the error logger, then the terminal handler.

    Logging is best effort: a failure to log never prevents the response.

    Args:
        request: The request that failed.
        exc: The exception raised while handling it.

    Returns:
        Response: ORJSONResponse with the canonical error body.
    """
    try:
        settings = get_request_settings(request)
        failure = classify_error(
            exc,
            request_id=get_request_id(request),
            production=settings.is_production,
        )
        log_error(request, failure, settings)
    except Exception:  # noqa: BLE001 - logging must not break the error path
        logger.opt(exception=True).error(
            "Error logger failed while handling {}", type(exc).__name__
        )

    return await global_error_handler(request, exc)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch-all for exceptions not handled by the framework."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Call the app and convert any escaping exception to a response.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The app's response or the error response.
        """
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001 - converted to an error response
            return await handle_exception(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Route the framework's handled exception types to handle_exception().

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AppError, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    app.add_exception_handler(HTTPException, handle_exception)

    logger.debug("Exception handlers registered")
