"""HTTP request and error logging.

This module implements the two logging stages of a request's lifecycle:

- **RequestLoggingMiddleware**: assigns the request ID at ingress, makes it
  available to every later stage (scope state, request context and the
  Loguru context) and logs the sanitized incoming request before any
  handler runs. The ID is echoed to the client in ``X-Request-ID``.
- **log_error**: the error logger. It observes every failure on its way to
  the terminal handler and logs it with sanitized request data, at warning
  level for operational errors and error level for everything else. It
  never produces a response.
"""

import platform
import traceback
from typing import Any

from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.constants import CAPTURED_ERROR_ATTR, REQUEST_ID_HEADER, STATE_REQUEST_ID
from src.api.utils.request_info import RequestInfo, get_client_ip
from src.core.config import Settings
from src.core.constants import (
    DEFAULT_ERROR_STATUS,
    UNKNOWN_ERROR_CODE,
    VALIDATION_ERROR_MESSAGE,
)
from src.core.context import RequestContext, generate_request_id
from src.core.error_context import sanitize_data
from src.core.exceptions import AppError, Failure, OperationalFailure


class RequestLoggingMiddleware:
    """Pure ASGI middleware logging incoming requests.

    Args:
        app: The ASGI application.
        settings: Application settings.
    """

    def __init__(self, app: ASGIApp, *, settings: Settings) -> None:
        self.app = app
        self.settings = settings
        self.excluded_paths = set(settings.log_config.excluded_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Assign the request ID, log the request and call the app.

        Args:
            scope: ASGI connection scope.
            receive: ASGI receive callable.
            send: ASGI send callable.
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        trust_proxy_headers = self.settings.is_production
        request_id = generate_request_id(
            get_client_ip(request, trust_proxy_headers=trust_proxy_headers)
        )
        scope.setdefault("state", {})[STATE_REQUEST_ID] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
            await send(message)

        token = RequestContext.set_request_id(request_id)
        try:
            with logger.contextualize(request_id=request_id):
                if request.url.path not in self.excluded_paths:
                    info = RequestInfo.from_request(
                        request,
                        trust_proxy_headers=trust_proxy_headers,
                        sensitive_fields=self.settings.log_config.sensitive_fields,
                    )
                    logger.bind(
                        metadata={**info.to_log_dict(), "user": info.user}
                    ).info("Incoming request")

                await self.app(scope, receive, send_with_request_id)
        finally:
            RequestContext.reset(token)


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, AppError):
        return exc.message
    if isinstance(exc, RequestValidationError):
        return VALIDATION_ERROR_MESSAGE
    return str(exc)


def _format_stack(exc: BaseException) -> str:
    if isinstance(exc, RequestValidationError):
        # The exception text embeds the rejected input, secrets included
        return "".join(
            [
                "Traceback (most recent call last):\n",
                *traceback.format_tb(exc.__traceback__),
                f"{type(exc).__name__}: {VALIDATION_ERROR_MESSAGE}\n",
            ]
        )
    return "".join(traceback.format_exception(exc))


def _error_metadata(
    exc: BaseException, failure: Failure, sensitive_fields: list[str]
) -> dict[str, Any]:
    details = failure.details
    metadata: dict[str, Any] = {
        "name": type(exc).__name__,
        "message": _error_message(exc),
        "stack": _format_stack(exc),
        "code": details.code or UNKNOWN_ERROR_CODE,
        "status": details.status_code or DEFAULT_ERROR_STATUS,
        "is_operational": details.is_operational,
    }
    if isinstance(exc, RequestValidationError):
        metadata["validation_errors"] = sanitize_data(
            list(exc.errors()), sensitive_fields
        )
    return metadata


def log_error(
    request: Request,
    failure: Failure,
    settings: Settings,
    *,
    message: str = "Error occurred",
) -> None:
    """Log a failure with the request it belongs to.

    Failures already reported by the async capture wrapper are not logged
    again, so each failure produces exactly one error record.

    Args:
        request: The failing request.
        failure: The classified failure.
        settings: Application settings.
        message: Log message of the record.
    """
    exc = failure.error
    if getattr(exc, CAPTURED_ERROR_ATTR, False):
        return

    sensitive_fields = settings.log_config.sensitive_fields
    info = RequestInfo.from_request(
        request,
        trust_proxy_headers=settings.is_production,
        sensitive_fields=sensitive_fields,
    )
    metadata = {
        "error": _error_metadata(exc, failure, sensitive_fields),
        "request": info.to_log_dict(),
        "user": info.user,
        "app": {
            "environment": settings.environment,
            "version": settings.app_version,
            "python_version": platform.python_version(),
        },
    }

    bound = logger.bind(metadata=metadata)
    if isinstance(failure, OperationalFailure):
        bound.warning(message)
    else:
        bound.error(message)
