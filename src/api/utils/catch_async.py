"""Interception of failures raised by asynchronous route handlers.

``catch_async`` wraps a request handler so that any exception it raises is
logged once, with the request that triggered it, and then forwarded to the
application's exception handling, which produces the client response. The
record is the error logger's: sanitized request data, the error's code,
status and operational flag, at warning level for operational errors and
error level for everything else.

The wrapper never swallows a failure and never logs one twice: the exception
is marked as reported so the error logger further down the pipeline skips it.

``CatchAsyncRoute`` applies the wrapper to every route of a router::

    app.router.route_class = CatchAsyncRoute
"""

import functools
from collections.abc import Awaitable, Callable

from fastapi.routing import APIRoute
from loguru import logger
from starlette.requests import Request
from starlette.responses import Response

from src.api.constants import CAPTURED_ERROR_ATTR
from src.api.middleware.request_logging import log_error
from src.api.utils.errors import classify_error
from src.api.utils.request_info import get_request_id, get_request_settings

type RequestHandler = Callable[[Request], Awaitable[Response]]

CAUGHT_ERROR_MESSAGE = "Caught async error"


def report_failure(request: Request, exc: Exception) -> None:
    """Log a handler failure and mark it as reported.

    The mark is only set once the record is written, so a failure that could
    not be logged here is still logged by the error handler.

    Args:
        request: The request the handler was serving.
        exc: The exception the handler raised.
    """
    try:
        settings = get_request_settings(request)
        failure = classify_error(
            exc,
            request_id=get_request_id(request),
            production=settings.is_production,
        )
        log_error(request, failure, settings, message=CAUGHT_ERROR_MESSAGE)
        setattr(exc, CAPTURED_ERROR_ATTR, True)
    except Exception:  # noqa: BLE001 - the handler's own failure is re-raised
        logger.opt(exception=True).error(
            "Error capture failed while handling {}", type(exc).__name__
        )


def catch_async(handler: RequestHandler) -> RequestHandler:
    """Wrap a request handler to log and forward its failures.

    Args:
        handler: Coroutine function handling a request.

    Returns:
        RequestHandler: The wrapped handler.
    """

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        try:
            return await handler(request)
        except Exception as exc:
            report_failure(request, exc)
            raise

    return wrapper


class CatchAsyncRoute(APIRoute):
    """API route whose handler failures go through catch_async()."""

    def get_route_handler(self) -> RequestHandler:
        """Return the framework's route handler wrapped in catch_async().

        Returns:
            RequestHandler: The wrapped handler.
        """
        return catch_async(super().get_route_handler())
