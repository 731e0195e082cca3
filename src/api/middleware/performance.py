"""Request performance logging.

PerformanceLoggingMiddleware starts a high-resolution timer when a request
enters and, once the final body chunk of the response has been sent, logs
the elapsed time and the process memory usage at ``HTTP`` level. The
record is emitted regardless of the response status. If the connection is
aborted before the response completes, nothing is logged.
"""

import time
from typing import Any

import psutil
from loguru import logger
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.constants import STATE_REQUEST_ID
from src.api.utils.request_info import loggable_url
from src.core.constants import BYTES_PER_MEGABYTE, MILLISECONDS_PER_SECOND
from src.core.logging import HTTP_LEVEL


def memory_usage() -> dict[str, float]:
    """Snapshot the current process memory usage.

    Returns:
        dict[str, float]: Resident and virtual size in megabytes and the
            resident share of total system memory in percent.
    """
    process = psutil.Process()
    memory_info = process.memory_info()
    return {
        "rss_mb": round(memory_info.rss / BYTES_PER_MEGABYTE, 2),
        "vms_mb": round(memory_info.vms / BYTES_PER_MEGABYTE, 2),
        "percent": round(process.memory_percent(), 2),
    }


class PerformanceLoggingMiddleware:
    """Pure ASGI middleware logging request latency and memory.

    Args:
        app: The ASGI application.
        excluded_paths: Paths for which no performance record is written.
        sensitive_fields: Query parameters whose values are redacted from
            the logged URL. Defaults to the configured sensitive fields.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        excluded_paths: list[str],
        sensitive_fields: list[str] | None = None,
    ) -> None:
        self.app = app
        self.excluded_paths = set(excluded_paths)
        self.sensitive_fields = sensitive_fields

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Time the request and log when the response is finished.

        Args:
            scope: ASGI connection scope.
            receive: ASGI receive callable.
            send: ASGI send callable.
        """
        if scope["type"] != "http" or scope["path"] in self.excluded_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code: int | None = None

        async def send_and_observe(message: Message) -> None:
            nonlocal status_code
            await send(message)

            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
                self._log_completed(scope, status_code, duration_ms)

        await self.app(scope, receive, send_and_observe)

    def _log_completed(
        self, scope: Scope, status_code: int | None, duration_ms: float
    ) -> None:
        state: dict[str, Any] = scope.get("state") or {}
        query_string = scope.get("query_string", b"").decode("latin-1")
        logger.bind(
            metadata={
                "method": scope["method"],
                "url": loggable_url(
                    scope["path"], query_string, self.sensitive_fields
                ),
                "status": status_code,
                "duration_ms": round(duration_ms, 2),
                "request_id": state.get(STATE_REQUEST_ID),
                "memory": memory_usage(),
            }
        ).log(HTTP_LEVEL, "Request completed")
