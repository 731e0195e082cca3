"""Request body capture for logging.

The loggers need the parsed request body, but an ASGI body can only be
received once. This middleware buffers JSON and URL-encoded bodies of
requests that carry one, parses them into the scope state, and replays the
exact bytes to the downstream application. Other content types (multipart
uploads, binary data) and bodies larger than ``max_body_size`` stream
through untouched and are logged as absent.
"""

from urllib.parse import parse_qsl

import orjson
from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.constants import (
    FORM_CONTENT_TYPES,
    JSON_CONTENT_TYPES,
    REQUEST_BODY_METHODS,
    STATE_REQUEST_BODY,
)


def parse_body(body: bytes, content_type: str) -> object:
    """Parse a buffered request body.

    Args:
        body: Raw body bytes.
        content_type: Media type without parameters, lowercased.

    Returns:
        object: Parsed JSON value or form mapping, None if unparseable.
    """
    if not body:
        return None

    if content_type in JSON_CONTENT_TYPES:
        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError:
            logger.debug("Request body is not valid JSON, not logging it")
            return None

    if content_type in FORM_CONTENT_TYPES:
        return dict(parse_qsl(body.decode("latin-1"), keep_blank_values=True))

    return None


class BodyCaptureMiddleware:
    """Pure ASGI middleware buffering and parsing small request bodies.

    Args:
        app: The ASGI application to wrap.
        max_body_size: Largest body, in bytes, that is buffered and parsed.
    """

    def __init__(self, app: ASGIApp, *, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    def _should_capture(self, scope: Scope, headers: Headers) -> str | None:
        if scope["method"] not in REQUEST_BODY_METHODS:
            return None

        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in JSON_CONTENT_TYPES | FORM_CONTENT_TYPES:
            return None

        content_length = headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                return None

        return content_type

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Buffer the body when it should be logged, then call the app.

        Args:
            scope: ASGI connection scope.
            receive: ASGI receive callable.
            send: ASGI send callable.
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_type = self._should_capture(scope, Headers(scope=scope))
        if content_type is None:
            await self.app(scope, receive, send)
            return

        chunks: list[bytes] = []
        buffered: list[Message] = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                # Client disconnected before sending the whole body
                break
            chunk = message.get("body", b"")
            chunks.append(chunk)
            size += len(chunk)
            more_body = message.get("more_body", False)
            if size > self.max_body_size:
                # Too large to log, the rest streams through unbuffered
                break

        if size <= self.max_body_size:
            scope.setdefault("state", {})[STATE_REQUEST_BODY] = parse_body(
                b"".join(chunks), content_type
            )

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)
