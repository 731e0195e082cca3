"""Request context management utilities for request ID tracking."""

import hashlib
import secrets
import time
from contextvars import ContextVar, Token

from src.core.constants import REQUEST_ID_LENGTH

# Context variable for storing the request ID across async boundaries
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestContext:
    """Manages request context using contextvars for async-safe storage.

    This class provides task-local storage for request-scoped data,
    particularly the request ID that errors and log records constructed
    anywhere inside the request can be attributed to.
    """

    @staticmethod
    def set_request_id(request_id: str) -> Token[str | None]:
        """Set the request ID for the current context.

        Args:
            request_id: The request ID to store in the context.

        Returns:
            Token[str | None]: Token restoring the previous value via reset().
        """
        return _request_id_var.set(request_id)

    @staticmethod
    def get_request_id() -> str | None:
        """Get the request ID from the current context.

        Returns:
            str | None: The request ID if set, None otherwise.
        """
        return _request_id_var.get()

    @staticmethod
    def reset(token: Token[str | None]) -> None:
        """Restore the request ID that was current before set_request_id().

        Args:
            token: Token returned by set_request_id().
        """
        _request_id_var.reset(token)

    @staticmethod
    def clear() -> None:
        """Clear all context variables."""
        _request_id_var.set(None)


def generate_request_id(
    client_host: str | None,
    *,
    timestamp_ms: int | None = None,
    token: str | None = None,
) -> str:
    """Generate a short request ID from time, randomness and client address.

    The millisecond timestamp, a random token and the client address are
    concatenated and hashed with SHA-256; the first 16 hex characters of
    the digest form the ID.

    Args:
        client_host: Client network address (empty when unknown).
        timestamp_ms: Milliseconds since the epoch. Defaults to now.
        token: Random token. Defaults to a fresh secrets.token_hex().

    Returns:
        str: A 16 character lowercase hexadecimal string.

    Examples:
        >>> request_id = generate_request_id("127.0.0.1")
        >>> len(request_id)
        16
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    if token is None:
        token = secrets.token_hex(8)

    seed = f"{timestamp_ms}{token}{client_host or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:REQUEST_ID_LENGTH]
