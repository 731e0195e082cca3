"""Sensitive data sanitization for secure request and error logging.

This module prevents sensitive information from being written to logs. Any
key containing one of the configured sensitive substrings (compared
case-insensitively) has its value replaced with a redaction marker, at any
nesting depth.

Key features:
- **Configurable fields**: The substring set comes from the log configuration
- **Deep sanitization**: Recursive handling of nested mappings and sequences
- **Header protection**: Well-known credential headers are always redacted
- **Copy semantics**: The caller's data is never mutated

Security considerations:
- Sanitization is applied at logging time, not storage time
- Original data remains unchanged, only logged copies are sanitized
- There is no cycle detection: recursion depth equals input depth, so
  cyclic structures must not be passed in
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode

from src.core.config import get_settings
from src.core.constants import REDACTED
from src.core.types import JsonValue

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-auth-token",
    "x-csrf-token",
    "set-cookie",
    "x-secret-key",
    "proxy-authorization",
}


def _configured_fields() -> tuple[str, ...]:
    """Get the configured sensitive fields, lowercased.

    Returns:
        tuple[str, ...]: Sensitive key substrings from settings.
    """
    settings = get_settings()
    return tuple(field.lower() for field in settings.log_config.sensitive_fields)


def _lowered(sensitive_fields: Iterable[str] | None) -> tuple[str, ...]:
    if sensitive_fields is None:
        return _configured_fields()
    return tuple(field.lower() for field in sensitive_fields)


def is_sensitive_field(field_name: str, sensitive_fields: Iterable[str]) -> bool:
    """Check if a field name contains any of the sensitive substrings.

    Args:
        field_name: The field name to check.
        sensitive_fields: Lowercased sensitive substrings.

    Returns:
        bool: True if the field appears to contain sensitive data.
    """
    field_lower = field_name.lower()
    return any(field in field_lower for field in sensitive_fields)


def _sanitize(value: Any, fields: tuple[str, ...]) -> Any:  # noqa: ANN401 - arbitrary nested data
    if isinstance(value, Mapping):
        return {
            key: (
                REDACTED
                if isinstance(key, str) and is_sensitive_field(key, fields)
                else _sanitize(item, fields)
            )
            for key, item in value.items()
        }

    if isinstance(value, list):
        return [_sanitize(item, fields) for item in value]

    if isinstance(value, tuple):
        return tuple(_sanitize(item, fields) for item in value)

    return value


def sanitize_data(
    data: Any,  # noqa: ANN401 - arbitrary nested data
    sensitive_fields: Iterable[str] | None = None,
) -> Any:  # noqa: ANN401 - same shape as the input
    """Return a copy of ``data`` with sensitive values redacted.

    Mappings are rebuilt key by key and sequences element by element, so the
    result has the same shape as the input while sharing none of its
    containers. Scalars pass through unchanged unless their own key matched.

    Args:
        data: Nested mapping (or any other value, returned as is).
        sensitive_fields: Key substrings to redact. Defaults to the
            configured ``log_config.sensitive_fields``.

    Returns:
        Any: Sanitized deep copy of the container structure.
    """
    if data is None:
        return None

    return _sanitize(data, _lowered(sensitive_fields))


def sanitize_query_string(
    query_string: str,
    sensitive_fields: Iterable[str] | None = None,
) -> str:
    """Redact the values of sensitive parameters in a URL query string.

    Args:
        query_string: Raw query string, without the leading ``?``.
        sensitive_fields: Key substrings to redact, see sanitize_data().

    Returns:
        str: The re-encoded query string.
    """
    if not query_string:
        return ""

    fields = _lowered(sensitive_fields)
    pairs = parse_qsl(query_string, keep_blank_values=True)
    return urlencode(
        [
            (key, REDACTED if is_sensitive_field(key, fields) else value)
            for key, value in pairs
        ]
    )


def sanitize_headers(
    headers: Mapping[str, str],
    sensitive_fields: Iterable[str] | None = None,
) -> dict[str, JsonValue]:
    """Sanitize HTTP headers.

    Args:
        headers: Headers mapping.
        sensitive_fields: Key substrings to redact, see sanitize_data().

    Returns:
        dict[str, JsonValue]: Sanitized headers.
    """
    sanitized: dict[str, JsonValue] = sanitize_data(dict(headers), sensitive_fields)
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in sanitized.items()
    }
