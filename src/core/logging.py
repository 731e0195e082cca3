"""Structured logging system built on Loguru.

This module configures Loguru for the request-lifecycle logger: a
human-readable console sink for development, a JSON sink for deployed
environments, and three size-rotated log files split by purpose.

Features:
- **Ordered levels**: debug < info < http < warn < error, with a custom
  ``HTTP`` level registered between INFO and WARNING
- **Structured records**: ``{timestamp, level, message, metadata}``
- **Context propagation**: The request ID bound with ``logger.contextualize``
  is folded into every record's metadata
- **Log channels**: combined, error-only and http-performance files, each
  rotated, retention-bounded and compressed by Loguru
- **Best effort**: Sinks are added with ``catch=True`` so a failing sink
  reports to stderr instead of raising into the request path
- **Standard library integration**: Captures uvicorn logs
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Final, Protocol, cast

from loguru import logger

from src.core.constants import HTTP_LEVEL, HTTP_LEVEL_NO
from src.core.types import LogMetadata


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


class LogConfigProtocol(Protocol):
    """Protocol for log configuration objects."""

    @property
    def log_level(self) -> str | None:
        """Minimum logging level."""
        ...

    @property
    def log_formatter_type(self) -> str | None:
        """Stdout formatter type."""
        ...

    @property
    def enable_file_logging(self) -> bool:
        """Whether log files are written."""
        ...

    @property
    def log_dir(self) -> Path:
        """Directory for log files."""
        ...

    @property
    def rotation(self) -> str:
        """Rotation policy."""
        ...

    @property
    def retention(self) -> str:
        """Retention policy."""
        ...

    @property
    def compression(self) -> str | None:
        """Compression of rotated files."""
        ...


class SettingsProtocol(Protocol):
    """Protocol for settings objects that setup_logging can accept."""

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        ...

    @property
    def log_config(self) -> LogConfigProtocol:
        """Log configuration."""
        ...


# Constants
DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
MAX_FIELD_VALUE_LENGTH: Final[int] = 100
COMBINED_LOG_FILE: Final[str] = "combined.log"
ERROR_LOG_FILE: Final[str] = "error.log"
HTTP_LOG_FILE: Final[str] = "http.log"


def register_http_level() -> None:
    """Register the HTTP level between INFO and WARNING if it is missing."""
    try:
        logger.level(HTTP_LEVEL)
    except ValueError:
        logger.level(HTTP_LEVEL, no=HTTP_LEVEL_NO, color="<magenta>")


register_http_level()


def _format_extra_field(key: str, value: object) -> str | None:
    """Format an extra field for display.

    Args:
        key: The field name.
        value: The field value.

    Returns:
        str | None: Formatted field or None if formatting fails.
    """
    try:
        str_value = str(value)
        if len(str_value) > MAX_FIELD_VALUE_LENGTH:
            # Limit length of field values to prevent huge console lines
            str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."

        # Escape braces to prevent format string errors
        str_value = str_value.replace("{", "{{").replace("}", "}}")
        safe_key = str(key).replace("{", "{{").replace("}", "}}")
    except (AttributeError, TypeError, ValueError) as e:
        logger.trace(f"Failed to format extra field {key}: {e}")
        return None
    else:
        return f"{safe_key}={str_value}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Format the request ID and metadata fields of a record.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: List of formatted context parts.
    """
    context_parts = []

    if request_id := extra.get("request_id"):
        context_parts.append(f"<yellow>{request_id}</yellow>")

    metadata = extra.get("metadata")
    if isinstance(metadata, dict):
        for key, value in metadata.items():
            if key == "request_id" or value is None:
                continue
            formatted = _format_extra_field(key, value)
            if formatted:
                context_parts.append(f"<dim>{formatted}</dim>")

    return context_parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format log record for console with the request context inline.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format template for this record.
    """
    try:
        time_str = str(record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3])
        level_name = record["level"].name

        parts = [
            f"<green>{time_str}</green>",
            f"<level>{level_name: <8}</level>",
            f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
        ]

        context_parts = _format_context_fields(record.get("extra", {}))
        if context_parts:
            parts.append(" ".join(f"[{part}]" for part in context_parts))

        message = str(record.get("message", "")).replace("{", "{{").replace("}", "}}")
        parts.append(message)

        if record.get("exception"):
            parts.append("\n{exception}")

        return " | ".join(parts) + "\n"
    except (AttributeError, TypeError, ValueError, KeyError) as e:
        # Fallback to default format if anything goes wrong
        logger.trace(f"Failed to format log record: {e}")
        return DEFAULT_LOG_FORMAT + "\n"


def build_log_entry(record: dict[str, Any]) -> dict[str, Any]:
    """Build the structured ``{timestamp, level, message, metadata}`` entry.

    Extra fields bound to the record (such as the contextualized request ID)
    are merged into the metadata; explicitly logged metadata wins on
    conflicts. Internal fields starting with ``_`` are dropped.

    Args:
        record: Loguru record.

    Returns:
        dict[str, Any]: The log entry.
    """
    extra = record.get("extra", {})
    metadata: LogMetadata = {
        key: value
        for key, value in extra.items()
        if not key.startswith("_") and key != "metadata"
    }
    if isinstance(explicit := extra.get("metadata"), dict):
        metadata.update(explicit)

    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "metadata": metadata,
    }

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return log_entry


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format log record as a single JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    return json.dumps(build_log_entry(record), default=str) + "\n"


def format_json_file(record: dict[str, Any]) -> str:
    """Loguru format callable writing the JSON entry to file sinks.

    Loguru treats the return value of a format callable as a template, so
    the serialized entry is stashed in the record and referenced from it.

    Args:
        record: Loguru record to format.

    Returns:
        str: Format template referencing the serialized entry.
    """
    record["extra"]["_serialized"] = serialize_for_json(record).rstrip("\n")
    return "{extra[_serialized]}\n"


def _is_http_record(record: dict[str, Any]) -> bool:
    return bool(record["level"].name == HTTP_LEVEL)


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru.

    This handler captures logs from libraries using standard logging
    and forwards them to Loguru for consistent formatting.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        try:
            frame = sys._getframe(6)
            depth = 6
            while frame and frame.f_code.co_filename == logging.__file__:
                next_frame = frame.f_back
                if next_frame is None:
                    break
                frame = next_frame
                depth += 1
        except ValueError:
            # _getframe can fail if there aren't enough frames
            depth = 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _add_file_sinks(log_config: LogConfigProtocol, level: str) -> None:
    """Add the combined, error and http file sinks.

    Args:
        log_config: Log configuration with directory and rotation policy.
        level: Minimum level for the combined log.
    """
    log_dir = Path(log_config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    file_options: dict[str, Any] = {
        "format": format_json_file,
        "rotation": log_config.rotation,
        "retention": log_config.retention,
        "compression": log_config.compression,
        "enqueue": True,
        "catch": True,
        "encoding": "utf-8",
    }

    logger.add(log_dir / COMBINED_LOG_FILE, level=level, **file_options)
    logger.add(log_dir / ERROR_LOG_FILE, level="ERROR", **file_options)
    logger.add(
        log_dir / HTTP_LOG_FILE,
        level=HTTP_LEVEL,
        filter=cast("Any", _is_http_record),
        **file_options,
    )


def setup_logging(settings: SettingsProtocol) -> None:
    """Configure Loguru sinks from the log configuration.

    Args:
        settings: Application settings containing log configuration.

    Note:
        This function ensures it's only called once using module state.
    """
    if _state.configured:
        return

    # Remove default handler
    logger.remove()

    log_config = settings.log_config
    level = log_config.log_level or "DEBUG"
    formatter_type = log_config.log_formatter_type or "console"

    if formatter_type == "console":
        # Human-readable console format for development with full context
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=level,
            enqueue=True,
            colorize=True,
            catch=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: object) -> None:
            """Custom sink that formats and writes structured logs."""
            if hasattr(message, "record"):
                sys.stdout.write(serialize_for_json(message.record))
                sys.stdout.flush()

        logger.add(
            structured_sink,
            level=level,
            enqueue=True,  # Thread-safe async logging
            catch=True,
            diagnose=False,  # No variable values in production
            backtrace=False,  # Minimal traceback in production
        )

    if log_config.enable_file_logging:
        _add_file_sinks(log_config, level)

    # Configure standard library logging to use Loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        uvicorn_logger = logging.getLogger(logger_name)
        if not uvicorn_logger.handlers:
            uvicorn_logger.handlers = [InterceptHandler()]
            uvicorn_logger.setLevel(logging.INFO)
            uvicorn_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=level,
        file_logging=log_config.enable_file_logging,
    )

    _state.configured = True
