"""Command line launcher for the Vigil service."""

import os
from typing import Any

import uvicorn
from loguru import logger

from src.api.main import app
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging

APP_IMPORT_STRING = "src.api.main:app"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def uvicorn_log_config() -> dict[str, Any]:
    """Build the dictConfig handing uvicorn's own records to Loguru.

    Returns:
        dict[str, Any]: Logging configuration for ``uvicorn.run``.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {"default": {"class": "src.core.logging.InterceptHandler"}},
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }


def listening_port(settings: Settings) -> int:
    """Get the port to bind, preferring the platform's PORT variable.

    Args:
        settings: Application settings.

    Returns:
        int: The port number.
    """
    return int(os.environ.get("PORT", settings.api_port))


def main() -> None:
    """Configure logging and serve the application with uvicorn."""
    settings = get_settings()
    setup_logging(settings)

    port = listening_port(settings)
    reload = settings.debug

    logger.info(
        "Serving {} on http://{}:{}",
        settings.app_name,
        settings.api_host,
        port,
        reload=reload,
    )
    # The reloader re-imports the application in a worker process
    uvicorn.run(
        APP_IMPORT_STRING if reload else app,
        host=settings.api_host,
        port=port,
        reload=reload,
        log_config=uvicorn_log_config(),
    )


if __name__ == "__main__":
    main()
