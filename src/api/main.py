"""FastAPI application initialization and configuration module.

This module is the composition root of the Vigil service. It handles:
- Application lifecycle logging (startup/shutdown)
- Middleware registration in the correct order
- Exception handler registration
- Health check and service information endpoints

Middleware are executed in reverse order of registration. The resulting
request path, outermost first, is::

    CORS -> body capture -> request logger -> performance observer
         -> error handler -> framework exception handling -> routes

Every route is created with CatchAsyncRoute, so failures raised by handlers
are logged by the capture wrapper before reaching the error handler.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api.middleware.body_capture import BodyCaptureMiddleware
from src.api.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
)
from src.api.middleware.performance import PerformanceLoggingMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.utils.catch_async import CatchAsyncRoute
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        None: Nothing is yielded, this is just a lifespan context.
    """
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown complete")


def get_app_settings(request: Request) -> Settings:
    """Dependency returning the settings the application was created with.

    Args:
        request: The current request.

    Returns:
        Settings: The application's settings.
    """
    settings = getattr(request.app.state, "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.settings = settings

    # Must be set before any route is declared
    application.router.route_class = CatchAsyncRoute

    register_exception_handlers(application)

    # Last added runs first
    application.add_middleware(ErrorHandlerMiddleware)
    application.add_middleware(
        PerformanceLoggingMiddleware,
        excluded_paths=settings.log_config.excluded_paths,
        sensitive_fields=settings.log_config.sensitive_fields,
    )
    application.add_middleware(RequestLoggingMiddleware, settings=settings)
    application.add_middleware(
        BodyCaptureMiddleware, max_body_size=settings.log_config.max_body_size
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_config.allowed_origins,
        allow_methods=settings.cors_config.allowed_methods,
        allow_credentials=settings.cors_config.allow_credentials,
        allow_headers=["*"],
        expose_headers=settings.cors_config.expose_headers,
    )

    @application.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint for monitoring and load balancers.

        Returns:
            dict[str, str]: The service status.
        """
        return {"status": "healthy"}

    @application.get("/info")
    async def info(
        app_settings: Annotated[Settings, Depends(get_app_settings)],
    ) -> dict[str, Any]:
        """Get application information.

        Args:
            app_settings: Application settings injected via dependency.

        Returns:
            dict[str, Any]: Application information including name, version,
                and environment.
        """
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    return application


app = create_app()
