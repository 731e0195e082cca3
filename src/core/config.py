"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support.

Features:
- **Type safety**: All configuration values are validated and typed
- **Environment variables**: Supports .env files and environment overrides
- **Nested configuration**: Uses __ delimiter for nested config structures
- **Deployment-mode defaults**: Log verbosity and formatter follow the
  environment unless set explicitly
- **Caching**: Configuration is cached for performance

Configuration sources (in order of precedence):
1. Environment variables
2. .env file in project root
3. Default values in model definitions
4. Environment-based defaults (production vs development)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import DEFAULT_SENSITIVE_FIELDS

type LogLevelName = Literal["DEBUG", "INFO", "HTTP", "WARNING", "ERROR"]


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevelName | None = Field(
        default=None,
        description="Minimum log level. Derived from the environment if not set.",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Stdout formatter. Derived from the environment if not set.",
    )
    enable_file_logging: bool = Field(
        default=True,
        description="Write combined, error and http log files",
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory holding the log files",
    )
    rotation: str = Field(
        default="20 MB",
        description="Size (or interval) after which a log file is rotated",
    )
    retention: str = Field(
        default="14 days",
        description="How long rotated log files are kept",
    )
    compression: str | None = Field(
        default="zip",
        description="Compression applied to rotated log files",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths to exclude from request and performance logging",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_FIELDS),
        description="Key substrings whose values are redacted before logging",
    )
    max_body_size: int = Field(
        default=64 * 1024,
        gt=0,
        description="Largest request body (bytes) parsed for logging",
    )

    @field_validator("compression", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class CorsConfig(BaseModel):
    """Cross-origin resource sharing policy."""

    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:8085"],
        description="Origins allowed to call the API",
    )
    allowed_methods: list[str] = Field(
        default_factory=lambda: ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        description="HTTP methods allowed for cross-origin requests",
    )
    allow_credentials: bool = Field(
        default=True,
        description="Allow cookies and authorization headers cross-origin",
    )
    expose_headers: list[str] = Field(
        default_factory=lambda: ["X-Request-ID"],
        description="Response headers readable by the browser",
    )


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="Vigil", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    # Logging configuration
    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )

    # CORS configuration
    cors_config: CorsConfig = Field(
        default_factory=CorsConfig, description="CORS policy"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_level is None:
            self.log_config.log_level = (
                "INFO" if self.environment == "production" else "DEBUG"
            )

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = (
                "console" if self.environment == "development" else "json"
            )

    @property
    def is_production(self) -> bool:
        """Whether the application runs in production mode."""
        return self.environment == "production"

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        # cls is the Settings class, required by Pydantic validators
        _ = cls
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
