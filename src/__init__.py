"""Vigil - request-lifecycle observability and error handling for FastAPI.

Vigil wraps an HTTP service in a pipeline that identifies every request,
logs it with sensitive data redacted, measures how long it took, and turns
every failure into one uniform error response.

Architecture Overview:
- **API Layer**: Middleware pipeline, error handling and the application factory
- **Core Layer**: Configuration, logging, request context, sanitization and
  the error model
"""
