"""Core package for functionality shared by the whole application.

- **config**: Configuration management with environment support
- **constants**: Values shared across modules
- **context**: Request ID generation and request-scoped context
- **error_context**: Sensitive data sanitization for safe logging
- **exceptions**: Application error type and failure classification results
- **logging**: Loguru sinks, levels and structured record formatting
- **types**: Type aliases
"""
