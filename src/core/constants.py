"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000
BYTES_PER_MEGABYTE = 1024 * 1024

# Request identification
REQUEST_ID_LENGTH = 16

# Security and redaction
REDACTED = "[REDACTED]"
DEFAULT_SENSITIVE_FIELDS = [
    "password",
    "token",
    "secret",
    "authorization",
    "credit_card",
]

# Log levels
HTTP_LEVEL = "HTTP"
HTTP_LEVEL_NO = 25  # between INFO (20) and WARNING (30)

# Error defaults for the error logger
UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"
DEFAULT_ERROR_STATUS = 500

# Client-safe message for rejected request payloads
VALIDATION_ERROR_MESSAGE = "Request validation failed"
