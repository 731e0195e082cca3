"""API-related constants."""

# HTTP Status Codes
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
REQUEST_ID_HEADER = "X-Request-ID"

# Request handling
REQUEST_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
MAX_USER_AGENT_LENGTH = 200

# Content types
JSON_CONTENT_TYPES = {"application/json", "text/json"}
FORM_CONTENT_TYPES = {"application/x-www-form-urlencoded"}

# Keys stored in the ASGI scope state
STATE_REQUEST_ID = "request_id"
STATE_REQUEST_BODY = "request_body"
STATE_USER = "user"

# Attribute marking an exception already logged by the async capture wrapper
CAPTURED_ERROR_ATTR = "_captured_by_catch_async"
