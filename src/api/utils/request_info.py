"""Per-request context record used by the request, error and capture loggers.

RequestInfo is a read-only snapshot of the parts of a request that are
logged: its request ID, method, URL, client address and the sanitized
headers, query, path parameters and body. It is rebuilt from the ASGI scope
by each stage that logs, so it always reflects what the stage can see (path
parameters, for instance, only exist once a route has matched).
"""

from dataclasses import dataclass, field
from typing import Any

from starlette.requests import Request

from src.api.constants import (
    MAX_USER_AGENT_LENGTH,
    STATE_REQUEST_BODY,
    STATE_REQUEST_ID,
    STATE_USER,
)
from src.core.config import Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import (
    sanitize_data,
    sanitize_headers,
    sanitize_query_string,
)


def get_client_ip(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Extract the client IP, considering proxy headers when trusted.

    Args:
        request: The incoming request.
        trust_proxy_headers: Honour X-Forwarded-For / X-Real-IP. Only
            enable behind a proxy that sets them (production).

    Returns:
        str: The client IP address, or "unknown".
    """
    if trust_proxy_headers:
        # Try X-Forwarded-For first (standard proxy header)
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            # Take the first IP (original client)
            return forwarded_for.split(",")[0].strip()

        # Try X-Real-IP (nginx)
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if request.client:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    """Extract the user agent, truncated to keep log lines bounded.

    Args:
        request: The incoming request.

    Returns:
        str: The user agent string or "unknown".
    """
    ua = request.headers.get("user-agent", "")
    return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"


def get_state(request: Request, key: str) -> Any:  # noqa: ANN401 - state values are untyped
    """Read a value stored in the request's scope state.

    Args:
        request: The request.
        key: State key.

    Returns:
        Any: The stored value or None.
    """
    state = request.scope.get("state") or {}
    return state.get(key)


def get_request_id(request: Request) -> str | None:
    """Get the ID assigned to the request at ingress.

    Args:
        request: The request.

    Returns:
        str | None: The ID from the scope state or the request context.
    """
    return get_state(request, STATE_REQUEST_ID) or RequestContext.get_request_id()


def get_request_settings(request: Request) -> Settings:
    """Get the settings of the application serving the request.

    Args:
        request: The current request.

    Returns:
        Settings: ``app.state.settings`` when set by create_app(), else the
            cached settings.
    """
    app = request.scope.get("app")
    settings = getattr(getattr(app, "state", None), "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def loggable_url(
    path: str, query_string: str, sensitive_fields: list[str] | None = None
) -> str:
    """Build the URL written to logs, with sensitive query values redacted.

    Args:
        path: Request path.
        query_string: Raw query string.
        sensitive_fields: Key substrings to redact. Defaults to the
            configured sensitive fields.

    Returns:
        str: The path, followed by the sanitized query string if any.
    """
    query = sanitize_query_string(query_string, sensitive_fields)
    return f"{path}?{query}" if query else path


def _user_reference(user: object) -> dict[str, Any] | None:
    if user is None:
        return None
    user_id = user.get("id") if isinstance(user, dict) else getattr(user, "id", None)
    return {"id": user_id}


@dataclass(frozen=True, slots=True)
class RequestInfo:
    """Sanitized snapshot of a request for logging."""

    request_id: str | None
    method: str
    url: str
    path: str
    client_ip: str
    user_agent: str
    headers: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    user: dict[str, Any] | None = None

    @classmethod
    def from_request(
        cls,
        request: Request,
        *,
        trust_proxy_headers: bool = False,
        sensitive_fields: list[str] | None = None,
    ) -> "RequestInfo":
        """Build the snapshot from a request.

        Args:
            request: The request.
            trust_proxy_headers: See get_client_ip().
            sensitive_fields: Key substrings to redact. Defaults to the
                configured sensitive fields.

        Returns:
            RequestInfo: The sanitized snapshot.
        """
        return cls(
            request_id=get_state(request, STATE_REQUEST_ID),
            method=request.method,
            url=loggable_url(
                request.url.path, request.url.query, sensitive_fields
            ),
            path=request.url.path,
            client_ip=get_client_ip(request, trust_proxy_headers=trust_proxy_headers),
            user_agent=get_user_agent(request),
            headers=sanitize_headers(request.headers, sensitive_fields),
            query=sanitize_data(dict(request.query_params), sensitive_fields),
            params=sanitize_data(dict(request.path_params), sensitive_fields),
            body=sanitize_data(
                get_state(request, STATE_REQUEST_BODY), sensitive_fields
            ),
            user=_user_reference(get_state(request, STATE_USER)),
        )

    def to_log_dict(self) -> dict[str, Any]:
        """Return the metadata logged for an incoming or failing request.

        Returns:
            dict[str, Any]: Request fields keyed for structured logs.
        """
        return {
            "request_id": self.request_id,
            "method": self.method,
            "url": self.url,
            "ip": self.client_ip,
            "user_agent": self.user_agent,
            "headers": self.headers,
            "query": self.query,
            "params": self.params,
            "body": self.body,
        }
