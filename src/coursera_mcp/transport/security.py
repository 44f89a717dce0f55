"""Host allow-list and API key checks for the HTTP binding."""

from __future__ import annotations

import hmac
import json
import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from coursera_mcp.exceptions import ProtocolError, UnauthorizedError
from coursera_mcp.types.json_rpc import dump_message

logger = logging.getLogger(__name__)

LOOPBACK_BIND_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})
LOOPBACK_ALLOWED_HOSTS = ("localhost:*", "127.0.0.1:*", "[::1]:*")


def default_allowed_hosts(bind_host: str, allowed_hosts: list[str] | None) -> list[str] | None:
    """Resolve the effective allow-list.

    Returns ``None`` when every Host header is acceptable.
    """
    if allowed_hosts:
        return list(allowed_hosts)
    if bind_host in LOOPBACK_BIND_HOSTS:
        return list(LOOPBACK_ALLOWED_HOSTS)
    return None


def _hostname_from_host(host: str) -> str:
    """Extract hostname from Host header (strip optional port)."""
    if host.startswith("["):
        idx = host.find("]:")
        if idx != -1:
            return host[: idx + 1]
        return host
    return host.split(":", 1)[0]


def host_allowed(host: str | None, allowed_hosts: list[str]) -> bool:
    """Match a Host header against ``allowed_hosts``.

    Supports:
    - Exact match: ``example.com``, ``127.0.0.1:8080``
    - Wildcard port: ``example.com:*`` matches ``example.com`` with any port
    - Subdomain wildcard: ``*.mysite.com`` matches ``mysite.com`` and any subdomain,
      ``*.mysite.com:*`` additionally allows any port
    """
    if not host:
        return False

    if host in allowed_hosts:
        return True

    hostname = _hostname_from_host(host)
    for allowed in allowed_hosts:
        if allowed.startswith("*."):
            pattern = allowed[:-2] if allowed.endswith(":*") else allowed
            base_domain = pattern[2:]
            if base_domain and (hostname == base_domain or hostname.endswith("." + base_domain)):
                return True
        elif allowed.endswith(":*"):
            base_host = allowed[:-2]
            if host == base_host or host.startswith(base_host + ":"):
                return True
    return False


def extract_api_key(headers: Headers) -> str | None:
    """Read the API key from ``X-API-Key`` or ``Authorization`` (with or without ``Bearer``)."""
    api_key = headers.get("x-api-key")
    if api_key:
        return api_key
    authorization = headers.get("authorization")
    if not authorization:
        return None
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


async def send_protocol_error(send: Send, error: ProtocolError) -> None:
    """Send ``error`` as a JSON-RPC error body with no request id."""
    body_bytes = json.dumps(dump_message(error.to_response())).encode()
    await send(
        {
            "type": "http.response.start",
            "status": int(error.status_code),
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body_bytes)).encode()),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body_bytes})


class HostValidationMiddleware:
    """Reject requests whose Host header is not on the allow-list.

    Protects loopback-bound servers against DNS rebinding.
    """

    def __init__(self, app: ASGIApp, allowed_hosts: list[str] | None):
        self.app = app
        self.allowed_hosts = allowed_hosts

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self.allowed_hosts is None:
            await self.app(scope, receive, send)
            return

        host = Headers(scope=scope).get("host")
        if not host_allowed(host, self.allowed_hosts):
            logger.warning("Invalid Host header: %s", host)
            await send_protocol_error(send, ProtocolError("Forbidden: invalid Host header", status_code=403))
            return

        await self.app(scope, receive, send)


class RequireApiKeyMiddleware:
    """Middleware that requires the configured API key before any session logic runs."""

    def __init__(self, app: ASGIApp, api_key: str):
        self.app = app
        self.api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        provided = extract_api_key(Headers(scope=scope))
        if provided is None or not hmac.compare_digest(provided.encode(), self.api_key.encode()):
            logger.warning("Rejected request with missing or invalid API key")
            await send_protocol_error(send, UnauthorizedError())
            return

        await self.app(scope, receive, send)
