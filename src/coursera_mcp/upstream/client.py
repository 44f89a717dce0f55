"""HTTP client for Coursera's private REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from coursera_mcp.config import CourseraSettings
from coursera_mcp.exceptions import REFRESH_CREDENTIAL_HINT, UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MAX_ERROR_BODY = 500


def create_http_client(settings: CourseraSettings, **kwargs: Any) -> httpx.AsyncClient:
    """Create an httpx AsyncClient carrying the Coursera session cookie.

    Defaults:
    - follow_redirects=True
    - timeout from ``settings.http_timeout``
    - browser user agent, cookie header and JSON accept header

    Any keyword argument accepted by httpx.AsyncClient overrides the defaults,
    e.g. ``transport=httpx.MockTransport(...)`` in tests.
    """
    default_kwargs: dict[str, Any] = {
        "follow_redirects": True,
        "timeout": httpx.Timeout(settings.http_timeout),
        "headers": {
            "User-Agent": USER_AGENT,
            "Cookie": settings.cookie_header,
            "Accept": "application/json",
        },
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(**default_kwargs)


class CourseraClient:
    """Authenticated access to ``https://www.coursera.org/api``.

    One instance per session; it owns its httpx client and must be closed with :meth:`aclose`.
    """

    def __init__(self, settings: CourseraSettings, http_client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.api_base = settings.api_base.rstrip("/")
        self._http = http_client or create_http_client(settings)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET an API resource and return decoded JSON (or text for non-JSON responses).

        Raises:
            UpstreamError: on a non-success status, a timeout or a transport failure
        """
        url = f"{self.api_base}/{path.lstrip('/')}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = await self._http.get(url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Coursera API timeout: {url}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Coursera API request failed: {e}") from e

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY]
            hint = REFRESH_CREDENTIAL_HINT if response.status_code in (401, 403) else None
            raise UpstreamError(
                f"Coursera API error {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
                hint=hint,
            )

        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    async def elements(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """GET a ``*.v1``/``*.v2`` collection and return its ``elements`` list."""
        data = await self.get(path, params)
        if isinstance(data, dict):
            return list(data.get("elements") or [])
        return []

    async def aclose(self) -> None:
        await self._http.aclose()
