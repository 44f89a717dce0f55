import httpx
import pytest

from coursera_mcp.config import CourseraSettings
from coursera_mcp.exceptions import REFRESH_CREDENTIAL_HINT, UpstreamError
from coursera_mcp.upstream.client import MAX_ERROR_BODY, USER_AGENT, CourseraClient, create_http_client

pytestmark = pytest.mark.anyio


def _client(settings: CourseraSettings, handler) -> CourseraClient:
    return CourseraClient(settings, create_http_client(settings, transport=httpx.MockTransport(handler)))


async def test_get_sends_credentials_and_decodes_json(settings: CourseraSettings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"elements": [{"id": "c1"}]})

    client = _client(settings, handler)
    try:
        data = await client.get("onDemandCourses.v1", {"q": "slug", "slug": "ml"})
    finally:
        await client.aclose()

    assert data == {"elements": [{"id": "c1"}]}
    request = seen[0]
    assert str(request.url) == "https://www.coursera.org/api/onDemandCourses.v1?q=slug&slug=ml"
    assert request.headers["Cookie"] == "CAUTH=test-cauth"
    assert request.headers["User-Agent"] == USER_AGENT
    assert request.headers["Accept"] == "application/json"


async def test_non_json_response_returns_text(settings: CourseraSettings) -> None:
    client = _client(settings, lambda request: httpx.Response(200, text="plain"))
    assert await client.get("anything") == "plain"
    await client.aclose()


async def test_elements_defaults_to_empty_list(settings: CourseraSettings) -> None:
    client = _client(settings, lambda request: httpx.Response(200, json={"paging": {}}))
    assert await client.elements("memberships.v1") == []
    await client.aclose()


@pytest.mark.parametrize("status_code", [401, 403])
async def test_auth_failures_carry_refresh_hint(settings: CourseraSettings, status_code: int) -> None:
    client = _client(settings, lambda request: httpx.Response(status_code, text="denied"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.get("memberships.v1")
    await client.aclose()

    error = exc_info.value
    assert error.status_code == status_code
    assert error.body == "denied"
    assert error.hint == REFRESH_CREDENTIAL_HINT
    assert error.to_dict() == {"error": f"Coursera API error {status_code}: denied", "hint": REFRESH_CREDENTIAL_HINT}


async def test_error_body_is_truncated(settings: CourseraSettings) -> None:
    client = _client(settings, lambda request: httpx.Response(500, text="x" * 2000))

    with pytest.raises(UpstreamError) as exc_info:
        await client.get("memberships.v1")
    await client.aclose()

    assert exc_info.value.body is not None
    assert len(exc_info.value.body) == MAX_ERROR_BODY
    assert exc_info.value.hint is None


async def test_transport_failure_is_upstream_error(settings: CourseraSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(settings, handler)
    with pytest.raises(UpstreamError, match="request failed"):
        await client.get("memberships.v1")
    await client.aclose()


async def test_timeout_is_upstream_error(settings: CourseraSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(settings, handler)
    with pytest.raises(UpstreamError, match="timeout"):
        await client.get("memberships.v1")
    await client.aclose()


def test_create_http_client_allows_overrides(settings: CourseraSettings) -> None:
    client = create_http_client(settings, follow_redirects=False)
    assert client.follow_redirects is False
    assert client.timeout.read == settings.http_timeout
