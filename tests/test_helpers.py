"""In-memory stand-ins for the Coursera API and the headless browser."""

from collections.abc import Callable
from typing import Any

import httpx
from playwright.async_api import Error as PlaywrightError

from coursera_mcp.config import CourseraSettings
from coursera_mcp.server import CourseraServer, create_coursera_server
from coursera_mcp.tools.handlers import CourseraTools
from coursera_mcp.upstream.browser import BrowserHandle
from coursera_mcp.upstream.client import CourseraClient, create_http_client

ApiHandler = Callable[[httpx.Request], httpx.Response]


class FakePage:
    """Stands in for a Playwright page; script results come from the owning FakeBrowser."""

    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.url = "about:blank"

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.url = url
        self.browser.visited.append(url)

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> None:
        pass

    async def wait_for_timeout(self, timeout: float) -> None:
        pass

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return self.browser.result_for(self.url, script, arg)

    async def title(self) -> str:
        return self.browser.title


class FakeContext:
    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.cookies: list[dict[str, Any]] = []
        self.closed = False

    async def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.cookies.extend(cookies)

    async def new_page(self) -> FakePage:
        return FakePage(self.browser)

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """In-memory browser.

    ``results`` maps a script to its result for every page; ``pages`` maps a URL
    to its own script table. A value may be a callable taking the script argument.
    """

    def __init__(
        self,
        results: dict[str, Any] | None = None,
        *,
        pages: dict[str, dict[str, Any]] | None = None,
        title: str = "Coursera",
    ) -> None:
        self.results = results or {}
        self.pages = pages or {}
        self.title = title
        self.visited: list[str] = []
        self.contexts: list[FakeContext] = []
        self.closed = False

    def result_for(self, url: str, script: str, arg: Any) -> Any:
        table = self.pages.get(url, self.results)
        if script not in table:
            raise PlaywrightError(f"no fake result for script on {url}")
        value = table[script]
        return value(arg) if callable(value) else value

    async def new_context(self, **kwargs: Any) -> FakeContext:
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


def fake_browser_handle(settings: CourseraSettings, browser: FakeBrowser) -> BrowserHandle:
    async def launch() -> Any:
        return browser

    return BrowserHandle(settings, launcher=launch)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, text=f"no route for {request.url.path}")


class RecordingApi:
    """httpx MockTransport handler that records requests and routes by resource name."""

    def __init__(self, routes: dict[str, ApiHandler | Any] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resource = request.url.path.rsplit("/", 1)[-1]
        route = self.routes.get(resource)
        if route is None:
            return not_found(request)
        if callable(route):
            return route(request)
        return json_response(route)

    def resources(self) -> list[str]:
        return [request.url.path.rsplit("/", 1)[-1] for request in self.requests]


def make_client(settings: CourseraSettings, api: RecordingApi) -> CourseraClient:
    return CourseraClient(settings, create_http_client(settings, transport=httpx.MockTransport(api)))


def make_tools(settings: CourseraSettings, api: RecordingApi, browser: FakeBrowser | None = None) -> CourseraTools:
    return CourseraTools(settings, make_client(settings, api), fake_browser_handle(settings, browser or FakeBrowser()))


def make_server(settings: CourseraSettings, api: RecordingApi, browser: FakeBrowser | None = None) -> CourseraServer:
    return create_coursera_server(
        settings,
        client=make_client(settings, api),
        browser=fake_browser_handle(settings, browser or FakeBrowser()),
    )


