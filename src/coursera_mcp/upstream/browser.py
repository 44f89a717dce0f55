"""Headless browser access for pages Coursera only renders client-side."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import anyio
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from coursera_mcp.config import CourseraSettings, parse_cookie_header
from coursera_mcp.exceptions import UpstreamError
from coursera_mcp.upstream import scripts
from coursera_mcp.upstream.client import USER_AGENT

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 800}
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

# Bounded wait for the content selector; pages with another layout are extracted anyway.
SELECTOR_TIMEOUT_MS = 10_000
SETTLE_MS = 2_000

BrowserLauncher = Callable[[], Awaitable[Browser]]


def build_cookies(settings: CourseraSettings) -> list[dict[str, Any]]:
    """Translate the configured credentials into Playwright cookie records."""
    cookies: list[dict[str, Any]] = []
    token = settings.auth_token
    if token:
        cookies.append(
            {
                "name": "CAUTH",
                "value": token,
                "domain": settings.cookie_domain,
                "path": "/",
                "httpOnly": True,
                "secure": True,
            }
        )
    if settings.cookies:
        for name, value in parse_cookie_header(settings.cookies):
            if name == "CAUTH":
                continue
            cookies.append({"name": name, "value": value, "domain": settings.cookie_domain, "path": "/"})
    return cookies


class BrowserHandle:
    """A lazily launched Chromium instance owned by one session.

    The browser is launched on first use, at most once, and shared by every tool
    invocation of the session. Each invocation gets its own context and page,
    which are closed when the invocation finishes. :meth:`aclose` closes the
    browser itself and is safe to call more than once.
    """

    def __init__(self, settings: CourseraSettings, *, launcher: BrowserLauncher | None = None) -> None:
        self.settings = settings
        self._launcher = launcher or self._launch_chromium
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = anyio.Lock()
        self._closed = False
        self.launch_count = 0

    @property
    def launched(self) -> bool:
        return self._browser is not None

    async def _launch_chromium(self) -> Browser:
        self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.settings.headless, args=LAUNCH_ARGS)

    async def get_browser(self) -> Browser:
        """Return the session's browser, launching it on first use."""
        async with self._lock:
            if self._closed:
                raise UpstreamError("Browser handle is closed")
            if self._browser is None:
                logger.info("Launching headless browser")
                try:
                    self._browser = await self._launcher()
                except PlaywrightError as e:
                    raise UpstreamError(f"Could not launch browser: {e}") from e
                self.launch_count += 1
            return self._browser

    @asynccontextmanager
    async def new_page(self) -> AsyncIterator[Page]:
        """Open an authenticated page in a fresh context; both are closed on exit."""
        browser = await self.get_browser()
        context = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
        try:
            cookies = build_cookies(self.settings)
            if cookies:
                await context.add_cookies(cookies)
            page = await context.new_page()
            yield page
        finally:
            with anyio.CancelScope(shield=True):
                await context.close()

    async def goto(self, page: Page, url: str, *, settle_ms: int = SETTLE_MS) -> None:
        """Navigate and wait for the network to go idle, then let client-side rendering settle."""
        logger.info("Fetching: %s", url)
        try:
            await page.goto(url, wait_until="networkidle", timeout=self.settings.navigation_timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise UpstreamError(f"Timed out loading {url}") from e
        except PlaywrightError as e:
            raise UpstreamError(f"Failed to load {url}: {e}") from e
        if settle_ms:
            await page.wait_for_timeout(settle_ms)

    async def fetch_content(
        self,
        url: str,
        *,
        wait_for: str = scripts.CONTENT_READY_SELECTOR,
        extract_text: bool = True,
    ) -> dict[str, Any]:
        """Render ``url`` and extract its main content.

        Returns a dict with ``title``, ``url`` (after redirects), ``content``
        (text, or HTML when ``extract_text`` is false), ``html`` and ``found_selector``.
        """
        async with self.new_page() as page:
            await self.goto(page, url, settle_ms=0)
            try:
                await page.wait_for_selector(wait_for, timeout=SELECTOR_TIMEOUT_MS)
            except PlaywrightTimeoutError:
                logger.debug("Content selector not found on %s, extracting anyway", url)
            await page.wait_for_timeout(SETTLE_MS)

            try:
                extracted = await page.evaluate(
                    scripts.EXTRACT_MAIN_CONTENT,
                    {
                        "chrome": list(scripts.CHROME_SELECTORS),
                        "candidates": list(scripts.CONTENT_SELECTORS),
                        "minLength": scripts.MIN_CONTENT_LENGTH,
                    },
                )
                title = await page.title()
            except PlaywrightError as e:
                raise UpstreamError(f"Failed to extract content from {url}: {e}") from e

            return {
                "title": title,
                "url": page.url,
                "content": extracted["text"] if extract_text else extracted["html"],
                "html": extracted["html"],
                "found_selector": extracted["selector"],
            }

    async def evaluate(self, page: Page, script: str, arg: Any = None) -> Any:
        try:
            return await page.evaluate(script, arg)
        except PlaywrightError as e:
            raise UpstreamError(f"Failed to extract content from {page.url}: {e}") from e

    async def aclose(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            browser, self._browser = self._browser, None
            playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                logger.info("Closing headless browser")
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()
