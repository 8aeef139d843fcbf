"""Playwright browser driver adapter.

Owns the browser session for one automation run and exposes the handful of
DOM primitives the extraction engine needs. Everything else (click, type,
goto, screenshot, waits) is called on the Playwright ``Page`` directly.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

BROWSER_ENGINES = ("chromium", "firefox", "webkit")

# DOM property first (textContent, href resolved to absolute), attribute as fallback
READ_ATTRIBUTE_JS = """(elements, name) => elements.map((el) => {
    const value = el[name];
    if (value !== undefined && value !== null) {
        return value;
    }
    return el.getAttribute(name);
})"""

PAGE_TEXT_JS = "() => document.body ? document.body.innerText : ''"
ELEMENT_TEXT_JS = "(el) => el.innerText ?? el.textContent ?? ''"
ELEMENT_HTML_JS = "(el) => el.outerHTML"


def _is_document(root: Any) -> bool:
    # Page and Frame expose content(); ElementHandle does not
    return callable(getattr(root, "content", None))


async def query_all(root: Any, target: str) -> list[Any]:
    """All elements under ``root`` matching a selector (``xpath=`` prefixed for XPath)."""
    return await root.query_selector_all(target)


async def read_all(root: Any, target: str | None, attribute: str) -> list[Any]:
    """Read ``attribute`` from every element under ``root`` matching ``target``."""
    if not target:
        return []
    return await root.eval_on_selector_all(target, READ_ATTRIBUTE_JS, attribute)


async def serialize(root: Any, source: str = "html") -> str:
    """Serialized content of a page or element: outer markup or rendered text."""
    if source == "text":
        if _is_document(root):
            return await root.evaluate(PAGE_TEXT_JS)
        return await root.evaluate(ELEMENT_TEXT_JS)
    if _is_document(root):
        return await root.content()
    return await root.evaluate(ELEMENT_HTML_JS)


class BrowserSession:
    """One browser process and the context all of a run's pages live in.

    Usage:
        session = BrowserSession(headless=True, default_timeout=5000)
        await session.start()
        page = await session.new_page()
        ...
        await session.close()
    """

    def __init__(
        self,
        headless: bool = True,
        engine: str = "chromium",
        default_timeout: float | None = None,
        default_navigation_timeout: float | None = None,
    ) -> None:
        if engine not in BROWSER_ENGINES:
            raise ValueError(f"Unknown browser engine: {engine}")
        self.headless = headless
        self.engine = engine
        self.default_timeout = default_timeout
        self.default_navigation_timeout = default_navigation_timeout

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._closed = False

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Browser not started. Call start() first.")
        return self._browser

    @property
    def is_connected(self) -> bool:
        return bool(self._browser and self._browser.is_connected())

    async def start(self) -> None:
        logger.info("Launching %s (headless=%s)", self.engine, self.headless)
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.engine)
        self._browser = await launcher.launch(headless=self.headless)
        self._context = await self._browser.new_context()
        self._apply_timeouts(self._context)

    async def new_page(self) -> Page:
        """Open a new page in the session's context with the default timeouts applied."""
        if not self._context:
            raise RuntimeError("Browser not started. Call start() first.")
        page = await self._context.new_page()
        self._apply_timeouts(page)
        return page

    def _apply_timeouts(self, target: Any) -> None:
        if self.default_timeout is not None:
            target.set_default_timeout(self.default_timeout)
        if self.default_navigation_timeout is not None:
            target.set_default_navigation_timeout(self.default_navigation_timeout)

    async def wait_closed(self) -> None:
        """Suspend until the browser disconnects (e.g. the operator closed it)."""
        browser = self.browser
        if not browser.is_connected():
            return
        disconnected = asyncio.get_running_loop().create_future()

        def _on_disconnected(_: Any) -> None:
            if not disconnected.done():
                disconnected.set_result(None)

        browser.on("disconnected", _on_disconnected)
        await disconnected

    async def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._browser:
            with suppress(Exception):
                await self._browser.close()
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
        self._browser = None
        self._context = None
        self._playwright = None
        logger.info("Browser session closed")
