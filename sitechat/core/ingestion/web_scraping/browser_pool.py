"""Shared headless-browser pool with bounded concurrency."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from playwright.async_api import Browser, Page, Playwright, async_playwright

from sitechat.utils.exceptions import RenderError

logger = structlog.get_logger(__name__)


class BrowserPool:
    """Lazily launched Chromium shared by all crawls.

    Every ``page()`` call gets its own isolated browser context, so crawls never
    share cookies or storage. A semaphore bounds how many contexts are open at
    the same time.
    """

    def __init__(
        self,
        max_contexts: int = 2,
        headless: bool = True,
        user_agent: Optional[str] = None,
    ):
        """Initialize the pool without launching a browser."""
        self.max_contexts = max_contexts
        self.headless = headless
        self.user_agent = user_agent
        self._semaphore = asyncio.Semaphore(max_contexts)
        self._launch_lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self.is_running:
                return self._browser  # type: ignore[return-value]

            # A disconnected browser leaves a stale driver behind
            await self._shutdown()

            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self.headless)
            except Exception as e:
                await self._shutdown()
                logger.warning("browser_launch_failed", error=str(e))
                raise RenderError(f"Could not launch headless browser: {e}") from e

            logger.info("browser_launched", headless=self.headless, max_contexts=self.max_contexts)
            return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Acquire a page in a fresh browser context.

        Yields:
            Playwright page; its context is closed on exit

        Raises:
            RenderError: If the browser cannot be launched or the context cannot be created
        """
        async with self._semaphore:
            browser = await self._ensure_browser()
            try:
                context = await browser.new_context(user_agent=self.user_agent)
            except Exception as e:
                raise RenderError(f"Could not open browser context: {e}") from e

            try:
                yield await context.new_page()
            finally:
                await context.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._launch_lock:
            await self._shutdown()
        logger.info("browser_pool_closed")

    async def _shutdown(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("browser_close_failed", error=str(e))
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug("playwright_stop_failed", error=str(e))
            self._playwright = None
