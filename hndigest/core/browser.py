"""
Headless browser session shared by the scraper and the content fetcher.
"""
import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from hndigest.config import BrowserSettings

logger = logging.getLogger(__name__)


class BrowserClient:
    """
    Owns one Chromium instance and one isolated context for a whole run.

    Pages are opened per use through :meth:`new_page` and must be closed by the caller.
    """
    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._closed = False

    @classmethod
    async def launch(cls, settings: Optional[BrowserSettings] = None) -> 'BrowserClient':
        """
        Start Playwright and launch headless Chromium.

        Args:
            settings: Browser settings (headless flag, user agent, launch args)

        Returns:
            A ready BrowserClient
        """
        settings = settings or BrowserSettings()
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=settings.headless,
                args=list(settings.args),
            )
            context = await browser.new_context(user_agent=settings.user_agent)
        except Exception:
            await playwright.stop()
            raise
        logger.info("Browser launched")
        return cls(playwright, browser, context)

    async def new_page(self) -> Page:
        """Open a fresh page in the shared context."""
        return await self._context.new_page()

    async def close(self) -> None:
        """Close the context, the browser and Playwright itself. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
            await self._browser.close()
        finally:
            await self._playwright.stop()
        logger.info("Browser closed")
