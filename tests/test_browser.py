"""Tests for the shared browser session lifecycle."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from hndigest.config import BrowserSettings
from hndigest.core import browser as browser_module
from hndigest.core.browser import BrowserClient


def _client():
    playwright, browser, context = AsyncMock(), AsyncMock(), AsyncMock()
    return BrowserClient(playwright, browser, context), playwright, browser, context


@pytest.mark.asyncio
class TestBrowserClient:
    async def test_new_page_uses_shared_context(self) -> None:
        client, _, _, context = _client()
        context.new_page.return_value = "page"

        assert await client.new_page() == "page"
        context.new_page.assert_awaited_once()

    async def test_close_is_idempotent(self) -> None:
        client, playwright, browser, context = _client()

        await client.close()
        await client.close()

        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    async def test_playwright_stops_even_if_browser_close_fails(self) -> None:
        client, playwright, browser, _ = _client()
        browser.close.side_effect = RuntimeError("Target closed")

        with pytest.raises(RuntimeError):
            await client.close()
        playwright.stop.assert_awaited_once()

    async def test_launch_passes_settings(self, monkeypatch) -> None:
        playwright = AsyncMock()
        starter = MagicMock()
        starter.start = AsyncMock(return_value=playwright)
        monkeypatch.setattr(browser_module, "async_playwright", lambda: starter)
        settings = BrowserSettings(headless=True, user_agent="TestAgent/1.0", args=("--no-sandbox",))

        client = await BrowserClient.launch(settings)

        playwright.chromium.launch.assert_awaited_once_with(headless=True, args=["--no-sandbox"])
        launched = playwright.chromium.launch.return_value
        launched.new_context.assert_awaited_once_with(user_agent="TestAgent/1.0")
        assert isinstance(client, BrowserClient)

    async def test_failed_launch_stops_playwright(self, monkeypatch) -> None:
        playwright = AsyncMock()
        playwright.chromium.launch.side_effect = RuntimeError("Executable doesn't exist")
        starter = MagicMock()
        starter.start = AsyncMock(return_value=playwright)
        monkeypatch.setattr(browser_module, "async_playwright", lambda: starter)

        with pytest.raises(RuntimeError):
            await BrowserClient.launch()
        playwright.stop.assert_awaited_once()
