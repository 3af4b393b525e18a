"""Shared fakes for the HN Digest test-suite.

The fakes stand in for Playwright pages/browsers so scraping and content
fetching can be tested against fixture HTML without launching Chromium.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from hndigest.core.article import Article


class FakeElement:
    def __init__(self, fail: bool = False) -> None:
        self.clicked = False
        self.fail = fail

    async def click(self, **kwargs) -> None:
        if self.fail:
            raise RuntimeError("element is not visible")
        self.clicked = True


class FakePage:
    """Minimal async page: ``goto`` looks the URL up in ``responses``."""

    def __init__(self, responses: Dict[str, object], selectors: Dict[str, List[FakeElement]]) -> None:
        self.responses = responses
        self.selectors = selectors
        self.html = ""
        self.visited: List[str] = []
        self.queried: List[str] = []
        self.routes: list = []
        self.handlers: dict = {}
        self.navigation_timeout: Optional[float] = None
        self.closed = False

    async def goto(self, url: str, **kwargs) -> None:
        self.visited.append(url)
        value = self.responses.get(url)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise TimeoutError(f"Timeout exceeded while navigating to {url}")
        self.html = value

    async def content(self) -> str:
        return self.html

    async def route(self, pattern: str, handler) -> None:
        self.routes.append((pattern, handler))

    def set_default_navigation_timeout(self, timeout: float) -> None:
        self.navigation_timeout = timeout

    def on(self, event: str, handler) -> None:
        self.handlers[event] = handler

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        self.queried.append(selector)
        return self.selectors.get(selector, [])

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, responses: Optional[Dict[str, object]] = None,
                 selectors: Optional[Dict[str, List[FakeElement]]] = None) -> None:
        self.responses = responses or {}
        self.selectors = selectors or {}
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self.responses, self.selectors)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_article():
    def _make(hn_id: int, content: Optional[str] = None, **kwargs) -> Article:
        kwargs.setdefault("title", f"Story {hn_id}")
        kwargs.setdefault("link", f"https://example.com/{hn_id}")
        return Article(hn_id=hn_id, content=content, **kwargs)

    return _make
