"""
Article content fetching for HN Digest.
"""
import asyncio
import logging
import re
from typing import Optional

import trafilatura
from bs4 import BeautifulSoup

from hndigest.config import FetcherSettings

# Configure logging
logger = logging.getLogger(__name__)

ARXIV_ABS_PATTERN = re.compile(r'^https?://(?:www\.)?arxiv\.org/abs/', re.IGNORECASE)

COOKIE_CONSENT_SELECTORS = [
    '#cookie-banner button',
    '.cookie-consent',
    '#cookie-accept',
    '#onetrust-accept-btn-handler',
]
POPUP_SELECTORS = ['.popup', '.overlay', '.modal', '.modal-dialog']
MAIN_CONTENT_SELECTOR = 'main, article, .post, .text, [role="main"]'
NON_CONTENT_SELECTOR = 'nav, aside, footer, header, .sidebar, .menu, .footer'

WHITESPACE_PATTERN = re.compile(r'\s+')


def is_arxiv_url(url: str) -> bool:
    """True for arXiv abstract pages (``arxiv.org/abs/...``)."""
    return bool(ARXIV_ABS_PATTERN.match(url or ''))


def _clean(text: str) -> str:
    return WHITESPACE_PATTERN.sub(' ', text or '').strip()


def parse_arxiv_abstract(html: str) -> str:
    """
    Render an arXiv abstract page as plain text.

    Args:
        html: Page HTML

    Returns:
        "Title: ...", "Authors: ...", a blank line, then "Abstract:" and the abstract
    """
    soup = BeautifulSoup(html, 'html.parser')

    title_el = soup.select_one('h1.title')
    title = _clean(title_el.get_text(' ')).replace('Title:', '', 1).strip() if title_el else ''

    authors = [_clean(a.get_text()) for a in soup.select('.authors a')]
    authors = [name for name in authors if name]

    abstract_el = soup.select_one('blockquote.abstract')
    abstract = _clean(abstract_el.get_text(' ')).replace('Abstract:', '', 1).strip() if abstract_el else ''

    return '\n'.join([
        f"Title: {title}",
        f"Authors: {', '.join(authors)}",
        '',
        'Abstract:',
        abstract,
    ])


def extract_main_text(html: str) -> str:
    """
    Extract readable body text from a rendered page.

    The first main/article/post/text/role=main container wins. Without one, the
    whole body is used after navigation, sidebars, headers and footers are removed.
    Paragraph texts are joined by blank lines. If no paragraph text is found,
    trafilatura gets a try on the full HTML.

    Args:
        html: Rendered page HTML

    Returns:
        Extracted text, or an empty string
    """
    soup = BeautifulSoup(html, 'html.parser')

    root = soup.select_one(MAIN_CONTENT_SELECTOR)
    if root is None:
        root = soup.body or soup
        for element in root.select(NON_CONTENT_SELECTOR):
            element.decompose()

    paragraphs = [_clean(p.get_text(' ')) for p in root.find_all('p')]
    text = '\n\n'.join(p for p in paragraphs if p)
    if text:
        return text

    extracted = trafilatura.extract(html, include_comments=False, include_tables=False, favor_recall=True)
    return (extracted or '').strip()


class ContentFetcher:
    """
    Fetches article text through the shared headless browser, one page per call.
    """
    def __init__(self, browser, settings: Optional[FetcherSettings] = None):
        """
        Initialize the ContentFetcher.

        Args:
            browser: Object exposing ``async new_page()`` (see BrowserClient)
            settings: Fetcher settings (timeouts, blocked resource types)
        """
        self.browser = browser
        self.settings = settings or FetcherSettings()

    async def _block_heavy_resources(self, route):
        if route.request.resource_type in self.settings.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    @staticmethod
    async def _accept_dialog(dialog):
        logger.info(f"Accepting dialog: {dialog.message}")
        await dialog.accept()

    async def _click_first(self, page, selectors) -> bool:
        for selector in selectors:
            elements = await page.query_selector_all(selector)
            if not elements:
                continue
            try:
                await elements[0].click(timeout=2000)
                return True
            except Exception as e:
                logger.debug(f"Could not click {selector}: {e}")
        return False

    async def accept_cookie_consent(self, page) -> bool:
        """Click the first matching cookie consent control. Returns True if one was clicked."""
        return await self._click_first(page, COOKIE_CONSENT_SELECTORS)

    async def handle_popups(self, page) -> bool:
        """
        Close the first matching popup, overlay or modal.

        When none is found, wait briefly so a native dialog can appear and be
        auto-accepted.
        """
        if await self._click_first(page, POPUP_SELECTORS):
            return True
        await asyncio.sleep(self.settings.dialog_wait)
        return False

    async def fetch_content(self, url: str) -> str:
        """
        Fetch the main text of an article.

        Never raises for navigation or extraction problems: they are logged and
        an empty string is returned.

        Args:
            url: Article URL

        Returns:
            Article text, the arXiv template for abstract pages, or ''
        """
        timeout_ms = self.settings.navigation_timeout * 1000
        page = None
        try:
            page = await self.browser.new_page()
            await page.route('**/*', self._block_heavy_resources)
            page.set_default_navigation_timeout(timeout_ms)
            page.on('dialog', self._accept_dialog)

            await page.goto(url, wait_until='networkidle', timeout=timeout_ms)

            if is_arxiv_url(url):
                content = parse_arxiv_abstract(await page.content())
                logger.info(f"Parsed arXiv page: {url}")
                return content

            if await self.accept_cookie_consent(page):
                logger.info("Cookie consent accepted")
            else:
                logger.info("No cookie consent found")

            if await self.handle_popups(page):
                logger.info("Popup closed")
            else:
                logger.info("No popup found")

            content = extract_main_text(await page.content())
            logger.info(f"Fetched content for: {url}")
            return content
        except Exception as e:
            logger.error(
                f"Failed to fetch content for {url} within "
                f"{self.settings.navigation_timeout:g} seconds: {e}"
            )
            return ''
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"Error closing page for {url}: {e}")
