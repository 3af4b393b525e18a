"""
Hacker News listing scraper for HN Digest.

Two feeds are read: the front page (fresh stories) and ``/front``, which is only
used as a source of stories the site has flagged, killed or marked as duplicates.
"""
import logging
import re
from datetime import datetime
from typing import List, NamedTuple, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from hndigest.config import ScraperSettings
from hndigest.core.article import Article

# Configure logging
logger = logging.getLogger(__name__)

STATUS_MARKERS = {
    'flagged': '[flagged]',
    'dead': '[dead]',
    'dupe': '[dupe]',
}

ITEM_ID_PATTERN = re.compile(r'item\?id=(\d+)')
FRONT_PAGE_PATTERN = re.compile(r'day=(\d{4}-\d{2}-\d{2})&p=(\d+)')
DIGITS_PATTERN = re.compile(r'\d+')


class ScrapeResult(NamedTuple):
    articles: List[Article]
    next_url: Optional[str]


def _first_int(text: Optional[str]) -> int:
    if not text:
        return 0
    match = DIGITS_PATTERN.search(text)
    return int(match.group(0)) if match else 0


class HackerNewsPageExtractor:
    """
    Parses a rendered Hacker News listing page into articles and a next-page URL.
    """
    def __init__(self, front_url: str = ScraperSettings.front_url):
        self.front_url = front_url

    def parse(self, html: str, page_url: str, is_top: bool) -> ScrapeResult:
        """
        Parse a listing page.

        Args:
            html: Rendered page HTML
            page_url: URL the page was loaded from, used to absolutize links
            is_top: True for the front page, False for the /front recycled feed

        Returns:
            ScrapeResult with the kept articles and the next page URL, if any
        """
        soup = BeautifulSoup(html, 'html.parser')
        return ScrapeResult(
            articles=self.extract_submissions(soup, page_url, is_top),
            next_url=self.extract_next_url(soup, page_url, is_top),
        )

    def extract_submissions(self, soup: BeautifulSoup, page_url: str, is_top: bool) -> List[Article]:
        """
        Extract submission rows from a listing page.

        Rows without a discoverable item id are dropped. On the recycled feed only
        rows carrying a [flagged], [dead] or [dupe] marker are kept.

        Args:
            soup: Parsed listing page
            page_url: URL the page was loaded from
            is_top: Whether this is the front-page feed

        Returns:
            List of Article objects in page order
        """
        articles = []
        for row in soup.select('tr.athing.submission'):
            article = self._parse_row(row, page_url, is_top)
            if article is not None:
                articles.append(article)
        return articles

    def extract_next_url(self, soup: BeautifulSoup, page_url: str, is_top: bool) -> Optional[str]:
        """
        Find the "More" link.

        On the recycled feed the link is rebuilt from its ``day`` and ``p`` query
        parameters, since the day can roll over between pages.

        Returns:
            Absolute URL of the next page, or None at the end of the feed
        """
        more_link = soup.select_one('a.morelink')
        if more_link is None or not more_link.get('href'):
            return None

        href = more_link['href']
        if is_top:
            return urljoin(page_url, href)

        match = FRONT_PAGE_PATTERN.search(href)
        if not match:
            logger.warning(f"Unrecognized /front pagination link: {href}")
            return None
        day, page_number = match.group(1), int(match.group(2))
        return f"{self.front_url}?day={day}&p={page_number}"

    def _parse_row(self, row: Tag, page_url: str, is_top: bool) -> Optional[Article]:
        subtext_row = row.find_next_sibling('tr')

        hn_id = self._parse_id(row, subtext_row)
        if not hn_id:
            logger.debug("Skipping row without an item id")
            return None

        rank_el = row.select_one('td.title > span.rank')
        article_rank = int(re.sub(r'\D', '', rank_el.get_text()) or 0) if rank_el else 0

        title_el = row.select_one('td.title > span.titleline a')
        title = title_el.get_text(strip=True) if title_el else 'No title'
        href = title_el.get('href') if title_el else None
        link = urljoin(page_url, href) if href else urljoin(page_url, f'item?id={hn_id}')

        container = title_el.parent if title_el is not None else None
        container_text = container.get_text(' ') if container is not None else ''
        flags = {name: marker in container_text for name, marker in STATUS_MARKERS.items()}
        if not is_top and not any(flags.values()):
            return None

        upvotes = 0
        comment_count = 0
        comment_link = ''
        if subtext_row is not None:
            score_el = subtext_row.select_one('.score')
            upvotes = _first_int(score_el.get_text() if score_el else None)

            for anchor in subtext_row.find_all('a'):
                text = anchor.get_text()
                if 'comment' in text:
                    comment_count = _first_int(text)
                    comment_link = urljoin(page_url, anchor.get('href', ''))
                    break

        return Article(
            hn_id=hn_id,
            title=title,
            link=link,
            article_rank=article_rank,
            flagged=flags['flagged'],
            dead=flags['dead'],
            dupe=flags['dupe'],
            upvotes=upvotes,
            comment_count=comment_count,
            comment_link=comment_link,
            is_top=is_top,
        )

    def _parse_id(self, row: Tag, subtext_row: Optional[Tag]) -> int:
        row_id = row.get('id', '')
        if row_id.isdigit():
            return int(row_id)

        if subtext_row is not None:
            item_link = subtext_row.select_one('a[href*="item?id="]')
            if item_link is not None:
                match = ITEM_ID_PATTERN.search(item_link['href'])
                if match:
                    return int(match.group(1))
        return 0


class HackerNewsScraper:
    """
    Walks the Hacker News listings page by page through a shared browser.
    """
    def __init__(self, browser, settings: Optional[ScraperSettings] = None,
                 extractor: Optional[HackerNewsPageExtractor] = None):
        """
        Initialize the HackerNewsScraper.

        Args:
            browser: Object exposing ``async new_page()`` (see BrowserClient)
            settings: Scraper settings
            extractor: Page extractor, built from settings when omitted
        """
        self.browser = browser
        self.settings = settings or ScraperSettings()
        self.extractor = extractor or HackerNewsPageExtractor(self.settings.front_url)

    async def scrape_page(self, page_url: str, is_top: bool = False) -> ScrapeResult:
        """
        Render one listing page and parse it.

        Any failure is logged and ends the traversal: an empty result with no
        next URL is returned.

        Args:
            page_url: Listing page URL
            is_top: Whether this is the front-page feed

        Returns:
            ScrapeResult for the page
        """
        page = None
        try:
            page = await self.browser.new_page()
            await page.goto(
                page_url,
                wait_until='networkidle',
                timeout=self.settings.navigation_timeout * 1000,
            )
            html = await page.content()
            return self.extractor.parse(html, page_url, is_top)
        except Exception as e:
            logger.error(f"Error scraping {page_url}: {e}")
            return ScrapeResult([], None)
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"Error closing page for {page_url}: {e}")

    async def _traverse(self, start_url: str, is_top: bool, max_pages: Optional[int], label: str) -> List[Article]:
        articles: List[Article] = []
        next_url: Optional[str] = start_url
        page_count = 0

        while next_url and (not max_pages or page_count < max_pages):
            logger.info(f"Scraping {label}: {next_url}")
            result = await self.scrape_page(next_url, is_top)
            articles.extend(result.articles)
            next_url = result.next_url
            page_count += 1

        logger.info(f"Scraped {len(articles)} {label} articles from {page_count} pages")
        return articles

    async def scrape_top_stories(self, max_pages: Optional[int] = None) -> List[Article]:
        """
        Scrape the front page feed.

        Args:
            max_pages: Page ceiling; None or 0 follows "More" links to the end

        Returns:
            All scraped articles in page order
        """
        return await self._traverse(self.settings.top_url, True, max_pages, 'top stories')

    async def scrape_front(self, max_pages: Optional[int] = None) -> List[Article]:
        """
        Scrape the /front feed, keeping only flagged, dead and duplicate stories.

        Args:
            max_pages: Page ceiling, defaults to ``settings.max_front_pages``

        Returns:
            Struck articles in page order
        """
        if max_pages is None:
            max_pages = self.settings.max_front_pages
        return await self._traverse(self.settings.front_url, False, max_pages, 'front')

    async def scrape_front_for_day(self, day: str, max_pages: Optional[int] = None) -> List[Article]:
        """
        Scrape the /front feed for a single day.

        Args:
            day: Day in YYYY-MM-DD form
            max_pages: Optional page ceiling

        Returns:
            Struck articles for that day in page order

        Raises:
            ValueError: If ``day`` is not a valid YYYY-MM-DD date
        """
        datetime.strptime(day, '%Y-%m-%d')
        start_url = f"{self.settings.front_url}?day={day}&p=1"
        return await self._traverse(start_url, False, max_pages, f'front for {day}')
