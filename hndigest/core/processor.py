"""
Article content processing for HN Digest.
"""
import asyncio
import logging
from typing import List, Optional

from tqdm import tqdm

from hndigest.config import FetcherSettings
from hndigest.core.article import Article
from hndigest.utils.http import RateLimiter, host_of

logger = logging.getLogger(__name__)


class ContentProcessor:
    """
    Fetches content for many articles with a bounded number in flight.

    Each fetch holds a slot for the fetch itself plus the inter-request delay,
    and requests to one host are paced by the rate limiter.
    """
    def __init__(self, fetcher, settings: Optional[FetcherSettings] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        """
        Initialize the ContentProcessor.

        Args:
            fetcher: Object exposing ``async fetch_content(url) -> str``
            settings: Fetcher settings (concurrency and delay)
            rate_limiter: Per-host rate limiter, built from settings when omitted
        """
        self.fetcher = fetcher
        self.settings = settings or FetcherSettings()
        self.rate_limiter = rate_limiter or RateLimiter(base_delay=self.settings.request_delay)
        self.semaphore = asyncio.Semaphore(self.settings.max_concurrent)

    async def process_article(self, article: Article) -> Article:
        """
        Fetch content for one article in place. A failure leaves empty content.

        Args:
            article: Article to fill

        Returns:
            The same article
        """
        host = host_of(article.link)
        async with self.semaphore:
            await self.rate_limiter.acquire(host)
            try:
                article.content = await self.fetcher.fetch_content(article.link)
            except Exception as e:
                logger.error(f"Error processing article at {article.link}: {e}")
                article.content = ''

            if article.content:
                self.rate_limiter.report_success(host)
            else:
                self.rate_limiter.report_failure(host)

            await asyncio.sleep(self.settings.request_delay)
        return article

    async def process_articles(self, articles: List[Article]) -> List[Article]:
        """
        Fetch content for every article, keeping articles whose fetch failed.

        Args:
            articles: Articles to fill

        Returns:
            The same list, in the same order
        """
        logger.info(f"Fetching content for {len(articles)} articles...")
        tasks = [asyncio.ensure_future(self.process_article(article)) for article in articles]
        try:
            for task in tqdm(asyncio.as_completed(tasks), total=len(tasks), desc="Fetching articles"):
                await task
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        fetched = sum(1 for article in articles if article.has_content)
        logger.info(f"Fetched content for {fetched}/{len(articles)} articles")
        return articles
