"""
Run orchestration for HN Digest.

Scrapes https://news.ycombinator.com/front and https://news.ycombinator.com,
fetches article content, summarizes a capped subset and saves everything.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from hndigest.config import Settings, WorkflowSettings
from hndigest.core.article import Article, CategorizedArticles, articles_with_content, categorize_articles
from hndigest.core.browser import BrowserClient
from hndigest.core.processor import ContentProcessor
from hndigest.core.summarizer import ArticleSummarizer
from hndigest.fetchers.content import ContentFetcher
from hndigest.fetchers.hackernews import HackerNewsScraper
from hndigest.services.github import CommitHashProvider
from hndigest.storage.database import ArticleStore
from hndigest.utils.llm import LLMClient

logger = logging.getLogger(__name__)


def merge_articles(top_articles: List[Article], categorized: CategorizedArticles) -> List[Article]:
    """
    Top stories first, then flagged, dead and duplicate stories.

    An article already merged (same ``hn_id``) is not added twice.
    """
    merged = []
    seen = set()
    for article in [*top_articles, *categorized.flagged, *categorized.dead, *categorized.dupe]:
        if article.hn_id in seen:
            continue
        seen.add(article.hn_id)
        merged.append(article)
    return merged


def select_for_summary(processed: List[Article], top_articles: Iterable[Article],
                       flagged_articles: Iterable[Article], max_top: int,
                       max_total: int) -> Tuple[List[Article], List[Article]]:
    """
    Pick the articles to summarize.

    Up to ``max_top`` top stories with content are taken first; flagged stories
    with content fill whatever is left of ``max_total``.

    Args:
        processed: Merged articles after content fetching
        top_articles: Articles from the front page
        flagged_articles: Flagged articles from /front
        max_top: Cap on summarized top stories
        max_total: Cap on all summarized articles

    Returns:
        (top stories to summarize, flagged stories to summarize), both in merge order
    """
    top_selected = articles_with_content(processed, top_articles)[:max(0, min(max_top, max_total))]
    taken = {article.hn_id for article in top_selected}

    remaining = max(0, max_total - len(top_selected))
    flagged_candidates = [a for a in articles_with_content(processed, flagged_articles) if a.hn_id not in taken]
    return top_selected, flagged_candidates[:remaining]


def order_for_persistence(processed: List[Article], summarized_top: List[Article],
                          summarized_flagged: List[Article]) -> List[Article]:
    """
    Unsummarized articles, then summarized flagged, then summarized top stories.

    Each group is reversed so the highest-ranked article of the group is written last.
    """
    summarized_ids = {a.hn_id for a in summarized_top} | {a.hn_id for a in summarized_flagged}
    unsummarized = [a for a in processed if a.hn_id not in summarized_ids]
    return [*reversed(unsummarized), *reversed(summarized_flagged), *reversed(summarized_top)]


class Workflow:
    """
    One scrape-fetch-summarize-save run. Owns the browser and the database
    connection and releases both when the run ends.
    """
    def __init__(self, scraper: HackerNewsScraper, processor: ContentProcessor,
                 summarizer: ArticleSummarizer, store: ArticleStore,
                 provenance: CommitHashProvider, settings: Optional[WorkflowSettings] = None,
                 browser: Optional[BrowserClient] = None):
        self.scraper = scraper
        self.processor = processor
        self.summarizer = summarizer
        self.store = store
        self.provenance = provenance
        self.settings = settings or WorkflowSettings()
        self.browser = browser

    @classmethod
    async def create(cls, settings: Settings) -> 'Workflow':
        """
        Launch the browser, open the database and wire every component.

        Args:
            settings: Full application settings

        Returns:
            A ready Workflow
        """
        browser = await BrowserClient.launch(settings.browser)
        try:
            store = ArticleStore(settings.database)
        except Exception:
            await browser.close()
            raise

        fetcher = ContentFetcher(browser, settings.fetcher)
        return cls(
            scraper=HackerNewsScraper(browser, settings.scraper),
            processor=ContentProcessor(fetcher, settings.fetcher),
            summarizer=ArticleSummarizer(LLMClient(settings.summarizer), settings.summarizer),
            store=store,
            provenance=CommitHashProvider(settings.github),
            settings=settings.workflow,
            browser=browser,
        )

    async def scrape_recycled(self) -> List[Article]:
        if self.settings.front_day:
            return await self.scraper.scrape_front_for_day(self.settings.front_day, self.settings.max_front_pages)
        return await self.scraper.scrape_front(self.settings.max_front_pages)

    async def summarize_selected(self, processed: List[Article], top_articles: List[Article],
                                 flagged_articles: List[Article]) -> List[Article]:
        """
        Summarize the capped selection and return every article in persistence order.
        """
        top_selected, flagged_selected = select_for_summary(
            processed,
            top_articles,
            flagged_articles,
            self.settings.max_summarized_top,
            self.settings.max_summarized_total,
        )
        logger.info(
            f"Summarizing {len(top_selected)} top stories and {len(flagged_selected)} flagged stories"
        )
        summarized_top = await self.summarizer.summarize_all(top_selected)
        summarized_flagged = await self.summarizer.summarize_all(flagged_selected)

        selected_ids = {a.hn_id for a in summarized_top} | {a.hn_id for a in summarized_flagged}
        for article in processed:
            if article.hn_id not in selected_ids and article.summary is None:
                article.summary = self.settings.default_summary

        return order_for_persistence(processed, summarized_top, summarized_flagged)

    async def run(self) -> List[Article]:
        """
        Execute the run and release resources whatever happens.

        Returns:
            The saved articles, in the order they were written

        Raises:
            Any exception from scraping, summarization bookkeeping or saving;
            resources are still released
        """
        try:
            front_articles = await self.scrape_recycled()
            categorized = categorize_articles(front_articles)
            logger.info(
                f"Recycled feed: {len(categorized.flagged)} flagged, "
                f"{len(categorized.dead)} dead, {len(categorized.dupe)} duplicate"
            )

            top_articles = await self.scraper.scrape_top_stories(self.settings.max_top_pages)

            all_articles = merge_articles(top_articles, categorized)
            processed = await self.processor.process_articles(all_articles)

            final_articles = await self.summarize_selected(processed, top_articles, categorized.flagged)

            commit_hash = await self.provenance.get_commit_hash()
            for article in final_articles:
                article.commit_hash = commit_hash

            self.store.save_articles(final_articles)
            logger.info(f"Workflow completed. Saved {len(final_articles)} articles @ {commit_hash}")
            return final_articles
        except Exception as e:
            logger.error(f"Workflow execution error: {e}")
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Close the browser and the database independently. Errors are logged, not raised."""
        if self.browser is not None:
            try:
                await self.browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")

        if self.store is not None:
            try:
                self.store.close()
            except Exception as e:
                logger.error(f"Error closing database: {e}")

        logger.info("Resources released")
