"""
Article data model for HN Digest.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

SOURCE_NAME = "Hacker News"


@dataclass
class Article:
    """
    Represents a Hacker News submission with its scraped metadata and content.
    """
    hn_id: int
    title: str
    link: str
    article_rank: int = 0
    flagged: bool = False
    dead: bool = False
    dupe: bool = False
    upvotes: int = 0
    comment_count: int = 0
    comment_link: str = ""
    content: Optional[str] = None
    summary: Optional[str] = None
    model_name: Optional[str] = None
    commit_hash: Optional[str] = None
    is_top: bool = False

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    @property
    def is_struck(self) -> bool:
        """True when the site has flagged, killed or merged the story."""
        return self.flagged or self.dead or self.dupe


@dataclass
class CategorizedArticles:
    """
    Recycled-feed articles bucketed by status. An article can sit in several buckets.
    """
    flagged: List[Article] = field(default_factory=list)
    dead: List[Article] = field(default_factory=list)
    dupe: List[Article] = field(default_factory=list)


def categorize_articles(articles: Iterable[Article]) -> CategorizedArticles:
    """
    Split recycled-feed articles into flagged, dead and duplicate buckets.

    Args:
        articles: Articles scraped from the /front feed

    Returns:
        CategorizedArticles with every article placed in each bucket it qualifies for
    """
    categorized = CategorizedArticles()
    for article in articles:
        if article.flagged:
            categorized.flagged.append(article)
        if article.dead:
            categorized.dead.append(article)
        if article.dupe:
            categorized.dupe.append(article)
    return categorized


def articles_with_content(processed: Iterable[Article], subset: Iterable[Article]) -> List[Article]:
    """
    Return the processed articles that belong to ``subset`` and have fetched content.

    Order follows ``processed``.
    """
    wanted = {article.hn_id for article in subset}
    return [a for a in processed if a.hn_id in wanted and a.has_content]
