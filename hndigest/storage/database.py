"""
Article storage for HN Digest.
"""
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

from hndigest.config import DatabaseSettings
from hndigest.core.article import SOURCE_NAME, Article
from hndigest.utils.text import NO_SUMMARY

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS articles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        hn_id INTEGER NOT NULL UNIQUE,
        title TEXT NOT NULL,
        link TEXT NOT NULL,
        article_rank INTEGER DEFAULT 0,
        content TEXT,
        summary TEXT NOT NULL,
        source TEXT,
        upvotes INTEGER DEFAULT 0,
        comment_count INTEGER DEFAULT 0,
        comment_link TEXT,
        flagged BOOLEAN DEFAULT 0,
        dead BOOLEAN DEFAULT 0,
        dupe BOOLEAN DEFAULT 0,
        commit_hash TEXT,
        model_name TEXT,
        created_at DATETIME,
        updated_at DATETIME
    )
"""

# A NULL :summary means "not attempted this run": new rows get the sentinel,
# existing rows keep whatever summary they already have.
UPSERT_SQL = """
    INSERT INTO articles (
        hn_id, title, link, article_rank, content, summary, source,
        upvotes, comment_count, comment_link, flagged, dead, dupe,
        commit_hash, model_name, created_at, updated_at
    ) VALUES (
        :hn_id, :title, :link, :article_rank, :content, COALESCE(:summary, :no_summary), :source,
        :upvotes, :comment_count, :comment_link, :flagged, :dead, :dupe,
        :commit_hash, :model_name, :timestamp, :timestamp
    )
    ON CONFLICT(hn_id) DO UPDATE SET
        upvotes = excluded.upvotes,
        comment_count = excluded.comment_count,
        comment_link = excluded.comment_link,
        flagged = excluded.flagged,
        dead = excluded.dead,
        dupe = excluded.dupe,
        summary = CASE WHEN :summary IS NULL THEN articles.summary ELSE excluded.summary END,
        model_name = CASE WHEN :summary IS NULL THEN articles.model_name ELSE excluded.model_name END,
        commit_hash = excluded.commit_hash,
        updated_at = excluded.updated_at
"""


def _now() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')


class ArticleStore:
    """
    SQLite-backed article sink. One connection is held until :meth:`close`.
    """
    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self.settings = settings or DatabaseSettings()
        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        """Open the database and make sure the articles table exists."""
        path = Path(self.settings.path)
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path))
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute(CREATE_TABLE_SQL)
        logger.info(f"Database connected: {path}")

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database connection is closed")
        return self._conn

    def _row_params(self, article: Article, timestamp: str) -> Dict:
        content = article.content or ''
        max_length = self.settings.max_content_length
        return {
            'hn_id': article.hn_id,
            'title': article.title,
            'link': article.link,
            'article_rank': article.article_rank,
            'content': content[:max_length] if len(content) > max_length else content,
            'summary': article.summary or None,
            'no_summary': NO_SUMMARY,
            'source': SOURCE_NAME,
            'upvotes': max(0, article.upvotes),
            'comment_count': max(0, article.comment_count),
            'comment_link': article.comment_link,
            'flagged': article.flagged,
            'dead': article.dead,
            'dupe': article.dupe,
            'commit_hash': article.commit_hash,
            'model_name': article.model_name,
            'timestamp': timestamp,
        }

    def save_articles(self, articles: Iterable[Article]) -> int:
        """
        Insert or update articles in one transaction, keyed by ``hn_id``.

        Existing rows get their counts, flags, comment link, commit hash and
        timestamp refreshed; title, link, content and creation time stay as stored.

        Args:
            articles: Articles to persist

        Returns:
            Number of articles written
        """
        timestamp = _now()
        rows = [self._row_params(article, timestamp) for article in articles]
        if not rows:
            return 0

        with self.connection:
            self.connection.executemany(UPSERT_SQL, rows)
        logger.info(f"Saved {len(rows)} articles")
        return len(rows)

    def _update(self, sql: str, params) -> bool:
        with self.connection:
            cursor = self.connection.execute(sql, params)
        return cursor.rowcount > 0

    def update_article_summary(self, hn_id: int, summary: str) -> bool:
        """Replace an article's summary. Returns False if no such article exists."""
        return self._update(
            "UPDATE articles SET summary = ?, updated_at = ? WHERE hn_id = ?",
            (summary or NO_SUMMARY, _now(), hn_id),
        )

    def mark_article_as_dead(self, hn_id: int) -> bool:
        """Flag an article as dead. Returns False if no such article exists."""
        return self._update(
            "UPDATE articles SET dead = 1, updated_at = ? WHERE hn_id = ?",
            (_now(), hn_id),
        )

    def mark_article_as_duplicate(self, hn_id: int) -> bool:
        """Flag an article as a duplicate. Returns False if no such article exists."""
        return self._update(
            "UPDATE articles SET dupe = 1, updated_at = ? WHERE hn_id = ?",
            (_now(), hn_id),
        )

    def get_article(self, hn_id: int) -> Optional[Dict]:
        """
        Read back a stored article.

        Args:
            hn_id: Hacker News item id

        Returns:
            Dict of column values, or None if not stored
        """
        cursor = self.connection.execute("SELECT * FROM articles WHERE hn_id = ?", (hn_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def count_articles(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM articles").fetchone()[0]

    def close(self):
        """Close the connection. Safe to call twice."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Database connection closed")
