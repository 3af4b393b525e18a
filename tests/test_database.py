"""Tests for the SQLite article store."""

from __future__ import annotations

import pytest

from hndigest.config import DatabaseSettings
from hndigest.storage.database import ArticleStore
from hndigest.utils.text import NO_SUMMARY


@pytest.fixture
def store(tmp_path):
    store = ArticleStore(DatabaseSettings(path=str(tmp_path / "articles.db"), max_content_length=50))
    yield store
    store.close()


class TestSaveArticles:
    def test_new_article_is_inserted(self, store, make_article) -> None:
        article = make_article(
            101, content="Body", summary="A summary.", upvotes=12, comment_count=3,
            comment_link="https://news.ycombinator.com/item?id=101", flagged=True,
            model_name="llama3.1", commit_hash="abc1234", article_rank=4,
        )

        assert store.save_articles([article]) == 1

        row = store.get_article(101)
        assert row["title"] == "Story 101"
        assert row["link"] == "https://example.com/101"
        assert row["summary"] == "A summary."
        assert row["source"] == "Hacker News"
        assert row["upvotes"] == 12
        assert row["comment_count"] == 3
        assert row["article_rank"] == 4
        assert row["flagged"] == 1 and row["dead"] == 0 and row["dupe"] == 0
        assert row["model_name"] == "llama3.1"
        assert row["commit_hash"] == "abc1234"
        assert row["created_at"] and row["created_at"] == row["updated_at"]

    def test_upsert_is_idempotent_by_hn_id(self, store, make_article) -> None:
        store.save_articles([make_article(7, summary="First.", upvotes=10)])
        store.save_articles([make_article(7, summary="First.", upvotes=25, comment_count=9)])

        assert store.count_articles() == 1
        row = store.get_article(7)
        assert row["upvotes"] == 25
        assert row["comment_count"] == 9

    def test_upsert_keeps_immutable_fields(self, store, make_article) -> None:
        store.save_articles([make_article(8, content="Original body")])
        store.save_articles([make_article(8, content="New body", title="Edited", link="https://example.com/new")])

        row = store.get_article(8)
        assert row["title"] == "Story 8"
        assert row["link"] == "https://example.com/8"
        assert row["content"] == "Original body"

    def test_unattempted_summary_gets_sentinel(self, store, make_article) -> None:
        store.save_articles([make_article(9)])
        assert store.get_article(9)["summary"] == NO_SUMMARY

    def test_unattempted_summary_preserves_stored_one(self, store, make_article) -> None:
        store.save_articles([make_article(10, summary="Kept summary.", model_name="llama3.1")])
        store.save_articles([make_article(10, upvotes=99, dead=True)])

        row = store.get_article(10)
        assert row["summary"] == "Kept summary."
        assert row["model_name"] == "llama3.1"
        assert row["upvotes"] == 99
        assert row["dead"] == 1

    def test_new_summary_replaces_stored_one(self, store, make_article) -> None:
        store.save_articles([make_article(11, summary="Old.")])
        store.save_articles([make_article(11, summary="New.", model_name="mistral")])

        row = store.get_article(11)
        assert row["summary"] == "New."
        assert row["model_name"] == "mistral"

    def test_content_is_truncated(self, store, make_article) -> None:
        store.save_articles([make_article(12, content="x" * 80)])
        assert store.get_article(12)["content"] == "x" * 50

    def test_negative_counts_are_clamped(self, store, make_article) -> None:
        store.save_articles([make_article(13, upvotes=-1, comment_count=-5)])
        row = store.get_article(13)
        assert row["upvotes"] == 0
        assert row["comment_count"] == 0

    def test_empty_batch(self, store) -> None:
        assert store.save_articles([]) == 0
        assert store.count_articles() == 0


class TestUpdates:
    def test_mark_dead_and_duplicate(self, store, make_article) -> None:
        store.save_articles([make_article(20)])

        assert store.mark_article_as_dead(20)
        assert store.mark_article_as_duplicate(20)

        row = store.get_article(20)
        assert row["dead"] == 1
        assert row["dupe"] == 1

    def test_update_summary(self, store, make_article) -> None:
        store.save_articles([make_article(21)])
        assert store.update_article_summary(21, "Rewritten.")
        assert store.get_article(21)["summary"] == "Rewritten."

    def test_updates_on_missing_rows(self, store) -> None:
        assert not store.mark_article_as_dead(404)
        assert not store.mark_article_as_duplicate(404)
        assert not store.update_article_summary(404, "Nothing")
        assert store.get_article(404) is None


class TestConnection:
    def test_close_is_idempotent(self, tmp_path) -> None:
        store = ArticleStore(DatabaseSettings(path=str(tmp_path / "close.db")))
        store.close()
        store.close()
        with pytest.raises(RuntimeError):
            store.count_articles()

    def test_nested_path_is_created(self, tmp_path) -> None:
        path = tmp_path / "data" / "nested" / "hndigest.db"
        store = ArticleStore(DatabaseSettings(path=str(path)))
        store.close()
        assert path.exists()
