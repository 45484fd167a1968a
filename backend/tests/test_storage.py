"""
Tests for request and article persistence.

Each test runs against a fresh SQLite file in tmp_path.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select, text

from newsnexus_requester.core.errors import PersistenceError
from newsnexus_requester.models.database import (
    Database,
    DBAggregatorSource,
    DBArticle,
    DBArticleContent,
    DBEntityWhoFoundArticle,
    DBNewsApiRequest,
)
from newsnexus_requester.models.domain import (
    FeedItem,
    FetchResult,
    FetchStatus,
    RequestMeta,
)
from newsnexus_requester.services.data_ingestion.storage import IngestionStore

REQUEST_URL = "https://news.google.com/rss/search?q=layoffs+when%3A7d&hl=en-US&gl=US&ceid=US%3Aen"


def meta(status: FetchStatus = FetchStatus.SUCCESS) -> RequestMeta:
    return RequestMeta(
        request_url=REQUEST_URL,
        and_string="layoffs",
        or_string=None,
        status=status,
    )


def items(*links, content=None) -> FetchResult:
    return FetchResult(
        status=FetchStatus.SUCCESS,
        items=[
            FeedItem(
                title=f"Title {i}",
                description=f"Description {i}",
                link=link,
                pub_date="Mon, 15 Jan 2024 09:00:00 GMT",
                source="Reuters",
                content=content,
            )
            for i, link in enumerate(links)
        ],
    )


async def count(database: Database, model) -> int:
    async with database.async_session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


def run_with_db(database_url, scenario):
    async def runner():
        database = Database(database_url)
        await database.create_tables()
        try:
            return await scenario(database, IngestionStore(database))
        finally:
            await database.dispose()

    return asyncio.run(runner())


class TestEnsureIdentity:
    """Tests for IngestionStore.ensure_identity."""

    def test_creates_source_and_entity(self, database_url):
        async def scenario(database, store):
            ids = await store.ensure_identity("AcmeWatch")

            async with database.async_session() as session:
                source = await session.get(DBAggregatorSource, ids.source_id)
                entity = await session.get(DBEntityWhoFoundArticle, ids.finder_id)

            assert source.name_of_org == "AcmeWatch"
            assert source.is_rss is True
            assert source.is_api is False
            assert entity.news_article_aggregator_source_id == source.id

        run_with_db(database_url, scenario)

    def test_is_idempotent(self, database_url):
        async def scenario(database, store):
            first = await store.ensure_identity("AcmeWatch")
            second = await store.ensure_identity("AcmeWatch")

            assert first == second
            assert await count(database, DBAggregatorSource) == 1
            assert await count(database, DBEntityWhoFoundArticle) == 1

        run_with_db(database_url, scenario)

    def test_distinct_names_get_distinct_identities(self, database_url):
        async def scenario(database, store):
            acme = await store.ensure_identity("AcmeWatch")
            other = await store.ensure_identity("OtherWatch")

            assert acme.source_id != other.source_id
            assert acme.finder_id != other.finder_id

        run_with_db(database_url, scenario)

    def test_failure_raises_persistence_error(self, database_url):
        async def scenario():
            database = Database(database_url)  # tables never created
            try:
                with pytest.raises(PersistenceError):
                    await IngestionStore(database).ensure_identity("AcmeWatch")
            finally:
                await database.dispose()

        asyncio.run(scenario())


class TestPersist:
    """Tests for IngestionStore.persist."""

    def test_stores_request_and_articles(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            outcome = await store.persist(meta(), items("https://a.example/1", "https://a.example/2"), identity)

            assert outcome.received_count == 2
            assert outcome.saved_count == 2

            async with database.async_session() as session:
                request = await session.get(DBNewsApiRequest, outcome.request_id)
                articles = (await session.execute(select(DBArticle).order_by(DBArticle.id))).scalars().all()

            assert request.count_of_articles_received_from_request == 2
            assert request.count_of_articles_saved_to_db_from_request == 2
            assert request.status == "success"
            assert request.url == REQUEST_URL
            assert request.and_string == "layoffs"
            assert request.or_string is None
            assert request.not_string is None
            assert request.is_from_automation is True
            assert request.news_article_aggregator_source_id == identity.source_id
            assert request.date_end_of_request == datetime.now(timezone.utc).date()

            assert [a.url for a in articles] == ["https://a.example/1", "https://a.example/2"]
            first = articles[0]
            assert first.title == "Title 0"
            assert first.description == "Description 0"
            assert first.publication_name == "Reuters"
            assert first.published_date == "Mon, 15 Jan 2024 09:00:00 GMT"
            assert first.entity_who_found_article_id == identity.finder_id
            assert first.news_api_request_id == outcome.request_id

        run_with_db(database_url, scenario)

    def test_same_result_twice_saves_nothing_new(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            result = items("https://a.example/1", "https://a.example/2", "https://a.example/3")

            first = await store.persist(meta(), result, identity)
            second = await store.persist(meta(), result, identity)

            assert first.saved_count == 3
            assert second.saved_count == 0
            assert second.received_count == 3
            assert await count(database, DBArticle) == 3
            assert await count(database, DBNewsApiRequest) == 2

        run_with_db(database_url, scenario)

    def test_items_without_link_are_skipped(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            outcome = await store.persist(meta(), items(None, "", "https://a.example/1"), identity)

            assert outcome.received_count == 3
            assert outcome.saved_count == 1
            assert await count(database, DBArticle) == 1

        run_with_db(database_url, scenario)

    def test_duplicate_links_within_a_batch_are_saved_once(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            outcome = await store.persist(meta(), items("https://a.example/1", "https://a.example/1"), identity)

            assert outcome.saved_count == 1
            assert await count(database, DBArticle) == 1

        run_with_db(database_url, scenario)

    def test_url_match_is_exact(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            outcome = await store.persist(
                meta(),
                items("https://a.example/1", "https://a.example/1/", "https://A.example/1"),
                identity,
            )

            assert outcome.saved_count == 3

        run_with_db(database_url, scenario)

    def test_article_keeps_first_request(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            first = await store.persist(meta(), items("https://a.example/1"), identity)
            await store.persist(meta(), items("https://a.example/1"), identity)

            async with database.async_session() as session:
                article = (await session.execute(select(DBArticle))).scalar_one()

            assert article.news_api_request_id == first.request_id

        run_with_db(database_url, scenario)

    def test_content_is_stored_when_present(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            await store.persist(meta(), items("https://a.example/1", content="Full text"), identity)
            await store.persist(meta(), items("https://a.example/2"), identity)

            async with database.async_session() as session:
                contents = (await session.execute(select(DBArticleContent))).scalars().all()
                article = (
                    await session.execute(select(DBArticle).where(DBArticle.url == "https://a.example/1"))
                ).scalar_one()

            assert len(contents) == 1
            assert contents[0].content == "Full text"
            assert contents[0].article_id == article.id

        run_with_db(database_url, scenario)

    def test_failed_fetch_is_recorded(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            failed = FetchResult(status=FetchStatus.ERROR, items=[], error="RSS request failed with status 503")
            outcome = await store.persist(meta(FetchStatus.ERROR), failed, identity)

            async with database.async_session() as session:
                request = await session.get(DBNewsApiRequest, outcome.request_id)

            assert outcome.received_count == 0
            assert outcome.saved_count == 0
            assert request.status == "error"
            assert request.count_of_articles_saved_to_db_from_request == 0

        run_with_db(database_url, scenario)

    def test_item_failure_aborts_rest_of_batch(self, database_url):
        async def scenario(database, store):
            identity = await store.ensure_identity("AcmeWatch")
            async with database.engine.begin() as conn:
                await conn.execute(text(
                    "CREATE TRIGGER reject_article BEFORE INSERT ON articles "
                    "WHEN NEW.url = 'https://a.example/2' "
                    "BEGIN SELECT RAISE(ABORT, 'article rejected'); END"
                ))

            with pytest.raises(PersistenceError, match="article rejected"):
                await store.persist(
                    meta(),
                    items("https://a.example/1", "https://a.example/2", "https://a.example/3"),
                    identity,
                )

            async with database.async_session() as session:
                urls = (await session.execute(select(DBArticle.url))).scalars().all()
                request = (await session.execute(select(DBNewsApiRequest))).scalar_one()

            assert urls == ["https://a.example/1"]
            assert request.count_of_articles_received_from_request == 3
            assert request.count_of_articles_saved_to_db_from_request == 0

        run_with_db(database_url, scenario)
