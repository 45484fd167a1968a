"""
Persistence of requests and discovered articles.

Articles are deduplicated on their exact URL. Each create is committed on
its own: a request row exists before its items are processed and its saved
count is patched in afterwards. There is no transaction around the
lookup-then-create steps, so concurrent writers to the same database can
race past the existence check.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

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
    FetchResult,
    IdentityIds,
    PersistOutcome,
    RequestMeta,
)

logger = structlog.get_logger(__name__)


class IngestionStore:
    """Stores request records and new articles for a requester run."""

    def __init__(self, database: Database):
        self.database = database

    async def ensure_identity(self, name_of_org: str) -> IdentityIds:
        """
        Find or create the aggregator source and its finder entity.

        Idempotent: repeated calls with the same name return the same ids.

        Raises:
            PersistenceError: on any database failure
        """
        try:
            async with self.database.async_session() as session:
                source = await self._get_or_create_source(session, name_of_org)
                entity = await self._get_or_create_entity(session, source.id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to resolve aggregator source {name_of_org!r}: {e}") from e

        return IdentityIds(source_id=source.id, finder_id=entity.id)

    async def _get_or_create_source(self, session: AsyncSession, name_of_org: str) -> DBAggregatorSource:
        result = await session.execute(
            select(DBAggregatorSource).where(DBAggregatorSource.name_of_org == name_of_org)
        )
        source = result.scalar_one_or_none()
        if source is not None:
            return source

        source = DBAggregatorSource(name_of_org=name_of_org, is_rss=True, is_api=False)
        session.add(source)
        await session.commit()
        logger.info("Created aggregator source", name_of_org=name_of_org, source_id=source.id)
        return source

    async def _get_or_create_entity(self, session: AsyncSession, source_id: int) -> DBEntityWhoFoundArticle:
        result = await session.execute(
            select(DBEntityWhoFoundArticle).where(
                DBEntityWhoFoundArticle.news_article_aggregator_source_id == source_id
            )
        )
        entity = result.scalar_one_or_none()
        if entity is not None:
            return entity

        entity = DBEntityWhoFoundArticle(news_article_aggregator_source_id=source_id)
        session.add(entity)
        await session.commit()
        logger.info("Created finder entity", source_id=source_id, finder_id=entity.id)
        return entity

    async def persist(
        self,
        meta: RequestMeta,
        result: FetchResult,
        identity: IdentityIds,
    ) -> PersistOutcome:
        """
        Record one fetch attempt and store its previously unseen articles.

        Items without a link, or whose link is already stored, are skipped.
        A failure on any item aborts the rest of the batch.

        Args:
            meta: Request URL, audit strings and fetch status
            result: Fetched items (empty for a failed fetch)
            identity: Ids from ensure_identity()

        Returns:
            PersistOutcome with the received and newly saved counts

        Raises:
            PersistenceError: on any database failure
        """
        received_count = len(result.items)

        try:
            async with self.database.async_session() as session:
                request = DBNewsApiRequest(
                    news_article_aggregator_source_id=identity.source_id,
                    date_end_of_request=datetime.now(timezone.utc).date(),
                    count_of_articles_received_from_request=received_count,
                    status=meta.status.value,
                    url=meta.request_url,
                    and_string=meta.and_string,
                    or_string=meta.or_string,
                    not_string=meta.not_string,
                    is_from_automation=True,
                )
                session.add(request)
                await session.commit()

                saved_count = 0
                for item in result.items:
                    if not item.link:
                        continue

                    existing = await session.execute(
                        select(DBArticle.id).where(DBArticle.url == item.link)
                    )
                    if existing.first() is not None:
                        continue

                    article = DBArticle(
                        publication_name=item.source,
                        title=item.title,
                        description=item.description,
                        url=item.link,
                        published_date=item.pub_date,
                        entity_who_found_article_id=identity.finder_id,
                        news_api_request_id=request.id,
                    )
                    session.add(article)
                    await session.commit()
                    saved_count += 1

                    if item.content:
                        session.add(DBArticleContent(article_id=article.id, content=item.content))
                        await session.commit()

                # The saved count is only known once every item has been tried
                request.count_of_articles_saved_to_db_from_request = saved_count
                await session.commit()
                request_id = request.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store request {meta.request_url}: {e}") from e

        logger.info(
            "Stored new articles",
            request_id=request_id,
            saved=saved_count,
            received=received_count,
        )
        return PersistOutcome(
            request_id=request_id,
            received_count=received_count,
            saved_count=saved_count,
        )
