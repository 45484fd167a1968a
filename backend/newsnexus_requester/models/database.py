"""
SQLAlchemy database models for the NewsNexus requester.
Uses SQLAlchemy 2.0 async patterns.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# =============================================================================
# Base
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""
    pass


# =============================================================================
# Requester identity
# =============================================================================

class DBAggregatorSource(Base):
    """Organization on whose behalf requests are made. One row per name."""
    __tablename__ = "news_article_aggregator_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_of_org: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    is_rss: Mapped[bool] = mapped_column(Boolean, default=False)
    is_api: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    entity: Mapped[Optional["DBEntityWhoFoundArticle"]] = relationship(
        back_populates="source", uselist=False
    )
    requests: Mapped[list["DBNewsApiRequest"]] = relationship(back_populates="source")


class DBEntityWhoFoundArticle(Base):
    """Attribution record linking discovered articles to their source (1:1)."""
    __tablename__ = "entity_who_found_articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_article_aggregator_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news_article_aggregator_sources.id"), unique=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    source: Mapped["DBAggregatorSource"] = relationship(back_populates="entity")


# =============================================================================
# Requests
# =============================================================================

class DBNewsApiRequest(Base):
    """One executed feed request, successful or not."""
    __tablename__ = "news_api_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_article_aggregator_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news_article_aggregator_sources.id"), nullable=False
    )
    date_end_of_request: Mapped[date] = mapped_column(Date, nullable=False)
    count_of_articles_received_from_request: Mapped[int] = mapped_column(Integer, default=0)
    count_of_articles_saved_to_db_from_request: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # success, error
    url: Mapped[str] = mapped_column(Text, nullable=False)

    # Audit strings (human readable, comma separated)
    and_string: Mapped[Optional[str]] = mapped_column(Text)
    or_string: Mapped[Optional[str]] = mapped_column(Text)
    not_string: Mapped[Optional[str]] = mapped_column(Text)

    is_from_automation: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    source: Mapped["DBAggregatorSource"] = relationship(back_populates="requests")
    articles: Mapped[list["DBArticle"]] = relationship(back_populates="request")

    __table_args__ = (
        Index("ix_news_api_requests_source", "news_article_aggregator_source_id"),
    )


# =============================================================================
# Articles
# =============================================================================

class DBArticle(Base):
    """Discovered article. The URL is the deduplication key."""
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    publication_name: Mapped[Optional[str]] = mapped_column(String(255))
    title: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    published_date: Mapped[Optional[str]] = mapped_column(String(64))  # As given by the feed
    entity_who_found_article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entity_who_found_articles.id"), nullable=False
    )
    news_api_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news_api_requests.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    request: Mapped["DBNewsApiRequest"] = relationship(back_populates="articles")
    content: Mapped[Optional["DBArticleContent"]] = relationship(
        back_populates="article", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_articles_request", "news_api_request_id"),
    )


class DBArticleContent(Base):
    """Full text of an article, when the feed carried it."""
    __tablename__ = "article_contents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id"), unique=True, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    article: Mapped["DBArticle"] = relationship(back_populates="content")


# =============================================================================
# Database Connection
# =============================================================================

class Database:
    """Database connection manager."""

    def __init__(self, database_url: str):
        self.engine = create_async_engine(
            database_url,
            echo=False,  # Set to True for SQL logging
            future=True,
        )
        self.async_session = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
        )

    async def create_tables(self):
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        """Close all pooled connections."""
        await self.engine.dispose()
