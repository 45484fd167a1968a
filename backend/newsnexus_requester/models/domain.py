"""
Domain models for the NewsNexus Google RSS requester.
These are the core entities, independent of database representation.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class FetchStatus(str, Enum):
    """Outcome of a single feed request."""
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# Queries
# =============================================================================

class QuerySpec(BaseModel):
    """One row of the query spreadsheet."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    and_keywords: str = ""
    and_exact_phrases: str = ""
    or_keywords: str = ""
    or_exact_phrases: str = ""
    time_range: str = ""


class BuiltQuery(BaseModel):
    """Provider query derived from a QuerySpec."""
    query: str
    request_url: str
    and_string: Optional[str] = None  # Audit only, never used for the query
    or_string: Optional[str] = None
    time_range: str
    time_range_invalid: bool = False


# =============================================================================
# Feeds
# =============================================================================

class FeedItem(BaseModel):
    """A single normalized <item> from an RSS feed."""
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None  # Unique key for deduplication
    pub_date: Optional[str] = None  # Kept as the feed's string, not reparsed
    source: Optional[str] = None
    content: Optional[str] = None


class FetchResult(BaseModel):
    """Result of fetching one feed URL. Failures are data, not exceptions."""
    status: FetchStatus
    items: list[FeedItem] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.SUCCESS


# =============================================================================
# Execution window
# =============================================================================

class WindowStatus(BaseModel):
    """Whether the current UTC time falls inside the execution window."""
    within_window: bool
    target_time: str
    window_start: str
    window_end: str
    current_time: str
    window_minutes: int


# =============================================================================
# Storage
# =============================================================================

class RequestMeta(BaseModel):
    """Request attributes recorded alongside each fetch attempt."""
    request_url: str
    and_string: Optional[str] = None
    or_string: Optional[str] = None
    not_string: Optional[str] = None
    status: FetchStatus


class IdentityIds(BaseModel):
    """Ids of the aggregator source and finder entity attributing a run."""
    source_id: int
    finder_id: int


class PersistOutcome(BaseModel):
    """Counts reported after persisting one fetch result."""
    request_id: int
    received_count: int
    saved_count: int
