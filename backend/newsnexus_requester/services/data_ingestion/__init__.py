"""
Data ingestion for the Google News RSS requester.

- Query construction from spreadsheet rows
- RSS fetching and parsing
- Deduplicating article storage
"""

from newsnexus_requester.services.data_ingestion.query_builder import QueryBuilder
from newsnexus_requester.services.data_ingestion.rss import FeedFetcher
from newsnexus_requester.services.data_ingestion.spreadsheet import read_query_spreadsheet
from newsnexus_requester.services.data_ingestion.storage import IngestionStore

__all__ = [
    "QueryBuilder",
    "FeedFetcher",
    "read_query_spreadsheet",
    "IngestionStore",
]
