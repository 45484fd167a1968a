"""
Requester job: one pass over the query spreadsheet.

For each row, strictly in order:
1. Build the Google News query and URL
2. Fetch and parse the RSS feed
3. Store the request record and any new articles

After the last row the semantic scorer is launched once.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from newsnexus_requester.config import Settings
from newsnexus_requester.core.errors import ConfigError
from newsnexus_requester.models.database import Database
from newsnexus_requester.models.domain import IdentityIds, QuerySpec, RequestMeta
from newsnexus_requester.services.data_ingestion.query_builder import QueryBuilder
from newsnexus_requester.services.data_ingestion.rss import FeedFetcher
from newsnexus_requester.services.data_ingestion.spreadsheet import read_query_spreadsheet
from newsnexus_requester.services.data_ingestion.storage import IngestionStore
from newsnexus_requester.services.scorer import ScorerLauncher, ScorerParams

logger = structlog.get_logger(__name__)


@dataclass
class RunStats:
    rows_total: int = 0
    rows_skipped: int = 0
    requests_stored: int = 0
    requests_failed: int = 0
    articles_received: int = 0
    articles_saved: int = 0
    errors: list[str] = field(default_factory=list)


class RequesterJob:
    """
    Orchestrates a requester run.

    Collaborators are injected so tests can swap the network, the row
    source and the scorer process.
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        launcher: ScorerLauncher,
        fetcher: Optional[FeedFetcher] = None,
        row_reader: Callable[[str], list[QuerySpec]] = read_query_spreadsheet,
    ):
        self.settings = settings
        self.database = database
        self.launcher = launcher
        self.fetcher = fetcher or FeedFetcher()
        self.row_reader = row_reader

        self.query_builder = QueryBuilder(settings)
        self.store = IngestionStore(database)

    async def run(self) -> RunStats:
        """
        Execute the full run.

        Raises:
            ConfigError: if the organization or spreadsheet path is missing
            RowSourceError: if the spreadsheet cannot be read
            PersistenceError: if a store operation fails
            ScorerError: if the scorer fails
        """
        if not self.settings.query_spreadsheet_path:
            raise ConfigError("Missing PATH_AND_FILENAME_FOR_QUERY_SPREADSHEET_AUTOMATED env var.")
        if not self.settings.name_of_org:
            raise ConfigError("Missing NAME_OF_ORG_REQUESTING_FROM env var.")

        start_time = datetime.now(timezone.utc)
        stats = RunStats()

        await self.database.create_tables()
        identity = await self.store.ensure_identity(self.settings.name_of_org)

        rows = self.row_reader(self.settings.query_spreadsheet_path)
        stats.rows_total = len(rows)
        logger.info("Loaded query rows from spreadsheet", count=len(rows))

        for row in rows:
            await self._process_row(row, identity, stats)

        await self.launcher.launch(ScorerParams.from_settings(self.settings))

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            "Requester run completed",
            elapsed_seconds=elapsed,
            rows=stats.rows_total,
            skipped=stats.rows_skipped,
            failed_requests=stats.requests_failed,
            saved=stats.articles_saved,
        )
        return stats

    async def _process_row(self, row: QuerySpec, identity: IdentityIds, stats: RunStats) -> None:
        built = self.query_builder.build(row)

        if not built.query:
            logger.warning("Skipping row: empty query", row_id=row.id)
            stats.rows_skipped += 1
            return

        if built.time_range_invalid:
            logger.warning(
                "Invalid time_range, using default",
                row_id=row.id,
                given=row.time_range,
                used=built.time_range,
            )
        logger.info(
            "Requesting RSS",
            row_id=row.id,
            time_range=built.time_range,
            time_range_invalid=built.time_range_invalid,
            url=built.request_url,
        )

        result = await self.fetcher.fetch(built.request_url)
        if not result.ok:
            stats.requests_failed += 1
            stats.errors.append(f"row {row.id}: {result.error}")

        outcome = await self.store.persist(
            RequestMeta(
                request_url=built.request_url,
                and_string=built.and_string,
                or_string=built.or_string,
                not_string=None,
                status=result.status,
            ),
            result,
            identity,
        )
        stats.requests_stored += 1
        stats.articles_received += outcome.received_count
        stats.articles_saved += outcome.saved_count
