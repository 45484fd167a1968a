"""
Error taxonomy for the requester.

Fatal errors (everything except FetchError) end the run with exit code 1.
FetchError never escapes the feed fetcher; it is folded into an error
FetchResult so the run can continue with the next row.
"""


class RequesterError(Exception):
    """Base class for all requester errors."""


class ConfigError(RequesterError):
    """A required setting is missing or malformed."""


class FetchError(RequesterError):
    """The feed could not be fetched or parsed."""


class PersistenceError(RequesterError):
    """A store operation failed; partial ingestion state is unsafe to continue past."""


class RowSourceError(RequesterError):
    """The query spreadsheet is unreadable or missing required columns."""


class ScorerError(RequesterError):
    """The downstream semantic scorer could not be run or exited non-zero."""
