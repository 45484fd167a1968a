"""
NewsNexus Google RSS requester.

Builds Google News RSS searches from a query spreadsheet, stores the
discovered articles and hands off to the semantic scorer.
"""

__version__ = "0.4.0"
