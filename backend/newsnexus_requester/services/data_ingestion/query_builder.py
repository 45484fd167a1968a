"""
Google News RSS query construction.

Turns one spreadsheet row into a search query in the Google News grammar:
space-separated terms are ANDed, `OR` joins alternatives, quoted strings are
exact phrases and `when:<n>d` limits results to the last n days.
"""

import re
from typing import Optional
from urllib.parse import urlencode

from newsnexus_requester.config import Settings
from newsnexus_requester.models.domain import BuiltQuery, QuerySpec

GOOGLE_NEWS_RSS_SEARCH_URL = "https://news.google.com/rss/search"

DEFAULT_TIME_RANGE = "180d"

TIME_RANGE_PATTERN = re.compile(r"^\d+d$")


def split_terms(value: Optional[str]) -> list[str]:
    """Split a comma-separated cell into trimmed, non-empty terms."""
    if not value:
        return []
    return [term.strip() for term in value.split(",") if term.strip()]


def normalize_term(term: str) -> str:
    """Quote multi-word terms; leave quoted and single-word terms alone."""
    term = term.strip()
    if not term:
        return ""

    # A lone quote character is not a quoted term
    if len(term) >= 2 and term[0] == term[-1] and term[0] in ("'", '"'):
        return term
    if " " in term:
        return f'"{term}"'
    return term


def normalize_time_range(value: Optional[str]) -> tuple[str, bool]:
    """
    Validate a `<days>d` time range.

    Returns:
        Tuple of (time range to use, whether the input was invalid)
    """
    value = (value or "").strip()
    if not value:
        return DEFAULT_TIME_RANGE, False
    if not TIME_RANGE_PATTERN.match(value) or int(value[:-1]) <= 0:
        return DEFAULT_TIME_RANGE, True
    return value, False


def combine_for_audit(keywords: Optional[str], exact_phrases: Optional[str]) -> Optional[str]:
    """Human readable term list stored with the request, or None."""
    parts = split_terms(keywords) + split_terms(exact_phrases)
    if not parts:
        return None
    return ", ".join(parts)


class QueryBuilder:
    """Builds provider queries and request URLs from QuerySpec rows."""

    def __init__(self, settings: Settings):
        self.hl = settings.google_rss_hl
        self.gl = settings.google_rss_gl
        self.ceid = settings.google_rss_ceid

    def build(self, spec: QuerySpec) -> BuiltQuery:
        and_terms = [
            normalize_term(t)
            for t in split_terms(spec.and_keywords) + split_terms(spec.and_exact_phrases)
        ]
        or_terms = [
            normalize_term(t)
            for t in split_terms(spec.or_keywords) + split_terms(spec.or_exact_phrases)
        ]
        and_terms = [t for t in and_terms if t]
        or_terms = [t for t in or_terms if t]

        parts = []
        if and_terms:
            parts.append(" ".join(and_terms))
        if or_terms:
            or_clause = " OR ".join(or_terms)
            # Parenthesize so the OR group binds tighter than the implicit AND
            if and_terms and len(or_terms) > 1:
                or_clause = f"({or_clause})"
            parts.append(or_clause)

        time_range, time_range_invalid = normalize_time_range(spec.time_range)
        parts.append(f"when:{time_range}")

        query = " ".join(parts).strip()

        return BuiltQuery(
            query=query,
            request_url=self.build_rss_url(query),
            and_string=combine_for_audit(spec.and_keywords, spec.and_exact_phrases),
            or_string=combine_for_audit(spec.or_keywords, spec.or_exact_phrases),
            time_range=time_range,
            time_range_invalid=time_range_invalid,
        )

    def build_rss_url(self, query: str) -> str:
        params = {
            "q": query,
            "hl": self.hl,
            "gl": self.gl,
            "ceid": self.ceid,
        }
        return f"{GOOGLE_NEWS_RSS_SEARCH_URL}?{urlencode(params)}"
