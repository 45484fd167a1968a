"""
Tests for Google News query construction.
"""

from urllib.parse import parse_qs, urlparse

import pytest

from conftest import make_settings
from newsnexus_requester.models.domain import QuerySpec
from newsnexus_requester.services.data_ingestion.query_builder import (
    GOOGLE_NEWS_RSS_SEARCH_URL,
    QueryBuilder,
    normalize_term,
    normalize_time_range,
    split_terms,
)


def build(**fields):
    return QueryBuilder(make_settings()).build(QuerySpec(**fields))


class TestTerms:
    """Tests for term splitting and quoting."""

    def test_split_terms_trims_and_drops_empty(self):
        assert split_terms(" a, b ,,c , ") == ["a", "b", "c"]
        assert split_terms("") == []
        assert split_terms(None) == []

    def test_multi_word_term_is_quoted(self):
        assert normalize_term("supply chain") == '"supply chain"'

    def test_quoted_terms_are_unchanged(self):
        assert normalize_term('"supply chain"') == '"supply chain"'
        assert normalize_term("'supply chain'") == "'supply chain'"

    def test_single_word_is_unchanged(self):
        assert normalize_term("layoffs") == "layoffs"

    def test_mismatched_quotes_are_wrapped(self):
        assert normalize_term("'supply chain\"") == "\"'supply chain\"\""


class TestTimeRange:
    """Tests for time range normalization."""

    def test_blank_uses_default_without_flag(self):
        assert normalize_time_range("") == ("180d", False)
        assert normalize_time_range("   ") == ("180d", False)
        assert normalize_time_range(None) == ("180d", False)

    @pytest.mark.parametrize("value", ["abc", "0d", "-5d", "7", "7 d", "1w", "d"])
    def test_invalid_uses_default_with_flag(self, value):
        assert normalize_time_range(value) == ("180d", True)

    def test_valid_passes_through(self):
        assert normalize_time_range("30d") == ("30d", False)
        assert normalize_time_range(" 7d ") == ("7d", False)


class TestQueryBuilder:
    """Tests for QueryBuilder.build."""

    def test_and_and_or_terms(self):
        built = build(and_keywords="a,b", or_keywords="c,d")

        assert built.query == "a b (c OR d) when:180d"
        assert built.query.index("a b") < built.query.index("(c OR d)")
        assert built.time_range == "180d"
        assert not built.time_range_invalid

    def test_single_or_term_with_and_is_not_parenthesized(self):
        built = build(and_keywords="a", or_keywords="c")
        assert built.query == "a c when:180d"

    def test_or_terms_alone_are_not_parenthesized(self):
        built = build(or_keywords="c,d", or_exact_phrases="big news")
        assert built.query == 'c OR d OR "big news" when:180d'

    def test_keywords_then_phrases(self):
        built = build(
            and_keywords="layoffs",
            and_exact_phrases="supply chain, 'rate cut'",
            time_range="30d",
        )
        assert built.query == "layoffs \"supply chain\" 'rate cut' when:30d"

    def test_no_terms_yields_only_time_clause(self):
        built = build()
        assert built.query == "when:180d"
        assert built.and_string is None
        assert built.or_string is None

    def test_invalid_time_range_is_flagged(self):
        built = build(and_keywords="a", time_range="-5d")
        assert built.query == "a when:180d"
        assert built.time_range == "180d"
        assert built.time_range_invalid

    def test_audit_strings_use_raw_terms(self):
        built = build(
            and_keywords="layoffs, strike",
            and_exact_phrases="supply chain",
            or_keywords="",
            or_exact_phrases="'rate cut'",
        )
        assert built.and_string == "layoffs, strike, supply chain"
        assert built.or_string == "'rate cut'"

    def test_request_url(self):
        built = build(and_keywords="supply chain", or_keywords="c,d", time_range="7d")
        parsed = urlparse(built.request_url)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == GOOGLE_NEWS_RSS_SEARCH_URL
        params = parse_qs(parsed.query)
        assert params["q"] == ['"supply chain" (c OR d) when:7d']
        assert params["hl"] == ["en-US"]
        assert params["gl"] == ["US"]
        assert params["ceid"] == ["US:en"]

    def test_locale_overrides(self):
        builder = QueryBuilder(make_settings(google_rss_hl="fr", google_rss_gl="FR", google_rss_ceid="FR:fr"))
        params = parse_qs(urlparse(builder.build_rss_url("x when:1d")).query)

        assert params["hl"] == ["fr"]
        assert params["gl"] == ["FR"]
        assert params["ceid"] == ["FR:fr"]
