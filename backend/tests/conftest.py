"""Shared fixtures for requester tests."""

import pytest

from newsnexus_requester.config import Settings


# Google News style feed: the description wraps the snippet in a link
SAMPLE_RSS_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>"layoffs" when:7d - Google News</title>
    <item>
      <title>Acme announces layoffs - Reuters</title>
      <link>https://news.example.com/articles/acme-layoffs</link>
      <pubDate>Mon, 15 Jan 2024 09:00:00 GMT</pubDate>
      <description>&lt;a href="https://news.example.com/articles/acme-layoffs" target="_blank"&gt;Acme announces layoffs&lt;/a&gt;&amp;nbsp;&amp;nbsp;&lt;font color="#6f6f6f"&gt;Reuters&lt;/font&gt;</description>
      <source url="https://www.reuters.com">Reuters</source>
    </item>
    <item>
      <title>Plant closure hits town - Local Ledger</title>
      <link>https://news.example.com/articles/plant-closure</link>
      <pubDate>Sun, 14 Jan 2024 15:00:00 GMT</pubDate>
      <description>&lt;p&gt;Hundreds of &lt;b&gt;jobs&lt;/b&gt; lost&lt;/p&gt;</description>
      <source url="https://ledger.example.com">Local Ledger</source>
      <content:encoded>Full story text.</content:encoded>
    </item>
  </channel>
</rss>
"""

EMPTY_RSS_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Nothing here - Google News</title>
  </channel>
</rss>
"""


def make_settings(**overrides) -> Settings:
    """Settings isolated from any .env file in the working directory."""
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'newsnexus_test.db'}"
