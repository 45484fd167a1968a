"""
Google News RSS fetching and parsing.

One GET per query URL, bounded by a fixed timeout. Every failure (HTTP
status, transport, malformed XML) is returned as an error FetchResult so
the caller can record the attempt and move on to the next row.
"""

import asyncio
import re
from typing import Optional
from xml.etree import ElementTree

import httpx
import structlog

from newsnexus_requester.core.errors import FetchError
from newsnexus_requester.models.domain import FeedItem, FetchResult, FetchStatus

logger = structlog.get_logger(__name__)

REQUEST_TIMEOUT_SECONDS = 20.0
USER_AGENT = "NewsNexusRequesterGoogleRss04/1.0"

CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"

ANCHOR_PATTERN = re.compile(r"<a[^>]*>(.*?)</a>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]*>")


def extract_anchor_text(html: str) -> Optional[str]:
    """Text of the first hyperlink in `html`, or None if absent or blank."""
    match = ANCHOR_PATTERN.search(html)
    if not match:
        return None
    return match.group(1).strip() or None


def strip_html(html: str) -> str:
    """Remove all markup tags."""
    return TAG_PATTERN.sub("", html).strip()


def clean_description(raw: str) -> str:
    """
    Normalize an item description.

    Google News wraps the real snippet in a link to the article, so the
    anchor text wins; otherwise tags are stripped. If both come out empty
    the raw value is kept.
    """
    return extract_anchor_text(raw) or strip_html(raw) or raw


def _text(element: ElementTree.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None:
        return None
    return child.text


def parse_feed(xml_content: str) -> list[FeedItem]:
    """
    Parse an RSS 2.0 document into feed items.

    A document without rss/channel/item elements is an empty feed, not an
    error.

    Raises:
        FetchError: if the body is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(xml_content)
    except ElementTree.ParseError as e:
        raise FetchError(f"Failed to parse RSS: {e}") from e

    if root.tag != "rss":
        return []
    channel = root.find("channel")
    if channel is None:
        return []

    return [_parse_item(item) for item in channel.findall("item")]


def _parse_item(item: ElementTree.Element) -> FeedItem:
    """Parse a single RSS item."""
    description_raw = _text(item, "description") or ""

    return FeedItem(
        title=_text(item, "title"),
        description=clean_description(description_raw),
        link=_text(item, "link"),
        pub_date=_text(item, "pubDate"),
        source=_text(item, "source"),
        content=_text(item, f"{CONTENT_NS}encoded"),
    )


class FeedFetcher:
    """Fetches a single Google News RSS search URL."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            transport: Optional httpx transport, used to stub the network
        """
        self.transport = transport

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch and parse a feed. Never raises.

        Returns:
            FetchResult with status "success" and the parsed items, or
            status "error", no items and an error message
        """
        try:
            body = await asyncio.wait_for(self._download(url), timeout=REQUEST_TIMEOUT_SECONDS)
            items = parse_feed(body)
        except FetchError as e:
            logger.error("RSS request error", url=url, error=str(e))
            return FetchResult(status=FetchStatus.ERROR, items=[], error=str(e))
        except asyncio.TimeoutError:
            message = f"RSS request timed out after {REQUEST_TIMEOUT_SECONDS:.0f}s"
            logger.error("RSS request error", url=url, error=message)
            return FetchResult(status=FetchStatus.ERROR, items=[], error=message)
        except Exception as e:
            logger.exception("Unexpected RSS request error", url=url)
            return FetchResult(status=FetchStatus.ERROR, items=[], error=str(e) or "Unknown RSS fetch error")

        logger.debug("Fetched RSS items", url=url, count=len(items))
        return FetchResult(status=FetchStatus.SUCCESS, items=items)

    async def _download(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_SECONDS,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            raise FetchError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise FetchError(f"RSS request failed with status {response.status_code}")
        return response.text
