"""RSS/Atom feed adapter."""

from __future__ import annotations

import logging
import re
from calendar import timegm
from datetime import datetime, timezone

import feedparser
from bs4 import BeautifulSoup

from pressroom.config import IngestSectionConfig
from pressroom.content.models import RSSSource
from pressroom.errors import TransientError
from pressroom.ingest.models import RawItem, SourceType
from pressroom.ingest.parsers.base import SourceAdapter

logger = logging.getLogger(__name__)

_BLOCK_TAGS = ["p", "br", "div", "li", "h1", "h2", "h3", "h4", "blockquote"]


class RSSAdapter(SourceAdapter):
    """Parses one RSS or Atom feed into RawItem objects."""

    def __init__(self, feed_url: str, *, config: IngestSectionConfig) -> None:
        super().__init__(config=config)
        self._feed_url = feed_url.strip()

    @property
    def source(self) -> SourceType:
        return SourceType.RSS

    @property
    def name(self) -> str:
        return self._feed_url

    @property
    def is_configured(self) -> bool:
        return bool(self._feed_url)

    def fetch(self, since: datetime | None = None) -> list[RawItem]:
        """Fetch the feed.

        Raises:
            TransientError: When the feed could not be read at all.
        """
        feed = feedparser.parse(self._feed_url)

        if feed.bozo and not feed.entries:
            raise TransientError(f"Feed error for {self._feed_url}: {feed.bozo_exception}")

        items: list[RawItem] = []
        for entry in feed.entries[: self._config.max_items_per_feed]:
            try:
                item = self._entry_to_item(entry)
            except Exception:
                logger.warning(
                    "Skipping unparseable entry in %s", self._feed_url, exc_info=True
                )
                continue
            if item is None:
                continue
            if since and item.published_at and item.published_at < since:
                continue
            if item.word_count < self._config.min_word_count:
                continue
            items.append(item)

        logger.info("Parsed %d items from %s", len(items), self._feed_url)
        return items

    def _entry_to_item(self, entry: feedparser.FeedParserDict) -> RawItem | None:
        link = entry.get("link", "")
        title = _strip_html(entry.get("title", ""))

        if not link and not title:
            return None

        return RawItem(
            url=link,
            title=title or link,
            body=self._extract_body(entry),
            images=self._extract_images(entry),
            published_at=self._parse_date(entry),
            source_ref=RSSSource(feed_url=self._feed_url),
        )

    @staticmethod
    def _extract_body(entry: feedparser.FeedParserDict) -> str:
        """Extract the best available body text from a feed entry."""
        content_list = entry.get("content", [])
        if content_list:
            best = max(content_list, key=lambda c: len(c.get("value", "")))
            return _strip_html(best.get("value", ""))

        summary = entry.get("summary", "")
        if summary:
            return _strip_html(summary)

        return ""

    @staticmethod
    def _extract_images(entry: feedparser.FeedParserDict) -> list[str]:
        urls: list[str] = []
        for media in entry.get("media_content", []) + entry.get("media_thumbnail", []):
            url = media.get("url", "")
            if url and url not in urls:
                urls.append(url)
        for link in entry.get("links", []):
            if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith("image/"):
                href = link.get("href", "")
                if href and href not in urls:
                    urls.append(href)
        return urls

    @staticmethod
    def _parse_date(entry: feedparser.FeedParserDict) -> datetime | None:
        for field in ("published_parsed", "updated_parsed"):
            time_struct = entry.get(field)
            if time_struct:
                try:
                    return datetime.fromtimestamp(timegm(time_struct), tz=timezone.utc)
                except (ValueError, OverflowError):
                    continue
        return None


def _strip_html(html: str) -> str:
    """Convert feed HTML to plain text with paragraph breaks."""
    if "<" not in html and "&" not in html:
        return html.strip()
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_after("\n")
    text = soup.get_text()
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
