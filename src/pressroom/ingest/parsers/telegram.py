"""Telegram public channel adapter.

Scrapes the unauthenticated web preview at ``https://t.me/s/<channel>``.
The preview shows the latest ~20 messages; older history is reached by
paging with ``?before=<message_id>``, which is how date-range backfill
works.
"""

from __future__ import annotations

import logging
import re
import urllib.error
import urllib.request
from datetime import UTC, datetime

from bs4 import BeautifulSoup, Tag

from pressroom.config import IngestSectionConfig
from pressroom.content.models import TelegramSource
from pressroom.errors import TransientError
from pressroom.ingest.models import RawItem, SourceType
from pressroom.ingest.parsers.base import SourceAdapter

logger = logging.getLogger(__name__)

PREVIEW_URL = "https://t.me/s/{channel}"
MAX_TITLE_LENGTH = 200

_BACKGROUND_URL_RE = re.compile(r"background-image:\s*url\(['\"]?([^'\")]+)['\"]?\)")
_USER_AGENT = "Mozilla/5.0 (compatible; pressroom/0.1; +https://t.me)"


class TelegramAdapter(SourceAdapter):
    """Parses a public Telegram channel's preview page into RawItem objects."""

    def __init__(
        self,
        channel: str,
        *,
        config: IngestSectionConfig,
        timeout: int = 30,
    ) -> None:
        super().__init__(config=config)
        self._channel = channel.strip().lstrip("@")
        self._timeout = timeout

    @property
    def source(self) -> SourceType:
        return SourceType.TELEGRAM

    @property
    def name(self) -> str:
        return self._channel

    @property
    def is_configured(self) -> bool:
        return bool(self._channel)

    def fetch(self, since: datetime | None = None) -> list[RawItem]:
        """Fetch the latest page of the channel preview.

        Raises:
            TransientError: When the preview page cannot be downloaded.
        """
        items = self.parse_page(self._fetch_page())
        if since is not None:
            items = [i for i in items if i.published_at is None or i.published_at >= since]
        logger.info("Parsed %d posts from @%s", len(items), self._channel)
        return items

    def fetch_range(self, from_date: datetime, to_date: datetime) -> list[RawItem]:
        """Backfill posts published within ``[from_date, to_date]``.

        Pages backwards through history until a page reaches past
        ``from_date``, the channel start is hit, or the page limit runs out.
        """
        collected: dict[int, RawItem] = {}
        before: int | None = None

        for _page in range(self._config.telegram_max_pages):
            items = self.parse_page(self._fetch_page(before=before))
            if not items:
                break

            for item in items:
                published = item.published_at
                if published is not None and from_date <= published <= to_date:
                    collected[item.source_ref.message_id] = item  # type: ignore[union-attr]

            oldest_id = min(i.source_ref.message_id for i in items)  # type: ignore[union-attr]
            dates = [i.published_at for i in items if i.published_at is not None]
            if (dates and min(dates) < from_date) or oldest_id <= 1:
                break
            if before is not None and oldest_id >= before:
                break
            before = oldest_id
        else:
            logger.warning(
                "Backfill of @%s stopped at page limit (%d)",
                self._channel,
                self._config.telegram_max_pages,
            )

        result = sorted(collected.values(), key=lambda i: i.source_ref.message_id)  # type: ignore[union-attr]
        logger.info(
            "Backfilled %d posts from @%s between %s and %s",
            len(result),
            self._channel,
            from_date.date(),
            to_date.date(),
        )
        return result

    def _fetch_page(self, before: int | None = None) -> str:
        url = PREVIEW_URL.format(channel=self._channel)
        if before is not None:
            url = f"{url}?before={before}"
        req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return resp.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, TimeoutError) as exc:
            raise TransientError(f"Failed to fetch {url}: {exc}") from exc

    def parse_page(self, html: str) -> list[RawItem]:
        """Parse every message block on a preview page."""
        soup = BeautifulSoup(html, "html.parser")
        items: list[RawItem] = []
        for message in soup.select(".tgme_widget_message"):
            try:
                item = self._message_to_item(message)
            except Exception:
                logger.warning(
                    "Skipping unparseable message in @%s", self._channel, exc_info=True
                )
                continue
            if item is not None:
                items.append(item)
        return items

    def _message_to_item(self, message: Tag) -> RawItem | None:
        data_post = message.get("data-post")
        if not data_post or "/" not in str(data_post):
            return None
        message_id = int(str(data_post).rsplit("/", 1)[1])

        text_el = message.select_one(".tgme_widget_message_text")
        text = ""
        links: list[str] = []
        if text_el is not None:
            links = _external_links(text_el)
            for br in text_el.find_all("br"):
                br.replace_with("\n")
            text = text_el.get_text().strip()

        images: list[str] = []
        for photo in message.select(".tgme_widget_message_photo_wrap"):
            match = _BACKGROUND_URL_RE.search(str(photo.get("style", "")))
            if match:
                images.append(match.group(1))

        video_url = ""
        video = message.select_one("video")
        if video is not None and video.get("src"):
            video_url = str(video["src"])

        if not text and not images and not video_url:
            return None

        published_at = None
        time_el = message.select_one(".tgme_widget_message_date time")
        if time_el is not None and time_el.get("datetime"):
            published_at = _parse_datetime(str(time_el["datetime"]))

        first_line = text.split("\n", 1)[0].strip() if text else ""
        title = first_line[:MAX_TITLE_LENGTH] or f"@{self._channel} #{message_id}"

        return RawItem(
            url=f"https://t.me/{self._channel}/{message_id}",
            title=title,
            body=text,
            images=images,
            video_url=video_url,
            published_at=published_at,
            source_ref=TelegramSource(channel=self._channel, message_id=message_id),
            source_link=links[0] if links else "",
        )


def _external_links(element: Tag) -> list[str]:
    links: list[str] = []
    for anchor in element.find_all("a", href=True):
        href = str(anchor["href"])
        if href.startswith("http") and "t.me/" not in href and href not in links:
            links.append(href)
    return links


def _parse_datetime(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable Telegram datetime: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
