"""Deduplication index and near-duplicate title detection.

The index favours availability: a storage failure is logged and the item
is treated as new rather than dropped or blocked.  Social distribution's
one-live-post rule is the backstop against double posting.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pressroom.content.models import TelegramSource
from pressroom.content.store import ContentStore
from pressroom.ingest.models import RawItem

logger = logging.getLogger(__name__)

_TRACKING_PARAMS = {"fbclid", "gclid", "mc_cid", "mc_eid", "ref"}

SIMILAR_TITLE_WINDOW = timedelta(days=30)
SIGNIFICANT_WORD_COUNT = 3
SIGNIFICANT_WORD_MIN_LENGTH = 4
SIMILAR_TITLE_MIN_MATCHES = 2


def canonical_url(url: str) -> str:
    """Normalize a URL for dedup: lowercase host, no fragment or tracking params."""
    parts = urlsplit(url.strip())
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in _TRACKING_PARAMS
    ]
    path = parts.path
    if len(path) > 1:
        path = path.rstrip("/")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), "")
    )


def dedup_key_for(raw: RawItem) -> str:
    source = raw.source_ref
    if isinstance(source, TelegramSource):
        return f"telegram:{source.channel}:{source.message_id}"
    if raw.url:
        return canonical_url(raw.url)
    return f"rss:{source.feed_url}:{raw.title.strip().lower()}"


class DeduplicationIndex:
    """Answers "has this dedup key already been ingested?"."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    def exists(self, dedup_key: str) -> bool:
        """Check before any AI work.  Storage errors count as "not seen"."""
        try:
            return self._store.has_dedup_key(dedup_key)
        except OSError:
            logger.warning(
                "Dedup lookup failed for %s, treating as new", dedup_key, exc_info=True
            )
            return False

    def confirm_unique(self, dedup_key: str, item_id: str) -> bool:
        """Defensive re-check immediately before an externally visible side effect.

        Returns False only when a *different* item holds the key.  On a
        storage error the check is skipped (returns True) after logging.
        """
        try:
            existing = self._store.find_by_dedup_key(dedup_key)
        except OSError:
            logger.warning(
                "Defensive dedup check failed for %s, not enforcing", dedup_key, exc_info=True
            )
            return True
        return existing is None or existing.id == item_id


def significant_words(title: str) -> list[str]:
    """First few words long enough to carry meaning."""
    words = re.findall(r"\w+", title.lower())
    long_words = [w for w in words if len(w) >= SIGNIFICANT_WORD_MIN_LENGTH]
    return long_words[:SIGNIFICANT_WORD_COUNT]


def find_similar_title(title: str, candidates: list[str]) -> str | None:
    """Return the first candidate sharing enough significant words with ``title``."""
    keywords = significant_words(title)
    if len(keywords) < SIMILAR_TITLE_MIN_MATCHES:
        return None
    for candidate in candidates:
        haystack = candidate.lower()
        matches = sum(1 for word in keywords if word in haystack)
        if matches >= SIMILAR_TITLE_MIN_MATCHES:
            return candidate
    return None


def find_recent_similar(
    store: ContentStore,
    title: str,
    *,
    exclude_id: str = "",
    now: datetime | None = None,
) -> str | None:
    """Look for a near-duplicate title among items from the last 30 days."""
    since = (now or datetime.now(tz=UTC)) - SIMILAR_TITLE_WINDOW
    try:
        recent = store.recent_titles(since, exclude_id=exclude_id)
    except OSError:
        logger.warning("Recent-title lookup failed, skipping similarity check", exc_info=True)
        return None
    return find_similar_title(title, recent)
