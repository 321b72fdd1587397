"""Ingestion service: raw source items → deduplicated ContentItems."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime

from pressroom.content.models import ContentItem, ContentKind
from pressroom.content.store import ContentStore
from pressroom.errors import DuplicateRecordError, PipelineReport
from pressroom.ingest.dedup import DeduplicationIndex, dedup_key_for
from pressroom.ingest.models import RawItem
from pressroom.ingest.parsers.base import SourceAdapter

logger = logging.getLogger(__name__)


def item_id_for(dedup_key: str) -> str:
    """Stable item id derived from the dedup key."""
    return hashlib.sha256(dedup_key.encode()).hexdigest()[:16]


def raw_to_item(raw: RawItem, *, kind: ContentKind = ContentKind.NEWS) -> ContentItem:
    key = dedup_key_for(raw)
    return ContentItem(
        id=item_id_for(key),
        kind=kind,
        source=raw.source_ref,
        dedup_key=key,
        url=raw.url,
        source_link=raw.source_link,
        original_title=raw.title,
        original_body=raw.body,
        source_images=list(raw.images),
        video_url=raw.video_url,
        source_published_at=raw.published_at,
    )


class IngestService:
    """Creates exactly one ContentItem per dedup key."""

    def __init__(self, store: ContentStore, dedup: DeduplicationIndex | None = None) -> None:
        self._store = store
        self._dedup = dedup or DeduplicationIndex(store)

    def ingest(
        self,
        raw_items: list[RawItem],
        *,
        kind: ContentKind = ContentKind.NEWS,
        report: PipelineReport | None = None,
    ) -> list[ContentItem]:
        """Store new items; skip anything already seen.

        Returns:
            The newly created items, in input order.
        """
        created: list[ContentItem] = []
        seen: set[str] = set()

        for raw in raw_items:
            key = dedup_key_for(raw)
            if key in seen or self._dedup.exists(key):
                logger.debug("Skipping duplicate %s", key)
                if report is not None:
                    report.items_skipped += 1
                continue
            seen.add(key)

            item = raw_to_item(raw, kind=kind)
            try:
                self._store.add_item(item)
            except DuplicateRecordError:
                # Another worker stored it between the check and the write.
                logger.info("Item %s ingested concurrently, skipping", key)
                if report is not None:
                    report.items_skipped += 1
                continue

            created.append(item)
            if report is not None:
                report.items_ingested += 1

        logger.info("Ingested %d new of %d raw items", len(created), len(raw_items))
        return created

    def run_adapter(
        self,
        adapter: SourceAdapter,
        *,
        since: datetime | None = None,
        report: PipelineReport | None = None,
    ) -> list[ContentItem]:
        """Fetch from one adapter and ingest the result.

        A failing adapter is reported and yields no items; the caller's
        schedule retries on its next tick.
        """
        try:
            raw_items = adapter.fetch(since=since)
        except Exception as exc:
            logger.warning("Source %s failed: %s", adapter.name, exc, exc_info=True)
            if report is not None:
                report.add_error(
                    "ingest",
                    str(exc),
                    source=adapter.name,
                    error_type="adapter_error",
                )
            return []
        return self.ingest(raw_items, report=report)
