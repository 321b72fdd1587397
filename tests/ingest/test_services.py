"""Tests for pressroom.ingest.services — one item per dedup key."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from pressroom.content.models import ContentKind, RSSSource, TelegramSource
from pressroom.content.store import ContentStore
from pressroom.errors import PipelineReport, TransientError
from pressroom.ingest.models import RawItem
from pressroom.ingest.services import IngestService, item_id_for, raw_to_item


def _make_raw(url: str = "https://ex.com/a", title: str = "Headline") -> RawItem:
    return RawItem(
        url=url,
        title=title,
        body="Body text",
        images=["https://ex.com/a.jpg"],
        source_ref=RSSSource(feed_url="https://ex.com/feed"),
    )


class TestRawToItem:
    def test_fields_copied(self) -> None:
        item = raw_to_item(_make_raw(), kind=ContentKind.BLOG)
        assert item.dedup_key == "https://ex.com/a"
        assert item.id == item_id_for("https://ex.com/a")
        assert item.kind == ContentKind.BLOG
        assert item.source_images == ["https://ex.com/a.jpg"]

    def test_id_is_stable(self) -> None:
        assert item_id_for("k") == item_id_for("k")
        assert len(item_id_for("k")) == 16


class TestIngest:
    def test_creates_items(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        report = PipelineReport()
        created = IngestService(store).ingest([_make_raw()], report=report)
        assert len(created) == 1
        assert report.items_ingested == 1
        assert store.get_item(created[0].id) is not None

    def test_duplicate_url_ingested_twice(self, tmp_path: Path) -> None:
        service = IngestService(ContentStore(tmp_path))
        service.ingest([_make_raw()])
        report = PipelineReport()
        second = service.ingest([_make_raw("https://ex.com/a?utm_source=tw")], report=report)
        assert second == []
        assert report.items_skipped == 1

    def test_duplicates_within_one_batch(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        created = IngestService(store).ingest([_make_raw(), _make_raw()])
        assert len(created) == 1
        assert len(store.list_items()) == 1

    def test_telegram_item(self, tmp_path: Path) -> None:
        raw = RawItem(
            url="https://t.me/news/9",
            title="Post",
            source_ref=TelegramSource(channel="news", message_id=9),
        )
        created = IngestService(ContentStore(tmp_path)).ingest([raw])
        assert created[0].dedup_key == "telegram:news:9"


class TestRunAdapter:
    def test_adapter_failure_reported(self, tmp_path: Path) -> None:
        adapter = MagicMock()
        adapter.name = "https://ex.com/feed"
        adapter.fetch.side_effect = TransientError("down")
        report = PipelineReport()
        created = IngestService(ContentStore(tmp_path)).run_adapter(adapter, report=report)
        assert created == []
        assert report.errors_for_stage("ingest")[0].source == "https://ex.com/feed"

    def test_adapter_items_ingested(self, tmp_path: Path) -> None:
        adapter = MagicMock()
        adapter.fetch.return_value = [_make_raw(), _make_raw("https://ex.com/b")]
        created = IngestService(ContentStore(tmp_path)).run_adapter(adapter)
        assert len(created) == 2
