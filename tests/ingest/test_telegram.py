"""Tests for the Telegram channel preview adapter."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import patch

from pressroom.config import IngestSectionConfig
from pressroom.content.models import TelegramSource
from pressroom.ingest.parsers.telegram import TelegramAdapter


def _message(message_id: int, text: str, when: str, extra: str = "") -> str:
    return f"""
    <div class="tgme_widget_message" data-post="newsroom/{message_id}">
      <div class="tgme_widget_message_text">{text}</div>
      {extra}
      <div class="tgme_widget_message_footer">
        <a class="tgme_widget_message_date" href="https://t.me/newsroom/{message_id}">
          <time datetime="{when}">time</time>
        </a>
      </div>
    </div>
    """


def _page(*messages: str) -> str:
    return "<html><body><section>" + "".join(messages) + "</section></body></html>"


def _make_adapter(**config) -> TelegramAdapter:
    return TelegramAdapter("@newsroom", config=IngestSectionConfig(**config))


class TestParsePage:
    def test_parses_message(self) -> None:
        html = _page(
            _message(
                10,
                'Big headline<br/>More detail <a href="https://ex.com/story">here</a>',
                "2025-01-06T10:00:00+00:00",
                extra=(
                    '<a class="tgme_widget_message_photo_wrap" '
                    "style=\"background-image:url('https://cdn4.telesco.pe/file/p.jpg')\"></a>"
                ),
            )
        )
        items = _make_adapter().parse_page(html)
        assert len(items) == 1
        item = items[0]
        assert item.title == "Big headline"
        assert item.body == "Big headline\nMore detail here"
        assert item.url == "https://t.me/newsroom/10"
        assert item.source_link == "https://ex.com/story"
        assert item.images == ["https://cdn4.telesco.pe/file/p.jpg"]
        assert item.published_at == datetime(2025, 1, 6, 10, 0, tzinfo=UTC)
        assert item.source_ref == TelegramSource(channel="newsroom", message_id=10)

    def test_empty_message_skipped(self) -> None:
        html = _page(_message(11, "", "2025-01-06T10:00:00+00:00"))
        assert _make_adapter().parse_page(html) == []

    def test_video_only_gets_fallback_title(self) -> None:
        html = _page(
            _message(12, "", "2025-01-06T10:00:00+00:00", extra='<video src="https://cdn.t.me/v.mp4"></video>')
        )
        item = _make_adapter().parse_page(html)[0]
        assert item.title == "@newsroom #12"
        assert item.video_url == "https://cdn.t.me/v.mp4"


class TestFetch:
    def test_since_filter(self) -> None:
        html = _page(
            _message(1, "Old", "2024-12-01T10:00:00+00:00"),
            _message(2, "New", "2025-01-06T10:00:00+00:00"),
        )
        adapter = _make_adapter()
        with patch.object(adapter, "_fetch_page", return_value=html):
            items = adapter.fetch(since=datetime(2025, 1, 1, tzinfo=UTC))
        assert [i.title for i in items] == ["New"]


class TestFetchRange:
    def test_pages_backwards_until_before_range(self) -> None:
        pages = {
            None: _page(
                _message(30, "Newest", "2025-01-20T10:00:00+00:00"),
                _message(31, "In range late", "2025-01-10T10:00:00+00:00"),
            ),
            30: _page(
                _message(20, "In range early", "2025-01-05T10:00:00+00:00"),
                _message(21, "Too old", "2024-12-25T10:00:00+00:00"),
            ),
        }
        adapter = _make_adapter()
        calls: list[int | None] = []

        def fake_fetch(before: int | None = None) -> str:
            calls.append(before)
            return pages[before]

        with patch.object(adapter, "_fetch_page", side_effect=fake_fetch):
            items = adapter.fetch_range(
                datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 1, 15, tzinfo=UTC)
            )

        assert calls == [None, 30]
        assert [i.title for i in items] == ["In range early", "In range late"]

    def test_respects_page_limit(self) -> None:
        adapter = _make_adapter(telegram_max_pages=2)
        counter = {"id": 100}

        def fake_fetch(before: int | None = None) -> str:
            counter["id"] -= 10
            return _page(_message(counter["id"], "Post", "2025-01-10T10:00:00+00:00"))

        with patch.object(adapter, "_fetch_page", side_effect=fake_fetch) as fetch:
            adapter.fetch_range(datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 1, 15, tzinfo=UTC))
        assert fetch.call_count == 2
