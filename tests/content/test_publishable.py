"""Tests for pressroom.content.publishable."""

from __future__ import annotations

from pressroom.content.models import (
    ContentItem,
    ContentKind,
    ImageState,
    LanguageVariant,
    RSSSource,
)
from pressroom.content.publishable import BlogPublishable, NewsPublishable, as_publishable


def _make_item(**kwargs) -> ContentItem:
    return ContentItem(
        id="0123456789abcdef",
        source=RSSSource(feed_url="https://ex.com/feed"),
        dedup_key="https://ex.com/a",
        original_title="Original",
        **kwargs,
    )


class TestAsPublishable:
    def test_dispatch_by_kind(self) -> None:
        assert isinstance(as_publishable(_make_item()), NewsPublishable)
        assert isinstance(as_publishable(_make_item(kind=ContentKind.BLOG)), BlogPublishable)


class TestNewsPublishable:
    def test_article_url_uses_slug(self) -> None:
        item = _make_item(
            language_variants={"en": LanguageVariant(title="T", body="B", slug="my-story")}
        )
        pub = as_publishable(item)
        assert pub.article_url("https://site.example/", "en") == "https://site.example/news/my-story"

    def test_missing_slug_is_generated(self) -> None:
        item = _make_item(language_variants={"en": LanguageVariant(title="Big News", body="B")})
        assert as_publishable(item).get_slug("en") == "big-news-01234567"

    def test_description_falls_back_to_body(self) -> None:
        item = _make_item(language_variants={"en": LanguageVariant(title="T", body="x" * 400)})
        assert as_publishable(item).get_description("en") == "x" * 300

    def test_image_prefers_generated(self) -> None:
        item = _make_item(
            source_images=["https://ex.com/src.jpg"],
            image=ImageState(url="https://cdn.example/gen.png"),
        )
        assert as_publishable(item).get_image_url() == "https://cdn.example/gen.png"

    def test_image_falls_back_to_source(self) -> None:
        item = _make_item(source_images=["https://ex.com/src.jpg"])
        assert as_publishable(item).get_image_url() == "https://ex.com/src.jpg"


class TestBlogPublishable:
    def test_description_uses_first_paragraph(self) -> None:
        item = _make_item(
            kind=ContentKind.BLOG,
            language_variants={
                "en": LanguageVariant(title="T", body="First para.\n\nSecond para.")
            },
        )
        pub = as_publishable(item)
        assert pub.get_description("en") == "First para."
        assert pub.article_url("https://site.example", "en").startswith(
            "https://site.example/blog/"
        )
