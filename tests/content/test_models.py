"""Tests for content models — variant fallback and post liveness."""

from __future__ import annotations

from pressroom.content.models import (
    ContentItem,
    LanguageVariant,
    Platform,
    PostStatus,
    SocialPost,
    TelegramSource,
    resolve_variant,
)


def _make_item(**kwargs) -> ContentItem:
    return ContentItem(
        id="abc12345-xyz",
        source=TelegramSource(channel="newsroom", message_id=42),
        dedup_key="telegram:newsroom:42",
        original_title="Original title",
        original_body="Original body text",
        **kwargs,
    )


class TestResolveVariant:
    def test_returns_requested_language(self) -> None:
        item = _make_item(
            language_variants={
                "en": LanguageVariant(title="English", body="b"),
                "no": LanguageVariant(title="Norsk", body="b"),
            }
        )
        assert resolve_variant(item, "no").title == "Norsk"

    def test_missing_language_falls_back_to_english(self) -> None:
        item = _make_item(language_variants={"en": LanguageVariant(title="English", body="b")})
        assert resolve_variant(item, "ua").title == "English"

    def test_no_variants_uses_original(self) -> None:
        item = _make_item()
        variant = item.variant("ua")
        assert variant.title == "Original title"
        assert variant.body == "Original body text"


class TestContentItem:
    def test_source_discriminator_round_trip(self) -> None:
        item = _make_item()
        restored = ContentItem.model_validate_json(item.model_dump_json())
        assert isinstance(restored.source, TelegramSource)
        assert restored.source.message_id == 42

    def test_record_error(self) -> None:
        item = _make_item()
        item.record_error("moderate", "LLM down")
        assert item.errors == ["[moderate] LLM down"]


class TestSocialPost:
    def _post(self, **kwargs) -> SocialPost:
        return SocialPost(
            id="p1", content_item_id="i1", platform=Platform.LINKEDIN, language="en", **kwargs
        )

    def test_pending_and_posted_are_live(self) -> None:
        assert self._post().is_live
        assert self._post(status=PostStatus.POSTED).is_live

    def test_failed_or_superseded_not_live(self) -> None:
        assert not self._post(status=PostStatus.FAILED).is_live
        assert not self._post(superseded=True).is_live
