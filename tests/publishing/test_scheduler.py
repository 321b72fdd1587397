"""Tests for pressroom.publishing.scheduler — auto-publish and approval flow."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pressroom.content.models import (
    ApprovalMessage,
    ContentItem,
    LanguageVariant,
    ModerationStatus,
    PipelineStage,
    Platform,
    PostStatus,
    PublishStatus,
    RSSSource,
)
from pressroom.content.policy import (
    AUTO_PUBLISH_ENABLED,
    AUTO_PUBLISH_LANGUAGES,
    AUTO_PUBLISH_PLATFORMS,
    PolicyProvider,
)
from pressroom.content.store import ContentStore
from pressroom.errors import InvalidTransitionError, PipelineReport, PlatformError
from pressroom.publishing.scheduler import PublicationScheduler
from pressroom.social.base import MediaSpec, PublishedPost, SocialClient
from pressroom.social.fanout import SocialFanout


class _LinkedIn(SocialClient):
    platform = Platform.LINKEDIN

    def __init__(self) -> None:
        super().__init__()
        self.published = 0

    @property
    def is_configured(self) -> bool:
        return True

    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        return self._stash({"caption": caption})

    def publish(self, container_id: str) -> PublishedPost:
        self._take(container_id)
        self.published += 1
        return PublishedPost(external_id=f"urn:li:share:{self.published}")


def _make_item(store: ContentStore, **kwargs) -> ContentItem:
    kwargs.setdefault("stage", PipelineStage.ILLUSTRATED)
    kwargs.setdefault("moderation_status", ModerationStatus.APPROVED)
    item = ContentItem(
        id="item-1",
        source=RSSSource(feed_url="https://ex.com/feed"),
        dedup_key="https://ex.com/a",
        url="https://ex.com/a",
        original_title="Ferry strike",
        language_variants={"en": LanguageVariant(title="Ferry strike ends", body="Body.")},
        **kwargs,
    )
    store.add_item(item)
    return item


def _make_scheduler(
    store: ContentStore, *, auto: bool = False, channel: object = None, dedup: object = None
) -> tuple[PublicationScheduler, _LinkedIn]:
    store.set_setting(AUTO_PUBLISH_ENABLED, "true" if auto else "false")
    store.set_setting(AUTO_PUBLISH_PLATFORMS, "linkedin")
    store.set_setting(AUTO_PUBLISH_LANGUAGES, "en")
    client = _LinkedIn()
    fanout = SocialFanout(store, [client], site_url="https://site.example", sleep=lambda _s: None)
    policy = PolicyProvider(store, refresh_seconds=0)
    scheduler = PublicationScheduler(store, policy, fanout, channel=channel, dedup=dedup)
    return scheduler, client


def _make_channel() -> MagicMock:
    channel = MagicMock()
    channel.is_configured = True
    channel.notify.return_value = ApprovalMessage(chat_id="-100", message_id=55)
    return channel


class TestSchedule:
    def test_auto_publish_distributes(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, client = _make_scheduler(store, auto=True)
        report = PipelineReport()
        item = scheduler.schedule(_make_item(store), report=report)

        assert item.publish_status == PublishStatus.PUBLISHED
        assert item.published_at is not None
        assert item.stage == PipelineStage.DISTRIBUTED
        assert report.items_published == 1
        assert report.posts_created == 1
        posts = store.list_posts(item_id="item-1")
        assert [(p.platform, p.language, p.status) for p in posts] == [
            (Platform.LINKEDIN, "en", PostStatus.POSTED)
        ]

    def test_manual_mode_waits_for_approval(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        channel = _make_channel()
        scheduler, client = _make_scheduler(store, channel=channel)
        item = scheduler.schedule(_make_item(store))

        assert item.stage == PipelineStage.AWAITING_APPROVAL
        assert item.publish_status == PublishStatus.UNPUBLISHED
        assert store.require_item("item-1").approval_message == ApprovalMessage(
            chat_id="-100", message_id=55
        )
        assert client.published == 0

    def test_awaiting_item_not_renotified(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        channel = _make_channel()
        scheduler, _ = _make_scheduler(store, channel=channel)
        scheduler.schedule(_make_item(store, stage=PipelineStage.AWAITING_APPROVAL))
        channel.notify.assert_not_called()

    def test_notify_failure_keeps_stage(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        channel = _make_channel()
        channel.notify.side_effect = PlatformError("chat not found")
        scheduler, _ = _make_scheduler(store, channel=channel)
        report = PipelineReport()
        item = scheduler.schedule(_make_item(store), report=report)

        assert item.stage == PipelineStage.ILLUSTRATED
        assert "approval notification failed" in store.require_item("item-1").errors[0]
        assert report.errors_for_stage("schedule")[0].error_type == "notify_error"

    def test_without_channel_still_awaits(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, _ = _make_scheduler(store)
        assert scheduler.schedule(_make_item(store)).stage == PipelineStage.AWAITING_APPROVAL

    def test_duplicate_rejected_before_publishing(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        dedup = MagicMock()
        dedup.confirm_unique.return_value = False
        scheduler, client = _make_scheduler(store, auto=True, dedup=dedup)
        item = scheduler.schedule(_make_item(store))

        assert item.stage == PipelineStage.REJECTED
        assert item.moderation_status == ModerationStatus.REJECTED
        assert client.published == 0

    def test_rejected_item_untouched(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, client = _make_scheduler(store, auto=True)
        item = scheduler.schedule(
            _make_item(
                store,
                moderation_status=ModerationStatus.REJECTED,
                stage=PipelineStage.REJECTED,
            )
        )
        assert item.publish_status == PublishStatus.UNPUBLISHED
        assert client.published == 0


class TestApproval:
    def test_approve_publishes(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, client = _make_scheduler(store, channel=_make_channel())
        scheduler.schedule(_make_item(store))
        item = scheduler.approve("item-1")

        assert item.publish_status == PublishStatus.PUBLISHED
        assert item.stage == PipelineStage.DISTRIBUTED
        assert client.published == 1

    def test_approve_twice_is_noop(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, client = _make_scheduler(store)
        _make_item(store)
        scheduler.approve("item-1")
        scheduler.approve("item-1")
        assert client.published == 1

    def test_approve_rejected_item(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, _ = _make_scheduler(store)
        _make_item(store)
        scheduler.reject("item-1", "Off topic")
        with pytest.raises(InvalidTransitionError):
            scheduler.approve("item-1")

    def test_reject_updates_moderation_message(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        channel = _make_channel()
        scheduler, _ = _make_scheduler(store, channel=channel)
        scheduler.schedule(_make_item(store))
        item = scheduler.reject("item-1", "Off topic")

        assert item.stage == PipelineStage.REJECTED
        assert item.rejection_reason == "Off topic"
        assert channel.update_status.call_args[0][1] == "Rejected: Off topic"

    def test_reject_published_item(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, _ = _make_scheduler(store)
        _make_item(store)
        scheduler.approve("item-1")
        with pytest.raises(InvalidTransitionError):
            scheduler.reject("item-1", "too late")

    def test_unknown_item(self, tmp_path: Path) -> None:
        scheduler, _ = _make_scheduler(ContentStore(tmp_path))
        with pytest.raises(KeyError):
            scheduler.approve("missing")


class TestRepublish:
    def test_requires_published_item(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, _ = _make_scheduler(store)
        _make_item(store)
        with pytest.raises(InvalidTransitionError):
            scheduler.republish("item-1")

    def test_only_missing_pairs_are_posted(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        scheduler, client = _make_scheduler(store)
        _make_item(store)
        scheduler.approve("item-1")
        store.set_setting(AUTO_PUBLISH_LANGUAGES, "en,no")

        posts = scheduler.republish("item-1")
        assert [(p.language, p.status) for p in posts] == [("no", PostStatus.POSTED)]
        assert client.published == 2
