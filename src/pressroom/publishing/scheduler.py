"""Publication scheduler: auto-publish or hand off for human approval."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

from pressroom.content.models import (
    ApprovalMessage,
    ContentItem,
    ModerationStatus,
    PipelineStage,
    PublishStatus,
    SocialPost,
)
from pressroom.content.policy import PolicyProvider
from pressroom.content.store import ContentStore
from pressroom.errors import InvalidTransitionError, PipelineReport
from pressroom.ingest.dedup import DeduplicationIndex
from pressroom.social.fanout import SocialFanout

logger = logging.getLogger(__name__)

AWAITING_APPROVAL = "Awaiting approval"


class ApprovalChannel(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def notify(self, item: ContentItem, status: str) -> ApprovalMessage: ...

    def update_status(self, item: ContentItem, text: str) -> None: ...


class PublicationScheduler:
    """Moves approved, rewritten items to published and triggers distribution."""

    def __init__(
        self,
        store: ContentStore,
        policy: PolicyProvider,
        fanout: SocialFanout,
        *,
        channel: ApprovalChannel | None = None,
        dedup: DeduplicationIndex | None = None,
    ) -> None:
        self._store = store
        self._policy = policy
        self._fanout = fanout
        self._channel = channel
        self._dedup = dedup or DeduplicationIndex(store)

    def schedule(self, item: ContentItem, *, report: PipelineReport | None = None) -> ContentItem:
        """Publish ``item`` now or send it for approval, per the current policy."""
        if item.moderation_status == ModerationStatus.REJECTED:
            logger.debug("Item %s is rejected; not scheduling", item.id)
            return item
        if item.publish_status == PublishStatus.PUBLISHED:
            return item

        if not self._dedup.confirm_unique(item.dedup_key, item.id):
            logger.info("Item %s duplicates an earlier item; rejecting", item.id)
            item.moderation_status = ModerationStatus.REJECTED
            item.rejection_reason = "Duplicate of an already ingested item"
            item.stage = PipelineStage.REJECTED
            self._store.save_item(item)
            return item

        policy = self._policy.current()
        if policy.auto_publish_enabled:
            return self._publish(item, report=report)

        if item.stage == PipelineStage.AWAITING_APPROVAL:
            return item

        if self._channel is not None and self._channel.is_configured:
            try:
                item.approval_message = self._channel.notify(item, AWAITING_APPROVAL)
            except Exception as exc:
                logger.warning("Approval notification for %s failed: %s", item.id, exc)
                item.record_error("schedule", f"approval notification failed: {exc}")
                self._store.save_item(item)
                if report is not None:
                    report.add_error(
                        "schedule", str(exc), source=item.id, error_type="notify_error"
                    )
                return item
        else:
            logger.info("No approval channel configured; %s waits for `pressroom approve`", item.id)

        item.stage = PipelineStage.AWAITING_APPROVAL
        self._store.save_item(item)
        return item

    def approve(self, item_id: str, *, report: PipelineReport | None = None) -> ContentItem:
        """Human approval: publish and distribute.

        Raises:
            KeyError: Unknown item.
            InvalidTransitionError: The item was rejected.
        """
        item = self._store.require_item(item_id)
        if item.moderation_status == ModerationStatus.REJECTED:
            raise InvalidTransitionError(f"item {item_id} was rejected and cannot be published")
        if item.publish_status == PublishStatus.PUBLISHED:
            logger.info("Item %s is already published", item_id)
            return item
        return self._publish(item, report=report)

    def reject(self, item_id: str, reason: str) -> ContentItem:
        """Human rejection.

        Raises:
            KeyError: Unknown item.
            InvalidTransitionError: The item is already published.
        """
        item = self._store.require_item(item_id)
        if item.publish_status == PublishStatus.PUBLISHED:
            raise InvalidTransitionError(f"item {item_id} is already published")
        item.moderation_status = ModerationStatus.REJECTED
        item.rejection_reason = reason
        item.stage = PipelineStage.REJECTED
        self._store.save_item(item)
        logger.info("Rejected %s: %s", item_id, reason)
        if self._channel is not None and self._channel.is_configured and item.approval_message:
            try:
                self._channel.update_status(item, f"Rejected: {reason}")
            except Exception as exc:
                logger.warning("Could not update moderation message for %s: %s", item_id, exc)
        return item

    def republish(self, item_id: str, *, report: PipelineReport | None = None) -> list[SocialPost]:
        """Re-run distribution for a published item (retries failed pairs).

        Raises:
            KeyError: Unknown item.
            InvalidTransitionError: The item is not published.
        """
        item = self._store.require_item(item_id)
        if item.publish_status != PublishStatus.PUBLISHED:
            raise InvalidTransitionError(f"item {item_id} is not published")
        return self.distribute(item, report=report)

    def distribute(
        self, item: ContentItem, *, report: PipelineReport | None = None
    ) -> list[SocialPost]:
        policy = self._policy.current()
        posts = self._fanout.distribute(
            item,
            platforms=policy.auto_publish_platforms,
            languages=policy.auto_publish_languages,
            report=report,
        )
        item = self._store.require_item(item.id)
        item.stage = PipelineStage.DISTRIBUTED
        self._store.save_item(item)
        return posts

    def _publish(
        self,
        item: ContentItem,
        *,
        report: PipelineReport | None,
    ) -> ContentItem:
        item.moderation_status = ModerationStatus.APPROVED
        item.publish_status = PublishStatus.PUBLISHED
        item.published_at = datetime.now(tz=UTC)
        item.stage = PipelineStage.PUBLISHED
        self._store.save_item(item)
        logger.info("Published %s (%s)", item.id, item.variant("en").title)
        if report is not None:
            report.items_published += 1

        self.distribute(item, report=report)
        return self._store.require_item(item.id)

