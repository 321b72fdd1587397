"""Social distribution fan-out.

One post per enabled ``(platform, language)`` pair.  A pair that
already has a pending or posted record is skipped, so re-running the
fan-out never double-posts.  A pending record older than
``pending_ceiling`` was left by a crashed run and is retried.  Each pair
fails in isolation.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from pressroom.concurrency import poll_until
from pressroom.content.models import ContentItem, Platform, PostStatus, SocialPost
from pressroom.content.publishable import as_publishable
from pressroom.content.store import ContentStore
from pressroom.errors import DuplicateRecordError, PipelineReport, PlatformError, TransientError
from pressroom.social.base import ContainerStatus, MediaSpec, SocialClient
from pressroom.social.captions import PLATFORM_LIMITS, build_caption
from pressroom.social.media import Uploader, rehost, resolve_media

logger = logging.getLogger(__name__)

# Slack added to the poll ceiling before a pending post counts as abandoned.
PENDING_MARGIN = timedelta(minutes=5)


def pending_ceiling(poll_interval: float, poll_max_attempts: int, timeout: int) -> timedelta:
    """Longest a healthy publish can keep a post pending, plus ``PENDING_MARGIN``.

    Covers container creation, every status poll and the publish call, each
    allowed its full retry budget.
    """
    per_call = timeout * SocialClient.request_attempts
    seconds = poll_max_attempts * (poll_interval + per_call) + 2 * per_call
    return timedelta(seconds=seconds) + PENDING_MARGIN


class StatusChannel(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def update_status(self, item: ContentItem, text: str) -> None: ...


class SocialFanout:
    """Publishes a content item to every enabled platform and language."""

    def __init__(
        self,
        store: ContentStore,
        clients: Iterable[SocialClient],
        *,
        site_url: str,
        storage: Uploader | None = None,
        channel: StatusChannel | None = None,
        summary: Callable[[ContentItem, list[SocialPost]], str] | None = None,
        poll_interval: float = 10.0,
        poll_max_attempts: int = 30,
        timeout: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._clients = {client.platform: client for client in clients}
        self._site_url = site_url
        self._storage = storage
        self._channel = channel
        self._summary = summary
        self._poll_interval = poll_interval
        self._poll_max_attempts = poll_max_attempts
        self._timeout = timeout
        self._sleep = sleep

    def distribute(
        self,
        item: ContentItem,
        *,
        platforms: Iterable[Platform],
        languages: Iterable[str],
        report: PipelineReport | None = None,
    ) -> list[SocialPost]:
        """Post ``item`` to each platform × language pair; return the new records."""
        publishable = as_publishable(item)
        video_url = self._video_url(item)
        created: list[SocialPost] = []

        for platform in sorted(set(platforms)):
            client = self._clients.get(platform)
            if client is None or not client.is_configured:
                logger.info("Skipping %s: not configured", platform)
                continue
            for language in sorted(set(languages)):
                if self._store.live_post(item.id, platform, language) is not None:
                    logger.debug("%s/%s/%s already posted or pending", item.id, platform, language)
                    continue

                media = resolve_media(publishable, self._site_url, language, video_url=video_url)
                try:
                    caption = build_caption(
                        publishable.get_title(language),
                        publishable.get_description(language),
                        media.link_url,
                        publishable.get_tags(),
                        limit=PLATFORM_LIMITS.get(platform, client.caption_limit),
                        description_budget=client.description_budget,
                    )
                    post = self._store.begin_post(
                        item.id,
                        platform,
                        language,
                        caption=caption,
                        media_urls=[u for u in (media.image_url, media.video_url) if u],
                    )
                except DuplicateRecordError:
                    continue
                except ValueError as exc:
                    logger.warning("Caption for %s/%s failed: %s", item.id, platform, exc)
                    if report is not None:
                        report.add_error("distribute", str(exc), source=str(platform))
                    continue

                post = self._publish_one(client, post, media)
                created.append(post)
                if report is not None:
                    report.posts_created += 1
                    if post.status == PostStatus.FAILED:
                        report.add_error(
                            "distribute",
                            post.error_message,
                            source=f"{platform}/{language}",
                            error_type="platform_error",
                        )

        self._announce(item, created)
        return created

    def _video_url(self, item: ContentItem) -> str:
        if not item.video_url or self._storage is None:
            return item.video_url
        try:
            return rehost(
                item.video_url,
                self._storage,
                item_id=item.id,
                timeout=self._timeout,
                sleep=self._sleep,
            )
        except (TransientError, OSError, ValueError) as exc:
            logger.warning("Could not re-host video for %s, posting without it: %s", item.id, exc)
            return ""

    def _publish_one(self, client: SocialClient, post: SocialPost, media: MediaSpec) -> SocialPost:
        label = f"{post.platform}/{post.language}"
        try:
            client.validate_media(media)
            container_id = client.create_media_container(media, post.caption)
            poll_until(
                lambda: self._check(client, container_id),
                interval=self._poll_interval,
                max_attempts=self._poll_max_attempts,
                label=f"{label} container {container_id}",
                sleep=self._sleep,
            )
            published = client.publish(container_id)
        except Exception as exc:
            logger.warning("Posting %s for %s failed: %s", label, post.content_item_id, exc)
            post.status = PostStatus.FAILED
            post.error_message = str(exc) or type(exc).__name__
        else:
            post.status = PostStatus.POSTED
            post.external_post_id = published.external_id
            post.post_url = published.url
            post.posted_at = datetime.now(tz=UTC)
            logger.info("Posted %s for %s: %s", label, post.content_item_id, published.url)
        self._store.save_post(post)
        return post

    @staticmethod
    def _check(client: SocialClient, container_id: str) -> bool | None:
        try:
            status = client.poll_status(container_id)
        except TransientError as exc:
            logger.debug("Status check for %s failed, will retry: %s", container_id, exc)
            return None
        if status == ContainerStatus.ERROR:
            raise PlatformError(f"{client.platform}: media processing failed")
        if status == ContainerStatus.READY:
            return True
        return None

    def _announce(self, item: ContentItem, posts: list[SocialPost]) -> None:
        if not posts or self._channel is None or not self._channel.is_configured:
            return
        text = self._summary(item, posts) if self._summary else _plain_summary(posts)
        try:
            self._channel.update_status(item, text)
        except Exception as exc:
            logger.warning("Could not report distribution status for %s: %s", item.id, exc)


def _plain_summary(posts: list[SocialPost]) -> str:
    return "\n".join(f"{p.platform} [{p.language}]: {p.status}" for p in posts)
