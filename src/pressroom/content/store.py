"""JSON-backed pipeline store.

Persists content items, social posts, comments and the pipeline settings
table in a single JSON file.  Every operation runs as a transaction: it
takes an ``flock`` on a sidecar lock file, reloads the JSON, applies the
change and (for writes) saves before releasing the lock.  Workers and CLI
commands therefore share one file without overwriting each other's
writes.  A thread lock additionally serialises the AI-bound stages that
run in small thread batches inside one process.

Uniqueness rules enforced here:

* one content item per dedup key;
* at most one live (non-failed, non-superseded) social post per
  ``(content_item_id, platform, language)``; a pending post older than
  ``stale_pending_after`` is treated as abandoned;
* one comment per ``(platform, external_comment_id)``.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field

from pressroom.content.models import (
    Comment,
    ContentItem,
    ModerationStatus,
    Platform,
    PipelineStage,
    PostStatus,
    PublishStatus,
    SocialPost,
)
from pressroom.errors import DuplicateRecordError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".pressroom-store.json"
LOCK_SUFFIX = ".lock"

# Above the default publish poll ceiling; workers pass the configured one.
STALE_PENDING_AFTER = timedelta(hours=1)


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    items: list[ContentItem] = Field(default_factory=list)
    posts: list[SocialPost] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    settings: dict[str, str] = Field(default_factory=dict)


class ContentStore:
    """JSON-backed store for the content pipeline.

    Getters return copies; callers mutate the copy and hand it back via
    ``save_item`` / ``save_post`` / ``save_comment``.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        stale_pending_after: timedelta = STALE_PENDING_AFTER,
    ) -> None:
        self._path = Path(data_dir) / STORE_FILENAME
        self._lock_path = self._path.with_name(STORE_FILENAME + LOCK_SUFFIX)
        self._lock = threading.RLock()
        self._stale_pending_after = stale_pending_after
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt pipeline store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    @contextmanager
    def _transaction(self, *, write: bool = False) -> Iterator[_StoreData]:
        """Reload the file under the inter-process lock; save on clean exit if ``write``.

        Not re-entrant across the file lock: methods running inside a
        transaction must use the private helpers, never other public methods.
        """
        with self._lock:
            if not write and not self._path.parent.exists():
                self._data = _StoreData()
                yield self._data
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._lock_path, "a", encoding="utf-8") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX if write else fcntl.LOCK_SH)
                try:
                    self._data = self._load()
                    yield self._data
                    if write:
                        self._save()
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _find_item(self, item_id: str) -> ContentItem | None:
        for item in self._data.items:
            if item.id == item_id:
                return item
        return None

    def _find_post(self, post_id: str) -> SocialPost | None:
        for post in self._data.posts:
            if post.id == post_id:
                return post
        return None

    def _find_comment(self, comment_id: str) -> Comment | None:
        for comment in self._data.comments:
            if comment.id == comment_id:
                return comment
        return None

    def _is_stale_pending(self, post: SocialPost, now: datetime) -> bool:
        return (
            post.status == PostStatus.PENDING
            and not post.superseded
            and now - post.created_at > self._stale_pending_after
        )

    def _blocks(self, post: SocialPost, now: datetime) -> bool:
        """A post blocks a new attempt while it is live and not abandoned."""
        return post.is_live and not self._is_stale_pending(post, now)

    def _has_comment(self, platform: Platform, external_comment_id: str) -> bool:
        return any(
            c.platform == platform and c.external_comment_id == external_comment_id
            for c in self._data.comments
        )

    # ── Content items ────────────────────────────────────────────

    def add_item(self, item: ContentItem) -> None:
        """Insert a new content item.

        Raises:
            DuplicateRecordError: If the id or dedup key is already stored.
        """
        with self._transaction(write=True) as data:
            for existing in data.items:
                if existing.dedup_key == item.dedup_key or existing.id == item.id:
                    raise DuplicateRecordError(f"content item already exists: {item.dedup_key}")
            data.items.append(item.model_copy(deep=True))

    def save_item(self, item: ContentItem) -> None:
        """Replace a stored content item by id.

        Raises:
            KeyError: If the item does not exist.
        """
        with self._transaction(write=True) as data:
            for idx, existing in enumerate(data.items):
                if existing.id == item.id:
                    item.updated_at = datetime.now(tz=UTC)
                    data.items[idx] = item.model_copy(deep=True)
                    return
            raise KeyError(item.id)

    def get_item(self, item_id: str) -> ContentItem | None:
        with self._transaction():
            item = self._find_item(item_id)
            return item.model_copy(deep=True) if item else None

    def require_item(self, item_id: str) -> ContentItem:
        item = self.get_item(item_id)
        if item is None:
            raise KeyError(item_id)
        return item

    def has_dedup_key(self, dedup_key: str) -> bool:
        with self._transaction() as data:
            return any(item.dedup_key == dedup_key for item in data.items)

    def find_by_dedup_key(self, dedup_key: str) -> ContentItem | None:
        with self._transaction() as data:
            for item in data.items:
                if item.dedup_key == dedup_key:
                    return item.model_copy(deep=True)
        return None

    def list_items(
        self,
        *,
        moderation_status: ModerationStatus | None = None,
        publish_status: PublishStatus | None = None,
        stage: PipelineStage | None = None,
    ) -> list[ContentItem]:
        with self._transaction() as data:
            results = data.items
            if moderation_status is not None:
                results = [i for i in results if i.moderation_status == moderation_status]
            if publish_status is not None:
                results = [i for i in results if i.publish_status == publish_status]
            if stage is not None:
                results = [i for i in results if i.stage == stage]
            return [i.model_copy(deep=True) for i in results]

    def recent_titles(self, since: datetime, *, exclude_id: str = "") -> list[str]:
        """Original titles of items created at or after ``since``."""
        with self._transaction() as data:
            return [
                item.original_title
                for item in data.items
                if item.created_at >= since and item.id != exclude_id
            ]

    # ── Social posts ─────────────────────────────────────────────

    def live_post(self, item_id: str, platform: Platform, language: str) -> SocialPost | None:
        """Return the pending/posted record for this triple, if any.

        Pending posts older than ``stale_pending_after`` do not count.
        """
        now = datetime.now(tz=UTC)
        with self._transaction() as data:
            for post in data.posts:
                if (
                    post.content_item_id == item_id
                    and post.platform == platform
                    and post.language == language
                    and self._blocks(post, now)
                ):
                    return post.model_copy(deep=True)
        return None

    def begin_post(
        self,
        item_id: str,
        platform: Platform,
        language: str,
        *,
        caption: str = "",
        media_urls: list[str] | None = None,
    ) -> SocialPost:
        """Create a pending social post, superseding earlier attempts.

        Failed attempts are superseded.  A pending attempt left behind by a
        crashed process is marked failed and superseded once it is older
        than ``stale_pending_after``.

        Raises:
            DuplicateRecordError: If a live post for the triple exists.
        """
        now = datetime.now(tz=UTC)
        with self._transaction(write=True) as data:
            for post in data.posts:
                if (
                    post.content_item_id != item_id
                    or post.platform != platform
                    or post.language != language
                ):
                    continue
                if self._blocks(post, now):
                    raise DuplicateRecordError(
                        f"live post exists for {item_id}/{platform}/{language}"
                    )
                if self._is_stale_pending(post, now):
                    logger.warning(
                        "Superseding abandoned pending post %s (%s/%s)",
                        post.id,
                        platform,
                        language,
                    )
                    post.status = PostStatus.FAILED
                    post.error_message = post.error_message or "abandoned while pending"
                post.superseded = True
            post = SocialPost(
                id=uuid.uuid4().hex,
                content_item_id=item_id,
                platform=platform,
                language=language,
                caption=caption,
                media_urls=list(media_urls or []),
            )
            data.posts.append(post)
            return post.model_copy(deep=True)

    def save_post(self, post: SocialPost) -> None:
        with self._transaction(write=True) as data:
            for idx, existing in enumerate(data.posts):
                if existing.id == post.id:
                    data.posts[idx] = post.model_copy(deep=True)
                    return
            raise KeyError(post.id)

    def get_post(self, post_id: str) -> SocialPost | None:
        with self._transaction():
            post = self._find_post(post_id)
            return post.model_copy(deep=True) if post else None

    def list_posts(
        self,
        *,
        item_id: str | None = None,
        status: PostStatus | None = None,
        include_superseded: bool = False,
    ) -> list[SocialPost]:
        with self._transaction() as data:
            results = data.posts
            if item_id is not None:
                results = [p for p in results if p.content_item_id == item_id]
            if status is not None:
                results = [p for p in results if p.status == status]
            if not include_superseded:
                results = [p for p in results if not p.superseded]
            return [p.model_copy(deep=True) for p in results]

    # ── Comments ─────────────────────────────────────────────────

    def has_comment(self, platform: Platform, external_comment_id: str) -> bool:
        with self._transaction():
            return self._has_comment(platform, external_comment_id)

    def add_comment(self, comment: Comment) -> None:
        """Insert a comment.

        Raises:
            DuplicateRecordError: If the platform comment is already stored.
        """
        with self._transaction(write=True) as data:
            if self._has_comment(comment.platform, comment.external_comment_id):
                raise DuplicateRecordError(
                    f"comment already stored: {comment.platform}/{comment.external_comment_id}"
                )
            data.comments.append(comment.model_copy(deep=True))

    def save_comment(self, comment: Comment) -> None:
        with self._transaction(write=True) as data:
            for idx, existing in enumerate(data.comments):
                if existing.id == comment.id:
                    data.comments[idx] = comment.model_copy(deep=True)
                    return
            raise KeyError(comment.id)

    def get_comment(self, comment_id: str) -> Comment | None:
        with self._transaction():
            comment = self._find_comment(comment_id)
            return comment.model_copy(deep=True) if comment else None

    def list_comments(
        self,
        *,
        social_post_id: str | None = None,
        is_replied: bool | None = None,
    ) -> list[Comment]:
        with self._transaction() as data:
            results = data.comments
            if social_post_id is not None:
                results = [c for c in results if c.social_post_id == social_post_id]
            if is_replied is not None:
                results = [c for c in results if c.is_replied == is_replied]
            return [c.model_copy(deep=True) for c in results]

    # ── Settings (pipeline_policy key/value table) ───────────────

    def get_setting(self, key: str) -> str | None:
        with self._transaction() as data:
            return data.settings.get(key)

    def set_setting(self, key: str, value: str) -> None:
        with self._transaction(write=True) as data:
            data.settings[key] = value

    def settings(self) -> dict[str, str]:
        with self._transaction() as data:
            return dict(data.settings)

    def fresh_settings(self) -> dict[str, str]:
        """Settings as currently on disk, including other processes' writes."""
        return self.settings()
