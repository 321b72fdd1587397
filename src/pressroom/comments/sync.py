"""Periodic comment sync for posted social posts."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Protocol

from pressroom.comments.reply import draft_reply
from pressroom.comments.sentiment import classify_sentiment
from pressroom.content.models import Comment, ContentItem, PostStatus, Sentiment, SocialPost
from pressroom.content.store import ContentStore
from pressroom.errors import DuplicateRecordError, PipelineReport
from pressroom.social.base import RemoteComment, SocialClient

logger = logging.getLogger(__name__)


class CommentNotifier(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def notify_comment(self, comment: Comment, post: SocialPost, article_title: str) -> None: ...


class CommentSync:
    """Pulls new comments, classifies them, and optionally drafts replies."""

    def __init__(
        self,
        store: ContentStore,
        clients: Iterable[SocialClient],
        *,
        notifier: CommentNotifier | None = None,
        draft_replies: bool = True,
        model: str | None = None,
        timeout: int = 60,
    ) -> None:
        self._store = store
        self._clients = {client.platform: client for client in clients}
        self._notifier = notifier
        self._draft_replies = draft_replies
        self._model = model
        self._timeout = timeout

    def sync(self, report: PipelineReport | None = None) -> list[Comment]:
        """Store comments not seen before; return the new ones."""
        new_comments: list[Comment] = []
        for post in self._store.list_posts(status=PostStatus.POSTED):
            client = self._clients.get(post.platform)
            if client is None or not client.is_configured or not client.supports_comments:
                continue
            if not post.external_post_id:
                continue
            try:
                remote = client.fetch_comments(post.external_post_id)
            except Exception as exc:
                logger.warning(
                    "Fetching comments for %s post %s failed: %s", post.platform, post.id, exc
                )
                if report is not None:
                    report.add_error(
                        "comments",
                        str(exc),
                        source=f"{post.platform}/{post.id}",
                        error_type="fetch_error",
                    )
                continue

            item = self._store.get_item(post.content_item_id)
            for entry in remote:
                if self._store.has_comment(post.platform, entry.external_id):
                    continue
                comment = self._build(entry, post, item)
                try:
                    self._store.add_comment(comment)
                except DuplicateRecordError:
                    continue
                new_comments.append(comment)
                self._notify(comment, post, item)

        if new_comments:
            logger.info("Synced %d new comment(s)", len(new_comments))
        return new_comments

    def _build(self, entry: RemoteComment, post: SocialPost, item: ContentItem | None) -> Comment:
        sentiment = classify_sentiment(entry.text, model=self._model, timeout=self._timeout)
        comment = Comment(
            id=uuid.uuid4().hex,
            social_post_id=post.id,
            platform=post.platform,
            external_comment_id=entry.external_id,
            author_name=entry.author_name,
            text=entry.text,
            sentiment=sentiment.category,
            sentiment_score=sentiment.score,
        )
        if entry.created_at is not None:
            comment.created_at = entry.created_at
        if self._draft_replies and comment.sentiment != Sentiment.SPAM:
            comment.suggested_reply = draft_reply(
                comment, post, item, model=self._model, timeout=self._timeout
            )
        return comment

    def _notify(self, comment: Comment, post: SocialPost, item: ContentItem | None) -> None:
        if self._notifier is None or not self._notifier.is_configured:
            return
        title = item.variant("en").title if item is not None else "Unknown article"
        try:
            self._notifier.notify_comment(comment, post, title)
        except Exception as exc:
            logger.warning("Comment notification for %s failed: %s", comment.id, exc)
