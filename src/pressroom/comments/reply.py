"""Replying to, hiding and reading comments.

Replies are never sent automatically: a ``ReplyRequest`` must carry
``confirmed=True`` before anything reaches a platform API.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel

from pressroom.comments.prompts import REPLY_SYSTEM_PROMPT, get_reply_prompt
from pressroom.content.models import Comment, ContentItem, Platform, SocialPost
from pressroom.content.store import ContentStore
from pressroom.errors import InvalidTransitionError, PlatformError
from pressroom.llm import LLMError, call_llm
from pressroom.social.base import SocialClient

logger = logging.getLogger(__name__)


class ReplyRequest(BaseModel):
    comment_id: str
    text: str
    confirmed: bool = False
    was_edited: bool = False
    ai_generated_text: str = ""


def draft_reply(
    comment: Comment,
    post: SocialPost,
    item: ContentItem | None,
    *,
    model: str | None = None,
    timeout: int = 60,
) -> str:
    """Suggest a reply; empty string when the LLM is unavailable."""
    variant = item.variant(post.language) if item is not None else None
    try:
        text = call_llm(
            REPLY_SYSTEM_PROMPT,
            get_reply_prompt(
                comment=comment.text,
                author_name=comment.author_name if comment.author_name != "Unknown" else "",
                platform=str(post.platform),
                language=post.language,
                article_title=variant.title if variant else "",
                article_summary=(variant.short_description or variant.body) if variant else "",
                sentiment=str(comment.sentiment),
            ),
            temperature=0.7,
            max_tokens=200,
            model=model,
            timeout=timeout,
            label="comment-reply",
        )
    except LLMError as exc:
        logger.warning("Reply draft for comment %s failed: %s", comment.id, exc)
        return ""
    return text.strip().strip('"')


class CommentReplier:
    """Human-confirmed actions on stored comments."""

    def __init__(self, store: ContentStore, clients: Iterable[SocialClient]) -> None:
        self._store = store
        self._clients = {client.platform: client for client in clients}

    def _client(self, platform: Platform) -> SocialClient:
        client = self._clients.get(platform)
        if client is None or not client.is_configured:
            raise PlatformError(f"{platform} is not configured")
        return client

    def _require(self, comment_id: str) -> Comment:
        comment = self._store.get_comment(comment_id)
        if comment is None:
            raise KeyError(comment_id)
        return comment

    def reply(self, request: ReplyRequest) -> Comment:
        """Post a confirmed reply and mark the comment replied.

        Raises:
            InvalidTransitionError: Not confirmed, empty text, or already replied.
            KeyError: Unknown comment.
            PlatformError: The platform rejected the reply.
        """
        if not request.confirmed:
            raise InvalidTransitionError("reply requires explicit confirmation")
        text = request.text.strip()
        if not text:
            raise InvalidTransitionError("reply text is empty")

        comment = self._require(request.comment_id)
        if comment.is_replied:
            raise InvalidTransitionError(f"comment {comment.id} already has a reply")

        self._client(comment.platform).reply_to_comment(comment.external_comment_id, text)

        ai_text = request.ai_generated_text or comment.suggested_reply
        comment.is_replied = True
        comment.is_read = True
        comment.reply_text = text
        comment.was_edited = request.was_edited or bool(ai_text and ai_text.strip() != text)
        comment.replied_at = datetime.now(tz=UTC)
        self._store.save_comment(comment)
        logger.info("Replied to %s comment %s", comment.platform, comment.external_comment_id)
        return comment

    def hide(self, comment_id: str) -> Comment:
        comment = self._require(comment_id)
        if comment.is_hidden:
            return comment
        self._client(comment.platform).hide_comment(comment.external_comment_id)
        comment.is_hidden = True
        self._store.save_comment(comment)
        return comment

    def mark_read(self, comment_id: str) -> Comment:
        comment = self._require(comment_id)
        if not comment.is_read:
            comment.is_read = True
            self._store.save_comment(comment)
        return comment
