"""Telegram bot moderation channel.

Items awaiting approval are announced with inline approve/reject
buttons; the callback data is ``approve:<item_id>`` / ``reject:<item_id>``.
Messages use Telegram's HTML parse mode.
"""

from __future__ import annotations

import html
import logging
import time
from collections.abc import Callable
from typing import Any

from pressroom.concurrency import retry_transient
from pressroom.config import TelegramSectionConfig
from pressroom.content.models import ApprovalMessage, Comment, ContentItem, SocialPost
from pressroom.errors import PlatformError, TransientError
from pressroom.http import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"
PREVIEW_CHARS = 500

_POST_STATUS_ICONS = {"posted": "✅", "failed": "❌", "pending": "⏳"}


def format_item_message(item: ContentItem, status: str) -> str:
    variant = item.variant("en")
    preview = variant.short_description or variant.body[:PREVIEW_CHARS]
    lines = [
        f"<b>{html.escape(status)}</b>",
        "",
        f"<b>{html.escape(variant.title)}</b>",
        html.escape(preview),
    ]
    if item.url:
        lines += ["", f'<a href="{html.escape(item.url, quote=True)}">Source</a>']
    if item.image.url:
        lines.append(f'<a href="{html.escape(item.image.url, quote=True)}">Image</a>')
    languages = ", ".join(sorted(item.language_variants)) or "none"
    lines += ["", f"Languages: {languages}", f"ID: <code>{item.id}</code>"]
    return "\n".join(lines)


def format_distribution_summary(item: ContentItem, posts: list[SocialPost]) -> str:
    lines = [f"<b>Published:</b> {html.escape(item.variant('en').title)}", ""]
    for post in sorted(posts, key=lambda p: (p.platform, p.language)):
        icon = _POST_STATUS_ICONS.get(post.status, "•")
        line = f"{icon} {post.platform} [{post.language}]"
        if post.post_url:
            line += f' <a href="{html.escape(post.post_url, quote=True)}">view</a>'
        elif post.error_message:
            line += f": {html.escape(post.error_message[:200])}"
        lines.append(line)
    if not posts:
        lines.append("No social posts were created.")
    return "\n".join(lines)


def format_comment_message(comment: Comment, post: SocialPost, article_title: str) -> str:
    text = comment.text[:PREVIEW_CHARS] + ("..." if len(comment.text) > PREVIEW_CHARS else "")
    lines = [
        f"<b>New comment on {post.platform}</b> [{comment.sentiment}]",
        "",
        f"<b>Article:</b> {html.escape(article_title)}",
        f"<b>Author:</b> {html.escape(comment.author_name or 'Unknown')}",
        "",
        f"<i>{html.escape(text)}</i>",
    ]
    if comment.suggested_reply:
        suggestion = html.escape(comment.suggested_reply)
        lines += ["", "<b>Suggested reply:</b>", f"<code>{suggestion}</code>"]
    lines += ["", f"ID: <code>{comment.id}</code>"]
    return "\n".join(lines)


class TelegramChannel:
    """Human-approval channel backed by the Telegram Bot API."""

    def __init__(
        self,
        config: TelegramSectionConfig,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    @property
    def chat_id(self) -> str:
        return self._config.moderation_chat_id

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = API_URL.format(token=self._config.bot_token, method=method)
        response = retry_transient(
            lambda: request_json("POST", url, json_body=payload, timeout=self._timeout),
            label=f"telegram {method}",
            sleep=self._sleep,
        )
        if not response.get("ok"):
            raise PlatformError(f"telegram {method}: {response.get('description', 'not ok')}")
        result = response.get("result")
        return result if isinstance(result, dict) else {}

    def _send(self, text: str, **extra: Any) -> ApprovalMessage:
        result = self._call(
            "sendMessage",
            {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML", **extra},
        )
        return ApprovalMessage(chat_id=self.chat_id, message_id=int(result.get("message_id", 0)))

    def notify(self, item: ContentItem, status: str) -> ApprovalMessage:
        """Announce an item with approve/reject buttons.

        Raises:
            PlatformError: If Telegram rejects the message.
            TransientError: On network failure.
        """
        keyboard = {
            "inline_keyboard": [
                [
                    {"text": "✅ Publish", "callback_data": f"approve:{item.id}"},
                    {"text": "❌ Reject", "callback_data": f"reject:{item.id}"},
                ]
            ]
        }
        message = self._send(format_item_message(item, status), reply_markup=keyboard)
        logger.info("Sent item %s to moderation (message %d)", item.id, message.message_id)
        return message

    def edit_message(self, chat_id: str, message_id: int, text: str) -> bool:
        """Replace a message's text; False when Telegram refuses (e.g. too old)."""
        try:
            self._call(
                "editMessageText",
                {"chat_id": chat_id, "message_id": message_id, "text": text, "parse_mode": "HTML"},
            )
        except (PlatformError, TransientError) as exc:
            logger.warning("Could not edit message %s/%s: %s", chat_id, message_id, exc)
            return False
        return True

    def send_fallback(self, chat_id: str, reply_to_id: int | None, text: str) -> ApprovalMessage:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        if reply_to_id:
            payload["reply_to_message_id"] = reply_to_id
            payload["allow_sending_without_reply"] = True
        result = self._call("sendMessage", payload)
        return ApprovalMessage(chat_id=chat_id, message_id=int(result.get("message_id", 0)))

    def update_status(self, item: ContentItem, text: str) -> None:
        """Edit the item's moderation message, or post a new one if that fails."""
        if item.approval_message is None:
            self.send_fallback(self.chat_id, None, text)
            return
        chat_id = item.approval_message.chat_id
        message_id = item.approval_message.message_id
        if not self.edit_message(chat_id, message_id, text):
            self.send_fallback(chat_id, message_id, text)

    def notify_comment(self, comment: Comment, post: SocialPost, article_title: str) -> None:
        keyboard = {
            "inline_keyboard": [
                [
                    {"text": "✅ Reply", "callback_data": f"reply_comment:{comment.id}"},
                    {"text": "🚫 Ignore", "callback_data": f"ignore_comment:{comment.id}"},
                ]
            ]
        }
        self._send(format_comment_message(comment, post, article_title), reply_markup=keyboard)
