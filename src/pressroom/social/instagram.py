"""Instagram business account client (Graph API content publishing).

Publishing is asynchronous: a media container is created, its
``status_code`` is polled until FINISHED, and only then is it published.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.config import InstagramConfig
from pressroom.content.models import Platform
from pressroom.errors import PlatformError
from pressroom.http import DEFAULT_TIMEOUT
from pressroom.social.base import (
    ContainerStatus,
    MediaSpec,
    PublishedPost,
    RemoteComment,
    SocialClient,
)
from pressroom.social.graph import graph_base, parse_graph_time

logger = logging.getLogger(__name__)

COMMENT_FIELDS = "id,text,username,timestamp,replies{id,text,username,timestamp}"

_STATUS_MAP = {
    "FINISHED": ContainerStatus.READY,
    "PUBLISHED": ContainerStatus.READY,
    "IN_PROGRESS": ContainerStatus.PENDING,
    "ERROR": ContainerStatus.ERROR,
    "EXPIRED": ContainerStatus.ERROR,
}


class InstagramClient(SocialClient):
    platform = Platform.INSTAGRAM
    caption_limit = 2200
    supports_comments = True

    def __init__(
        self,
        config: InstagramConfig,
        *,
        api_version: str = "v18.0",
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(timeout=timeout, sleep=sleep)
        self._config = config
        self._base = graph_base(api_version)

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def _auth(self) -> dict[str, str]:
        return {"access_token": self._config.access_token}

    def validate_media(self, media: MediaSpec) -> None:
        if not media.image_url:
            raise PlatformError("instagram: an image is required")

    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        self.validate_media(media)
        if media.video_url:
            form = {
                "media_type": "REELS",
                "video_url": media.video_url,
                "cover_url": media.image_url,
            }
        else:
            form = {"image_url": media.image_url}
        result = self._request(
            "POST",
            f"{self._base}/{self._config.account_id}/media",
            form={**form, "caption": caption, **self._auth()},
        )
        container_id = str(result.get("id") or "")
        if not container_id:
            raise PlatformError("instagram: container creation returned no id")
        logger.info("Created Instagram container %s", container_id)
        return container_id

    def poll_status(self, container_id: str) -> ContainerStatus:
        result = self._request(
            "GET",
            f"{self._base}/{container_id}",
            params={"fields": "status_code", **self._auth()},
        )
        code = str(result.get("status_code") or "IN_PROGRESS").upper()
        return _STATUS_MAP.get(code, ContainerStatus.PENDING)

    def publish(self, container_id: str) -> PublishedPost:
        result = self._request(
            "POST",
            f"{self._base}/{self._config.account_id}/media_publish",
            form={"creation_id": container_id, **self._auth()},
        )
        media_id = str(result.get("id") or "")
        if not media_id:
            raise PlatformError("instagram: publish returned no media id")

        details = self._request(
            "GET",
            f"{self._base}/{media_id}",
            params={"fields": "permalink", **self._auth()},
        )
        logger.info("Published Instagram media %s", media_id)
        return PublishedPost(external_id=media_id, url=str(details.get("permalink") or ""))

    def fetch_comments(self, external_post_id: str) -> list[RemoteComment]:
        result = self._request(
            "GET",
            f"{self._base}/{external_post_id}/comments",
            params={"fields": COMMENT_FIELDS, **self._auth()},
        )
        comments: list[RemoteComment] = []
        for entry in result.get("data") or []:
            comments.extend(_to_comments(entry))
        return comments

    def reply_to_comment(self, external_comment_id: str, text: str) -> str:
        result = self._request(
            "POST",
            f"{self._base}/{external_comment_id}/replies",
            form={"message": text, **self._auth()},
        )
        return str(result.get("id") or "")

    def hide_comment(self, external_comment_id: str) -> None:
        self._request(
            "POST",
            f"{self._base}/{external_comment_id}",
            form={"hide": "true", **self._auth()},
        )


def _to_comments(entry: dict, parent_id: str = "") -> list[RemoteComment]:
    """Flatten a comment and its inline replies."""
    if not entry.get("id") or not entry.get("text"):
        return []
    comment = RemoteComment(
        external_id=str(entry["id"]),
        author_name=str(entry.get("username") or "Unknown"),
        text=str(entry["text"]),
        created_at=parse_graph_time(entry.get("timestamp")),
        parent_id=parent_id,
    )
    replies = (entry.get("replies") or {}).get("data") or []
    flattened = [comment]
    for reply in replies:
        flattened.extend(_to_comments(reply, parent_id=comment.external_id))
    return flattened
