"""Facebook page client (Graph API)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.config import FacebookConfig
from pressroom.content.models import Platform
from pressroom.errors import PlatformError
from pressroom.http import DEFAULT_TIMEOUT
from pressroom.social.base import MediaSpec, PublishedPost, RemoteComment, SocialClient
from pressroom.social.graph import graph_base, parse_graph_time

logger = logging.getLogger(__name__)

COMMENT_FIELDS = "id,from,message,created_time,parent"


class FacebookClient(SocialClient):
    """Posts to a page as a photo (when an image exists) or a link post."""

    platform = Platform.FACEBOOK
    caption_limit = 63206
    description_budget = 400
    supports_comments = True

    def __init__(
        self,
        config: FacebookConfig,
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
        return {"access_token": self._config.page_access_token}

    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        if media.image_url:
            return self._stash(
                {"endpoint": "photos", "form": {"url": media.image_url, "caption": caption}}
            )
        form = {"message": caption}
        if media.link_url:
            form["link"] = media.link_url
        return self._stash({"endpoint": "feed", "form": form})

    def publish(self, container_id: str) -> PublishedPost:
        payload = self._take(container_id)
        result = self._request(
            "POST",
            f"{self._base}/{self._config.page_id}/{payload['endpoint']}",
            form={**payload["form"], **self._auth()},
        )
        # Photo uploads return both the photo id and the feed post id
        post_id = str(result.get("post_id") or result.get("id") or "")
        if not post_id:
            raise PlatformError("facebook: response did not include a post id")
        logger.info("Published Facebook post %s", post_id)
        return PublishedPost(external_id=post_id, url=f"https://www.facebook.com/{post_id}")

    def fetch_comments(self, external_post_id: str) -> list[RemoteComment]:
        result = self._request(
            "GET",
            f"{self._base}/{external_post_id}/comments",
            params={"fields": COMMENT_FIELDS, "limit": 100, **self._auth()},
        )
        comments = []
        for entry in result.get("data") or []:
            if not entry.get("id") or not entry.get("message"):
                continue
            comments.append(
                RemoteComment(
                    external_id=str(entry["id"]),
                    author_name=str((entry.get("from") or {}).get("name") or "Unknown"),
                    text=str(entry["message"]),
                    created_at=parse_graph_time(entry.get("created_time")),
                    parent_id=str((entry.get("parent") or {}).get("id") or ""),
                )
            )
        return comments

    def reply_to_comment(self, external_comment_id: str, text: str) -> str:
        result = self._request(
            "POST",
            f"{self._base}/{external_comment_id}/comments",
            form={"message": text, **self._auth()},
        )
        return str(result.get("id") or "")

    def hide_comment(self, external_comment_id: str) -> None:
        self._request(
            "POST",
            f"{self._base}/{external_comment_id}",
            form={"is_hidden": "true", **self._auth()},
        )
