"""TikTok client (Content Posting API, direct post via PULL_FROM_URL)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.config import TikTokConfig
from pressroom.content.models import Platform
from pressroom.errors import PlatformError
from pressroom.http import DEFAULT_TIMEOUT
from pressroom.social.base import ContainerStatus, MediaSpec, PublishedPost, SocialClient

logger = logging.getLogger(__name__)

API_BASE = "https://open.tiktokapis.com/v2/post/publish"
MAX_TITLE = 150

_PENDING = {"PROCESSING_UPLOAD", "PROCESSING_DOWNLOAD", "SEND_TO_USER_INBOX"}


class TikTokClient(SocialClient):
    """Posts a video, or a photo post when only an image is available."""

    platform = Platform.TIKTOK
    caption_limit = 2200

    def __init__(
        self,
        config: TikTokConfig,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(timeout=timeout, sleep=sleep)
        self._config = config
        self._post_ids: dict[str, str] = {}

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.access_token}"}

    def validate_media(self, media: MediaSpec) -> None:
        if not (media.video_url or media.image_url):
            raise PlatformError("tiktok: a video or image is required")

    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        self.validate_media(media)
        if media.video_url:
            url = f"{API_BASE}/video/init/"
            body = {
                "post_info": {"title": caption, "privacy_level": "PUBLIC_TO_EVERYONE"},
                "source_info": {"source": "PULL_FROM_URL", "video_url": media.video_url},
            }
        else:
            url = f"{API_BASE}/content/init/"
            body = {
                "media_type": "PHOTO",
                "post_mode": "DIRECT_POST",
                "post_info": {
                    "title": caption.split("\n", 1)[0][:MAX_TITLE],
                    "description": caption,
                    "privacy_level": "PUBLIC_TO_EVERYONE",
                },
                "source_info": {
                    "source": "PULL_FROM_URL",
                    "photo_images": [media.image_url],
                    "photo_cover_index": 0,
                },
            }
        result = self._request("POST", url, json_body=body, headers=self._headers())
        publish_id = str((result.get("data") or {}).get("publish_id") or "")
        if not publish_id:
            raise PlatformError("tiktok: init returned no publish_id")
        return publish_id

    def poll_status(self, container_id: str) -> ContainerStatus:
        result = self._request(
            "POST",
            f"{API_BASE}/status/fetch/",
            json_body={"publish_id": container_id},
            headers=self._headers(),
        )
        data = result.get("data") or {}
        status = str(data.get("status") or "")
        if status == "PUBLISH_COMPLETE":
            post_ids = data.get("publicaly_available_post_id") or []
            self._post_ids[container_id] = str(post_ids[0]) if post_ids else container_id
            return ContainerStatus.READY
        if status in _PENDING or not status:
            return ContainerStatus.PENDING
        logger.warning("TikTok publish %s failed: %s", container_id, data.get("fail_reason"))
        return ContainerStatus.ERROR

    def publish(self, container_id: str) -> PublishedPost:
        # Direct posts go live once processing completes
        post_id = self._post_ids.pop(container_id, container_id)
        return PublishedPost(external_id=post_id)
