"""LinkedIn client (UGC Posts API)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.config import LinkedInConfig
from pressroom.content.models import Platform
from pressroom.errors import PlatformError
from pressroom.http import DEFAULT_TIMEOUT
from pressroom.social.base import MediaSpec, PublishedPost, SocialClient

logger = logging.getLogger(__name__)

API_URL = "https://api.linkedin.com/v2/ugcPosts"
POST_URL = "https://www.linkedin.com/feed/update/{urn}"


class LinkedInClient(SocialClient):
    """Shares an article link with commentary as the configured author.

    Comment access needs Marketing Developer Platform approval, so
    ``supports_comments`` stays off.
    """

    platform = Platform.LINKEDIN
    caption_limit = 3000

    def __init__(
        self,
        config: LinkedInConfig,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(timeout=timeout, sleep=sleep)
        self._config = config

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        content: dict = {
            "shareCommentary": {"text": caption},
            "shareMediaCategory": "NONE",
        }
        if media.link_url:
            article: dict = {"status": "READY", "originalUrl": media.link_url}
            if media.image_url:
                article["thumbnails"] = [{"url": media.image_url}]
            content["shareMediaCategory"] = "ARTICLE"
            content["media"] = [article]

        return self._stash(
            {
                "author": self._config.author_urn,
                "lifecycleState": "PUBLISHED",
                "specificContent": {"com.linkedin.ugc.ShareContent": content},
                "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
            }
        )

    def publish(self, container_id: str) -> PublishedPost:
        payload = self._take(container_id)
        result = self._request(
            "POST",
            API_URL,
            json_body=payload,
            headers={
                "Authorization": f"Bearer {self._config.access_token}",
                "X-Restli-Protocol-Version": "2.0.0",
            },
        )
        urn = str(result.get("id") or "")
        if not urn:
            raise PlatformError("linkedin: response did not include a post id")
        logger.info("Published LinkedIn post %s", urn)
        return PublishedPost(external_id=urn, url=POST_URL.format(urn=urn))
