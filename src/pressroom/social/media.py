"""Media resolution for social posts.

Telegram serves channel videos from short-lived CDN URLs that expire
before platforms finish pulling them, so such videos are downloaded
and re-hosted in object storage first.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import urlsplit

from pressroom.concurrency import retry_transient
from pressroom.content.publishable import Publishable
from pressroom.http import DEFAULT_TIMEOUT, download
from pressroom.social.base import MediaSpec

logger = logging.getLogger(__name__)

EPHEMERAL_HOST_SUFFIXES = ("t.me", "telesco.pe", "telegram.org", "cdn-telegram.org")


class Uploader(Protocol):
    def upload(self, data: bytes, path: str, content_type: str = "") -> str: ...


def is_ephemeral(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return any(host == s or host.endswith("." + s) for s in EPHEMERAL_HOST_SUFFIXES)


def rehost(
    url: str,
    storage: Uploader,
    *,
    item_id: str,
    timeout: int = DEFAULT_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Copy media behind an ephemeral URL into storage; other URLs pass through.

    Raises:
        TransientError: If the download still fails after retries.
    """
    if not is_ephemeral(url):
        return url
    data, content_type = retry_transient(
        lambda: download(url, timeout=timeout), label=f"download {item_id}", sleep=sleep
    )
    suffix = PurePosixPath(urlsplit(url).path).suffix or ".mp4"
    name = hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]
    path = f"videos/{item_id}/{name}{suffix}"
    public_url = storage.upload(data, path, content_type or "video/mp4")
    logger.info("Re-hosted %s as %s", url, public_url)
    return public_url


def resolve_media(
    publishable: Publishable,
    site_url: str,
    language: str,
    *,
    video_url: str = "",
) -> MediaSpec:
    return MediaSpec(
        image_url=publishable.get_image_url(),
        video_url=video_url,
        link_url=publishable.article_url(site_url, language),
    )
