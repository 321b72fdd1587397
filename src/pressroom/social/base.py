"""Uniform social platform interface.

Every platform is modelled as ``create_media_container → poll_status →
publish``.  Platforms that publish synchronously keep the prepared
payload locally as a "container" whose status is immediately READY.
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from pressroom.concurrency import retry_transient
from pressroom.content.models import Platform
from pressroom.errors import PlatformError
from pressroom.http import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)


class ContainerStatus(StrEnum):
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class MediaSpec(BaseModel):
    """Media attached to one post: at most one image and one video."""

    image_url: str = ""
    video_url: str = ""
    link_url: str = ""


class PublishedPost(BaseModel):
    external_id: str
    url: str = ""


class RemoteComment(BaseModel):
    """A comment as returned by a platform API."""

    external_id: str
    author_name: str = ""
    text: str = ""
    created_at: datetime | None = None
    parent_id: str = ""


class SocialClient(ABC):
    """Base class for platform clients."""

    platform: Platform
    caption_limit: int = 2200
    description_budget: int | None = None
    supports_comments: bool = False
    request_attempts: int = 3
    retry_base_delay: float = 1.0

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._timeout = timeout
        self._sleep = sleep
        self._local_containers: dict[str, dict[str, Any]] = {}

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials for this platform are present."""

    def validate_media(self, media: MediaSpec) -> None:
        """Raise PlatformError when the platform cannot post this media."""

    @abstractmethod
    def create_media_container(self, media: MediaSpec, caption: str) -> str:
        """Submit media and caption; return a container id."""

    def poll_status(self, container_id: str) -> ContainerStatus:
        return ContainerStatus.READY

    @abstractmethod
    def publish(self, container_id: str) -> PublishedPost:
        """Publish a ready container."""

    def fetch_comments(self, external_post_id: str) -> list[RemoteComment]:
        raise PlatformError(f"{self.platform}: comment access is not supported")

    def reply_to_comment(self, external_comment_id: str, text: str) -> str:
        raise PlatformError(f"{self.platform}: replying is not supported")

    def hide_comment(self, external_comment_id: str) -> None:
        raise PlatformError(f"{self.platform}: hiding comments is not supported")

    # ── Helpers ──────────────────────────────────────────────────

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """``request_json`` with transient failures (429, 5xx, network) retried."""
        return retry_transient(
            lambda: request_json(method, url, timeout=self._timeout, **kwargs),
            attempts=self.request_attempts,
            base_delay=self.retry_base_delay,
            label=f"{self.platform} {method}",
            sleep=self._sleep,
        )

    def _stash(self, payload: dict[str, Any]) -> str:
        """Hold a payload for a synchronous platform until ``publish``."""
        container_id = f"local-{uuid.uuid4().hex[:12]}"
        self._local_containers[container_id] = payload
        return container_id

    def _take(self, container_id: str) -> dict[str, Any]:
        try:
            return self._local_containers.pop(container_id)
        except KeyError:
            raise PlatformError(f"{self.platform}: unknown container {container_id}") from None
