"""Social platform clients and distribution fan-out."""

from __future__ import annotations

import time
from collections.abc import Callable

from pressroom.config import PressroomConfig
from pressroom.social.base import SocialClient
from pressroom.social.facebook import FacebookClient
from pressroom.social.instagram import InstagramClient
from pressroom.social.linkedin import LinkedInClient
from pressroom.social.tiktok import TikTokClient


def build_clients(
    config: PressroomConfig, *, sleep: Callable[[float], None] = time.sleep
) -> list[SocialClient]:
    """One client per supported platform; unconfigured ones are skipped at post time."""
    social = config.social
    timeout = config.pipeline.http_timeout
    graph = social.graph_api_version
    return [
        LinkedInClient(social.linkedin, timeout=timeout, sleep=sleep),
        FacebookClient(social.facebook, api_version=graph, timeout=timeout, sleep=sleep),
        InstagramClient(social.instagram, api_version=graph, timeout=timeout, sleep=sleep),
        TikTokClient(social.tiktok, timeout=timeout, sleep=sleep),
    ]


__all__ = [
    "FacebookClient",
    "InstagramClient",
    "LinkedInClient",
    "SocialClient",
    "TikTokClient",
    "build_clients",
]
