"""Platform caption building.

A caption is ``title``, ``description``, then the article URL and
hashtags.  When the whole caption exceeds the platform limit the
description is shortened first, then the title; the URL and hashtags
are never cut.
"""

from __future__ import annotations

import re

from pressroom.content.models import Platform

PLATFORM_LIMITS: dict[Platform, int] = {
    Platform.INSTAGRAM: 2200,
    Platform.FACEBOOK: 63206,
    Platform.LINKEDIN: 3000,
    Platform.TIKTOK: 2200,
}

MAX_HASHTAGS = 5
SEPARATOR = "\n\n"
ELLIPSIS = "..."


def hashtags(tags: list[str], max_tags: int = MAX_HASHTAGS) -> list[str]:
    """``["machine learning", "AI"]`` → ``["#machinelearning", "#AI"]``."""
    result: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        cleaned = re.sub(r"[\W_]+", "", tag)
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(f"#{cleaned}")
        if len(result) == max_tags:
            break
    return result


def truncate(text: str, max_len: int) -> str:
    """Cut ``text`` to ``max_len`` characters, ending with an ellipsis."""
    text = text.strip()
    if len(text) <= max_len:
        return text
    if max_len <= len(ELLIPSIS):
        return ""
    cut = text[: max_len - len(ELLIPSIS)].rstrip()
    space = cut.rfind(" ")
    if space > max_len // 2:
        cut = cut[:space].rstrip()
    return cut + ELLIPSIS


def _join(*parts: str) -> str:
    return SEPARATOR.join(p for p in parts if p)


def build_caption(
    title: str,
    description: str,
    url: str,
    tags: list[str],
    *,
    limit: int,
    description_budget: int | None = None,
) -> str:
    """Assemble a caption no longer than ``limit``.

    Raises:
        ValueError: If the URL alone does not fit.
    """
    if len(url) > limit:
        raise ValueError(f"article URL is longer than the {limit}-character caption limit")

    tail = _join(url, " ".join(hashtags(tags)))
    if len(tail) > limit:
        tail = url

    title = title.strip()
    description = description.strip()
    if description_budget is not None:
        description = truncate(description, description_budget)

    caption = _join(title, description, tail)
    if len(caption) <= limit:
        return caption

    room = limit - len(tail) - len(SEPARATOR)
    title = truncate(title, room)
    description_room = room - len(title) - len(SEPARATOR) if title else room
    description = truncate(description, description_room) if description_room > 0 else ""
    return _join(title, description, tail)
