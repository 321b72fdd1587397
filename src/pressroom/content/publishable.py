"""Publishable view of a content item.

Social distribution only ever talks to this interface, so news and blog
content share one posting path and differ only in how they answer these
questions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pressroom.content.models import ContentItem, ContentKind
from pressroom.content.slugs import slugify


class Publishable(ABC):
    """Read-only, language-aware accessor over a content item."""

    def __init__(self, item: ContentItem) -> None:
        self._item = item

    @property
    @abstractmethod
    def path_segment(self) -> str:
        """Site URL path segment for this content kind."""

    def get_id(self) -> str:
        return self._item.id

    def get_title(self, language: str) -> str:
        return self._item.variant(language).title

    def get_slug(self, language: str) -> str:
        variant = self._item.variant(language)
        return variant.slug or slugify(variant.title, self._item.id)

    @abstractmethod
    def get_description(self, language: str) -> str:
        """Short description used in captions."""

    def get_tags(self) -> list[str]:
        return list(self._item.tags)

    def get_image_url(self) -> str:
        if self._item.image.url:
            return self._item.image.url
        return self._item.source_images[0] if self._item.source_images else ""

    def get_video_url(self) -> str:
        return self._item.video_url

    def article_url(self, site_url: str, language: str) -> str:
        return f"{site_url.rstrip('/')}/{self.path_segment}/{self.get_slug(language)}"


class NewsPublishable(Publishable):
    @property
    def path_segment(self) -> str:
        return "news"

    def get_description(self, language: str) -> str:
        variant = self._item.variant(language)
        return variant.short_description or variant.body[:300]


class BlogPublishable(Publishable):
    """Blog posts are longer; without a written description use the opening paragraph."""

    @property
    def path_segment(self) -> str:
        return "blog"

    def get_description(self, language: str) -> str:
        variant = self._item.variant(language)
        if variant.short_description:
            return variant.short_description
        first_paragraph = variant.body.strip().split("\n\n", 1)[0]
        return first_paragraph[:500]


def as_publishable(item: ContentItem) -> Publishable:
    if item.kind == ContentKind.BLOG:
        return BlogPublishable(item)
    return NewsPublishable(item)
