"""Ingestion data types shared by all source adapters."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from pressroom.content.models import ItemSource


class SourceType(StrEnum):
    RSS = "rss"
    TELEGRAM = "telegram"


class RawItem(BaseModel):
    """A normalized item pulled from any source, before deduplication."""

    url: str = ""
    title: str
    body: str = ""
    images: list[str] = Field(default_factory=list)
    video_url: str = ""
    published_at: datetime | None = None
    source_ref: ItemSource
    source_link: str = ""

    @property
    def word_count(self) -> int:
        return len(self.body.split()) if self.body else 0
