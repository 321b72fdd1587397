"""Content domain: items, posts, comments, policy and persistence."""

from pressroom.content.models import (
    Comment,
    ContentItem,
    ContentKind,
    LanguageVariant,
    ModerationStatus,
    PipelinePolicy,
    PipelineStage,
    Platform,
    PostStatus,
    PublishStatus,
    Sentiment,
    SocialPost,
    resolve_variant,
)
from pressroom.content.store import ContentStore

__all__ = [
    "Comment",
    "ContentItem",
    "ContentKind",
    "ContentStore",
    "LanguageVariant",
    "ModerationStatus",
    "PipelinePolicy",
    "PipelineStage",
    "Platform",
    "PostStatus",
    "PublishStatus",
    "Sentiment",
    "SocialPost",
    "resolve_variant",
]
