"""Content domain models — pure Pydantic v2 data types.

A ContentItem is created once per dedup key at ingestion and mutated in
place by every pipeline stage.  SocialPost and Comment records hang off
it by id.  Nothing here performs I/O.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

FALLBACK_LANGUAGE = "en"
DEFAULT_LANGUAGES: tuple[str, ...] = ("en", "no", "ua")


def _now() -> datetime:
    return datetime.now(tz=UTC)


class ContentKind(StrEnum):
    """Kind of publishable content; selects the site URL path."""

    NEWS = "news"
    BLOG = "blog"


class ModerationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PublishStatus(StrEnum):
    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"


class PipelineStage(StrEnum):
    """Per-item state machine cursor, advanced by ``PipelineDriver``."""

    INGESTED = "ingested"
    MODERATED = "moderated"
    REWRITTEN = "rewritten"
    ILLUSTRATED = "illustrated"
    AWAITING_APPROVAL = "awaiting_approval"
    PUBLISHED = "published"
    DISTRIBUTED = "distributed"
    REJECTED = "rejected"


class Platform(StrEnum):
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"


class PostStatus(StrEnum):
    PENDING = "pending"
    POSTED = "posted"
    FAILED = "failed"


class Sentiment(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    QUESTION = "question"
    SPAM = "spam"


class ImageApproach(StrEnum):
    STRUCTURED = "structured"
    CREATIVE = "creative"
    HERO_IMAGE = "hero_image"
    ARTISTIC = "artistic"


class ImageStage(StrEnum):
    """Image orchestrator states."""

    NOT_STARTED = "not_started"
    VARIANTS_OFFERED = "variants_offered"
    ANALYZED = "analyzed"
    GENERATED = "generated"
    VALIDATED = "validated"


class ImageOutcome(StrEnum):
    """Sub-state of ``ImageStage.VALIDATED``."""

    PASS = "pass"
    RETRY_PENDING = "retry_pending"
    FAILED = "failed"


# ── Source ───────────────────────────────────────────────────────


class TelegramSource(BaseModel):
    kind: Literal["telegram"] = "telegram"
    channel: str
    message_id: int


class RSSSource(BaseModel):
    kind: Literal["rss"] = "rss"
    feed_url: str


ItemSource = Annotated[TelegramSource | RSSSource, Field(discriminator="kind")]


# ── Content item ─────────────────────────────────────────────────


class LanguageVariant(BaseModel):
    """Rewritten title/body/description for one language."""

    title: str
    body: str
    short_description: str = ""
    slug: str = ""


class ImageVariant(BaseModel):
    """One proposed image concept."""

    label: str
    description: str


class ImageAttempt(BaseModel):
    """A single generate-and-critique round."""

    number: int
    prompt: str
    url: str = ""
    score: int | None = None
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    error: str = ""


class ImageState(BaseModel):
    """Illustration state for a content item."""

    stage: ImageStage = ImageStage.NOT_STARTED
    generation_prompt: str = ""
    approach_used: ImageApproach | None = None
    variants_offered: list[ImageVariant] = Field(default_factory=list)
    selected_variant: int | None = None
    quality_score: int | None = None
    validation_issues: list[str] = Field(default_factory=list)
    url: str = ""
    attempts: list[ImageAttempt] = Field(default_factory=list)
    outcome: ImageOutcome | None = None


class ApprovalMessage(BaseModel):
    """Moderation-channel message that announced an item."""

    chat_id: str
    message_id: int


class ContentItem(BaseModel):
    """Central pipeline entity, one per ingested article or post."""

    id: str
    kind: ContentKind = ContentKind.NEWS
    source: ItemSource
    dedup_key: str
    url: str = ""
    source_link: str = ""
    original_title: str
    original_body: str = ""
    source_images: list[str] = Field(default_factory=list)
    video_url: str = ""
    source_published_at: datetime | None = None
    language_variants: dict[str, LanguageVariant] = Field(default_factory=dict)
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    rejection_reason: str = ""
    publish_status: PublishStatus = PublishStatus.UNPUBLISHED
    published_at: datetime | None = None
    stage: PipelineStage = PipelineStage.INGESTED
    image: ImageState = Field(default_factory=ImageState)
    tags: list[str] = Field(default_factory=list)
    approval_message: ApprovalMessage | None = None
    errors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def variant(self, language: str) -> LanguageVariant:
        return resolve_variant(self, language)

    def record_error(self, stage: str, message: str) -> None:
        self.errors.append(f"[{stage}] {message}")


def resolve_variant(item: ContentItem, language: str) -> LanguageVariant:
    """Return the variant for ``language``, falling back to English.

    When not even an English variant exists (rewrite failed entirely),
    a variant is synthesised from the original source text.  Never
    returns None and never raises for an unknown language.
    """
    variant = item.language_variants.get(language)
    if variant is not None:
        return variant
    variant = item.language_variants.get(FALLBACK_LANGUAGE)
    if variant is not None:
        return variant
    body = item.original_body
    return LanguageVariant(
        title=item.original_title,
        body=body,
        short_description=body[:200],
        slug="",
    )


# ── Social posts and comments ────────────────────────────────────


class SocialPost(BaseModel):
    """One attempt to publish a content item to one platform in one language."""

    id: str
    content_item_id: str
    platform: Platform
    language: str
    status: PostStatus = PostStatus.PENDING
    caption: str = ""
    media_urls: list[str] = Field(default_factory=list)
    external_post_id: str = ""
    post_url: str = ""
    error_message: str = ""
    superseded: bool = False
    created_at: datetime = Field(default_factory=_now)
    posted_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        """Counts against the one-live-post-per-(item, platform, language) rule."""
        return self.status != PostStatus.FAILED and not self.superseded


class Comment(BaseModel):
    """An audience comment on a social post."""

    id: str
    social_post_id: str
    platform: Platform
    external_comment_id: str
    author_name: str = ""
    text: str
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_score: float = 0.0
    is_read: bool = False
    is_replied: bool = False
    is_hidden: bool = False
    suggested_reply: str = ""
    reply_text: str = ""
    was_edited: bool = False
    created_at: datetime = Field(default_factory=_now)
    replied_at: datetime | None = None


# ── Policy ───────────────────────────────────────────────────────


class PipelinePolicy(BaseModel):
    """Immutable snapshot of the mutable pipeline settings.

    Obtained from ``PolicyProvider.current()`` at each decision point.
    """

    model_config = ConfigDict(frozen=True)

    pre_moderation_enabled: bool = True
    auto_publish_enabled: bool = False
    auto_publish_platforms: frozenset[Platform] = frozenset(
        {Platform.LINKEDIN, Platform.FACEBOOK, Platform.INSTAGRAM}
    )
    auto_publish_languages: frozenset[str] = frozenset(DEFAULT_LANGUAGES)
