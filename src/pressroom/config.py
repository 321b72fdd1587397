"""Unified configuration loaded from .pressroom.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.

Pipeline *policy* (pre-moderation, auto-publish) is deliberately not part
of this static configuration; it lives in the persisted settings table
and is read through ``pressroom.content.policy.PolicyProvider``.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from pressroom.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pressroom.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "pressroom" / "config.toml"


class AISectionConfig(BaseModel):
    """[ai] section."""

    model: str | None = None
    timeout: int = 120


class ImagesSectionConfig(BaseModel):
    """[images] section."""

    enabled: bool = True
    api_key: str = ""
    model: str = "gemini-3-pro-image-preview"
    vision_model: str = "gemini-2.5-flash"
    aspect_ratio: str = "4:5"
    critic_max_retries: int = 2
    propose_variants: bool = True

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


class FeedSource(BaseModel):
    """One RSS/Atom feed with an optional poll interval override."""

    url: str
    interval_minutes: int | None = None


class ChannelSource(BaseModel):
    """One public Telegram channel with an optional poll interval override."""

    channel: str
    interval_minutes: int | None = None

    @field_validator("channel")
    @classmethod
    def _strip_at(cls, value: str) -> str:
        return value.strip().lstrip("@")


class IngestSectionConfig(BaseModel):
    """[ingest] section.

    Feeds and channels accept either plain strings or tables::

        rss_feeds = ["https://a.example/feed", {url = "https://b.example/rss", interval_minutes = 5}]
        telegram_channels = ["somechannel"]
    """

    default_interval_minutes: int = 30
    rss_feeds: list[FeedSource] = Field(default_factory=list)
    telegram_channels: list[ChannelSource] = Field(default_factory=list)
    min_word_count: int = 0
    max_items_per_feed: int = 50
    telegram_max_pages: int = 20

    @field_validator("rss_feeds", mode="before")
    @classmethod
    def _coerce_feeds(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"url": v} if isinstance(v, str) else v for v in value]
        return value

    @field_validator("telegram_channels", mode="before")
    @classmethod
    def _coerce_channels(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"channel": v} if isinstance(v, str) else v for v in value]
        return value

    def interval_for(self, source: FeedSource | ChannelSource) -> int:
        """Poll interval for a source, falling back to the global default."""
        return source.interval_minutes or self.default_interval_minutes


class SiteSectionConfig(BaseModel):
    """[site] section."""

    url: str = "https://example.com"
    brand_name: str = ""
    languages: list[str] = Field(default_factory=lambda: ["en", "no", "ua"])
    rewrite_mode: str = "per_language"


class LinkedInConfig(BaseModel):
    access_token: str = ""
    author_urn: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.author_urn)


class FacebookConfig(BaseModel):
    page_id: str = ""
    page_access_token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.page_id and self.page_access_token)


class InstagramConfig(BaseModel):
    account_id: str = ""
    access_token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.account_id and self.access_token)


class TikTokConfig(BaseModel):
    access_token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)


class SocialSectionConfig(BaseModel):
    """[social] section with one sub-table per platform."""

    graph_api_version: str = "v18.0"
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    facebook: FacebookConfig = Field(default_factory=FacebookConfig)
    instagram: InstagramConfig = Field(default_factory=InstagramConfig)
    tiktok: TikTokConfig = Field(default_factory=TikTokConfig)


class TelegramSectionConfig(BaseModel):
    """[telegram] section: the moderation bot."""

    bot_token: str = ""
    moderation_chat_id: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.moderation_chat_id)


class StorageSectionConfig(BaseModel):
    """[storage] section."""

    root: str = "./pressroom-media"
    bucket: str = "news-media"
    public_base_url: str = ""


class PipelineSectionConfig(BaseModel):
    """[pipeline] section."""

    data_dir: str = "."
    batch_size: int = 3
    batch_delay_seconds: float = 2.0
    policy_refresh_seconds: float = 30.0
    poll_interval_seconds: float = 10.0
    poll_max_attempts: int = 30
    http_timeout: int = 30


class CommentsSectionConfig(BaseModel):
    """[comments] section."""

    sync_interval_minutes: int = 60
    draft_replies: bool = True


class PressroomConfig(BaseModel):
    """Top-level configuration model for the pressroom pipeline."""

    ai: AISectionConfig = Field(default_factory=AISectionConfig)
    images: ImagesSectionConfig = Field(default_factory=ImagesSectionConfig)
    ingest: IngestSectionConfig = Field(default_factory=IngestSectionConfig)
    site: SiteSectionConfig = Field(default_factory=SiteSectionConfig)
    social: SocialSectionConfig = Field(default_factory=SocialSectionConfig)
    telegram: TelegramSectionConfig = Field(default_factory=TelegramSectionConfig)
    storage: StorageSectionConfig = Field(default_factory=StorageSectionConfig)
    pipeline: PipelineSectionConfig = Field(default_factory=PipelineSectionConfig)
    comments: CommentsSectionConfig = Field(default_factory=CommentsSectionConfig)

    @property
    def data_dir(self) -> Path:
        return Path(self.pipeline.data_dir).expanduser()

    def lookup(self, dotted: str) -> Any:
        """Resolve a dotted key such as ``telegram.bot_token``."""
        value: Any = self
        for part in dotted.split("."):
            value = getattr(value, part)
        return value

    def require(self, worker: str, *keys: str) -> None:
        """Abort a worker at startup when required settings are empty.

        Raises:
            ConfigurationError: Listing every missing key.
        """
        missing = [key for key in keys if not self.lookup(key)]
        if missing:
            raise ConfigurationError(worker, missing)


def load_config(path: str | Path | None = None) -> PressroomConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .pressroom.toml in CWD
    3. ~/.config/pressroom/config.toml

    Then overlay environment variables.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = PressroomConfig.model_validate(data) if data else PressroomConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: PressroomConfig, **cli_kwargs: object) -> PressroomConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only values that are not None override the loaded config.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, ...]] = {
        "data_dir": ("pipeline", "data_dir"),
        "model": ("ai", "model"),
        "site_url": ("site", "url"),
        "storage_root": ("storage", "root"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        _set_path(data, mapping[key], value)

    return PressroomConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


_ENV_MAPPING: dict[str, tuple[str, ...]] = {
    "PRESSROOM_DATA_DIR": ("pipeline", "data_dir"),
    "PRESSROOM_MODEL": ("ai", "model"),
    "SITE_URL": ("site", "url"),
    "GOOGLE_AI_API_KEY": ("images", "api_key"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "TELEGRAM_MODERATION_CHAT_ID": ("telegram", "moderation_chat_id"),
    "LINKEDIN_ACCESS_TOKEN": ("social", "linkedin", "access_token"),
    "LINKEDIN_AUTHOR_URN": ("social", "linkedin", "author_urn"),
    "FACEBOOK_PAGE_ID": ("social", "facebook", "page_id"),
    "FACEBOOK_PAGE_ACCESS_TOKEN": ("social", "facebook", "page_access_token"),
    "INSTAGRAM_ACCOUNT_ID": ("social", "instagram", "account_id"),
    "INSTAGRAM_ACCESS_TOKEN": ("social", "instagram", "access_token"),
    "TIKTOK_ACCESS_TOKEN": ("social", "tiktok", "access_token"),
    "PRESSROOM_STORAGE_ROOT": ("storage", "root"),
    "PRESSROOM_STORAGE_PUBLIC_URL": ("storage", "public_base_url"),
}


def _apply_env_vars(config: PressroomConfig) -> PressroomConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    for env_var, path in _ENV_MAPPING.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_path(data, path, value)

    return PressroomConfig.model_validate(data)


def _set_path(data: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    target = data
    for part in path[:-1]:
        target = target.setdefault(part, {})
    target[path[-1]] = value
