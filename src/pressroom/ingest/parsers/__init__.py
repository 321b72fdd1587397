"""Source adapters — fan-in to the canonical RawItem model."""

from __future__ import annotations

from pressroom.config import IngestSectionConfig
from pressroom.ingest.parsers.base import SourceAdapter
from pressroom.ingest.parsers.rss import RSSAdapter
from pressroom.ingest.parsers.telegram import TelegramAdapter


def configured_adapters(
    config: IngestSectionConfig, *, timeout: int = 30
) -> list[tuple[SourceAdapter, int]]:
    """Return every configured adapter paired with its poll interval in minutes."""
    adapters: list[tuple[SourceAdapter, int]] = []
    for feed in config.rss_feeds:
        adapter: SourceAdapter = RSSAdapter(feed.url, config=config)
        if adapter.is_configured:
            adapters.append((adapter, config.interval_for(feed)))
    for channel in config.telegram_channels:
        adapter = TelegramAdapter(channel.channel, config=config, timeout=timeout)
        if adapter.is_configured:
            adapters.append((adapter, config.interval_for(channel)))
    return adapters


__all__ = ["RSSAdapter", "SourceAdapter", "TelegramAdapter", "configured_adapters"]
