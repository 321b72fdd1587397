"""Shared pieces for Facebook Graph API clients (Facebook pages, Instagram)."""

from __future__ import annotations

from datetime import datetime

GRAPH_URL = "https://graph.facebook.com/{version}"


def graph_base(version: str) -> str:
    return GRAPH_URL.format(version=version)


def parse_graph_time(value: str | None) -> datetime | None:
    """Parse Graph timestamps such as ``2024-05-01T10:00:00+0000``."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S%z")
    except ValueError:
        return None
