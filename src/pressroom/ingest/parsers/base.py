"""Base class for ingestion source adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from pressroom.config import IngestSectionConfig
from pressroom.ingest.models import RawItem, SourceType


class SourceAdapter(ABC):
    """Base class for source-specific adapters.

    Each adapter covers a single feed or channel so it can be polled on
    its own interval.  ``fetch()`` logs and skips entries it cannot
    convert; it raises only when the whole source is unreachable.
    """

    def __init__(self, *, config: IngestSectionConfig) -> None:
        self._config = config

    @property
    @abstractmethod
    def source(self) -> SourceType:
        """The source type this adapter handles."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable identifier (feed URL or channel name)."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether this adapter has enough configuration to run."""

    @abstractmethod
    def fetch(self, since: datetime | None = None) -> list[RawItem]:
        """Fetch and normalize items from this source.

        Args:
            since: Only return items published after this time.

        Returns:
            List of RawItem objects.
        """
