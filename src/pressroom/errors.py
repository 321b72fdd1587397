"""Error taxonomy and structured error collection for pipeline runs.

Per-item failures are recorded and processing continues; only
configuration-level failures stop a worker.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class PressroomError(Exception):
    """Base error for the content pipeline."""


class TransientError(PressroomError):
    """Network or timeout failure that may succeed on retry."""


class ConfigurationError(PressroomError):
    """Required configuration (usually credentials) is missing.

    Raised at worker startup; the worker must not process any item.
    """

    def __init__(self, worker: str, missing: list[str]) -> None:
        self.worker = worker
        self.missing = list(missing)
        super().__init__(f"{worker}: missing required configuration: {', '.join(self.missing)}")


class DuplicateRecordError(PressroomError):
    """A write would violate a uniqueness invariant (dedup key, live social post)."""


class PlatformError(PressroomError):
    """A social platform API rejected a request or returned an error status."""


class PollTimeout(PressroomError):
    """A bounded status poll ran out of attempts."""

    def __init__(self, label: str, attempts: int) -> None:
        self.label = label
        self.attempts = attempts
        super().__init__(f"{label}: not ready after {attempts} attempts")


class InvalidTransitionError(PressroomError):
    """An item cannot move to the requested lifecycle state."""


class PipelineError(BaseModel):
    """A single failure recorded during a pipeline run."""

    stage: str
    message: str
    source: str = ""
    error_type: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class PipelineReport(BaseModel):
    """Collects errors and counters for one worker run."""

    errors: list[PipelineError] = Field(default_factory=list)
    items_ingested: int = 0
    items_skipped: int = 0
    items_published: int = 0
    posts_created: int = 0

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        source: str = "",
        error_type: str = "",
    ) -> None:
        self.errors.append(
            PipelineError(stage=stage, message=message, source=source, error_type=error_type)
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def errors_for_stage(self, stage: str) -> list[PipelineError]:
        return [e for e in self.errors if e.stage == stage]

    def summary(self) -> str:
        parts = [
            f"ingested={self.items_ingested}",
            f"skipped={self.items_skipped}",
            f"published={self.items_published}",
            f"posts={self.posts_created}",
        ]
        if self.errors:
            parts.append(f"errors={len(self.errors)}")
        return " ".join(parts)
