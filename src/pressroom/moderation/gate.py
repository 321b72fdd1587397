"""Pre-moderation gate.

The gate is fail-open: a classifier outage approves the item with a
reason saying so, so infrastructure trouble never silently stalls the
pipeline.  Near-duplicate titles are rejected without an AI call.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from pressroom.content.models import ContentItem, PipelinePolicy
from pressroom.content.store import ContentStore
from pressroom.ingest.dedup import find_recent_similar
from pressroom.llm import LLMError, call_llm_json
from pressroom.moderation.prompts import MODERATION_SYSTEM_PROMPT, get_moderation_prompt

logger = logging.getLogger(__name__)

FAIL_OPEN_REASON = "AI error, approved by default"
BYPASS_REASON = "Pre-moderation disabled"
DEFAULT_QUALITY_SCORE = 5


class ModerationResult(BaseModel):
    approved: bool
    reason: str = ""
    is_advertisement: bool = False
    is_duplicate: bool = False
    quality_score: int = DEFAULT_QUALITY_SCORE
    fail_open: bool = False


class ModerationGate:
    """Approves or rejects items before any rewriting or publishing."""

    def __init__(
        self,
        store: ContentStore | None = None,
        *,
        model: str | None = None,
        timeout: int = 120,
    ) -> None:
        self._store = store
        self._model = model
        self._timeout = timeout

    def evaluate(self, item: ContentItem, policy: PipelinePolicy) -> ModerationResult:
        if not policy.pre_moderation_enabled:
            return ModerationResult(approved=True, reason=BYPASS_REASON)

        if self._store is not None:
            similar = find_recent_similar(self._store, item.original_title, exclude_id=item.id)
            if similar is not None:
                logger.info("Rejecting %s as near-duplicate of %r", item.id, similar)
                return ModerationResult(
                    approved=False,
                    reason=f"Duplicate of recent article: {similar}",
                    is_duplicate=True,
                    quality_score=0,
                )

        return self._classify(item)

    def _classify(self, item: ContentItem) -> ModerationResult:
        try:
            data = call_llm_json(
                MODERATION_SYSTEM_PROMPT,
                get_moderation_prompt(item.original_title, item.original_body),
                temperature=0.3,
                max_tokens=300,
                model=self._model,
                timeout=self._timeout,
                label="moderation",
            )
        except LLMError as exc:
            logger.warning("Moderation classifier failed for %s: %s", item.id, exc)
            return _fail_open()

        approved = data.get("approved")
        if not isinstance(approved, bool):
            logger.warning("Moderation response for %s lacks 'approved': %r", item.id, data)
            return _fail_open()

        try:
            score = int(data.get("quality_score", DEFAULT_QUALITY_SCORE))
        except (TypeError, ValueError):
            score = DEFAULT_QUALITY_SCORE

        return ModerationResult(
            approved=approved,
            reason=str(data.get("reason") or ""),
            is_advertisement=bool(data.get("is_advertisement", False)),
            quality_score=score,
        )


def _fail_open() -> ModerationResult:
    return ModerationResult(approved=True, reason=FAIL_OPEN_REASON, fail_open=True)
