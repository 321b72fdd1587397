"""Per-item pipeline state machine.

``PipelineDriver.advance`` looks at an item's current stage, runs the
matching step, and repeats until the item finishes or has to wait
(human approval, a failed notification to retry next tick)::

    INGESTED → MODERATED → REWRITTEN → ILLUSTRATED → PUBLISHED → DISTRIBUTED
        ↘ REJECTED             ILLUSTRATED → AWAITING_APPROVAL (approve/reject)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.concurrency import run_in_batches
from pressroom.content.models import ContentItem, ModerationStatus, PipelineStage
from pressroom.content.policy import PolicyProvider
from pressroom.content.store import ContentStore
from pressroom.errors import PipelineReport
from pressroom.images.orchestrator import ImageOrchestrator
from pressroom.moderation.gate import ModerationGate
from pressroom.publishing.scheduler import PublicationScheduler
from pressroom.rewrite.engine import RewriteEngine

logger = logging.getLogger(__name__)

ACTIVE_STAGES = frozenset(
    {
        PipelineStage.INGESTED,
        PipelineStage.MODERATED,
        PipelineStage.REWRITTEN,
        PipelineStage.ILLUSTRATED,
        PipelineStage.PUBLISHED,
    }
)

Step = Callable[[ContentItem, PipelineReport | None], ContentItem]


class PipelineDriver:
    """Advances content items through moderation, rewriting, illustration and publishing."""

    def __init__(
        self,
        store: ContentStore,
        policy: PolicyProvider,
        *,
        gate: ModerationGate,
        rewriter: RewriteEngine,
        scheduler: PublicationScheduler,
        images: ImageOrchestrator | None = None,
        batch_size: int = 3,
        batch_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._policy = policy
        self._gate = gate
        self._rewriter = rewriter
        self._scheduler = scheduler
        self._images = images
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep
        self._steps: dict[PipelineStage, Step] = {
            PipelineStage.INGESTED: self._moderate,
            PipelineStage.MODERATED: self._rewrite,
            PipelineStage.REWRITTEN: self._illustrate,
            PipelineStage.ILLUSTRATED: self._schedule,
            PipelineStage.PUBLISHED: self._distribute,
        }

    def advance(self, item: ContentItem, *, report: PipelineReport | None = None) -> ContentItem:
        """Run steps until the item stops moving."""
        while item.stage in self._steps:
            before = item.stage
            item = self._steps[before](item, report)
            logger.debug("%s: %s → %s", item.id, before, item.stage)
            if item.stage == before:
                break
        return item

    def process_pending(self, *, report: PipelineReport | None = None) -> list[ContentItem]:
        """Advance every unfinished item."""
        pending = [i for i in self._store.list_items() if i.stage in ACTIVE_STAGES]
        if pending:
            logger.info("Processing %d pending item(s)", len(pending))
        return self.process(pending, report=report)

    def process(
        self, items: list[ContentItem], *, report: PipelineReport | None = None
    ) -> list[ContentItem]:
        """Advance ``items`` in small batches; one item failing does not stop the rest."""
        if not items:
            return []
        outcomes = run_in_batches(
            items,
            lambda item: self.advance(item, report=report),
            batch_size=self._batch_size,
            delay=self._batch_delay,
            label="pipeline",
            sleep=self._sleep,
        )
        advanced: list[ContentItem] = []
        for outcome in outcomes:
            if outcome.ok and outcome.value is not None:
                advanced.append(outcome.value)
                continue
            logger.error("Item %s failed: %s", outcome.item.id, outcome.error)
            if report is not None:
                report.add_error(
                    "pipeline",
                    str(outcome.error),
                    source=outcome.item.id,
                    error_type=type(outcome.error).__name__,
                )
        return advanced

    # ── Steps ────────────────────────────────────────────────────

    def _moderate(self, item: ContentItem, report: PipelineReport | None) -> ContentItem:
        result = self._gate.evaluate(item, self._policy.current())
        if result.approved:
            item.moderation_status = ModerationStatus.APPROVED
            item.stage = PipelineStage.MODERATED
            if result.fail_open:
                item.record_error("moderate", result.reason)
        else:
            item.moderation_status = ModerationStatus.REJECTED
            item.rejection_reason = result.reason
            item.stage = PipelineStage.REJECTED
            logger.info("Rejected %s: %s", item.id, result.reason)
            if report is not None:
                report.items_skipped += 1
        self._store.save_item(item)
        return item

    def _rewrite(self, item: ContentItem, report: PipelineReport | None) -> ContentItem:
        result = self._rewriter.rewrite(item)
        self._rewriter.apply(item, result)
        if not result.variants and report is not None:
            report.add_error("rewrite", "no language variants produced", source=item.id)
        item.stage = PipelineStage.REWRITTEN
        self._store.save_item(item)
        return item

    def _illustrate(self, item: ContentItem, report: PipelineReport | None) -> ContentItem:
        if self._images is not None:
            try:
                item.image = self._images.run(item)
            except Exception as exc:
                logger.warning(
                    "Illustration of %s failed, continuing without image: %s", item.id, exc
                )
                item.record_error("illustrate", str(exc))
                if report is not None:
                    report.add_error(
                        "illustrate", str(exc), source=item.id, error_type="image_error"
                    )
        item.stage = PipelineStage.ILLUSTRATED
        self._store.save_item(item)
        return item

    def _schedule(self, item: ContentItem, report: PipelineReport | None) -> ContentItem:
        return self._scheduler.schedule(item, report=report)

    def _distribute(self, item: ContentItem, report: PipelineReport | None) -> ContentItem:
        self._scheduler.distribute(item, report=report)
        return self._store.require_item(item.id)
