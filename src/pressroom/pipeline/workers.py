"""Component wiring and periodic workers (APScheduler).

One ingest job per configured source, each on its own interval, plus a
comment-sync job and a sweep that advances items left mid-pipeline.
Configuration problems abort at startup; job failures are logged and
the scheduler keeps running.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from apscheduler.schedulers.blocking import BlockingScheduler

from pressroom.comments.reply import CommentReplier
from pressroom.comments.sync import CommentSync
from pressroom.config import PressroomConfig
from pressroom.content.policy import PolicyProvider
from pressroom.content.store import ContentStore
from pressroom.errors import ConfigurationError, PipelineReport
from pressroom.images.critic import ImageCritic
from pressroom.images.orchestrator import ImageOrchestrator
from pressroom.images.renderer import ImageRenderer
from pressroom.ingest.dedup import DeduplicationIndex
from pressroom.ingest.parsers import configured_adapters
from pressroom.ingest.parsers.base import SourceAdapter
from pressroom.ingest.services import IngestService
from pressroom.moderation.gate import ModerationGate
from pressroom.pipeline.machine import PipelineDriver
from pressroom.publishing.channel import TelegramChannel, format_distribution_summary
from pressroom.publishing.scheduler import PublicationScheduler
from pressroom.rewrite.engine import RewriteEngine
from pressroom.social import build_clients
from pressroom.social.base import SocialClient
from pressroom.social.fanout import SocialFanout, pending_ceiling
from pressroom.storage import ObjectStorage

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_MINUTES = 15


@dataclass
class Components:
    """Everything a worker or CLI command needs, built once from config."""

    config: PressroomConfig
    store: ContentStore
    policy: PolicyProvider
    ingest: IngestService
    driver: PipelineDriver
    scheduler: PublicationScheduler
    channel: TelegramChannel
    clients: list[SocialClient]
    comment_sync: CommentSync
    replier: CommentReplier


def build_components(
    config: PressroomConfig, *, sleep: Callable[[float], None] = time.sleep
) -> Components:
    pipeline = config.pipeline
    store = ContentStore(
        config.data_dir,
        stale_pending_after=pending_ceiling(
            pipeline.poll_interval_seconds, pipeline.poll_max_attempts, pipeline.http_timeout
        ),
    )
    policy = PolicyProvider(store, refresh_seconds=config.pipeline.policy_refresh_seconds)
    dedup = DeduplicationIndex(store)
    storage = ObjectStorage(config.storage)
    channel = TelegramChannel(config.telegram, timeout=config.pipeline.http_timeout, sleep=sleep)
    clients = build_clients(config, sleep=sleep)
    model, timeout = config.ai.model, config.ai.timeout

    fanout = SocialFanout(
        store,
        clients,
        site_url=config.site.url,
        storage=storage,
        channel=channel,
        summary=format_distribution_summary,
        poll_interval=config.pipeline.poll_interval_seconds,
        poll_max_attempts=config.pipeline.poll_max_attempts,
        timeout=config.pipeline.http_timeout,
        sleep=sleep,
    )
    scheduler = PublicationScheduler(store, policy, fanout, channel=channel, dedup=dedup)

    images = None
    if config.images.is_configured:
        images = ImageOrchestrator(
            ImageRenderer(config.images),
            ImageCritic(config.images, brand_name=config.site.brand_name),
            storage,
            max_retries=config.images.critic_max_retries,
            propose_variants=config.images.propose_variants,
            brand_name=config.site.brand_name,
            model=model,
            timeout=timeout,
        )
    else:
        logger.info("Image generation disabled or missing an API key; items use source images")

    driver = PipelineDriver(
        store,
        policy,
        gate=ModerationGate(store, model=model, timeout=timeout),
        rewriter=RewriteEngine(
            languages=config.site.languages,
            mode=config.site.rewrite_mode,
            model=model,
            timeout=timeout,
            batch_size=config.pipeline.batch_size,
            batch_delay=config.pipeline.batch_delay_seconds,
            sleep=sleep,
        ),
        scheduler=scheduler,
        images=images,
        batch_size=config.pipeline.batch_size,
        batch_delay=config.pipeline.batch_delay_seconds,
        sleep=sleep,
    )

    return Components(
        config=config,
        store=store,
        policy=policy,
        ingest=IngestService(store, dedup),
        driver=driver,
        scheduler=scheduler,
        channel=channel,
        clients=clients,
        comment_sync=CommentSync(
            store,
            clients,
            notifier=channel,
            draft_replies=config.comments.draft_replies,
            model=model,
        ),
        replier=CommentReplier(store, clients),
    )


def check_startup(config: PressroomConfig) -> list[tuple[SourceAdapter, int]]:
    """Validate configuration before any worker starts.

    Raises:
        ConfigurationError: No sources, or images enabled without a key.
    """
    adapters = configured_adapters(config.ingest, timeout=config.pipeline.http_timeout)
    if not adapters:
        raise ConfigurationError("ingest", ["ingest.rss_feeds", "ingest.telegram_channels"])
    if config.images.enabled:
        config.require("images", "images.api_key")
    return adapters


def ingest_job(components: Components, adapter: SourceAdapter) -> PipelineReport:
    """Fetch one source and advance whatever it produced."""
    report = PipelineReport()
    created = components.ingest.run_adapter(adapter, report=report)
    components.driver.process(created, report=report)
    _log_report(f"ingest {adapter.name}", report)
    return report


def sweep_job(components: Components) -> PipelineReport:
    report = PipelineReport()
    components.driver.process_pending(report=report)
    _log_report("sweep", report)
    return report


def comments_job(components: Components) -> PipelineReport:
    report = PipelineReport()
    new_comments = components.comment_sync.sync(report=report)
    logger.info("Comment sync: %d new", len(new_comments))
    _log_report("comments", report)
    return report


def _log_report(label: str, report: PipelineReport) -> None:
    logger.info("%s: %s", label, report.summary())
    for error in report.errors:
        logger.warning("%s [%s] %s: %s", label, error.stage, error.source, error.message)


def run_workers(config: PressroomConfig) -> None:
    """Start the blocking scheduler; returns only on shutdown."""
    adapters = check_startup(config)
    components = build_components(config)
    scheduler = BlockingScheduler(timezone="UTC")
    now = datetime.now(tz=UTC)

    for adapter, minutes in adapters:
        scheduler.add_job(
            ingest_job,
            "interval",
            minutes=minutes,
            args=[components, adapter],
            id=f"ingest:{adapter.source}:{adapter.name}",
            next_run_time=now,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled %s %s every %d min", adapter.source, adapter.name, minutes)

    scheduler.add_job(
        sweep_job,
        "interval",
        minutes=SWEEP_INTERVAL_MINUTES,
        args=[components],
        id="sweep",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        comments_job,
        "interval",
        minutes=config.comments.sync_interval_minutes,
        args=[components],
        id="comments",
        max_instances=1,
        coalesce=True,
    )

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down workers")
