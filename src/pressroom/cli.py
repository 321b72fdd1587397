"""CLI interface for pressroom."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pressroom.comments.reply import ReplyRequest
from pressroom.config import PressroomConfig, load_config, merge_cli_overrides
from pressroom.content.models import ContentKind
from pressroom.content.policy import POLICY_KEYS, write_policy_setting
from pressroom.errors import (
    ConfigurationError,
    InvalidTransitionError,
    PipelineReport,
    PlatformError,
    TransientError,
)
from pressroom.ingest.parsers import configured_adapters
from pressroom.ingest.parsers.telegram import TelegramAdapter
from pressroom.pipeline.workers import Components, build_components, run_workers

app = typer.Typer(
    name="pressroom",
    help="Ingest, moderate, rewrite, illustrate and distribute news content.",
)
policy_app = typer.Typer(help="Show or change the pipeline policy.")
app.add_typer(policy_app, name="policy")

console = Console()

_state: dict[str, object] = {}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from pressroom import __version__

        console.print(f"pressroom {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a pressroom TOML config file."),
    ] = None,
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", help="Directory holding the content store."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="LLM model override."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Pressroom - automated content pipeline."""
    _setup_logging(verbose)
    config = load_config(config_path)
    config = merge_cli_overrides(
        config,
        data_dir=str(data_dir) if data_dir else None,
        model=model,
    )
    _state.clear()
    _state["config"] = config


def _config() -> PressroomConfig:
    config = _state.get("config")
    if not isinstance(config, PressroomConfig):
        config = load_config()
        _state["config"] = config
    return config


def _components() -> Components:
    components = _state.get("components")
    if not isinstance(components, Components):
        components = build_components(_config())
        _state["components"] = components
    return components


def _print_report(report: PipelineReport) -> None:
    console.print(f"[bold]{report.summary()}[/bold]")
    for error in report.errors:
        source = f" ({error.source})" if error.source else ""
        console.print(f"  [red]{error.stage}{source}:[/red] {error.message}")


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


@app.command()
def run() -> None:
    """Start periodic workers (one per source, plus comment sync)."""
    try:
        run_workers(_config())
    except ConfigurationError as exc:
        _fail(str(exc))


@app.command()
def ingest(
    process: Annotated[
        bool,
        typer.Option("--process/--no-process", help="Advance new items through the pipeline."),
    ] = True,
) -> None:
    """Run one ingestion pass over every configured source."""
    config = _config()
    components = _components()
    adapters = configured_adapters(config.ingest, timeout=config.pipeline.http_timeout)
    if not adapters:
        _fail("No sources configured. Add [ingest] rss_feeds or telegram_channels.")

    report = PipelineReport()
    created = []
    for adapter, _minutes in adapters:
        created.extend(components.ingest.run_adapter(adapter, report=report))
    if process:
        components.driver.process(created, report=report)
    _print_report(report)


@app.command("backfill-telegram")
def backfill_telegram(
    channel: Annotated[str, typer.Argument(help="Channel username, with or without @.")],
    from_date: Annotated[
        datetime, typer.Option("--from", help="Oldest post date to include (YYYY-MM-DD).")
    ],
    to_date: Annotated[
        Optional[datetime], typer.Option("--to", help="Newest post date to include.")
    ] = None,
    kind: Annotated[
        ContentKind, typer.Option("--kind", help="Store backfilled posts as news or blog.")
    ] = ContentKind.NEWS,
) -> None:
    """Import a date range of posts from a public Telegram channel."""
    config = _config()
    components = _components()
    start = _as_utc(from_date)
    end = _as_utc(to_date) if to_date else datetime.now(tz=UTC)

    adapter = TelegramAdapter(channel, config=config.ingest, timeout=config.pipeline.http_timeout)
    try:
        raw_items = adapter.fetch_range(start, end)
    except TransientError as exc:
        _fail(str(exc))

    report = PipelineReport()
    created = components.ingest.ingest(raw_items, kind=kind, report=report)
    console.print(f"Backfilled {len(created)} new item(s) from @{adapter.name}")
    _print_report(report)


@app.command()
def process(
    item_id: Annotated[
        Optional[str], typer.Argument(help="Item to advance; all pending items when omitted.")
    ] = None,
) -> None:
    """Advance items through moderation, rewriting, illustration and publishing."""
    components = _components()
    report = PipelineReport()
    if item_id is None:
        items = components.driver.process_pending(report=report)
    else:
        item = components.store.get_item(item_id)
        if item is None:
            _fail(f"No item with id {item_id}")
        items = [components.driver.advance(item, report=report)]

    for item in items:
        console.print(f"{item.id}  [cyan]{item.stage}[/cyan]  {item.original_title[:70]}")
    _print_report(report)


@app.command()
def approve(item_id: Annotated[str, typer.Argument(help="Item to publish.")]) -> None:
    """Publish an item awaiting approval and distribute it."""
    report = PipelineReport()
    try:
        item = _components().scheduler.approve(item_id, report=report)
    except KeyError:
        _fail(f"No item with id {item_id}")
    except InvalidTransitionError as exc:
        _fail(str(exc))
    console.print(f"[green]Published[/green] {item.id} ({item.stage})")
    _print_report(report)


@app.command()
def reject(
    item_id: Annotated[str, typer.Argument(help="Item to reject.")],
    reason: Annotated[
        str, typer.Option("--reason", "-r", help="Why it was rejected.")
    ] = "Rejected by editor",
) -> None:
    """Reject an item awaiting approval."""
    try:
        _components().scheduler.reject(item_id, reason)
    except KeyError:
        _fail(f"No item with id {item_id}")
    except InvalidTransitionError as exc:
        _fail(str(exc))
    console.print(f"[yellow]Rejected[/yellow] {item_id}")


@app.command()
def republish(
    item_id: Annotated[str, typer.Argument(help="Published item to redistribute.")],
) -> None:
    """Re-run social distribution; failed platform posts are retried."""
    report = PipelineReport()
    try:
        posts = _components().scheduler.republish(item_id, report=report)
    except KeyError:
        _fail(f"No item with id {item_id}")
    except InvalidTransitionError as exc:
        _fail(str(exc))
    for post in posts:
        console.print(f"{post.platform} [{post.language}]: {post.status} {post.post_url}")
    _print_report(report)


@app.command("sync-comments")
def sync_comments() -> None:
    """Fetch new comments for posted social posts."""
    components = _components()
    report = PipelineReport()
    comments = components.comment_sync.sync(report=report)

    table = Table(title=f"{len(comments)} new comment(s)")
    table.add_column("ID")
    table.add_column("Platform")
    table.add_column("Sentiment")
    table.add_column("Author")
    table.add_column("Text")
    for comment in comments:
        table.add_row(
            comment.id, comment.platform, comment.sentiment, comment.author_name, comment.text[:60]
        )
    console.print(table)
    _print_report(report)


@app.command()
def reply(
    comment_id: Annotated[str, typer.Argument(help="Stored comment id.")],
    text: Annotated[
        Optional[str], typer.Argument(help="Reply text; the drafted suggestion when omitted.")
    ] = None,
    confirm: Annotated[
        bool, typer.Option("--confirm", help="Required: actually send the reply.")
    ] = False,
) -> None:
    """Reply to a comment on its platform."""
    components = _components()
    comment = components.store.get_comment(comment_id)
    if comment is None:
        _fail(f"No comment with id {comment_id}")
    body = text if text is not None else comment.suggested_reply
    if not body:
        _fail("No reply text given and no suggested reply stored.")
    if not confirm:
        console.print(f"Would reply to {comment.author_name}: {body}")
        _fail("Re-run with --confirm to send.")

    request = ReplyRequest(
        comment_id=comment_id,
        text=body,
        confirmed=True,
        was_edited=text is not None and text.strip() != comment.suggested_reply.strip(),
        ai_generated_text=comment.suggested_reply,
    )
    try:
        components.replier.reply(request)
    except (InvalidTransitionError, PlatformError, TransientError) as exc:
        _fail(str(exc))
    console.print(f"[green]Replied[/green] on {comment.platform}")


@app.command("hide-comment")
def hide_comment(comment_id: Annotated[str, typer.Argument(help="Stored comment id.")]) -> None:
    """Hide a comment on its platform."""
    try:
        _components().replier.hide(comment_id)
    except KeyError:
        _fail(f"No comment with id {comment_id}")
    except (PlatformError, TransientError) as exc:
        _fail(str(exc))
    console.print(f"Hidden {comment_id}")


@app.command("mark-read")
def mark_read(comment_id: Annotated[str, typer.Argument(help="Stored comment id.")]) -> None:
    """Mark a comment as read."""
    try:
        _components().replier.mark_read(comment_id)
    except KeyError:
        _fail(f"No comment with id {comment_id}")


@policy_app.command("show")
def policy_show() -> None:
    """Print the current pipeline policy."""
    policy = _components().policy.current()
    table = Table(title="Pipeline policy")
    table.add_column("Key")
    table.add_column("Value")
    table.add_row("pre_moderation_enabled", str(policy.pre_moderation_enabled).lower())
    table.add_row("auto_publish_enabled", str(policy.auto_publish_enabled).lower())
    table.add_row("auto_publish_platforms", ",".join(sorted(policy.auto_publish_platforms)))
    table.add_row("auto_publish_languages", ",".join(sorted(policy.auto_publish_languages)))
    console.print(table)


@policy_app.command("set")
def policy_set(
    key: Annotated[str, typer.Argument(help=f"One of: {', '.join(POLICY_KEYS)}")],
    value: Annotated[
        str, typer.Argument(help="New value (booleans: true/false; lists: comma-separated).")
    ],
) -> None:
    """Change a pipeline policy setting; running workers pick it up on their next refresh."""
    components = _components()
    try:
        write_policy_setting(components.store, key, value)
    except ValueError as exc:
        _fail(str(exc))
    components.policy.invalidate()
    console.print(f"[green]{key}[/green] = {value}")


if __name__ == "__main__":
    app()
