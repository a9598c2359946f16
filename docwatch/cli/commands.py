"""CLI command implementations for docwatch."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from docwatch.models.config import Config
from docwatch.services.database import Database
from docwatch.utils.logger import configure_logging

if TYPE_CHECKING:
    from docwatch.domains.monitoring.services.monitor_scheduler import MonitorScheduler
    from docwatch.domains.parsing.core.tokenizer import TokenizeOptions

EVENT_CHOICES = ["inserted", "deleted"]


def _get_config() -> Config:
    """Load configuration from .env file."""
    return Config()


def _get_db(config: Config) -> Database:
    """Initialize database with schema."""
    db = Database(db_path=config.database_path)
    db.init_db()
    return db


def _print_summary(title: str, stats: dict[str, Any]) -> None:
    """Print a formatted summary of operation results."""
    click.echo(f"\n[SUCCESS] {title}")
    for key, value in stats.items():
        if key == "errors" and isinstance(value, list):
            if value:
                click.echo(f"  Errors ({len(value)}):")
                for error in value[:10]:
                    click.echo(f"    - {error}")
                if len(value) > 10:
                    click.echo(f"    ... and {len(value) - 10} more")
        else:
            click.echo(f"  {key}: {value}")


def _build_scheduler(config: Config, db: Database) -> MonitorScheduler:
    """Wire the monitoring services together from configuration."""
    from docwatch.domains.diffing.services.keyword_builder import KeywordBuilder
    from docwatch.domains.monitoring.repositories.snapshot_repository import SnapshotRepository
    from docwatch.domains.monitoring.repositories.subscription_repository import (
        SubscriptionRepository,
    )
    from docwatch.domains.monitoring.services.detection_cycle import DetectionCycle
    from docwatch.domains.monitoring.services.monitor_scheduler import MonitorScheduler
    from docwatch.domains.monitoring.services.notifier import NotificationSender
    from docwatch.domains.parsing.services.parser_pool import ParserPool
    from docwatch.domains.reading.services.document_fetcher import DocumentFetcher

    snapshot_repo = SnapshotRepository(db)
    subscription_repo = SubscriptionRepository(db)
    pool = ParserPool(config.parser_pool_size)
    fetcher = DocumentFetcher(
        timeout=config.request_timeout, max_retries=config.max_retry_attempts
    )
    notifier = NotificationSender(
        timeout=config.request_timeout, max_retries=config.max_retry_attempts
    )
    cycle = DetectionCycle(
        fetcher=fetcher,
        snapshot_repo=snapshot_repo,
        subscription_repo=subscription_repo,
        pool=pool,
        keyword_builder=KeywordBuilder(pool, config.parser_acquire_timeout),
        notifier=notifier,
        detection_options=config.detection_options,
        acquire_timeout=config.parser_acquire_timeout,
    )
    return MonitorScheduler(
        cycle=cycle,
        subscription_repo=subscription_repo,
        snapshot_repo=snapshot_repo,
        fetcher=fetcher,
        notifier=notifier,
        pool=pool,
        worker_count=config.worker_count,
        fault_tolerance=config.fault_tolerance,
        default_interval=config.default_interval_seconds,
        default_snippet_radius=config.default_snippet_radius,
    )


def _read_local(path: str, content_type: str) -> str:
    from docwatch.domains.reading.core.readers import read_content

    return read_content(Path(path).read_text(encoding="utf-8"), content_type)


def _cli_options(
    config: Config,
    filter_stopwords: bool,
    enable_stemming: bool,
    case_sensitive: bool,
    language: str | None,
) -> TokenizeOptions:
    from docwatch.domains.parsing.core.tokenizer import TokenizeOptions

    return TokenizeOptions(
        ignore_case=not case_sensitive,
        filter_stopwords=filter_stopwords,
        enable_stemming=enable_stemming,
        language_hint=language or config.language_hint,
    )


_normalization_options = [
    click.option("--stopwords", "filter_stopwords", is_flag=True, help="Drop stopwords"),
    click.option("--stemming", "enable_stemming", is_flag=True, help="Stem tokens"),
    click.option("--case-sensitive", is_flag=True, help="Keep token case"),
    click.option("--language", default=None, type=str, help="ISO 639-1 code, skips detection"),
]


def normalization_options(func: Any) -> Any:
    """Attach the shared tokenizer flags to a command."""
    for option in reversed(_normalization_options):
        func = option(func)
    return func


# --- Monitoring ---


@click.command()
def init_db() -> None:
    """Create the database schema."""
    config = _get_config()
    configure_logging(config.log_level)
    db = _get_db(config)
    click.echo(f"[SUCCESS] Database initialized at {config.database_path}")
    db.close()


@click.command()
@click.argument("document_url")
@click.argument("content_type")
@click.option("--client-url", required=True, type=str, help="URL notified on matches")
@click.option("--client-content-type", default="application/json", help="Notification type")
@click.option("--keyword", "-k", "keywords", multiple=True, required=True, help="Phrase to watch")
@click.option(
    "--event",
    "events",
    multiple=True,
    type=click.Choice(EVENT_CHOICES),
    help="Events to notify about (default: both)",
)
@click.option("--stopwords", "filter_stopwords", is_flag=True, help="Drop stopwords")
@click.option("--stemming", "enable_stemming", is_flag=True, help="Stem tokens")
@click.option("--case-sensitive", is_flag=True, help="Keep token case")
@click.option("--snippet-radius", default=None, type=int, help="Characters around matches")
@click.option("--interval", default=None, type=int, help="Polling interval in seconds")
def watch(
    document_url: str,
    content_type: str,
    client_url: str,
    client_content_type: str,
    keywords: tuple[str, ...],
    events: tuple[str, ...],
    filter_stopwords: bool,
    enable_stemming: bool,
    case_sensitive: bool,
    snippet_radius: int | None,
    interval: int | None,
) -> None:
    """Subscribe CLIENT_URL to keyword changes of DOCUMENT_URL."""
    config = _get_config()
    configure_logging(config.log_level)
    db = _get_db(config)

    from pydantic import ValidationError

    from docwatch.errors import DocumentNotReadableError

    scheduler = _build_scheduler(config, db)
    try:
        subscription = scheduler.watch(
            document_url=document_url,
            document_content_type=content_type,
            client_url=client_url,
            client_content_type=client_content_type,
            keywords=keywords,
            events=events or EVENT_CHOICES,
            filter_stopwords=filter_stopwords,
            enable_stemming=enable_stemming,
            ignore_case=not case_sensitive,
            snippet_radius=snippet_radius,
            interval_seconds=interval,
        )
    except (DocumentNotReadableError, ValidationError) as e:
        raise click.ClickException(str(e)) from e
    finally:
        scheduler.shutdown()
        db.close()

    _print_summary(
        "Watch registered",
        {
            "url": subscription.document_url,
            "content_type": subscription.document_content_type,
            "keywords": ", ".join(subscription.keywords),
            "events": ", ".join(event.value for event in subscription.events),
            "interval_seconds": subscription.interval_seconds,
            "token": subscription.token,
        },
    )


@click.command()
@click.argument("document_url")
@click.argument("content_type")
@click.option("--client-url", required=True, type=str, help="Subscribed client URL")
@click.option("--client-content-type", default="application/json", help="Notification type")
def cancel(document_url: str, content_type: str, client_url: str, client_content_type: str) -> None:
    """Remove the subscription of CLIENT_URL to DOCUMENT_URL."""
    config = _get_config()
    configure_logging(config.log_level)
    db = _get_db(config)

    scheduler = _build_scheduler(config, db)
    try:
        removed = scheduler.cancel(document_url, content_type, client_url, client_content_type)
    finally:
        scheduler.shutdown()
        db.close()

    if not removed:
        raise click.ClickException(f"No watch of {document_url} for {client_url}")
    click.echo(f"[SUCCESS] Watch of {document_url} for {client_url} cancelled")


@click.command()
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def list_watches(output_format: str) -> None:
    """List every registered watch."""
    config = _get_config()
    configure_logging(config.log_level)
    db = _get_db(config)

    from docwatch.domains.monitoring.repositories.subscription_repository import (
        SubscriptionRepository,
    )

    subscriptions = SubscriptionRepository(db).get_all_subscriptions()
    db.close()

    if output_format == "json":
        click.echo(
            json.dumps(
                [s.model_dump(mode="json", exclude={"token"}) for s in subscriptions],
                indent=2,
            )
        )
        return

    if not subscriptions:
        click.echo("[INFO] No watches registered")
        return

    click.echo(f"\n[INFO] {len(subscriptions)} watch(es):")
    for subscription in subscriptions:
        click.echo(
            f"  {subscription.document_url} ({subscription.document_content_type})"
            f" -> {subscription.client_url}"
        )
        click.echo(f"    keywords: {', '.join(subscription.keywords)}")
        click.echo(
            f"    events: {', '.join(event.value for event in subscription.events)}"
            f" | every {subscription.interval_seconds}s"
        )


@click.command()
@click.option("--once", is_flag=True, help="Run every document once and exit")
@click.option("--poll-seconds", default=1.0, type=float, help="Delay between scheduler ticks")
def run(once: bool, poll_seconds: float) -> None:
    """Poll monitored documents and send notifications."""
    config = _get_config()
    configure_logging(config.log_level)
    db = _get_db(config)

    scheduler = _build_scheduler(config, db)
    count = scheduler.load()
    click.echo(f"[INFO] Monitoring {count} document(s)...")

    try:
        if once:
            result = scheduler.run_pending()
            _print_summary("Detection tick complete", result)
        else:
            stop_event = threading.Event()
            try:
                scheduler.run_forever(stop_event, poll_seconds=poll_seconds)
            except KeyboardInterrupt:
                stop_event.set()
                click.echo("\n[INFO] Stopping...")
    finally:
        scheduler.shutdown()
        db.close()


# --- Offline detection ---


@click.command()
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--content-type", default="text/plain", help="How to read both files")
@normalization_options
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def diff(
    old_file: str,
    new_file: str,
    content_type: str,
    filter_stopwords: bool,
    enable_stemming: bool,
    case_sensitive: bool,
    language: str | None,
    output_format: str,
) -> None:
    """Show the differences between OLD_FILE and NEW_FILE."""
    config = _get_config()
    configure_logging(config.log_level)

    from docwatch.domains.diffing.core.difference_detection import detect
    from docwatch.domains.parsing.core.tokenizer import Parser
    from docwatch.errors import UnsupportedContentTypeError

    try:
        old_text = _read_local(old_file, content_type)
        new_text = _read_local(new_file, content_type)
    except UnsupportedContentTypeError as e:
        raise click.ClickException(str(e)) from e

    options = _cli_options(config, filter_stopwords, enable_stemming, case_sensitive, language)
    parser = Parser()
    spans = detect(
        parser.tokenize(old_text, options),
        old_text,
        parser.tokenize(new_text, options),
        new_text,
    )

    if output_format == "json":
        click.echo(
            json.dumps(
                [{"event": s.event.value, "text": s.text, "offset": s.offset} for s in spans],
                indent=2,
            )
        )
        return

    for span in spans:
        marker = {"inserted": "+", "deleted": "-"}.get(span.event.value, " ")
        click.echo(f"{marker} [{span.offset}] {span.text}")
    changed = [s for s in spans if s.event.value != "unchanged"]
    _print_summary(
        "Difference detection complete",
        {
            "spans": len(spans),
            "inserted": sum(1 for s in changed if s.event.value == "inserted"),
            "deleted": sum(1 for s in changed if s.event.value == "deleted"),
        },
    )


@click.command()
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--keyword", "-k", "keywords", multiple=True, required=True, help="Phrase to find")
@click.option("--content-type", default="text/plain", help="How to read both files")
@click.option(
    "--event",
    "events",
    multiple=True,
    type=click.Choice(EVENT_CHOICES),
    help="Events to match (default: both)",
)
@click.option("--snippet-radius", default=None, type=int, help="Characters around matches")
@normalization_options
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def match(
    old_file: str,
    new_file: str,
    keywords: tuple[str, ...],
    content_type: str,
    events: tuple[str, ...],
    snippet_radius: int | None,
    filter_stopwords: bool,
    enable_stemming: bool,
    case_sensitive: bool,
    language: str | None,
    output_format: str,
) -> None:
    """Find KEYWORDS in the changes between OLD_FILE and NEW_FILE."""
    config = _get_config()
    configure_logging(config.log_level)

    import functools

    from docwatch.domains.diffing.core.difference_detection import detect
    from docwatch.domains.diffing.core.difference_matching import match as match_spans
    from docwatch.domains.diffing.core.keywords import build_keywords
    from docwatch.domains.parsing.core.language import detect_language
    from docwatch.domains.parsing.core.tokenizer import Parser
    from docwatch.errors import UnsupportedContentTypeError

    try:
        old_text = _read_local(old_file, content_type)
        new_text = _read_local(new_file, content_type)
    except UnsupportedContentTypeError as e:
        raise click.ClickException(str(e)) from e

    options = _cli_options(config, filter_stopwords, enable_stemming, case_sensitive, language)
    if options.filter_stopwords or options.enable_stemming:
        options = options.with_language(detect_language(new_text, options.language_hint))

    detection_options = config.detection_options.with_language(options.language_hint)
    parser = Parser()
    spans = detect(
        parser.tokenize(old_text, detection_options),
        old_text,
        parser.tokenize(new_text, detection_options),
        new_text,
    )
    selected = set(events or EVENT_CHOICES)
    radius = config.default_snippet_radius if snippet_radius is None else snippet_radius
    found = match_spans(
        spans,
        build_keywords(keywords, options, parser.tokenize),
        "inserted" not in selected,
        "deleted" not in selected,
        radius,
        old_text,
        new_text,
        tokenizer=functools.partial(parser.tokenize, options=options),
    )
    ordered = sorted(found, key=lambda m: (m.event.value, m.keyword.original_input, m.text))

    if output_format == "json":
        click.echo(json.dumps([m.to_dict() for m in ordered], indent=2))
        return

    for found_match in ordered:
        click.echo(
            f"[{found_match.event.value}] {found_match.keyword.original_input}:"
            f" {found_match.snippet}"
        )
    _print_summary("Keyword matching complete", {"spans": len(spans), "matches": len(ordered)})
