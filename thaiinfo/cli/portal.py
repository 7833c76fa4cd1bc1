"""CLI commands for the portal core."""

import json
import logging
import mimetypes
import sys
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog
import yaml
from pydantic import ValidationError

from thaiinfo import __version__
from thaiinfo.directory import (
    DirectoryEntryInput,
    ExposureRanker,
    ExposureRecorder,
    compute_exposure_stats,
    is_premium_active,
    premium_days_remaining,
)
from thaiinfo.directory.constants import DEFAULT_PREMIUM_DAYS
from thaiinfo.fetch import FetchConfig, PageFetcher
from thaiinfo.ingest import (
    EntryParser,
    IngestionError,
    IngestionNormalizer,
    NewsPublisher,
    NormalizedRecord,
)
from thaiinfo.llm import LlmAuthError, LlmClient, create_llm_client
from thaiinfo.observability.logging import bind_operation_context, configure_logging
from thaiinfo.settings import AppSettings, get_settings
from thaiinfo.store import PortalStore, StoreError, ViewCountBuffer


logger = structlog.get_logger()


@dataclass
class CliContext:
    """State shared by all commands of one invocation."""

    settings: AppSettings
    db_path: Path


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _begin(ctx: click.Context, operation: str) -> CliContext:
    """Bind the operation context and return the shared CLI state."""
    bind_operation_context(str(uuid.uuid4()), operation)
    state: CliContext = ctx.obj
    return state


def _load_entry_inputs(path: Path) -> list[DirectoryEntryInput]:
    """Parse and validate a YAML entry file.

    The file holds either a list of entries or a mapping with an
    ``entries`` list. Nothing is returned unless every entry validates.
    """
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("entries")
    if not isinstance(data, list):
        msg = "expected a list of entries or a mapping with an 'entries' list"
        raise ValueError(msg)
    return [DirectoryEntryInput.model_validate(item) for item in data]


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the SQLite database (default: THAIINFO_DB_PATH).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON format for logs (default: false).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, json_logs: bool, verbose: bool) -> None:
    """Thailand portal administration CLI."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        json_format=json_logs,
    )
    settings = get_settings()
    ctx.obj = CliContext(settings=settings, db_path=db_path or settings.db_path)


# ===== Directory =====


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database and apply schema migrations."""
    state = _begin(ctx, "init_db")
    try:
        with PortalStore(state.db_path):
            pass
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Database ready: {state.db_path}")


@cli.command("import-entries")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_entries(ctx: click.Context, path: Path) -> None:
    """Import directory entries from a YAML file.

    The whole file is validated before anything is written.
    """
    state = _begin(ctx, "import_entries")
    try:
        inputs = _load_entry_inputs(path)
    except ValidationError as e:
        click.echo("Entry validation failed:", err=True)
        for error in e.errors():
            loc = ".".join(str(p) for p in error["loc"])
            click.echo(f"  - {loc}: {error['msg']}", err=True)
        sys.exit(1)
    except (yaml.YAMLError, ValueError) as e:
        _fail(f"cannot read {path}: {e}")

    try:
        with PortalStore(state.db_path) as store:
            created = [store.add_entry(item) for item in inputs]
    except StoreError as e:
        _fail(str(e))

    logger.info("entries_imported", component="cli", count=len(created))
    click.echo(f"Imported {len(created)} entries.")


@cli.command()
@click.option("--category", default=None, help="Only rank entries in this category.")
@click.option("--limit", type=int, default=None, help="Show at most this many entries.")
@click.option(
    "--record-exposures",
    is_flag=True,
    help="Count the shown entries as exposed (what a page render does).",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def rank(
    ctx: click.Context,
    category: str | None,
    limit: int | None,
    record_exposures: bool,
    json_output: bool,
) -> None:
    """Print directory entries in display order."""
    state = _begin(ctx, "rank")
    try:
        with PortalStore(state.db_path) as store:
            result = ExposureRanker().rank(store.list_entries(category=category))
            shown = result.entries[:limit] if limit is not None else result.entries
            update = (
                ExposureRecorder(store).record_exposures(e.id for e in shown)
                if record_exposures
                else None
            )
    except StoreError as e:
        _fail(str(e))

    if json_output:
        _echo_json(
            {
                "entries": [
                    {
                        "id": e.id,
                        "title": e.title,
                        "tier": e.tier.value,
                        "score": result.scores[e.id].to_dict(),
                    }
                    for e in shown
                ],
                "exposures_failed": update.failed if update else {},
            }
        )
        return

    for position, entry in enumerate(shown, start=1):
        score = result.scores[entry.id].total
        click.echo(
            f"{position:>3}. [{entry.tier.value:<7}] #{entry.id} {entry.title} "
            f"(score {score:.1f}, exposures {entry.exposure_count})"
        )
    if update is not None and update.failed:
        click.echo(f"Exposure update failed for {sorted(update.failed)}", err=True)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def stats(ctx: click.Context, json_output: bool) -> None:
    """Show exposure balance and premium placements."""
    state = _begin(ctx, "stats")
    try:
        with PortalStore(state.db_path) as store:
            entries = store.list_entries()
    except StoreError as e:
        _fail(str(e))

    report = compute_exposure_stats(entries)
    premium = [
        {"id": e.id, "title": e.title, "days_remaining": premium_days_remaining(e)}
        for e in entries
        if is_premium_active(e)
    ]

    if json_output:
        _echo_json(
            {
                "total_entries": report.total_entries,
                "total_exposures": report.total_exposures,
                "average_exposures": report.average_exposures,
                "premium_entries": report.premium_entries,
                "under_exposed": report.under_exposed,
                "over_exposed": report.over_exposed,
                "premium": premium,
            }
        )
        return

    click.echo("Directory Exposure Statistics")
    click.echo("=" * 40)
    click.echo(f"  Entries: {report.total_entries}")
    click.echo(f"  Total exposures: {report.total_exposures}")
    click.echo(f"  Average exposures: {report.average_exposures}")
    click.echo(f"  Active premium: {report.premium_entries}")
    click.echo(f"  Under-exposed: {report.under_exposed}")
    click.echo(f"  Over-exposed: {report.over_exposed}")
    for item in premium:
        remaining = item["days_remaining"]
        label = "open-ended" if remaining is None else f"{remaining} days left"
        click.echo(f"  * #{item['id']} {item['title']} ({label})")


@cli.command("grant-premium")
@click.argument("entry_id", type=int)
@click.option("--days", type=int, default=DEFAULT_PREMIUM_DAYS, show_default=True)
@click.pass_context
def grant_premium(ctx: click.Context, entry_id: int, days: int) -> None:
    """Give an entry a premium placement."""
    state = _begin(ctx, "grant_premium")
    try:
        with PortalStore(state.db_path) as store:
            entry = store.grant_premium(entry_id, days=days)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"#{entry.id} {entry.title} is premium until {entry.premium_expires_at}")


@cli.command("revoke-premium")
@click.argument("entry_id", type=int)
@click.pass_context
def revoke_premium(ctx: click.Context, entry_id: int) -> None:
    """Return an entry to the regular tier."""
    state = _begin(ctx, "revoke_premium")
    try:
        with PortalStore(state.db_path) as store:
            entry = store.revoke_premium(entry_id)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"#{entry.id} {entry.title} is now regular")


@cli.command("reset-counters")
@click.argument("entry_id", type=int)
@click.pass_context
def reset_counters(ctx: click.Context, entry_id: int) -> None:
    """Zero an entry's view and exposure counters."""
    state = _begin(ctx, "reset_counters")
    try:
        with PortalStore(state.db_path) as store:
            entry = store.reset_counters(entry_id)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"#{entry.id} {entry.title}: counters reset")


@cli.command("set-weight")
@click.argument("entry_id", type=int)
@click.argument("weight", type=float)
@click.pass_context
def set_weight(ctx: click.Context, entry_id: int, weight: float) -> None:
    """Set an entry's exposure weight (0.1 to 10.0)."""
    state = _begin(ctx, "set_weight")
    try:
        with PortalStore(state.db_path) as store:
            entry = store.set_exposure_weight(entry_id, weight)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"#{entry.id} {entry.title}: exposure weight {entry.exposure_weight}")


@cli.command("record-views")
@click.argument("ids", type=int, nargs=-1, required=True)
@click.option("--news", is_flag=True, help="Count views of news documents, not entries.")
@click.pass_context
def record_views(ctx: click.Context, ids: tuple[int, ...], news: bool) -> None:
    """Count one view per ID given (repeat an ID for several views)."""
    state = _begin(ctx, "record_views")
    try:
        with PortalStore(state.db_path) as store:
            sink = store.increment_news_view_count if news else store.increment_view_count
            buffer = ViewCountBuffer(sink, state.settings.view_flush_delay_seconds)
            for item_id in ids:
                buffer.increment(item_id)
            written = buffer.close()
    except StoreError as e:
        _fail(str(e))

    distinct = len(set(ids))
    if written < distinct:
        _fail(f"views recorded for {written} of {distinct} ids; see the log for the rest")
    click.echo(f"Recorded {len(ids)} views across {distinct} ids.")


# ===== Ingestion =====


def _build_client(settings: AppSettings) -> LlmClient:
    try:
        return create_llm_client(
            api_key=settings.gemini_api_key, model=settings.gemini_model
        )
    except LlmAuthError as e:
        _fail(str(e))


def _build_normalizer(settings: AppSettings) -> IngestionNormalizer:
    client = _build_client(settings)
    fetch_config = (
        FetchConfig(user_agent=settings.user_agent)
        if settings.user_agent
        else FetchConfig()
    )
    return IngestionNormalizer(
        client=client,
        fetcher=PageFetcher(config=fetch_config),
        allowed_domains=settings.allowed_domains,
        max_body_chars=settings.max_body_chars,
    )


def _emit_record(state: CliContext, record: NormalizedRecord, publish: bool) -> None:
    """Print the record for review, and store it when ``publish`` is set."""
    _echo_json(record.model_dump(mode="json"))
    if record.used_fallback:
        click.echo(
            "Warning: the AI response could not be parsed; review the fallback record.",
            err=True,
        )
    if not publish:
        return
    try:
        with PortalStore(state.db_path) as store:
            document = NewsPublisher(store).publish(record)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Published news #{document.id}", err=True)


def _run_ingest(
    action: str, run: Callable[[], NormalizedRecord]
) -> NormalizedRecord:
    try:
        record = run()
    except IngestionError as e:
        logger.warning("cli_ingest_failed", component="cli", action=action, error=str(e))
        _fail(e.user_message)
    return record


@cli.command("ingest-url")
@click.argument("url")
@click.option("--publish", is_flag=True, help="Store the record after printing it.")
@click.pass_context
def ingest_url(ctx: click.Context, url: str, publish: bool) -> None:
    """Fetch a news page and print the normalized record."""
    state = _begin(ctx, "ingest_url")
    normalizer = _build_normalizer(state.settings)
    record = _run_ingest("ingest_url", lambda: normalizer.ingest_url(url))
    _emit_record(state, record, publish)


@cli.command("ingest-text")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--title", default="", help="Article title, if known.")
@click.option("--publish", is_flag=True, help="Store the record after printing it.")
@click.pass_context
def ingest_text(ctx: click.Context, source: Any, title: str, publish: bool) -> None:
    """Normalize pasted article text (a file, or - for stdin)."""
    state = _begin(ctx, "ingest_text")
    text = source.read()
    normalizer = _build_normalizer(state.settings)
    record = _run_ingest("ingest_text", lambda: normalizer.ingest_text(text, title=title))
    _emit_record(state, record, publish)


@cli.command("ingest-image")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mime-type", default=None, help="Image MIME type (guessed if omitted).")
@click.option("--hint", default="", help="Operator note sent along with the image.")
@click.option("--publish", is_flag=True, help="Store the record after printing it.")
@click.pass_context
def ingest_image(
    ctx: click.Context,
    path: Path,
    mime_type: str | None,
    hint: str,
    publish: bool,
) -> None:
    """Normalize a news article captured as an image."""
    state = _begin(ctx, "ingest_image")
    mime = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    data = path.read_bytes()
    normalizer = _build_normalizer(state.settings)
    record = _run_ingest(
        "ingest_image", lambda: normalizer.ingest_image(data, mime, hint=hint)
    )
    _emit_record(state, record, publish)


@cli.command("ingest-entry")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--category", default="", help="Directory category for the entry.")
@click.option(
    "--save", is_flag=True, help="Add the entry to the directory after printing it."
)
@click.pass_context
def ingest_entry(ctx: click.Context, source: Any, category: str, save: bool) -> None:
    """Draft a directory entry from pasted business text (a file, or - for stdin)."""
    state = _begin(ctx, "ingest_entry")
    text = source.read()
    parser = EntryParser(_build_client(state.settings))
    try:
        draft = parser.parse(text, category=category)
    except IngestionError as e:
        logger.warning(
            "cli_ingest_failed", component="cli", action="ingest_entry", error=str(e)
        )
        _fail(e.user_message)

    _echo_json(draft.entry.model_dump(mode="json"))
    if draft.used_fallback:
        click.echo(
            "Warning: the AI response could not be parsed; review the drafted entry.",
            err=True,
        )
    if not save:
        return
    try:
        with PortalStore(state.db_path) as store:
            entry = store.add_entry(draft.entry)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Added entry #{entry.id}", err=True)


if __name__ == "__main__":
    cli()
