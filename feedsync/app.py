"""Typer CLI entrypoint for feedsync."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, FeedConfig, ScheduleConfig, ScheduleType
from .exporter import DUMP_FORMATS, DumpExporter
from .infra import FeedStore
from .logging_conf import (
    available_feed_logs,
    configure_logging,
    default_log_dir,
    feed_log_path,
    tail_log,
)
from .scheduler import APSchedulerAdapter
from .source import FeedSource
from .sync import SyncOutcome

app = typer.Typer(
    help="feedsync: reputation feed synchronisation and lookups",
    no_args_is_help=True,
    rich_markup_mode=None,
)
feed_app = typer.Typer(name="feed", help="Manage feed configurations", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    timer: APSchedulerAdapter


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    repository.load_global_config()
    return AppState(repository=repository, timer=APSchedulerAdapter())


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _open_source(state: AppState, name: str) -> FeedSource:
    try:
        return FeedSource.from_repository(state.repository, name, timer=state.timer)
    except FileNotFoundError:
        console.print(f"Feed `{name}` not found; create it with `feedsync feed add`.", style="red")
        raise typer.Exit(code=1)


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.type is ScheduleType.CRON:
        return f"cron ({schedule.value})"
    return f"interval ({schedule.value})"


def _render_feeds_table(feeds: Sequence[FeedConfig]) -> Table:
    table = Table(title=f"Feeds ({len(feeds)})", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Schedule", style="yellow", overflow="fold")
    table.add_column("Retry (s)", justify="right")
    table.add_column("Key", style="magenta")
    for feed in feeds:
        if not feed.requires_key:
            key_state = "not required"
        else:
            key_state = "set" if feed.resolved_key() else "missing"
        table.add_row(
            feed.feed_name,
            _format_schedule(feed.schedule),
            f"{feed.retry_delay:g}",
            key_state,
        )
    return table


def _render_status_table(title: str, status: dict) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green", overflow="fold")
    for key in (
        "phase",
        "revision",
        "entries",
        "skipped",
        "retry_pending",
        "disabled",
        "last_success_at",
        "last_error",
    ):
        value = status.get(key)
        table.add_row(key, "-" if value is None else str(value))
    return table


def _render_record_table(key: str, fields: dict[str, str]) -> Table:
    table = Table(title=key, box=box.SIMPLE_HEAD)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for name, value in fields.items():
        table.add_row(name, value)
    return table


app.add_typer(feed_app, name="feed")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


# ----------------------------------------------------------------------
# feed management
# ----------------------------------------------------------------------
@feed_app.command("list", help="List configured feeds.")
def feed_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    feeds = state.repository.list_feeds()
    if not feeds:
        console.print("No feeds configured; use `feedsync feed add`.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_feeds_table(feeds))


@feed_app.command("add", help="Create a feed configuration.")
def feed_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Feed name."),
    key: Optional[str] = typer.Option(None, "--key", help="API key embedded in the feed URLs."),
    key_env: Optional[str] = typer.Option(
        None, "--key-env", help="Environment variable holding the API key."
    ),
    revision_url: Optional[str] = typer.Option(None, "--revision-url", help="Revision URL template."),
    data_url: Optional[str] = typer.Option(None, "--data-url", help="Payload URL template."),
    interval: float = typer.Option(2 * 60 * 60, "--interval", help="Refresh interval in seconds."),
    retry_delay: float = typer.Option(5 * 60, "--retry-delay", help="Retry delay in seconds."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration."),
) -> None:
    state = _get_state(ctx)
    name = name.strip()
    if not name:
        console.print("Feed name cannot be empty.", style="red")
        raise typer.Exit(code=1)
    if state.repository.has_feed(name) and not force:
        console.print(f"Feed `{name}` already exists; pass --force to overwrite.", style="red")
        raise typer.Exit(code=1)
    payload: dict[str, object] = {
        "feed_name": name,
        "api_key": key,
        "api_key_env": key_env,
        "schedule": {"type": "interval", "value": interval},
        "retry_delay": retry_delay,
    }
    if revision_url:
        payload["revision_url"] = revision_url
    if data_url:
        payload["data_url"] = data_url
    try:
        config = FeedConfig.model_validate(payload)
    except ValueError as exc:
        console.print(f"Invalid feed configuration: {exc}", style="red")
        raise typer.Exit(code=1)
    path = state.repository.save_feed(config)
    console.print(f"Feed `{name}` created at {path}.", style="green")


@feed_app.command("remove", help="Delete a feed configuration and its local payload.")
def feed_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Feed name."),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    state = _get_state(ctx)
    try:
        config = state.repository.load_feed(name)
    except FileNotFoundError:
        console.print(f"Feed `{name}` not found.", style="red")
        raise typer.Exit(code=1)
    if not yes and not typer.confirm(f"Delete `{name}` and its stored payload?", default=False):
        console.print("Cancelled.", style="yellow")
        raise typer.Exit(code=0)
    FeedStore(state.repository.feed_store_dir(config), config.feed_name).reset()
    state.repository.delete_feed(name)
    console.print(f"Feed `{name}` removed.", style="green")


# ----------------------------------------------------------------------
# sync / lookups
# ----------------------------------------------------------------------
@app.command("sync", help="Run one synchronisation cycle now.")
def sync(ctx: typer.Context, name: str = typer.Argument(..., help="Feed name.")) -> None:
    state = _get_state(ctx)
    source = _open_source(state, name)
    try:
        outcome = source.sync_now()
        status = source.status()
    finally:
        source.stop()
    console.print(f"{name}: {outcome.value}")
    console.print(_render_status_table(f"{name} status", status))
    if outcome in (SyncOutcome.DISABLED, SyncOutcome.RETRY_SCHEDULED):
        raise typer.Exit(code=1)


def _load_or_exit(source: FeedSource) -> None:
    if source.load_local():
        return
    source.stop()
    if not source.enabled:
        console.print(f"Feed `{source.name}` is disabled: {source.status()['last_error']}", style="red")
    else:
        console.print(
            f"No local payload for `{source.name}`; run `feedsync sync {source.name}` first.",
            style="yellow",
        )
    raise typer.Exit(code=1)


@app.command("lookup", help="Look up a key in the locally stored feed.")
def lookup(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Feed name."),
    key: str = typer.Argument(..., help="Key (IP address) to look up."),
) -> None:
    state = _get_state(ctx)
    source = _open_source(state, name)
    _load_or_exit(source)
    record = source.get(key.strip())
    source.stop()
    if record is None:
        console.print(f"{key}: not found", style="yellow")
        raise typer.Exit(code=1)
    console.print(_render_record_table(record.key, record.as_dict()))


@app.command("dump", help="Dump every entry of the locally stored feed.")
def dump(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Feed name."),
    fmt: str = typer.Option("jsonl", "--format", help=f"One of: {', '.join(DUMP_FORMATS)}."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write to a file instead of stdout."),
) -> None:
    if fmt not in DUMP_FORMATS:
        console.print(f"Unsupported format `{fmt}`.", style="red")
        raise typer.Exit(code=2)
    state = _get_state(ctx)
    source = _open_source(state, name)
    _load_or_exit(source)
    field_names = list(source.config.fields)
    try:
        if output is None:
            exporter = DumpExporter(sys.stdout, fmt, field_names)
            exporter.export_many(source.dump())
            exporter.flush()
        else:
            output.parent.mkdir(parents=True, exist_ok=True)
            with output.open("w", encoding="utf-8", newline="") as stream:
                exporter = DumpExporter(stream, fmt, field_names)
                exporter.export_many(source.dump())
            console.print(f"Wrote {exporter.count} entries to {output}.", style="green")
    finally:
        source.stop()


@app.command("run", help="Keep feeds synchronised in the foreground until interrupted.")
def run(
    ctx: typer.Context,
    names: Optional[List[str]] = typer.Argument(None, help="Feeds to run (default: all)."),
) -> None:
    state = _get_state(ctx)
    selected = names or [feed.feed_name for feed in state.repository.list_feeds()]
    if not selected:
        console.print("No feeds configured; use `feedsync feed add`.", style="yellow")
        raise typer.Exit(code=0)
    sources = [_open_source(state, name) for name in selected]
    started = [source for source in sources if source.start()]
    for source in sources:
        if source not in started:
            console.print(f"{source.name}: disabled ({source.status()['last_error']})", style="red")
    if not started:
        raise typer.Exit(code=1)
    console.print(f"Running {len(started)} feed(s); press Ctrl+C to stop.", style="cyan")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping…", style="dim")
    finally:
        for source in sources:
            source.stop()
        state.timer.shutdown()


# ----------------------------------------------------------------------
# logs
# ----------------------------------------------------------------------
def _render_logs_table(paths: Iterable[Path]) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in paths:
        table.add_row(path.name)
    return table


@log_app.command("list", help="List per-feed log files.")
def log_list() -> None:
    logs = list(available_feed_logs())
    if not logs:
        console.print("No feed logs yet.", style="dim")
        return
    console.print(_render_logs_table(logs))


@log_app.command("show", help="Show the tail of a log file.")
def log_show(
    feed: Optional[str] = typer.Option(None, "--feed", help="Feed name (default: main log)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    path = feed_log_path(feed) if feed else default_log_dir() / "feedsync.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
