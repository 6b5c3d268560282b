"""mnemos command-line interface."""

import asyncio
import json
import logging
import sys
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Annotated

import typer

from mnemos.application.clock import parse_date, parse_timestamp, today
from mnemos.application.config import AppConfig, resolve_config
from mnemos.domain.errors import InvalidInput, SchedulingError
from mnemos.domain.models import Card, Quality

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="mnemos: SM-2 spaced-repetition scheduler.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage mnemos configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

DeckArg = Annotated[
    Path | None,
    typer.Argument(help="Path to a YAML deck file. Defaults to 'deck_path' in config."),
]
AsOfOpt = Annotated[
    str | None, typer.Option("--as-of", help="Reference date (YYYY-MM-DD). Defaults to today.")
]


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity."),
    ] = 0,
):
    """Global settings for mnemos."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _cli_errors():
    """Turn engine and repository errors into a red message and exit code."""
    try:
        yield
    except InvalidInput as e:
        typer.secho(f"Invalid input: {e}", fg="red", err=True)
        raise typer.Exit(2)
    except SchedulingError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)
    except FileNotFoundError as e:
        typer.secho(f"Deck not found: {e.filename}", fg="red", err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(2)


LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)
LOG_FILE_HANDLER = "mnemos-file"


def _configure_logging(config: AppConfig) -> None:
    """Apply the configured verbosity and mirror log records to log_dir/mnemos.log."""
    root = logging.getLogger()
    root.setLevel(LOG_LEVELS[min(config.verbose, len(LOG_LEVELS) - 1)])

    for handler in [h for h in root.handlers if h.get_name() == LOG_FILE_HANDLER]:
        root.removeHandler(handler)
        handler.close()

    config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_dir / "mnemos.log", encoding="utf-8")
    file_handler.set_name(LOG_FILE_HANDLER)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s")
    )
    root.addHandler(file_handler)


def _load_config(ctx: typer.Context, overrides: dict | None = None) -> AppConfig:
    """Resolve configuration for a command and set up logging from it."""
    bonus = (ctx.obj or {}).get("verbose_bonus", 0)
    # each -v counts up from info; without one the configured level applies
    verbose = 1 + bonus if bonus else None
    config = resolve_config({**(overrides or {}), "verbose": verbose})
    _configure_logging(config)
    return config


def _parse_quality(value: str) -> Quality:
    """Accept 0-3 or again/hard/good/easy."""
    if value.strip().isdigit():
        return Quality.parse(int(value))
    try:
        return Quality[value.strip().upper()]
    except KeyError:
        raise InvalidInput(f"unknown quality {value!r}; use 0-3 or again/hard/good/easy") from None


def _as_of(value: str | None) -> date:
    return parse_date(value) if value else today()


def _card_summary(card: Card) -> dict:
    sr = card.scheduling
    return {
        "id": card.id,
        "state": sr.state.value,
        "due_date": sr.due_date.isoformat() if sr.due_date else None,
        "interval": sr.interval,
        "ease_factor": round(sr.ease_factor, 2),
        "learning_step": sr.learning_step,
    }


def _card_title(card: Card) -> str:
    front = card.content.get("front", "")
    return str(front)[:60]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("queue")
def queue(
    ctx: typer.Context,
    deck: DeckArg = None,
    as_of: AsOfOpt = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show today's study queue in the order it will be presented."""
    from mnemos.application.factory import get_card_repository
    from mnemos.application.queue_builder import plan_queue

    with _cli_errors():
        config = _load_config(ctx)
        repo = get_card_repository(config, deck)
        ref = _as_of(as_of)

        async def run():
            cards = await repo.load_cards()
            settings = await repo.load_settings() or config.session_settings()
            return plan_queue(cards, ref, settings)

        result = asyncio.run(run())

    if json_output:
        typer.echo(json.dumps([_card_summary(c) for c in result.queue], indent=2))
        return

    typer.echo(
        f"Queue for {ref.isoformat()}: {len(result.queue)} cards "
        f"(overdue {len(result.overdue)}, due {len(result.due_today)}, "
        f"learning {len(result.learning)}, new {len(result.new)})"
    )
    if result.deferred_new or result.deferred_reviews:
        typer.secho(
            f"Held back by daily limits: {result.deferred_new} new, "
            f"{result.deferred_reviews} reviews",
            fg="yellow",
        )
    for i, card in enumerate(result.queue, start=1):
        sr = card.scheduling
        due = sr.due_date.isoformat() if sr.due_date else "-"
        typer.echo(f"  {i:>3}. {card.id}  [{sr.state.value}] due {due}  {_card_title(card)}")


@app.command("rate")
def rate(
    ctx: typer.Context,
    deck: Annotated[Path, typer.Argument(help="Path to a YAML deck file.")],
    card_id: Annotated[str, typer.Argument(help="Card identifier.")],
    quality: Annotated[str, typer.Argument(help="0-3 or again/hard/good/easy.")],
    now: Annotated[
        str | None, typer.Option(help="Review time (ISO-8601). Defaults to now (UTC).")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for reproducible fuzz.")] = None,
    no_fuzz: Annotated[bool, typer.Option("--no-fuzz", help="Disable interval fuzz.")] = False,
):
    """[bold green]Rate[/bold green] a card and save its new schedule."""
    from mnemos.application.factory import get_card_repository, get_scheduler

    with _cli_errors():
        q = _parse_quality(quality)
        reviewed_at = parse_timestamp(now) if now else None
        config = _load_config(ctx, {"seed": seed, "fuzz": False if no_fuzz else None})
        repo = get_card_repository(config, deck)

        async def run():
            card = await repo.get_card(card_id)
            scheduler = get_scheduler(config, await repo.load_settings())
            new_state = scheduler.review(card.scheduling, q, reviewed_at)
            await repo.save_scheduling(card_id, new_state)
            return new_state

        sr = asyncio.run(run())

    due = sr.due_date.isoformat() if sr.due_date else "-"
    typer.secho(
        f"{card_id}: {q.name.lower()} -> {sr.state.value}, interval {sr.interval}d, "
        f"due {due}, ease {sr.ease_factor:.2f}",
        fg="green",
    )


@app.command("estimate")
def estimate(
    ctx: typer.Context,
    deck: Annotated[Path, typer.Argument(help="Path to a YAML deck file.")],
    card_id: Annotated[str, typer.Argument(help="Card identifier.")],
):
    """Show the interval each rating would give a card, without saving."""
    from mnemos.application.factory import get_card_repository, get_scheduler

    with _cli_errors():
        config = _load_config(ctx)
        repo = get_card_repository(config, deck)

        async def run():
            card = await repo.get_card(card_id)
            scheduler = get_scheduler(config, await repo.load_settings())
            return scheduler.estimates(card.scheduling)

        estimates = asyncio.run(run())

    for q, label in estimates.items():
        typer.echo(f"{q.name.capitalize():<6} {label}")


@app.command("stats")
def stats(
    ctx: typer.Context,
    deck: DeckArg = None,
    as_of: AsOfOpt = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Summarize a deck and refresh its cached stats."""
    from mnemos.application.factory import get_card_repository
    from mnemos.application.stats import StudyStatsService

    with _cli_errors():
        config = _load_config(ctx)
        service = StudyStatsService(get_card_repository(config, deck))
        ref = _as_of(as_of)

        async def run():
            snapshot = await service.refresh_cached_stats(ref)
            return snapshot, await service.get_retention()

        snapshot, retention = asyncio.run(run())

    if json_output:
        typer.echo(json.dumps({**snapshot.to_record(), "retention": retention}, indent=2))
        return

    typer.echo(f"Cards: {snapshot.total}  Due today: {snapshot.due_today}")
    typer.echo(
        f"New: {snapshot.new_count}  Learning: {snapshot.learning_count}"
        f"  Review: {snapshot.review_count}"
    )
    typer.echo(f"Average ease: {snapshot.average_ease:.2f}  Retention: {retention:.1f}%")


@app.command("serve")
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8778,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the scheduling HTTP API."""
    import uvicorn

    uvicorn.run("mnemos.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()
