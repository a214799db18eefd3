"""studylab CLI: deck and card management, due queues, and interactive study."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, NoReturn, TypeVar

import typer
from pydantic import ValidationError

from studylab.application.config import AppConfig, resolve_config
from studylab.application.factory import get_card_repository
from studylab.application.scheduler import Rating, ReviewFeedback
from studylab.application.study_service import StudyService
from studylab.application.study_session import StudySession
from studylab.domain.errors import (
    CardNotFoundError,
    DeckNotFoundError,
    StoreError,
    StudylabError,
)
from studylab.domain.review.models import Flashcard

T = TypeVar("T")

LOG_FILE_NAME = "studylab.log"

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="studylab: SM-2 flashcards in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

deck_app = typer.Typer(help="Manage decks.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

card_app = typer.Typer(help="Manage flashcards.", no_args_is_help=True)
app.add_typer(card_app, name="card")

config_app = typer.Typer(help="Manage studylab configuration.")
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


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def humanize_error(error: Exception) -> str:
    """Turn a studylab error into a one-line message for the terminal."""
    if isinstance(error, CardNotFoundError):
        return f"No flashcard with id '{error.card_id}'. Use 'studylab card list DECK_ID'."
    if isinstance(error, DeckNotFoundError):
        return f"No deck with id '{error.deck_id}'. Use 'studylab deck list'."
    if isinstance(error, StoreError):
        return f"Card store unavailable: {error}. Your cards were not changed."
    return str(error)


def _configure_logging(config: AppConfig) -> None:
    """Apply config.verbose to the studylab loggers and mirror them to log_dir/studylab.log."""
    pkg_logger = logging.getLogger("studylab")
    pkg_logger.setLevel(logging.DEBUG if config.verbose >= 2 else logging.INFO)

    log_file = config.log_dir / LOG_FILE_NAME
    for handler in list(pkg_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if Path(handler.baseFilename) == log_file:
                return
            pkg_logger.removeHandler(handler)
            handler.close()

    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        logger.warning(f"File logging disabled, cannot write to {config.log_dir}: {e}")
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    pkg_logger.addHandler(handler)


def _config(ctx: typer.Context) -> AppConfig:
    obj = ctx.ensure_object(dict)
    try:
        config = resolve_config(
            {
                "db_path": obj.get("db_path"),
                "backend": obj.get("backend"),
                "locale": obj.get("locale"),
                "verbose": obj.get("verbose_bonus"),
            }
        )
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            typer.secho(f"Invalid setting '{field}': {err['msg']}", fg="red", err=True)
        raise typer.Exit(2)

    _configure_logging(config)
    return config


def _service(ctx: typer.Context) -> StudyService:
    config = _config(ctx)
    try:
        repo = get_card_repository(config)
    except StudylabError as e:
        _fail(e)
    return StudyService(repo, locale=config.locale)


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except StudylabError as e:
        _fail(e)


def _fail(error: StudylabError) -> NoReturn:
    logger.debug("Command failed", exc_info=error)
    typer.secho(humanize_error(error), fg="red", err=True)
    raise typer.Exit(1)


def _fmt_time(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")


def _card_dict(card: Flashcard) -> dict[str, Any]:
    return {
        "id": card.id,
        "deckId": card.deck_id,
        "front": card.front,
        "back": card.back,
        "reviewData": card.review_state.to_dict(),
        "createdAt": card.created_at,
    }


def _parse_rating(answer: str) -> int | None:
    """Accept a button name (again/good/easy) or a raw quality digit."""
    answer = answer.strip()
    if answer.isdigit():
        return int(answer)
    try:
        return int(Rating[answer.upper()])
    except KeyError:
        return None


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    db: Annotated[Path | None, typer.Option("--db", help="SQLite card store path.")] = None,
    backend: Annotated[
        str | None, typer.Option(help="Card store backend: sqlite, memory.")
    ] = None,
    locale: Annotated[str | None, typer.Option(help="Due-date language: en, it.")] = None,
):
    """Global settings for studylab."""
    ctx.ensure_object(dict)
    # No -v keeps the configured verbosity (STUDYLAB_VERBOSE or config file)
    ctx.obj["verbose_bonus"] = 1 + verbose if verbose else None
    ctx.obj["db_path"] = db
    ctx.obj["backend"] = backend
    ctx.obj["locale"] = locale


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("create")
def deck_create(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help="Deck title.")],
    description: Annotated[str, typer.Option(help="Optional description.")] = "",
):
    """Create a new deck."""
    deck = _run(_service(ctx).create_deck(title, description))
    typer.secho(f"Created deck '{deck.title}'", fg="green")
    typer.echo(deck.id)


@deck_app.command("list")
def deck_list(ctx: typer.Context):
    """List all decks with their due counts."""
    service = _service(ctx)

    async def run():
        return [await service.deck_overview(d.id) for d in await service.list_decks()]

    overviews = _run(run())
    if not overviews:
        typer.secho("No decks yet. Create one with 'studylab deck create'.", fg="yellow")
        return

    for ov in overviews:
        typer.echo(f"{ov.deck.id}  {ov.deck.title}  ({ov.due}/{ov.total} due)")


@deck_app.command("show")
def deck_show(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
):
    """Show a deck's review overview."""
    ov = _run(_service(ctx).deck_overview(deck_id))
    typer.echo(f"{ov.deck.title}")
    if ov.deck.description:
        typer.echo(ov.deck.description)
    typer.echo(f"Cards: {ov.total}  Due: {ov.due}  Learning: {ov.learning}  Mature: {ov.mature}")
    if ov.next_due_date is not None:
        typer.echo(f"Next review: {_fmt_time(ov.next_due_date)}")


@deck_app.command("delete")
def deck_delete(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Delete a deck and all of its flashcards."""
    if not force and not typer.confirm(f"Delete deck {deck_id} and all its cards?"):
        raise typer.Abort()
    _run(_service(ctx).delete_deck(deck_id))
    typer.secho("Deck deleted.", fg="green")


# ---------------------------------------------------------------------------
# Card subgroup
# ---------------------------------------------------------------------------


@card_app.command("add")
def card_add(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    front: Annotated[str, typer.Argument(help="Question side.")],
    back: Annotated[str, typer.Argument(help="Answer side.")],
):
    """Add a flashcard to a deck. It is due immediately."""
    card = _run(_service(ctx).add_card(deck_id, front, back))
    typer.echo(card.id)


@card_app.command("list")
def card_list(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List the flashcards of a deck."""
    service = _service(ctx)
    cards = _run(service.list_cards(deck_id))

    if json_output:
        typer.echo(json.dumps([_card_dict(c) for c in cards], indent=2))
        return

    locale = _config(ctx).locale
    for card in cards:
        due = service.scheduler.format_due_date(card.review_state, locale)
        typer.echo(f"{card.id}  {card.front}  [{due}]")


@card_app.command("delete")
def card_delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Flashcard id.")],
):
    """Delete a flashcard."""
    _run(_service(ctx).delete_card(card_id))
    typer.secho("Flashcard deleted.", fg="green")


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List the cards due for study, earliest first."""
    cards = _run(_service(ctx).get_due_queue(deck_id))

    if json_output:
        typer.echo(json.dumps([_card_dict(c) for c in cards], indent=2))
        return

    if not cards:
        typer.secho("Nothing due. Come back later.", fg="green")
        return

    typer.echo(f"Due cards: {len(cards)}")
    for card in cards:
        typer.echo(f"  {card.id}  {card.front}")


@app.command(context_settings={"ignore_unknown_options": True})
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Flashcard id.")],
    quality: Annotated[
        int, typer.Argument(help="Recall quality 0 (forgot) to 5 (perfect).")
    ],
):
    """Record a single review of a card."""
    outcome = _run(_service(ctx).rate_card(card_id, quality))
    state = outcome.card.review_state
    typer.echo(f"Next review: {outcome.due_text} ({_fmt_time(state.due_date)})")
    typer.echo(
        f"Interval: {state.interval}d  Ease: {state.ease_factor:.2f}  "
        f"Repetitions: {state.repetitions}"
    )


_FEEDBACK_STYLE = {
    ReviewFeedback.GREAT: ("Great!", "green"),
    ReviewFeedback.GOOD: ("Good", "cyan"),
    ReviewFeedback.AGAIN: ("Needs review", "yellow"),
}


@app.command()
def study(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
):
    """[bold green]Study[/bold green] the due cards of a deck interactively."""
    service = _service(ctx)
    session = _run(StudySession.for_deck(service, deck_id))

    if session.is_complete:
        typer.secho("No flashcards due for study in this deck.", fg="yellow")
        return

    while not session.is_complete:
        card = session.current_card
        typer.echo(f"\n[{len(session.studied_ids) + 1}/{len(session.cards)}] {card.front}")
        typer.prompt("Press Enter to reveal", default="", show_default=False)
        typer.echo(f"  {card.back}")

        quality = None
        while quality is None:
            answer = typer.prompt("Rate (again/good/easy or 0-5)")
            quality = _parse_rating(answer)
            if quality is None:
                typer.secho("Please answer again, good, easy or a number 0-5.", fg="yellow")

        outcome = _run(session.rate(quality))
        label, color = _FEEDBACK_STYLE[outcome.feedback]
        if outcome.feedback is ReviewFeedback.AGAIN:
            typer.secho(f"{label}: this card will come back soon.", fg=color)
        else:
            typer.secho(f"{label}: next review {outcome.due_text}", fg=color)

    typer.secho(f"\nStudy complete! You studied {len(session.cards)} card(s).", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
