"""
SQLite Card Repository: Infrastructure adapter for a local database file.

Implements CardRepository on top of the standard library sqlite3 module. Each
operation opens its own short-lived connection, so one repository instance
can be shared by concurrent study sessions.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from studylab.domain.errors import StoreError
from studylab.domain.review.models import Deck, Flashcard, ReviewState
from studylab.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS decks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS flashcards (
    id TEXT PRIMARY KEY,
    deck_id TEXT NOT NULL,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    ease_factor REAL NOT NULL,
    interval_days INTEGER NOT NULL,
    repetitions INTEGER NOT NULL,
    due_date INTEGER NOT NULL,
    last_review INTEGER NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_flashcards_deck ON flashcards(deck_id);
CREATE INDEX IF NOT EXISTS idx_flashcards_due ON flashcards(due_date);
"""


class SqliteCardRepository(CardRepository):
    """
    Stores decks and flashcards in SQLite.

    Ease factors are REAL columns and timestamps INTEGER columns, so review
    state round-trips without loss. Writes are upserts that keep the row's
    rowid, so rows with equal created_at keep their insertion order.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Could not open card store at {self.db_path}: {e}") from e
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=5)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open card store at {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"Card store operation failed: {e}")
            raise StoreError(f"Card store operation failed: {e}") from e
        finally:
            conn.close()

    async def get_card(self, card_id: str) -> Flashcard | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        return _row_to_card(row) if row else None

    async def put_card(self, card: Flashcard) -> None:
        state = card.review_state
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO flashcards
                    (id, deck_id, front, back, ease_factor, interval_days,
                     repetitions, due_date, last_review, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    deck_id = excluded.deck_id,
                    front = excluded.front,
                    back = excluded.back,
                    ease_factor = excluded.ease_factor,
                    interval_days = excluded.interval_days,
                    repetitions = excluded.repetitions,
                    due_date = excluded.due_date,
                    last_review = excluded.last_review,
                    created_at = excluded.created_at
                """,
                (
                    card.id,
                    card.deck_id,
                    card.front,
                    card.back,
                    state.ease_factor,
                    state.interval,
                    state.repetitions,
                    state.due_date,
                    state.last_review,
                    card.created_at,
                ),
            )

    async def delete_card(self, card_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))

    async def list_cards_by_deck(self, deck_id: str) -> list[Flashcard]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM flashcards WHERE deck_id = ? ORDER BY created_at, rowid",
                (deck_id,),
            ).fetchall()
        return [_row_to_card(row) for row in rows]

    async def get_deck(self, deck_id: str) -> Deck | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
        return _row_to_deck(row) if row else None

    async def put_deck(self, deck: Deck) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO decks (id, title, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at
                """,
                (deck.id, deck.title, deck.description, deck.created_at, deck.updated_at),
            )

    async def list_decks(self) -> list[Deck]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM decks ORDER BY created_at, rowid").fetchall()
        return [_row_to_deck(row) for row in rows]

    async def delete_deck(self, deck_id: str) -> None:
        # Single transaction: the deck never outlives its cards or vice versa
        with self._connect() as conn:
            conn.execute("DELETE FROM flashcards WHERE deck_id = ?", (deck_id,))
            conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))


def _row_to_card(row: sqlite3.Row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        review_state=ReviewState(
            ease_factor=row["ease_factor"],
            interval=row["interval_days"],
            repetitions=row["repetitions"],
            due_date=row["due_date"],
            last_review=row["last_review"],
        ),
        created_at=row["created_at"],
    )


def _row_to_deck(row: sqlite3.Row) -> Deck:
    return Deck(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
