import sqlite3
from unittest.mock import patch

import pytest

from studylab.domain.errors import StoreError
from studylab.domain.review.models import Flashcard, ReviewState
from studylab.infrastructure.adapters.sqlite_store import SqliteCardRepository


@pytest.mark.asyncio
async def test_data_survives_reopening(tmp_path):
    db = tmp_path / "cards.db"
    card = Flashcard(
        id="card_1", deck_id="deck_1", front="Q", back="A",
        review_state=ReviewState(ease_factor=2.36, interval=6, repetitions=2, due_date=99),
        created_at=1,
    )
    await SqliteCardRepository(db).put_card(card)

    assert await SqliteCardRepository(db).get_card("card_1") == card


def test_schema_has_deck_and_due_indexes(tmp_path):
    db = tmp_path / "cards.db"
    SqliteCardRepository(db)

    with sqlite3.connect(db) as conn:
        names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")}
    assert {"idx_flashcards_deck", "idx_flashcards_due"} <= names


@pytest.mark.asyncio
async def test_sqlite_errors_become_store_errors(tmp_path):
    repo = SqliteCardRepository(tmp_path / "cards.db")

    with patch(
        "studylab.infrastructure.adapters.sqlite_store.sqlite3.connect",
        side_effect=sqlite3.OperationalError("unable to open database file"),
    ):
        with pytest.raises(StoreError, match="Could not open card store"):
            await repo.get_card("card_1")


@pytest.mark.asyncio
async def test_failed_statement_raises_store_error(tmp_path):
    db = tmp_path / "cards.db"
    repo = SqliteCardRepository(db)
    with sqlite3.connect(db) as conn:
        conn.execute("DROP TABLE flashcards")

    with pytest.raises(StoreError, match="operation failed"):
        await repo.get_card("card_1")


def test_unusable_parent_directory_raises_store_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")

    with pytest.raises(StoreError, match="Could not open card store"):
        SqliteCardRepository(blocker / "cards.db")


def test_directory_as_db_path_raises_store_error(tmp_path):
    with pytest.raises(StoreError, match="(?i)card store"):
        SqliteCardRepository(tmp_path)
