"""Stable identifiers for decks and flashcards."""

from ulid import ULID

from studylab.domain.constants import CARD_ID_PREFIX, DECK_ID_PREFIX


def generate_card_id() -> str:
    """Generate a flashcard ID using ULID, so ids sort by creation time."""
    return f"{CARD_ID_PREFIX}{ULID()}"


def generate_deck_id() -> str:
    return f"{DECK_ID_PREFIX}{ULID()}"
