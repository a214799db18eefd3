"""
Domain errors for studylab.

The scheduler itself never raises; these cover the store boundary and the
lookups performed by application services.
"""


class StudylabError(Exception):
    """Base class for every error studylab raises on purpose."""


class CardNotFoundError(StudylabError):
    def __init__(self, card_id: str):
        super().__init__(f"Flashcard not found: {card_id}")
        self.card_id = card_id


class DeckNotFoundError(StudylabError):
    def __init__(self, deck_id: str):
        super().__init__(f"Deck not found: {deck_id}")
        self.deck_id = deck_id


class StoreError(StudylabError):
    """
    The card store failed to read or write.

    Raised by adapters so callers can surface persistence problems without
    depending on a backend-specific exception type.
    """
