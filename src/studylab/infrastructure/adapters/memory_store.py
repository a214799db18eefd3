"""
In-memory Card Repository: dict-backed adapter.

Records are frozen dataclasses, so storing and returning the same objects
cannot leak mutations between callers.
"""

from studylab.domain.review.models import Deck, Flashcard
from studylab.domain.review.ports import CardRepository


class InMemoryCardRepository(CardRepository):
    def __init__(self):
        self._cards: dict[str, Flashcard] = {}
        self._decks: dict[str, Deck] = {}

    async def get_card(self, card_id: str) -> Flashcard | None:
        return self._cards.get(card_id)

    async def put_card(self, card: Flashcard) -> None:
        self._cards[card.id] = card

    async def delete_card(self, card_id: str) -> None:
        self._cards.pop(card_id, None)

    async def list_cards_by_deck(self, deck_id: str) -> list[Flashcard]:
        cards = [c for c in self._cards.values() if c.deck_id == deck_id]
        return sorted(cards, key=lambda c: c.created_at)

    async def get_deck(self, deck_id: str) -> Deck | None:
        return self._decks.get(deck_id)

    async def put_deck(self, deck: Deck) -> None:
        self._decks[deck.id] = deck

    async def list_decks(self) -> list[Deck]:
        return sorted(self._decks.values(), key=lambda d: d.created_at)

    async def delete_deck(self, deck_id: str) -> None:
        self._decks.pop(deck_id, None)
        for card_id in [c.id for c in self._cards.values() if c.deck_id == deck_id]:
            del self._cards[card_id]
