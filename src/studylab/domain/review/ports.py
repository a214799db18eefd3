"""
Ports (interfaces) for flashcard persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Deck, Flashcard


class CardRepository(ABC):
    """
    Port for storing decks and flashcards.

    Records are always written whole; there are no partial-field updates.

    Implementations:
        - InMemoryCardRepository: Dict-backed store for tests and ephemeral sessions.
        - SqliteCardRepository: Persists to a local SQLite database.
    """

    @abstractmethod
    async def get_card(self, card_id: str) -> Flashcard | None:
        """
        Fetch a flashcard by id.

        Returns:
            The stored Flashcard, or None if no card has that id.
        """
        pass

    @abstractmethod
    async def put_card(self, card: Flashcard) -> None:
        """Insert or replace a flashcard, including its full review state."""
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> None:
        pass

    @abstractmethod
    async def list_cards_by_deck(self, deck_id: str) -> list[Flashcard]:
        """
        Fetch every flashcard of a deck.

        Returns:
            Flashcards in creation order.
        """
        pass

    @abstractmethod
    async def get_deck(self, deck_id: str) -> Deck | None:
        pass

    @abstractmethod
    async def put_deck(self, deck: Deck) -> None:
        pass

    @abstractmethod
    async def list_decks(self) -> list[Deck]:
        pass

    @abstractmethod
    async def delete_deck(self, deck_id: str) -> None:
        """Delete a deck together with all of its flashcards."""
        pass
