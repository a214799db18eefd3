"""
Study Service: Application layer orchestrator.

Coordinates the card repository and the SM-2 scheduler: creating decks and
cards, building due queues, and applying ratings.
"""

import asyncio
import dataclasses
import logging
import weakref
from dataclasses import dataclass

from studylab.domain.errors import CardNotFoundError, DeckNotFoundError
from studylab.domain.review.models import Deck, Flashcard, ReviewState
from studylab.domain.review.ports import CardRepository

from .id_service import generate_card_id, generate_deck_id
from .scheduler import LearningStage, ReviewFeedback, Sm2Scheduler, clamp_quality

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of rating a card."""

    card: Flashcard  # card as persisted, carrying the new review state
    previous_state: ReviewState
    quality: int  # after clamping
    feedback: ReviewFeedback
    due_text: str


@dataclass(frozen=True)
class DeckOverview:
    deck: Deck
    total: int
    due: int
    learning: int
    mature: int
    next_due_date: int | None  # earliest due date among cards not yet due


class StudyService:
    """
    Application service for deck management and review.

    Follows Dependency Inversion: depends on the CardRepository abstraction,
    not concrete adapter implementations. Rating a card is a read-modify-write
    against the store and is serialized per card id.
    """

    def __init__(
        self,
        repo: CardRepository,
        scheduler: Sm2Scheduler | None = None,
        locale: str = "en",
    ):
        """
        Args:
            repo: The repository (port) holding decks and cards.
            scheduler: Optional scheduler; uses a system-clock one if not provided.
            locale: Language of the due-date text in review outcomes.
        """
        self._repo = repo
        self._scheduler = scheduler or Sm2Scheduler()
        self._locale = locale
        # Entries vanish once no rating holds the lock
        self._card_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def scheduler(self) -> Sm2Scheduler:
        return self._scheduler

    # ----- Decks -----

    async def create_deck(self, title: str, description: str = "") -> Deck:
        now = self._scheduler.now()
        deck = Deck(
            id=generate_deck_id(),
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
        )
        await self._repo.put_deck(deck)
        logger.info(f"Created deck {deck.id} ({title!r})")
        return deck

    async def get_deck(self, deck_id: str) -> Deck:
        deck = await self._repo.get_deck(deck_id)
        if deck is None:
            raise DeckNotFoundError(deck_id)
        return deck

    async def list_decks(self) -> list[Deck]:
        return await self._repo.list_decks()

    async def rename_deck(
        self, deck_id: str, title: str, description: str | None = None
    ) -> Deck:
        deck = await self.get_deck(deck_id)
        updated = dataclasses.replace(
            deck,
            title=title,
            description=deck.description if description is None else description,
            updated_at=self._scheduler.now(),
        )
        await self._repo.put_deck(updated)
        return updated

    async def delete_deck(self, deck_id: str) -> None:
        await self.get_deck(deck_id)
        await self._repo.delete_deck(deck_id)
        logger.info(f"Deleted deck {deck_id}")

    # ----- Cards -----

    async def add_card(self, deck_id: str, front: str, back: str) -> Flashcard:
        """
        Create a flashcard in a deck. New cards are due immediately.

        Raises:
            DeckNotFoundError: If the deck does not exist.
        """
        deck = await self.get_deck(deck_id)
        state = self._scheduler.create_default_review_state()
        card = Flashcard(
            id=generate_card_id(),
            deck_id=deck_id,
            front=front,
            back=back,
            review_state=state,
            created_at=state.due_date,
        )
        await self._repo.put_card(card)
        await self._repo.put_deck(dataclasses.replace(deck, updated_at=card.created_at))
        return card

    async def get_card(self, card_id: str) -> Flashcard:
        card = await self._repo.get_card(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    async def delete_card(self, card_id: str) -> None:
        await self.get_card(card_id)
        await self._repo.delete_card(card_id)

    async def list_cards(self, deck_id: str) -> list[Flashcard]:
        await self.get_deck(deck_id)
        return await self._repo.list_cards_by_deck(deck_id)

    # ----- Review -----

    async def get_due_queue(self, deck_id: str) -> list[Flashcard]:
        """
        Cards of the deck that are due now, earliest due first.
        """
        cards = await self.list_cards(deck_id)
        return self._scheduler.sort_by_due_date(self._scheduler.get_due_cards(cards))

    async def rate_card(self, card_id: str, quality: int) -> ReviewOutcome:
        """
        Apply a rating to a card and persist its new review state.

        The stored state is only replaced once the full new state has been
        computed; if the read fails nothing is computed, and if the write
        fails the error propagates with the old state still in the store.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the repository cannot read or write.
        """
        lock = self._card_locks.get(card_id)
        if lock is None:
            lock = self._card_locks[card_id] = asyncio.Lock()
        async with lock:
            card = await self.get_card(card_id)
            new_state = self._scheduler.calculate_next_review(card.review_state, quality)
            updated = dataclasses.replace(card, review_state=new_state)
            await self._repo.put_card(updated)

        clamped = clamp_quality(quality)
        logger.info(
            f"Rated {card_id} quality={clamped}: next review in {new_state.interval} day(s)"
        )
        return ReviewOutcome(
            card=updated,
            previous_state=card.review_state,
            quality=clamped,
            feedback=ReviewFeedback.from_quality(clamped),
            due_text=self._scheduler.format_due_date(new_state, self._locale),
        )

    async def deck_overview(self, deck_id: str) -> DeckOverview:
        deck = await self.get_deck(deck_id)
        cards = await self._repo.list_cards_by_deck(deck_id)

        due = 0
        learning = 0
        mature = 0
        upcoming: list[int] = []
        for card in cards:
            stage = LearningStage.of(card.review_state)
            if stage is LearningStage.LEARNING:
                learning += 1
            elif stage is LearningStage.MATURE:
                mature += 1

            if self._scheduler.is_due(card.review_state):
                due += 1
            else:
                upcoming.append(card.review_state.due_date)

        return DeckOverview(
            deck=deck,
            total=len(cards),
            due=due,
            learning=learning,
            mature=mature,
            next_due_date=min(upcoming) if upcoming else None,
        )
