"""
Study session: one pass over a queue of cards.

Tracks which card is current, which cards have been studied and how far the
learner has progressed. Ratings are persisted through the StudyService.
"""

import logging

from studylab.domain.review.models import Flashcard

from .study_service import ReviewOutcome, StudyService

logger = logging.getLogger(__name__)


class StudySession:
    def __init__(self, service: StudyService, cards: list[Flashcard]):
        self._service = service
        self._cards = list(cards)
        self._index = 0
        self._studied: list[str] = []

    @classmethod
    async def for_deck(cls, service: StudyService, deck_id: str) -> "StudySession":
        """Start a session over the deck's currently due cards."""
        return cls(service, await service.get_due_queue(deck_id))

    @property
    def cards(self) -> list[Flashcard]:
        return list(self._cards)

    @property
    def current_card(self) -> Flashcard | None:
        if self.is_complete:
            return None
        return self._cards[self._index]

    @property
    def studied_ids(self) -> list[str]:
        return list(self._studied)

    @property
    def progress(self) -> float:
        """Percentage of the queue already rated, 0-100."""
        if not self._cards:
            return 100.0
        return len(self._studied) / len(self._cards) * 100

    @property
    def is_complete(self) -> bool:
        return len(self._studied) >= len(self._cards)

    async def rate(self, quality: int) -> ReviewOutcome:
        """
        Rate the current card and advance to the next one.

        If persisting the rating fails the error propagates and the session
        stays on the same card, so the rating can be retried.

        Raises:
            RuntimeError: If the session is already complete.
        """
        card = self.current_card
        if card is None:
            raise RuntimeError("Study session is complete; no card to rate")

        outcome = await self._service.rate_card(card.id, quality)
        self._cards[self._index] = outcome.card
        self._studied.append(card.id)
        self._index += 1

        if self.is_complete:
            logger.info(f"Study session complete: {len(self._cards)} card(s) studied")
        return outcome
