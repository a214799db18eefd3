"""
Domain models for flashcard review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from studylab.domain.constants import DEFAULT_EASE_FACTOR, NEVER_REVIEWED


@dataclass(frozen=True)
class ReviewState:
    """
    SM-2 scheduling record attached to a flashcard.

    Attributes:
        ease_factor: Interval growth multiplier, kept within [1.3, 2.5].
        interval: Days until the next review, kept within [0, 365].
        repetitions: Consecutive successful reviews since the last lapse.
        due_date: Epoch milliseconds of the next scheduled review.
        last_review: Epoch milliseconds of the latest review (0 = never).
    """

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    due_date: int = 0
    last_review: int = NEVER_REVIEWED

    @property
    def never_reviewed(self) -> bool:
        return self.last_review == NEVER_REVIEWED

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the store's camelCase record keys."""
        return {
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "dueDate": self.due_date,
            "lastReview": self.last_review,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewState":
        return cls(
            ease_factor=float(data["easeFactor"]),
            interval=int(data["interval"]),
            repetitions=int(data["repetitions"]),
            due_date=int(data["dueDate"]),
            last_review=int(data.get("lastReview", NEVER_REVIEWED)),
        )


class HasReviewState(Protocol):
    """Anything the scheduler can order or filter: it only needs a review_state."""

    @property
    def review_state(self) -> ReviewState: ...


@dataclass(frozen=True)
class Flashcard:
    """
    A question/answer card owned by a deck.

    The review state is replaced wholesale on every rating; use
    dataclasses.replace to derive the updated card.
    """

    id: str
    deck_id: str
    front: str
    back: str
    review_state: ReviewState
    created_at: int


@dataclass(frozen=True)
class Deck:
    id: str
    title: str
    description: str
    created_at: int
    updated_at: int
