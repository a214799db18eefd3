"""
SM-2 review scheduler.

Decides when a flashcard is next shown from the learner's self-rated recall
quality (0 = blackout, 5 = perfect recall). This is a pure computation module
with no I/O: every operation takes a ReviewState and returns a new value. The
only ambient input is the current time, read through an injectable clock.

Callers that persist the result must serialize the read-compute-write of a
card's state per card id; the scheduler keeps no state between calls.
"""

import logging
import math
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, tzinfo
from enum import Enum, IntEnum
from typing import TypeVar

from studylab.domain.constants import (
    DEFAULT_EASE_FACTOR,
    FAILED_INTERVAL,
    FIRST_INTERVAL,
    GOOD_FEEDBACK_QUALITY,
    GREAT_FEEDBACK_QUALITY,
    MAX_EASE_FACTOR,
    MAX_INTERVAL,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    MS_PER_DAY,
    MS_PER_SECOND,
    NEVER_REVIEWED,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from studylab.domain.review.models import HasReviewState, ReviewState

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
"""Returns the current time as epoch milliseconds."""

CardT = TypeVar("CardT", bound=HasReviewState)


def system_clock() -> int:
    return time.time_ns() // 1_000_000


class Rating(IntEnum):
    """Study buttons and the quality each one submits."""

    AGAIN = 1
    GOOD = 3
    EASY = 5


class ReviewFeedback(str, Enum):
    GREAT = "great"
    GOOD = "good"
    AGAIN = "again"

    @classmethod
    def from_quality(cls, quality: int) -> "ReviewFeedback":
        if quality >= GREAT_FEEDBACK_QUALITY:
            return cls.GREAT
        if quality >= GOOD_FEEDBACK_QUALITY:
            return cls.GOOD
        return cls.AGAIN


class LearningStage(str, Enum):
    """Bucket of a card by its run of successful reviews."""

    LEARNING = "learning"  # new, or relearning after a lapse
    YOUNG_1 = "young_1"
    YOUNG_2 = "young_2"
    MATURE = "mature"

    @classmethod
    def of(cls, state: ReviewState) -> "LearningStage":
        if state.repetitions <= 0:
            return cls.LEARNING
        if state.repetitions == 1:
            return cls.YOUNG_1
        if state.repetitions == 2:
            return cls.YOUNG_2
        return cls.MATURE


class DueBucket(str, Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    LATER = "later"


_DUE_TEXT = {
    "en": {
        DueBucket.TODAY: "Today",
        DueBucket.TOMORROW: "Tomorrow",
        DueBucket.LATER: "In {days} days",
    },
    "it": {
        DueBucket.TODAY: "Oggi",
        DueBucket.TOMORROW: "Domani",
        DueBucket.LATER: "Tra {days} giorni",
    },
}


def _bucket(days: int) -> DueBucket:
    if days == 0:
        return DueBucket.TODAY
    if days == 1:
        return DueBucket.TOMORROW
    return DueBucket.LATER


def clamp_quality(quality: int) -> int:
    """Saturate quality into [0, 5]; out-of-range input is not an error."""
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def round_half_up(value: float) -> int:
    # Intervals are always positive, so this matches Math.round-style rounding.
    return math.floor(value + 0.5)


class Sm2Scheduler:
    """
    SuperMemo-2 scheduling over immutable ReviewState values.

    Stateless apart from its time source, so one instance can be shared
    freely across threads and tasks.
    """

    def __init__(self, clock: Clock | None = None, tz: tzinfo | None = None):
        """
        Args:
            clock: Time source returning epoch milliseconds; defaults to the system clock.
            tz: Zone used for calendar-day arithmetic; None means the local zone.
        """
        self._clock = clock or system_clock
        self._tz = tz

    def now(self) -> int:
        return self._clock()

    def create_default_review_state(self) -> ReviewState:
        """State for a brand-new card: never reviewed and due immediately."""
        return ReviewState(
            ease_factor=DEFAULT_EASE_FACTOR,
            interval=0,
            repetitions=0,
            due_date=self.now(),
            last_review=NEVER_REVIEWED,
        )

    def calculate_next_review(self, state: ReviewState, quality: int) -> ReviewState:
        """
        Compute the state that follows a review rated `quality`.

        A lapse (quality < 3) restarts the repetition run with a one day
        interval and keeps the ease factor. A success grows the interval
        1, 6, then previous interval x ease factor, and adjusts the ease
        factor by the SM-2 formula. The due date is anchored on now, not on
        the previous due date.
        """
        quality = clamp_quality(quality)
        now = self.now()

        ease_factor = state.ease_factor
        if quality < PASSING_QUALITY:
            repetitions = 0
            interval = FAILED_INTERVAL
        else:
            repetitions = state.repetitions + 1
            if repetitions == 1:
                interval = FIRST_INTERVAL
            elif repetitions == 2:
                interval = SECOND_INTERVAL
            else:
                interval = round_half_up(state.interval * ease_factor)

            miss = MAX_QUALITY - quality
            ease_factor += 0.1 - miss * (0.08 + miss * 0.02)
            ease_factor = max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))

        interval = min(MAX_INTERVAL, interval)

        new_state = ReviewState(
            ease_factor=ease_factor,
            interval=interval,
            repetitions=repetitions,
            due_date=self._add_days(now, interval),
            last_review=now,
        )
        logger.debug(
            f"quality={quality} reps {state.repetitions}->{repetitions} "
            f"interval {state.interval}->{interval} ease {state.ease_factor:.2f}->{ease_factor:.2f}"
        )
        return new_state

    def is_due(self, state: ReviewState) -> bool:
        return self.now() >= state.due_date

    def get_due_cards(self, cards: Iterable[CardT]) -> list[CardT]:
        """Return the cards that are due, keeping their input order."""
        now = self.now()
        return [card for card in cards if now >= card.review_state.due_date]

    def sort_by_due_date(self, cards: Iterable[CardT]) -> list[CardT]:
        """
        Return a new list ordered by due date, earliest first.

        The sort is stable: cards with equal due dates keep their input order.
        """
        return sorted(cards, key=lambda card: card.review_state.due_date)

    def days_until_review(self, state: ReviewState) -> int:
        """Whole days until the card is due, rounded up; 0 once it is due."""
        remaining_ms = state.due_date - self.now()
        return max(0, math.ceil(remaining_ms / MS_PER_DAY))

    def classify_due(self, state: ReviewState) -> DueBucket:
        return _bucket(self.days_until_review(state))

    def format_due_date(self, state: ReviewState, locale: str = "en") -> str:
        """
        Human-readable due text, e.g. "Today", "Tomorrow" or "In 6 days".

        Unknown locales fall back to English.
        """
        days = self.days_until_review(state)
        texts = _DUE_TEXT.get(locale, _DUE_TEXT["en"])
        return texts[_bucket(days)].format(days=days)

    def _add_days(self, epoch_ms: int, days: int) -> int:
        """
        Add calendar days, landing on the same wall-clock time.

        Month and year rollover and DST shifts are handled by datetime
        arithmetic in the scheduler's zone.
        """
        seconds, millis = divmod(epoch_ms, MS_PER_SECOND)
        moment = datetime.fromtimestamp(seconds, self._tz) + timedelta(days=days)
        return int(moment.timestamp()) * MS_PER_SECOND + millis


_default_scheduler = Sm2Scheduler()


def create_default_review_state() -> ReviewState:
    return _default_scheduler.create_default_review_state()


def calculate_next_review(state: ReviewState, quality: int) -> ReviewState:
    return _default_scheduler.calculate_next_review(state, quality)


def is_due(state: ReviewState) -> bool:
    return _default_scheduler.is_due(state)


def get_due_cards(cards: Iterable[CardT]) -> list[CardT]:
    return _default_scheduler.get_due_cards(cards)


def sort_by_due_date(cards: Iterable[CardT]) -> list[CardT]:
    return _default_scheduler.sort_by_due_date(cards)


def days_until_review(state: ReviewState) -> int:
    return _default_scheduler.days_until_review(state)


def classify_due(state: ReviewState) -> DueBucket:
    return _default_scheduler.classify_due(state)


def format_due_date(state: ReviewState, locale: str = "en") -> str:
    return _default_scheduler.format_due_date(state, locale)
