import dataclasses

import pytest

from studylab.domain.errors import CardNotFoundError, DeckNotFoundError, StudylabError
from studylab.domain.review.models import Flashcard, ReviewState


def test_review_state_defaults():
    state = ReviewState()
    assert state.ease_factor == 2.5
    assert state.interval == 0
    assert state.repetitions == 0
    assert state.never_reviewed


def test_review_state_is_immutable():
    state = ReviewState(due_date=10)
    with pytest.raises(dataclasses.FrozenInstanceError):
        state.interval = 3  # type: ignore[misc]


def test_review_state_dict_uses_record_keys():
    state = ReviewState(
        ease_factor=1.8599999999999999,
        interval=12,
        repetitions=3,
        due_date=1_709_294_400_123,
        last_review=1_708_257_600_123,
    )

    data = state.to_dict()

    assert data == {
        "easeFactor": 1.8599999999999999,
        "interval": 12,
        "repetitions": 3,
        "dueDate": 1_709_294_400_123,
        "lastReview": 1_708_257_600_123,
    }
    assert ReviewState.from_dict(data) == state


def test_review_state_from_dict_without_last_review():
    state = ReviewState.from_dict(
        {"easeFactor": 2.5, "interval": 0, "repetitions": 0, "dueDate": 5}
    )
    assert state.never_reviewed
    assert state.due_date == 5


def test_flashcard_review_state_replaced_wholesale():
    card = Flashcard(
        id="card_1", deck_id="deck_1", front="Q", back="A",
        review_state=ReviewState(due_date=1), created_at=1,
    )
    updated = dataclasses.replace(card, review_state=ReviewState(interval=6, due_date=9))

    assert card.review_state.interval == 0
    assert updated.review_state.interval == 6
    assert updated.front == "Q"


def test_not_found_errors_carry_ids():
    err = CardNotFoundError("card_x")
    assert isinstance(err, StudylabError)
    assert err.card_id == "card_x"
    assert "card_x" in str(err)
    assert DeckNotFoundError("deck_y").deck_id == "deck_y"
