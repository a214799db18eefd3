import asyncio
import gc
from unittest.mock import AsyncMock

import pytest

from studylab.application.scheduler import LearningStage, ReviewFeedback
from studylab.application.study_service import StudyService
from studylab.domain.constants import MS_PER_DAY
from studylab.domain.errors import CardNotFoundError, DeckNotFoundError, StoreError
from studylab.domain.review.models import Flashcard
from studylab.domain.review.ports import CardRepository


@pytest.mark.asyncio
async def test_add_card_starts_due_with_default_state(service, clock):
    deck = await service.create_deck("Biology", "Cells")
    clock.advance(ms=500)
    card = await service.add_card(deck.id, "Mitochondria?", "Powerhouse")

    assert card.id.startswith("card_")
    assert card.deck_id == deck.id
    assert card.review_state.due_date == clock.now
    assert card.review_state.repetitions == 0
    assert card.created_at == clock.now

    stored_deck = await service.get_deck(deck.id)
    assert stored_deck.updated_at == clock.now
    assert [c.id for c in await service.get_due_queue(deck.id)] == [card.id]


@pytest.mark.asyncio
async def test_add_card_to_unknown_deck(service):
    with pytest.raises(DeckNotFoundError):
        await service.add_card("deck_missing", "Q", "A")


@pytest.mark.asyncio
async def test_rate_card_persists_new_state(service, memory_repo, clock):
    deck = await service.create_deck("D")
    card = await service.add_card(deck.id, "Q", "A")

    outcome = await service.rate_card(card.id, 5)

    assert outcome.quality == 5
    assert outcome.feedback is ReviewFeedback.GREAT
    assert outcome.due_text == "Tomorrow"
    assert outcome.previous_state == card.review_state

    stored = await memory_repo.get_card(card.id)
    assert stored == outcome.card
    assert stored.review_state.interval == 1
    assert stored.review_state.last_review == clock.now
    assert stored.review_state.due_date == clock.now + MS_PER_DAY


@pytest.mark.asyncio
async def test_rate_card_clamps_quality(service):
    deck = await service.create_deck("D")
    card = await service.add_card(deck.id, "Q", "A")

    outcome = await service.rate_card(card.id, -4)

    assert outcome.quality == 0
    assert outcome.feedback is ReviewFeedback.AGAIN
    assert outcome.card.review_state.repetitions == 0


@pytest.mark.asyncio
async def test_rate_unknown_card(service):
    with pytest.raises(CardNotFoundError):
        await service.rate_card("card_nope", 4)


@pytest.mark.asyncio
async def test_rated_card_leaves_due_queue_until_due_again(service, clock):
    deck = await service.create_deck("D")
    first = await service.add_card(deck.id, "Q1", "A1")
    clock.advance(ms=1)
    second = await service.add_card(deck.id, "Q2", "A2")

    await service.rate_card(first.id, 4)
    assert [c.id for c in await service.get_due_queue(deck.id)] == [second.id]

    clock.advance(days=1)
    queue = await service.get_due_queue(deck.id)
    # second has been due since creation, first only since now
    assert [c.id for c in queue] == [second.id, first.id]


@pytest.mark.asyncio
async def test_failed_write_keeps_old_state(scheduler):
    repo = AsyncMock(spec=CardRepository)
    service = StudyService(repo, scheduler=scheduler)

    card = Flashcard(
        id="card_1", deck_id="deck_1", front="Q", back="A",
        review_state=scheduler.create_default_review_state(), created_at=0,
    )
    repo.get_card.return_value = card
    repo.put_card.side_effect = StoreError("disk full")

    with pytest.raises(StoreError):
        await service.rate_card("card_1", 5)

    repo.get_card.assert_awaited_once_with("card_1")
    repo.put_card.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_read_computes_nothing(scheduler):
    repo = AsyncMock(spec=CardRepository)
    repo.get_card.side_effect = StoreError("unavailable")
    service = StudyService(repo, scheduler=scheduler)

    with pytest.raises(StoreError):
        await service.rate_card("card_1", 5)

    repo.put_card.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_ratings_of_same_card_are_serialized(service, memory_repo):
    deck = await service.create_deck("D")
    card = await service.add_card(deck.id, "Q", "A")

    original_get = memory_repo.get_card

    async def slow_get(card_id):
        result = await original_get(card_id)
        await asyncio.sleep(0)  # let the other rating interleave if it could
        return result

    memory_repo.get_card = slow_get

    await asyncio.gather(*(service.rate_card(card.id, 5) for _ in range(3)))

    stored = await original_get(card.id)
    # No lost update: each rating saw the previous one's result
    assert stored.review_state.repetitions == 3
    assert stored.review_state.interval == 15


@pytest.mark.asyncio
async def test_card_locks_are_released_after_rating(service):
    deck = await service.create_deck("D")
    cards = [await service.add_card(deck.id, f"Q{i}", "A") for i in range(5)]

    for card in cards:
        await service.rate_card(card.id, 4)
    await service.delete_card(cards[0].id)
    gc.collect()

    assert len(service._card_locks) == 0


@pytest.mark.asyncio
async def test_deck_overview_counts(service, clock):
    deck = await service.create_deck("D")
    cards = [await service.add_card(deck.id, f"Q{i}", f"A{i}") for i in range(4)]

    for _ in range(3):
        await service.rate_card(cards[0].id, 5)  # mature, due in 15 days
    await service.rate_card(cards[1].id, 1)  # relearning, due tomorrow

    ov = await service.deck_overview(deck.id)

    assert ov.total == 4
    assert ov.due == 2
    assert ov.learning == 3
    assert ov.mature == 1
    assert ov.next_due_date == clock.now + MS_PER_DAY


@pytest.mark.asyncio
async def test_rename_and_delete_deck(service, memory_repo, clock):
    deck = await service.create_deck("Old", "desc")
    await service.add_card(deck.id, "Q", "A")
    clock.advance(ms=10)

    renamed = await service.rename_deck(deck.id, "New")
    assert renamed.title == "New"
    assert renamed.description == "desc"
    assert renamed.updated_at == clock.now

    await service.delete_deck(deck.id)
    assert await service.list_decks() == []
    assert await memory_repo.list_cards_by_deck(deck.id) == []
    with pytest.raises(DeckNotFoundError):
        await service.deck_overview(deck.id)


@pytest.mark.asyncio
async def test_stage_of_new_card_is_learning(service):
    deck = await service.create_deck("D")
    card = await service.add_card(deck.id, "Q", "A")
    assert LearningStage.of(card.review_state) is LearningStage.LEARNING
