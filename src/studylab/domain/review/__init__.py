# Domain Review Package
from .models import Deck, Flashcard, HasReviewState, ReviewState
from .ports import CardRepository

__all__ = ["ReviewState", "Flashcard", "Deck", "HasReviewState", "CardRepository"]
