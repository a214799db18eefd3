"""
Card Store Factory
Centralizes the logic for selecting the appropriate card repository.
"""

import logging

from studylab.application.config import AppConfig
from studylab.domain.review.ports import CardRepository
from studylab.infrastructure.adapters.memory_store import InMemoryCardRepository
from studylab.infrastructure.adapters.sqlite_store import SqliteCardRepository

logger = logging.getLogger(__name__)


def get_card_repository(config: AppConfig) -> CardRepository:
    """
    Returns the CardRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        logger.debug("Card store: in-memory")
        return InMemoryCardRepository()

    logger.debug(f"Card store: sqlite at {config.db_path}")
    return SqliteCardRepository(config.db_path)
