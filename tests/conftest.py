from datetime import timezone

import pytest

from studylab.application.scheduler import Sm2Scheduler
from studylab.application.study_service import StudyService
from studylab.domain.constants import MS_PER_DAY
from studylab.infrastructure.adapters.memory_store import InMemoryCardRepository

# 2024-03-01 12:00:00 UTC
T0 = 1_709_294_400_000


class FakeClock:
    """Controllable time source returning epoch milliseconds."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, days: float = 0, ms: int = 0) -> None:
        self.now += int(days * MS_PER_DAY) + ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    """Scheduler pinned to a fake clock and UTC calendar arithmetic."""
    return Sm2Scheduler(clock=clock, tz=timezone.utc)


@pytest.fixture
def memory_repo():
    return InMemoryCardRepository()


@pytest.fixture
def service(memory_repo, scheduler):
    return StudyService(memory_repo, scheduler=scheduler)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/db
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "STUDYLAB_BACKEND",
        "STUDYLAB_DB_PATH",
        "STUDYLAB_LOCALE",
        "STUDYLAB_LOG_DIR",
        "STUDYLAB_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
