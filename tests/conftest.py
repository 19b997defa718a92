"""Shared test fixtures."""

import itertools
import json
from pathlib import Path

import pytest

from clipmark.devices import SimulatedDevice
from clipmark.library import LibraryStore
from clipmark.playback import FrameScheduler, PlaybackController
from clipmark.storage import MemoryStorage

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _stamps():
    counter = itertools.count()
    return lambda: f"2024-01-01T00:00:{next(counter):02d}.000Z"


@pytest.fixture
def sample_config_path() -> Path:
    return FIXTURES_DIR / "sample_config.json"


@pytest.fixture
def sample_backup_path() -> Path:
    return FIXTURES_DIR / "sample_backup.json"


@pytest.fixture
def sample_backup(sample_backup_path) -> dict:
    return json.loads(sample_backup_path.read_text())


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage) -> LibraryStore:
    s = LibraryStore(storage, now=_stamps())
    s.load()
    return s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=100.0)


@pytest.fixture
def device(clock) -> SimulatedDevice:
    return SimulatedDevice(clock=clock)


@pytest.fixture
def scheduler(clock) -> FrameScheduler:
    return FrameScheduler(tick_rate=60.0, clock=clock, sleep=clock.advance)


@pytest.fixture
def controller(device, store, scheduler) -> PlaybackController:
    c = PlaybackController(device, store.get_segment, scheduler)
    c.on_device_ready()
    return c
