"""Shared fixtures: a controllable clock, in-memory store and scripted observer."""

from __future__ import annotations

from typing import Iterable, Optional

import pytest

from usage_tracker import timeconv
from usage_tracker.collector import WindowObserver
from usage_tracker.db import MEMORY_DB
from usage_tracker.models import WindowSample
from usage_tracker.store import SessionStore

DAY = "2024-03-10"


class FakeClock:
    """Day-fraction clock that only moves when told to."""

    def __init__(self, value: float) -> None:
        self.value = value

    def __call__(self) -> float:
        return self.value

    def set(self, value: float) -> None:
        self.value = value

    def advance(self, seconds: float = 0.0, *, minutes: float = 0.0, hours: float = 0.0) -> None:
        total = seconds + minutes * 60 + hours * 3600
        self.value += total / timeconv.SECONDS_PER_DAY


class ScriptedObserver(WindowObserver):
    """Replays samples, moving the clock forward between them."""

    def __init__(
        self,
        samples: Iterable[WindowSample],
        clock: Optional[FakeClock] = None,
        step_seconds: float = 1.0,
    ) -> None:
        self._samples = list(samples)
        self._clock = clock
        self._step_seconds = step_seconds
        self.calls = 0

    def sample(self) -> WindowSample:
        if self._clock is not None and self.calls:
            self._clock.advance(self._step_seconds)
        index = min(self.calls, len(self._samples) - 1)
        self.calls += 1
        return self._samples[index]


@pytest.fixture
def day_start() -> float:
    return timeconv.from_calendar_string(DAY)


@pytest.fixture
def clock(day_start: float) -> FakeClock:
    return FakeClock(day_start + 9 / 24)


@pytest.fixture
def store(clock: FakeClock):
    session_store = SessionStore.open(MEMORY_DB, clock=clock)
    yield session_store
    session_store.close()


@pytest.fixture
def record(store: SessionStore, clock: FakeClock):
    """Insert a session spanning ``[start, end)``; ``end=None`` leaves it open."""

    def _record(
        process_name: str,
        window_title: str,
        start: float,
        end: Optional[float] = None,
        target: Optional[SessionStore] = None,
    ) -> int:
        target = target or store
        clock.set(start)
        session_id = target.open_session(process_name, window_title)
        assert session_id is not None
        if end is not None:
            clock.set(end)
            assert target.close_session(session_id)
        return session_id

    return _record


@pytest.fixture
def observer_factory(clock: FakeClock):
    def _factory(samples: Iterable[WindowSample], step_seconds: float = 1.0) -> ScriptedObserver:
        return ScriptedObserver(samples, clock=clock, step_seconds=step_seconds)

    return _factory
