import random

from usage_tracker.integrity import IntegrityChecker
from usage_tracker.models import WindowSample
from usage_tracker.tracker import SessionTracker


def test_single_open_session_is_left_alone(store, record, day_start):
    record("a.exe", "one", day_start)
    checker = IntegrityChecker(store)

    assert checker.check() == []
    assert store.count_open_sessions() == 1


def test_closes_all_but_most_recently_started(store, record, clock, day_start):
    hour = 1 / 24
    oldest = record("a.exe", "one", day_start)
    middle = record("b.exe", "two", day_start + hour)
    latest = record("c.exe", "three", day_start + 2 * hour)
    clock.set(day_start + 3 * hour)
    checker = IntegrityChecker(store)

    assert checker.check() == [oldest, middle]
    assert [s.id for s in store.open_sessions()] == [latest]
    assert store.get_session(oldest).end_time == day_start + 3 * hour
    assert checker.repairs_total == 2

    assert checker.check() == []
    assert checker.repairs_total == 2


def test_restart_leaves_at_most_one_open_session(store, clock):
    rng = random.Random(7)
    windows = [("a.exe", "one"), ("b.exe", "two"), ("c.exe", "three"), ("", "")]
    tracker = SessionTracker(store)
    checker = IntegrityChecker(store)

    for _ in range(300):
        clock.advance(rng.randint(1, 90))
        if rng.random() < 0.05:
            # Simulated crash: in-memory state is lost, stored rows remain.
            tracker = SessionTracker(store)
        process, title = rng.choice(windows)
        idle_ms = rng.choice([0, 0, 0, 10 * 60 * 1000])
        tracker.tick(WindowSample(process, title, idle_ms))
        checker.check()

        assert store.count_open_sessions() <= 1
