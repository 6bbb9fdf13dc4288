from datetime import timedelta

from usage_tracker.models import WindowSample
from usage_tracker.tracker import SessionTracker, Transition

IDLE_MS = 5 * 60 * 1000


def sample(process="", title="", idle_ms=0):
    return WindowSample(process, title, idle_ms)


def test_repeated_window_does_not_duplicate_sessions(store, clock):
    tracker = SessionTracker(store)

    assert tracker.tick(sample("A", "w1")) is Transition.STARTED
    clock.advance(1)
    assert tracker.tick(sample("A", "w1")) is Transition.UNCHANGED
    clock.advance(1)
    switch_time = clock()
    assert tracker.tick(sample("B", "w2")) is Transition.SWITCHED

    sessions = store.sessions_overlapping()
    assert [(s.process_name, s.window_title) for s in sessions] == [("A", "w1"), ("B", "w2")]
    assert sessions[0].end_time == switch_time
    assert sessions[1].is_open
    assert tracker.state.session_id == sessions[1].id


def test_title_change_within_same_process_starts_new_session(store):
    tracker = SessionTracker(store)
    tracker.tick(sample("code.exe", "a.py"))
    tracker.tick(sample("code.exe", "b.py"))

    assert len(store.sessions_overlapping()) == 2
    assert store.count_open_sessions() == 1


def test_idle_closes_session_and_forgets_window(store, clock):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))
    clock.advance(minutes=6)
    idle_time = clock()

    assert tracker.tick(sample("A", "w1", idle_ms=IDLE_MS + 1)) is Transition.WENT_IDLE
    assert not tracker.state.is_tracking
    assert store.count_open_sessions() == 0
    assert store.sessions_overlapping()[0].end_time == idle_time

    clock.advance(minutes=1)
    assert tracker.tick(sample("A", "w1", idle_ms=IDLE_MS + 60_000)) is Transition.UNCHANGED
    assert len(store.sessions_overlapping()) == 1


def test_returning_from_idle_opens_fresh_session_for_same_window(store, clock):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))
    clock.advance(minutes=6)
    tracker.tick(sample("A", "w1", idle_ms=IDLE_MS + 1))
    clock.advance(minutes=10)
    resume_time = clock()

    assert tracker.tick(sample("A", "w1")) is Transition.STARTED

    first, second = store.sessions_overlapping()
    assert second.start_time == resume_time
    assert second.start_time > first.end_time


def test_idle_threshold_is_strict(store):
    tracker = SessionTracker(store, idle_threshold=timedelta(minutes=5))
    tracker.tick(sample("A", "w1"))

    assert tracker.tick(sample("A", "w1", idle_ms=IDLE_MS)) is Transition.UNCHANGED
    assert store.count_open_sessions() == 1


def test_idle_while_idle_is_a_no_op(store):
    tracker = SessionTracker(store)

    assert tracker.tick(sample(idle_ms=IDLE_MS * 2)) is Transition.UNCHANGED
    assert store.sessions_overlapping() == []


def test_losing_the_foreground_window_closes_session(store):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))

    assert tracker.tick(sample()) is Transition.LOST_FOCUS
    assert store.count_open_sessions() == 0
    assert tracker.tick(sample()) is Transition.UNCHANGED


def test_partially_resolved_window_counts_as_empty(store):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))

    assert tracker.tick(sample("A", "")) is Transition.LOST_FOCUS
    assert tracker.tick(sample("", "w1")) is Transition.UNCHANGED
    assert len(store.sessions_overlapping()) == 1


def test_failed_open_is_not_retried_every_tick(store, monkeypatch):
    calls = []

    def failing_open(process_name, window_title):
        calls.append((process_name, window_title))
        return None

    monkeypatch.setattr(store, "open_session", failing_open)
    tracker = SessionTracker(store)

    assert tracker.tick(sample("A", "w1")) is Transition.STARTED
    assert tracker.state.identity() == ("A", "w1")
    assert tracker.state.session_id is None
    assert tracker.tick(sample("A", "w1")) is Transition.UNCHANGED
    assert calls == [("A", "w1")]


def test_failed_close_still_advances_state(store, monkeypatch):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))
    monkeypatch.setattr(store, "close_session", lambda session_id: False)

    assert tracker.tick(sample("B", "w2")) is Transition.SWITCHED
    assert tracker.state.identity() == ("B", "w2")


def test_stop_closes_tracked_session(store):
    tracker = SessionTracker(store)
    tracker.tick(sample("A", "w1"))
    tracker.stop()

    assert store.count_open_sessions() == 0
    assert not tracker.state.is_tracking
    assert tracker.tick(sample("A", "w1")) is Transition.STARTED
