"""Foreground-window sampling and the polling loop that records sessions."""

from __future__ import annotations

import logging
import sys
import threading
from abc import ABC, abstractmethod

from . import timeconv
from .config import CollectorSettings
from .integrity import IntegrityChecker
from .models import WindowSample
from .store import SessionStore
from .tracker import SessionTracker, Transition

logger = logging.getLogger(__name__)


class WindowObserver(ABC):
    """Source of foreground-window samples."""

    @abstractmethod
    def sample(self) -> WindowSample:
        """Return the active process, window title and input idle time.

        Empty strings mean no foreground window could be resolved.
        """


def create_default_observer() -> WindowObserver:
    """Return the observer for the running platform.

    Raises ``RuntimeError`` where no foreground-window probe exists.
    """
    if sys.platform != "win32":
        raise RuntimeError(
            f"Foreground window sampling is not supported on {sys.platform!r}."
        )
    from .windows import WindowsWindowObserver

    return WindowsWindowObserver()


class ActivityCollector:
    """Samples foreground activity at a fixed interval and records sessions.

    The store is owned by the caller. Shutdown closes every session still
    open in it, not only the one this collector started.
    """

    def __init__(
        self,
        store: SessionStore,
        observer: WindowObserver,
        settings: CollectorSettings | None = None,
    ) -> None:
        self.settings = settings or CollectorSettings()
        self._store = store
        self._observer = observer
        self.tracker = SessionTracker(store, idle_threshold=self.settings.idle_threshold)
        self.integrity = IntegrityChecker(store)
        self.started_at = store.now()

    def uptime_seconds(self) -> float:
        """Seconds since this collector was created."""
        return timeconv.seconds_between(self.started_at, self._store.now())

    def run_forever(self) -> None:
        stop_event = threading.Event()
        try:
            self._run_loop(stop_event)
        except KeyboardInterrupt:
            logger.info("Collector interrupted; closing open sessions.")
        finally:
            self.shutdown()

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run the collector until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self.shutdown()

    def sample_once(self) -> Transition:
        sample = self._observer.sample()
        transition = self.tracker.tick(sample)
        if transition is not Transition.UNCHANGED:
            logger.debug(
                "Tick %s: process=%s title=%s idle_ms=%d",
                transition.value,
                sample.process_name,
                sample.window_title,
                sample.idle_millis,
            )
        self.integrity.check()
        return transition

    def shutdown(self) -> None:
        self.tracker.stop()
        closed = self._store.close_open_sessions()
        if closed:
            logger.info("Closed %d open session(s) on shutdown.", len(closed))
        logger.info("Collector stopped after %.0fs.", self.uptime_seconds())

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting collector.")
        interval = self.settings.sample_interval.total_seconds()
        while not stop_event.is_set():
            self.sample_once()
            # Sleep in an interruptible manner.
            stop_event.wait(interval)
