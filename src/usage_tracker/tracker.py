"""Session lifecycle driven by foreground-window samples."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from .models import WindowSample
from .store import SessionStore

logger = logging.getLogger(__name__)


class Transition(str, Enum):
    UNCHANGED = "unchanged"
    STARTED = "started"
    SWITCHED = "switched"
    WENT_IDLE = "went_idle"
    LOST_FOCUS = "lost_focus"


@dataclass(slots=True)
class TrackerState:
    """Last window identity seen and the session recorded for it.

    ``session_id`` is None while idle, or when opening the session failed.
    """

    process_name: str = ""
    window_title: str = ""
    session_id: Optional[int] = None

    @property
    def is_tracking(self) -> bool:
        return bool(self.process_name and self.window_title)

    def identity(self) -> tuple[str, str]:
        return self.process_name, self.window_title


class SessionTracker:
    """Opens and closes sessions as the foreground window or idleness changes."""

    def __init__(
        self,
        store: SessionStore,
        idle_threshold: timedelta = timedelta(minutes=5),
    ) -> None:
        self._store = store
        self.idle_threshold = idle_threshold
        self.state = TrackerState()

    @property
    def idle_threshold_ms(self) -> int:
        return int(self.idle_threshold.total_seconds() * 1000)

    def tick(self, sample: WindowSample) -> Transition:
        if sample.idle_millis > self.idle_threshold_ms:
            if not self.state.is_tracking:
                return Transition.UNCHANGED
            logger.info(
                "User idle for %.0fs; closing %s | %s",
                sample.idle_millis / 1000,
                self.state.process_name,
                self.state.window_title,
            )
            self._close_current()
            self.state = TrackerState()
            return Transition.WENT_IDLE

        identity = ("", "") if sample.is_empty else (sample.process_name, sample.window_title)
        if identity == self.state.identity():
            return Transition.UNCHANGED

        was_tracking = self.state.is_tracking
        self._close_current()
        if sample.is_empty:
            self.state = TrackerState()
            return Transition.LOST_FOCUS

        session_id = self._store.open_session(*identity)
        if session_id is None:
            logger.error("Failed to start new session for %s | %s", *identity)
        else:
            logger.info("New session started: %s | %s", *identity)
        self.state = TrackerState(*identity, session_id=session_id)
        return Transition.SWITCHED if was_tracking else Transition.STARTED

    def stop(self) -> None:
        """Close the tracked session and forget the current window."""
        self._close_current()
        self.state = TrackerState()

    def _close_current(self) -> None:
        if self.state.session_id is None:
            return
        if not self._store.close_session(self.state.session_id):
            logger.error(
                "Failed to end session %d for %s | %s",
                self.state.session_id,
                self.state.process_name,
                self.state.window_title,
            )
