"""Repair pass keeping at most one open session in the store."""

from __future__ import annotations

import logging

from . import timeconv
from .store import SessionStore

logger = logging.getLogger(__name__)


class IntegrityChecker:
    """Closes stale open sessions left behind by a crash or restart.

    All open sessions except the most recently started one are closed at the
    current time.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self.repairs_total = 0

    def check(self) -> list[int]:
        if self._store.count_open_sessions() <= 1:
            return []

        repaired: list[int] = []
        for session in self._store.open_sessions()[:-1]:
            if not self._store.close_session(session.id):
                logger.error("Could not close orphaned session %d.", session.id)
                continue
            logger.warning(
                "Closed orphaned open session %d (%s | %s) started %s.",
                session.id,
                session.process_name,
                session.window_title,
                timeconv.to_calendar_string(session.start_time),
            )
            repaired.append(session.id)
        self.repairs_total += len(repaired)
        return repaired
