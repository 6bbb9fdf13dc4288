"""Session persistence shared by the tracker, integrity checker and reports."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from . import db, timeconv
from .models import Session

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SessionStore:
    """Single-connection store for activity sessions.

    Every call is serialized on one lock so a reader thread (the dashboard)
    and the collector thread can share the connection. Storage errors never
    escape: writes report failure through their return value and reads
    return an empty result.
    """

    def __init__(self, conn: sqlite3.Connection, *, clock: Clock = timeconv.now) -> None:
        self._conn = conn
        self._clock = clock
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def open(
        cls, path: Union[Path, str], *, clock: Clock = timeconv.now
    ) -> "SessionStore":
        conn = db.open_database(path, check_same_thread=False)
        logger.debug("Opened session store at %s", path)
        return cls(conn, clock=clock)

    def __enter__(self) -> "SessionStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    def now(self) -> float:
        return self._clock()

    def open_session(self, process_name: str, window_title: str) -> Optional[int]:
        """Insert a new open session starting now and return its id."""
        if not process_name or not window_title:
            logger.warning(
                "Refusing to open a session with an empty identity (%r, %r).",
                process_name,
                window_title,
            )
            return None
        with self._lock:
            try:
                return db.insert_session(self._conn, process_name, window_title, self.now())
            except sqlite3.Error:
                logger.exception("Failed to open session for %s | %s", process_name, window_title)
                return None

    def close_session(self, session_id: int) -> bool:
        """Stamp ``end_time = now`` on an open session.

        Returns False for invalid ids, unknown rows, rows that are already
        closed and failed writes.
        """
        if session_id <= 0:
            logger.warning("Cannot close session with invalid id %d.", session_id)
            return False
        with self._lock:
            try:
                closed = db.end_session(self._conn, session_id, self.now())
            except sqlite3.Error:
                logger.exception("Failed to close session %d.", session_id)
                return False
        if not closed:
            logger.warning("Session %d is already closed or does not exist.", session_id)
        return closed

    def close_open_sessions(self) -> list[int]:
        """Close every open session, as done on shutdown."""
        return [s.id for s in self.open_sessions() if self.close_session(s.id)]

    def get_session(self, session_id: int) -> Optional[Session]:
        with self._lock:
            try:
                row = db.fetch_session(self._conn, session_id)
            except sqlite3.Error:
                logger.exception("Failed to load session %d.", session_id)
                return None
        return Session.from_row(row) if row else None

    def current_open_session(self) -> Optional[Session]:
        with self._lock:
            try:
                row = db.fetch_latest_open_session(self._conn)
            except sqlite3.Error:
                logger.exception("Failed to query the open session.")
                return None
        return Session.from_row(row) if row else None

    def open_sessions(self) -> list[Session]:
        """All open sessions, oldest start first."""
        with self._lock:
            try:
                rows = db.fetch_open_sessions(self._conn)
            except sqlite3.Error:
                logger.exception("Failed to query open sessions.")
                return []
        return [Session.from_row(row) for row in rows]

    def count_open_sessions(self) -> int:
        with self._lock:
            try:
                return db.count_open_sessions(self._conn)
            except sqlite3.Error:
                logger.exception("Failed to count open sessions.")
                return 0

    def sessions_overlapping(
        self, start: Optional[float] = None, end: Optional[float] = None
    ) -> list[Session]:
        with self._lock:
            try:
                rows = db.fetch_sessions_overlapping(self._conn, start, end)
            except sqlite3.Error:
                logger.exception("Failed to query sessions between %s and %s.", start, end)
                return []
        return [Session.from_row(row) for row in rows]

    def min_start_time(self) -> Optional[float]:
        return self._bounds()[0]

    def max_end_or_now(self) -> Optional[float]:
        """Latest end time, where an open session ends now."""
        return self._bounds()[1]

    def _bounds(self) -> tuple[Optional[float], Optional[float]]:
        with self._lock:
            try:
                min_start, max_end, has_open = db.fetch_time_bounds(self._conn)
            except sqlite3.Error:
                logger.exception("Failed to query dataset bounds.")
                return None, None
        if min_start is None:
            return None, None
        if has_open:
            now = self.now()
            max_end = now if max_end is None else max(max_end, now)
        return min_start, max_end
