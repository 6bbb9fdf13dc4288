"""SQLite database layer for activity sessions."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Union

from .errors import StorageUnavailable

MEMORY_DB = ":memory:"

_SESSION_COLUMNS = "id, process_name, window_title, start_time, end_time"


def open_database(
    path: Union[Path, str], *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database.

    Raises ``StorageUnavailable`` when the file cannot be created or opened.
    """
    try:
        if str(path) != MEMORY_DB:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            path,
            isolation_level=None,
            check_same_thread=check_same_thread,
        )
        conn.row_factory = sqlite3.Row
        initialize_schema(conn)
    except (sqlite3.Error, OSError) as exc:
        raise StorageUnavailable(f"Cannot open activity database at {path}: {exc}") from exc
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activity_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            process_name TEXT NOT NULL,
            window_title TEXT NOT NULL,
            start_time REAL NOT NULL,
            end_time REAL
        );

        CREATE INDEX IF NOT EXISTS idx_sessions_start_time
            ON activity_sessions(start_time);

        CREATE INDEX IF NOT EXISTS idx_sessions_open
            ON activity_sessions(start_time) WHERE end_time IS NULL;
        """
    )


def insert_session(
    conn: sqlite3.Connection, process_name: str, window_title: str, start_time: float
) -> int:
    cur = conn.execute(
        """
        INSERT INTO activity_sessions (process_name, window_title, start_time)
        VALUES (?, ?, ?)
        """,
        (process_name, window_title, start_time),
    )
    return int(cur.lastrowid)


def end_session(conn: sqlite3.Connection, session_id: int, end_time: float) -> bool:
    """Set ``end_time`` on an open session. Returns False if nothing was updated."""
    cur = conn.execute(
        """
        UPDATE activity_sessions
        SET end_time = MAX(?, start_time)
        WHERE id = ? AND end_time IS NULL
        """,
        (end_time, session_id),
    )
    return cur.rowcount == 1


def fetch_session(conn: sqlite3.Connection, session_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_SESSION_COLUMNS} FROM activity_sessions WHERE id = ?",
        (session_id,),
    ).fetchone()


def fetch_latest_open_session(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
    return conn.execute(
        f"""
        SELECT {_SESSION_COLUMNS}
        FROM activity_sessions
        WHERE end_time IS NULL
        ORDER BY start_time DESC, id DESC
        LIMIT 1
        """
    ).fetchone()


def fetch_open_sessions(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return list(
        conn.execute(
            f"""
            SELECT {_SESSION_COLUMNS}
            FROM activity_sessions
            WHERE end_time IS NULL
            ORDER BY start_time, id
            """
        )
    )


def count_open_sessions(conn: sqlite3.Connection) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM activity_sessions WHERE end_time IS NULL"
    ).fetchone()
    return int(row[0])


def fetch_sessions_overlapping(
    conn: sqlite3.Connection,
    start: Optional[float],
    end: Optional[float],
) -> list[sqlite3.Row]:
    """Sessions intersecting ``[start, end)``; a ``None`` bound is unbounded."""
    clauses: list[str] = []
    params: list[object] = []
    if end is not None:
        clauses.append("start_time < ?")
        params.append(end)
    if start is not None:
        clauses.append("(end_time > ? OR end_time IS NULL)")
        params.append(start)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return list(
        conn.execute(
            f"SELECT {_SESSION_COLUMNS} FROM activity_sessions {where} ORDER BY id",
            params,
        )
    )


def fetch_time_bounds(
    conn: sqlite3.Connection,
) -> tuple[Optional[float], Optional[float], bool]:
    """Return ``(min start_time, max end_time, any session still open)``."""
    row = conn.execute(
        """
        SELECT
            MIN(start_time),
            MAX(end_time),
            SUM(CASE WHEN end_time IS NULL THEN 1 ELSE 0 END)
        FROM activity_sessions
        """
    ).fetchone()
    return row[0], row[1], bool(row[2])
