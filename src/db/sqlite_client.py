from __future__ import annotations

import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'inactive')),
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS event_models (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id INTEGER NOT NULL REFERENCES events(id),
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    color TEXT NOT NULL DEFAULT '#3B82F6',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(event_id, name)
);

CREATE INDEX IF NOT EXISTS idx_event_models_event ON event_models(event_id);

CREATE TABLE IF NOT EXISTS votes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id INTEGER NOT NULL REFERENCES events(id),
    participant_name TEXT NOT NULL,
    question_number INTEGER NOT NULL,
    selected_model TEXT NOT NULL,
    timestamp TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(event_id, participant_name, question_number)
);

CREATE INDEX IF NOT EXISTS idx_votes_event ON votes(event_id);
CREATE INDEX IF NOT EXISTS idx_votes_timestamp ON votes(timestamp);

CREATE TABLE IF NOT EXISTS admin_tokens (
    token TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    expires_at TEXT NOT NULL
);
"""

POSTGRES_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS events (
        id BIGSERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        date TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'inactive')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_models (
        id BIGSERIAL PRIMARY KEY,
        event_id BIGINT NOT NULL REFERENCES events(id),
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        color TEXT NOT NULL DEFAULT '#3B82F6',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(event_id, name)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_event_models_event ON event_models(event_id)",
    """
    CREATE TABLE IF NOT EXISTS votes (
        id BIGSERIAL PRIMARY KEY,
        event_id BIGINT NOT NULL REFERENCES events(id),
        participant_name TEXT NOT NULL,
        question_number INTEGER NOT NULL,
        selected_model TEXT NOT NULL,
        timestamp TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(event_id, participant_name, question_number)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_votes_event ON votes(event_id)",
    "CREATE INDEX IF NOT EXISTS idx_votes_timestamp ON votes(timestamp)",
    """
    CREATE TABLE IF NOT EXISTS admin_tokens (
        token TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
]


# Streamlit sessions share one connection. Every statement holds that
# connection's lock until it has committed or rolled back.
_CONNECTION_LOCKS: dict[int, threading.RLock] = {}
_REGISTRY_GUARD = threading.Lock()


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def _adapt_sql(conn: Any, sql: str) -> str:
    return sql.replace("?", "%s") if _is_postgres(conn) else sql


def _execute(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(_adapt_sql(conn, sql), tuple(params))
        return cur
    return conn.execute(_adapt_sql(conn, sql), tuple(params))


def _connection_lock(conn: Any) -> threading.RLock:
    with _REGISTRY_GUARD:
        return _CONNECTION_LOCKS.setdefault(id(conn), threading.RLock())


@contextmanager
def _locked(conn: Any) -> Iterator[None]:
    with _connection_lock(conn):
        try:
            yield
        except Exception:
            safe_rollback(conn)
            raise


def _fetchone(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    with _locked(conn):
        return _execute(conn, sql, params).fetchone()


def _fetchall(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> list[Any]:
    with _locked(conn):
        return _execute(conn, sql, params).fetchall()


def _write(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> int:
    with _locked(conn):
        cur = _execute(conn, sql, params)
        conn.commit()
        return cur.rowcount


def _insert_returning_id(conn: Any, sql: str, params: list[Any]) -> int:
    # RETURNING keeps the id tied to this statement (SQLite 3.35+).
    with _locked(conn):
        row = _execute(conn, f"{sql} RETURNING id", params).fetchall()[0]
        conn.commit()
    return int(row_to_dict(row)["id"])


def row_to_dict(row: Any) -> dict[str, Any]:
    return row if isinstance(row, dict) else dict(row)


def is_database_error(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.Error) or exc.__class__.__module__.startswith("psycopg")


def is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE constraint failed" in str(exc)
    # psycopg exposes the SQLSTATE; 23505 is unique_violation.
    return getattr(exc, "sqlstate", None) == "23505"


def is_foreign_key_violation(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "FOREIGN KEY constraint failed" in str(exc)
    return getattr(exc, "sqlstate", None) == "23503"


def safe_rollback(conn: Any) -> None:
    """Reset a failed transaction without masking the original error."""
    with _connection_lock(conn), suppress(Exception):
        conn.rollback()


def get_connection(db_path: str) -> Any:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if database_url:
        from psycopg import connect
        from psycopg.rows import dict_row

        return connect(database_url, row_factory=dict_row, autocommit=False)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_schema(conn: Any) -> None:
    with _locked(conn):
        if _is_postgres(conn):
            cur = conn.cursor()
            for statement in POSTGRES_SCHEMA_STATEMENTS:
                cur.execute(statement)
        else:
            conn.executescript(SQLITE_SCHEMA)
        conn.commit()


def get_table_names(conn: Any) -> set[str]:
    if _is_postgres(conn):
        sql = (
            "SELECT table_name AS name FROM information_schema.tables "
            "WHERE table_schema = current_schema()"
        )
    else:
        sql = "SELECT name FROM sqlite_master WHERE type = 'table'"
    return {str(row_to_dict(row)["name"]) for row in _fetchall(conn, sql)}


# Events


def create_event(conn: Any, name: str, date: str, status: str = "active") -> int:
    return _insert_returning_id(
        conn,
        "INSERT INTO events (name, date, status) VALUES (?, ?, ?)",
        [name, date, status],
    )


def get_events(conn: Any, active_only: bool = False) -> list[dict[str, Any]]:
    sql = """
        SELECT e.*,
            (SELECT COUNT(*) FROM event_models m WHERE m.event_id = e.id) AS model_count
        FROM events e
    """
    if active_only:
        sql += " WHERE e.status = 'active'"
    sql += " ORDER BY e.created_at DESC, e.id DESC"
    return [row_to_dict(row) for row in _fetchall(conn, sql)]


def count_events(conn: Any) -> int:
    row = _fetchone(conn, "SELECT COUNT(*) AS count FROM events")
    return int(row_to_dict(row)["count"])


def update_event_status(conn: Any, event_id: int, status: str) -> bool:
    return _write(conn, "UPDATE events SET status = ? WHERE id = ?", [status, event_id]) > 0


# Event models


def create_event_model(
    conn: Any,
    event_id: int,
    name: str,
    description: str,
    color: str,
) -> int:
    return _insert_returning_id(
        conn,
        "INSERT INTO event_models (event_id, name, description, color) VALUES (?, ?, ?, ?)",
        [event_id, name, description, color],
    )


def get_event_model_by_name(conn: Any, event_id: int, name: str) -> dict[str, Any] | None:
    row = _fetchone(
        conn,
        "SELECT * FROM event_models WHERE event_id = ? AND name = ?",
        [event_id, name],
    )
    return row_to_dict(row) if row else None


def get_event_models(conn: Any, event_id: int) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        "SELECT * FROM event_models WHERE event_id = ? ORDER BY name ASC",
        [event_id],
    )
    return [row_to_dict(row) for row in rows]


def delete_event_model(conn: Any, event_id: int, model_id: int) -> bool:
    removed = _write(
        conn,
        "DELETE FROM event_models WHERE id = ? AND event_id = ?",
        [model_id, event_id],
    )
    return removed > 0


# Votes


def find_vote(
    conn: Any, event_id: int, participant_name: str, question_number: int
) -> dict[str, Any] | None:
    row = _fetchone(
        conn,
        """
        SELECT id FROM votes
        WHERE event_id = ? AND participant_name = ? AND question_number = ?
        """,
        [event_id, participant_name, question_number],
    )
    return row_to_dict(row) if row else None


def insert_vote(
    conn: Any,
    event_id: int,
    participant_name: str,
    question_number: int,
    selected_model: str,
) -> int:
    return _insert_returning_id(
        conn,
        """
        INSERT INTO votes (event_id, participant_name, question_number, selected_model)
        VALUES (?, ?, ?, ?)
        """,
        [event_id, participant_name, question_number, selected_model],
    )


def get_votes_for_participant(
    conn: Any, event_id: int, participant_name: str
) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT question_number, selected_model FROM votes
        WHERE event_id = ? AND participant_name = ?
        ORDER BY question_number ASC
        """,
        [event_id, participant_name],
    )
    return [row_to_dict(row) for row in rows]


def get_recent_votes(conn: Any, limit: int) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT v.*, e.name AS event_name
        FROM votes v
        JOIN events e ON v.event_id = e.id
        ORDER BY v.timestamp DESC, v.id DESC
        LIMIT ?
        """,
        [limit],
    )
    return [row_to_dict(row) for row in rows]


def count_votes(conn: Any) -> int:
    row = _fetchone(conn, "SELECT COUNT(*) AS count FROM votes")
    return int(row_to_dict(row)["count"])


def count_participants(conn: Any) -> int:
    row = _fetchone(conn, "SELECT COUNT(DISTINCT participant_name) AS count FROM votes")
    return int(row_to_dict(row)["count"])


def get_vote_totals_by_model(conn: Any) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT selected_model, COUNT(*) AS votes
        FROM votes
        GROUP BY selected_model
        ORDER BY votes DESC, selected_model ASC
        """,
    )
    return [row_to_dict(row) for row in rows]


def get_vote_totals_by_event(conn: Any) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT e.id, e.name, e.date, COUNT(v.id) AS votes
        FROM events e
        LEFT JOIN votes v ON e.id = v.event_id
        GROUP BY e.id, e.name, e.date, e.created_at
        ORDER BY e.created_at DESC, e.id DESC
        """,
    )
    return [row_to_dict(row) for row in rows]


def get_vote_totals_by_question(conn: Any) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT question_number, COUNT(*) AS votes
        FROM votes
        GROUP BY question_number
        ORDER BY question_number ASC
        """,
    )
    return [row_to_dict(row) for row in rows]


def get_question_model_counts(conn: Any) -> list[dict[str, Any]]:
    rows = _fetchall(
        conn,
        """
        SELECT selected_model, question_number, COUNT(*) AS votes
        FROM votes
        GROUP BY question_number, selected_model
        ORDER BY question_number ASC, votes DESC, selected_model ASC
        """,
    )
    return [row_to_dict(row) for row in rows]


# Admin tokens


def create_admin_token(conn: Any, token: str, username: str, expires_at: str) -> None:
    _write(
        conn,
        "INSERT INTO admin_tokens (token, username, expires_at) VALUES (?, ?, ?)",
        [token, username, expires_at],
    )


def get_admin_token(conn: Any, token: str) -> dict[str, Any] | None:
    row = _fetchone(conn, "SELECT * FROM admin_tokens WHERE token = ?", [token])
    return row_to_dict(row) if row else None


def delete_admin_token(conn: Any, token: str) -> bool:
    return _write(conn, "DELETE FROM admin_tokens WHERE token = ?", [token]) > 0
