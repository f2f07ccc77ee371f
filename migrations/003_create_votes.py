from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    # selected_model is a name snapshot, not a reference to event_models.
    conn.executescript(
        """
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
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS votes;")
    conn.commit()
