from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from src.db.sqlite_client import get_connection, init_schema
from src.engine.catalog import ensure_default_event
from src.engine.errors import DuplicateVote
from src.engine.voting import submit_vote


@pytest.fixture
def shared_conn(tmp_path: Path, monkeypatch):
    """One connection shared by every session, opened the way the app opens it."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    conn = get_connection(str(tmp_path / "shared.db"))
    init_schema(conn)
    yield conn
    conn.close()


@pytest.mark.integration
def test_parallel_sessions_each_record_one_row_per_question(shared_conn):
    event_id = ensure_default_event(shared_conn, "Game Show")
    participants = [f"Player {n}" for n in range(40)]

    def _session(name: str) -> tuple[list[tuple[int, int]], int]:
        accepted: list[tuple[int, int]] = []
        duplicates = 0
        for _attempt in range(2):
            for question in range(1, 6):
                try:
                    vote_id = submit_vote(shared_conn, event_id, name, question, "Alpha")
                except DuplicateVote:
                    duplicates += 1
                else:
                    accepted.append((question, vote_id))
        return accepted, duplicates

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = dict(zip(participants, pool.map(_session, participants)))

    rows = shared_conn.execute(
        "SELECT id, participant_name, question_number FROM votes"
    ).fetchall()
    by_id = {row["id"]: (row["participant_name"], row["question_number"]) for row in rows}
    assert len(rows) == 200
    for name, (accepted, duplicates) in results.items():
        assert sorted(question for question, _ in accepted) == [1, 2, 3, 4, 5]
        assert duplicates == 5
        for question, vote_id in accepted:
            assert by_id[vote_id] == (name, question)


@pytest.mark.integration
def test_racing_sessions_for_one_triple_store_a_single_row(shared_conn):
    event_id = ensure_default_event(shared_conn, "Game Show")
    barrier = threading.Barrier(12)

    def _attempt(model: str) -> str:
        barrier.wait()
        try:
            submit_vote(shared_conn, event_id, "Ana", 1, model)
        except DuplicateVote:
            return "duplicate"
        return "accepted"

    models = [f"Model {n}" for n in range(12)]
    with ThreadPoolExecutor(max_workers=12) as pool:
        outcomes = list(pool.map(_attempt, models))

    assert outcomes.count("accepted") == 1
    assert outcomes.count("duplicate") == 11
    count = shared_conn.execute("SELECT COUNT(*) AS n FROM votes").fetchone()["n"]
    assert count == 1
