from __future__ import annotations

import sqlite3

from src.db.sqlite_client import create_event, insert_vote
from src.engine.catalog import add_model
from src.engine.stats import (
    STATS_KEYS,
    compute_stats,
    count_question_wins,
    fill_question_totals,
    model_performance,
    rank_question_winners,
)
from src.engine.voting import submit_vote


def _example_votes(conn, event_id):
    add_model(conn, event_id, "Alpha")
    add_model(conn, event_id, "Beta")
    submit_vote(conn, event_id, "Ana", 1, "Alpha")
    submit_vote(conn, event_id, "Ana", 2, "Beta")
    submit_vote(conn, event_id, "Ben", 1, "Alpha")
    submit_vote(conn, event_id, "Ben", 2, "Alpha")


def test_fill_question_totals_synthesizes_missing_questions():
    rows = [{"question_number": 2, "votes": 4}]
    assert fill_question_totals(rows) == [
        {"question_number": 1, "votes": 0},
        {"question_number": 2, "votes": 4},
        {"question_number": 3, "votes": 0},
        {"question_number": 4, "votes": 0},
        {"question_number": 5, "votes": 0},
    ]


def test_fill_question_totals_ignores_out_of_range_rows():
    rows = [{"question_number": 0, "votes": 2}, {"question_number": 9, "votes": 1}]
    totals = fill_question_totals(rows)
    assert len(totals) == 5
    assert all(row["votes"] == 0 for row in totals)


def test_rank_question_winners_breaks_ties_by_model_name():
    rows = [
        {"selected_model": "Zeta", "question_number": 1, "votes": 2},
        {"selected_model": "Alpha", "question_number": 1, "votes": 2},
        {"selected_model": "Mid", "question_number": 1, "votes": 1},
    ]
    ranked = rank_question_winners(rows)
    assert [(r["selected_model"], r["rank"]) for r in ranked] == [
        ("Alpha", 1),
        ("Zeta", 2),
        ("Mid", 3),
    ]


def test_count_question_wins_includes_models_without_wins():
    ranked = [
        {"selected_model": "Alpha", "question_number": 1, "votes": 2, "rank": 1},
        {"selected_model": "Beta", "question_number": 1, "votes": 1, "rank": 2},
        {"selected_model": "Beta", "question_number": 2, "votes": 3, "rank": 1},
        {"selected_model": "Alpha", "question_number": 3, "votes": 1, "rank": 1},
    ]
    assert count_question_wins(ranked) == [
        {"selected_model": "Alpha", "questions_won": 2},
        {"selected_model": "Beta", "questions_won": 1},
    ]


def test_model_performance_joins_votes_and_wins():
    votes_by_model = [
        {"selected_model": "Alpha", "votes": 3},
        {"selected_model": "Gamma", "votes": 2},
        {"selected_model": "Beta", "votes": 1},
    ]
    win_counts = [{"selected_model": "Beta", "questions_won": 2}]
    assert model_performance(votes_by_model, win_counts) == [
        {"selected_model": "Alpha", "votes": 3, "questions_won": 0},
        {"selected_model": "Gamma", "votes": 2, "questions_won": 0},
        {"selected_model": "Beta", "votes": 1, "questions_won": 2},
    ]


def test_model_performance_on_worked_example(sqlite_db, event_id):
    _example_votes(sqlite_db, event_id)
    stats = compute_stats(sqlite_db)
    rows = model_performance(stats["votesByModel"], stats["modelWinCounts"])
    assert [(r["selected_model"], r["votes"], r["questions_won"]) for r in rows] == [
        ("Alpha", 3, 2),
        ("Beta", 1, 0),
    ]


def test_compute_stats_empty_store(sqlite_db):
    stats = compute_stats(sqlite_db)
    assert set(stats) == set(STATS_KEYS)
    assert stats["totalVotes"] == 0
    assert stats["uniqueParticipants"] == 0
    assert stats["votesByModel"] == []
    assert [row["votes"] for row in stats["votesByQuestion"]] == [0, 0, 0, 0, 0]
    assert stats["questionWinners"] == []
    assert stats["modelWinCounts"] == []


def test_compute_stats_worked_example(sqlite_db, event_id):
    _example_votes(sqlite_db, event_id)
    stats = compute_stats(sqlite_db)

    assert stats["totalVotes"] == 4
    assert stats["uniqueParticipants"] == 2
    assert stats["votesByModel"] == [
        {"selected_model": "Alpha", "votes": 3},
        {"selected_model": "Beta", "votes": 1},
    ]
    assert [(row["question_number"], row["votes"]) for row in stats["votesByQuestion"]] == [
        (1, 2),
        (2, 2),
        (3, 0),
        (4, 0),
        (5, 0),
    ]
    winners = {
        row["question_number"]: row["selected_model"]
        for row in stats["questionWinners"]
        if row["rank"] == 1
    }
    assert winners == {1: "Alpha", 2: "Alpha"}
    q2 = [row for row in stats["questionWinners"] if row["question_number"] == 2]
    assert [(row["selected_model"], row["votes"], row["rank"]) for row in q2] == [
        ("Alpha", 1, 1),
        ("Beta", 1, 2),
    ]
    assert stats["modelWinCounts"] == [
        {"selected_model": "Alpha", "questions_won": 2},
        {"selected_model": "Beta", "questions_won": 0},
    ]


def test_win_counts_total_equals_questions_with_votes(sqlite_db, event_id):
    for name, picks in {
        "Ana": ["Alpha", "Beta", "Gamma"],
        "Ben": ["Beta", "Beta", "Alpha"],
        "Cleo": ["Gamma", "Alpha", "Alpha"],
    }.items():
        for question, model in enumerate(picks, start=1):
            submit_vote(sqlite_db, event_id, name, question, model)
    stats = compute_stats(sqlite_db)
    answered = {row["question_number"] for row in stats["votesByQuestion"] if row["votes"]}
    assert sum(row["questions_won"] for row in stats["modelWinCounts"]) == len(answered) == 3


def test_votes_by_event_includes_events_without_votes(sqlite_db, event_id):
    empty_event = create_event(sqlite_db, "Empty", "2026-04-01")
    submit_vote(sqlite_db, event_id, "Ana", 1, "Alpha")
    by_event = {row["id"]: row["votes"] for row in compute_stats(sqlite_db)["votesByEvent"]}
    assert by_event == {event_id: 1, empty_event: 0}


def test_out_of_range_rows_stay_out_of_question_slices(sqlite_db, event_id):
    insert_vote(sqlite_db, event_id, "Legacy", 9, "Alpha")
    stats = compute_stats(sqlite_db)
    assert stats["totalVotes"] == 1
    assert len(stats["votesByQuestion"]) == 5
    assert stats["questionWinners"] == []


def test_recent_votes_capped(sqlite_db, event_id):
    for question in range(1, 6):
        submit_vote(sqlite_db, event_id, "Ana", question, "Alpha")
    stats = compute_stats(sqlite_db, recent_limit=3)
    assert len(stats["recentVotes"]) == 3
    assert stats["recentVotes"][0]["event_name"] == "E1"


def test_failed_slice_degrades_to_empty(sqlite_db, event_id, mocker):
    _example_votes(sqlite_db, event_id)
    mocker.patch(
        "src.engine.stats.get_vote_totals_by_model",
        side_effect=sqlite3.OperationalError("no such table"),
    )
    stats = compute_stats(sqlite_db)
    assert stats["votesByModel"] == []
    assert stats["totalVotes"] == 4
    assert stats["modelWinCounts"][0] == {"selected_model": "Alpha", "questions_won": 2}


def test_failed_ranking_read_empties_winners_and_win_counts(sqlite_db, event_id, mocker):
    _example_votes(sqlite_db, event_id)
    mocker.patch(
        "src.engine.stats.get_question_model_counts",
        side_effect=sqlite3.OperationalError("disk I/O error"),
    )
    stats = compute_stats(sqlite_db)
    assert stats["questionWinners"] == []
    assert stats["modelWinCounts"] == []
    assert stats["totalVotes"] == 4
