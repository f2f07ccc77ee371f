from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any

from src.db.sqlite_client import (
    count_participants,
    count_votes,
    get_question_model_counts,
    get_vote_totals_by_event,
    get_vote_totals_by_model,
    get_vote_totals_by_question,
)
from src.engine.voting import RECENT_VOTES_LIMIT, list_recent_votes
from src.utils.status_log import log_status

QUESTION_COUNT = 5

STATS_KEYS = (
    "totalVotes",
    "uniqueParticipants",
    "votesByModel",
    "votesByEvent",
    "votesByQuestion",
    "recentVotes",
    "questionWinners",
    "modelWinCounts",
)


def fill_question_totals(
    rows: Iterable[dict[str, Any]], question_count: int = QUESTION_COUNT
) -> list[dict[str, int]]:
    """Return exactly one entry per question 1..question_count, zero when unseen.

    Rows for question numbers outside that range are ignored.
    """
    totals = {int(row["question_number"]): int(row["votes"]) for row in rows}
    return [
        {"question_number": number, "votes": totals.get(number, 0)}
        for number in range(1, question_count + 1)
    ]


def rank_question_winners(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Rank models within each question by vote count.

    Equal counts are ordered by model name so rank 1 is deterministic.
    """
    by_question: dict[int, list[tuple[str, int]]] = defaultdict(list)
    for row in rows:
        by_question[int(row["question_number"])].append(
            (str(row["selected_model"]), int(row["votes"]))
        )
    ranked: list[dict[str, Any]] = []
    for question in sorted(by_question):
        ordered = sorted(by_question[question], key=lambda item: (-item[1], item[0]))
        for rank, (model, votes) in enumerate(ordered, start=1):
            ranked.append(
                {
                    "selected_model": model,
                    "question_number": question,
                    "votes": votes,
                    "rank": rank,
                }
            )
    return ranked


def count_question_wins(ranked: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Questions won per model: how many questions it holds rank 1 in."""
    wins: dict[str, int] = {}
    for row in ranked:
        model = str(row["selected_model"])
        wins.setdefault(model, 0)
        if int(row["rank"]) == 1:
            wins[model] += 1
    ordered = sorted(wins.items(), key=lambda item: (-item[1], item[0]))
    return [{"selected_model": model, "questions_won": won} for model, won in ordered]


def model_performance(
    votes_by_model: Iterable[dict[str, Any]], win_counts: Iterable[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Join per-model vote totals with questions won, 0 for models that won none.

    Keeps the order of ``votes_by_model``.
    """
    won = {str(row["selected_model"]): int(row["questions_won"]) for row in win_counts}
    return [
        {
            "selected_model": row["selected_model"],
            "votes": int(row["votes"]),
            "questions_won": won.get(str(row["selected_model"]), 0),
        }
        for row in votes_by_model
    ]


def _in_range(rows: list[dict[str, Any]], question_count: int) -> list[dict[str, Any]]:
    return [row for row in rows if 1 <= int(row["question_number"]) <= question_count]


def _int_counts(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{**row, "votes": int(row["votes"])} for row in rows]


def _run_slice(name: str, fetch: Callable[[], Any], empty: Any) -> Any:
    try:
        return fetch()
    except Exception as exc:
        log_status("STATS", "degraded", slice=name, error=exc)
        return empty


def compute_stats(
    conn: Any,
    question_count: int = QUESTION_COUNT,
    recent_limit: int = RECENT_VOTES_LIMIT,
) -> dict[str, Any]:
    """Build the admin dashboard snapshot from the vote log and catalog.

    Every slice is read independently. A slice whose read fails is logged and
    returned empty while the remaining slices are still computed.
    """
    stats: dict[str, Any] = {
        "totalVotes": _run_slice("totalVotes", lambda: count_votes(conn), 0),
        "uniqueParticipants": _run_slice(
            "uniqueParticipants", lambda: count_participants(conn), 0
        ),
        "votesByModel": _run_slice(
            "votesByModel", lambda: _int_counts(get_vote_totals_by_model(conn)), []
        ),
        "votesByEvent": _run_slice(
            "votesByEvent", lambda: _int_counts(get_vote_totals_by_event(conn)), []
        ),
        "votesByQuestion": _run_slice(
            "votesByQuestion",
            lambda: fill_question_totals(get_vote_totals_by_question(conn), question_count),
            [],
        ),
        "recentVotes": _run_slice(
            "recentVotes", lambda: list_recent_votes(conn, recent_limit), []
        ),
    }
    # Winners and win counts share one read so they always agree.
    ranked = _run_slice(
        "questionWinners",
        lambda: rank_question_winners(_in_range(get_question_model_counts(conn), question_count)),
        [],
    )
    stats["questionWinners"] = ranked
    stats["modelWinCounts"] = count_question_wins(ranked)
    log_status("STATS", "computed", total_votes=stats["totalVotes"])
    return stats
