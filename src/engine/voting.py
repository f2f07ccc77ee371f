from __future__ import annotations

from typing import Any

from src.db.sqlite_client import (
    find_vote,
    get_recent_votes,
    get_votes_for_participant,
    insert_vote,
    is_database_error,
    is_foreign_key_violation,
    is_unique_violation,
)
from src.engine.errors import DuplicateVote, StorageError, ValidationError
from src.utils.status_log import log_status

RECENT_VOTES_LIMIT = 50


def _require_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"Missing required field: {field}")
    return text


def _require_int(value: Any, field: str) -> int:
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc


def submit_vote(
    conn: Any,
    event_id: Any,
    participant_name: Any,
    question_number: Any,
    selected_model: Any,
    question_count: int = 5,
) -> int:
    """Record one participant's choice for one question of an event.

    The existence check gives callers a clear DuplicateVote; the UNIQUE
    constraint on (event_id, participant_name, question_number) closes the
    window between that check and the insert, so a concurrent duplicate
    surfaces as the same DuplicateVote instead of a second row.
    """
    event = _require_int(event_id, "eventId")
    name = _require_text(participant_name, "participantName")
    question = _require_int(question_number, "questionNumber")
    model = _require_text(selected_model, "selectedModel")
    if not 1 <= question <= question_count:
        raise ValidationError(f"questionNumber must be between 1 and {question_count}")

    try:
        if find_vote(conn, event, name, question):
            log_status("VOTE", "duplicate", event=event, participant=name, question=question)
            raise DuplicateVote()
        vote_id = insert_vote(conn, event, name, question, model)
    except DuplicateVote:
        raise
    except Exception as exc:
        if is_unique_violation(exc):
            log_status("VOTE", "duplicate", event=event, participant=name, question=question)
            raise DuplicateVote() from exc
        if is_foreign_key_violation(exc):
            raise ValidationError(f"Unknown event: {event}") from exc
        if is_database_error(exc):
            log_status("VOTE", "failed", event=event, question=question, error=exc)
            raise StorageError(str(exc)) from exc
        raise
    log_status("VOTE", "accepted", id=vote_id, event=event, question=question)
    return vote_id


def list_recent_votes(conn: Any, limit: int = RECENT_VOTES_LIMIT) -> list[dict[str, Any]]:
    return get_recent_votes(conn, max(int(limit), 0))


def get_participant_votes(conn: Any, event_id: int, participant_name: str) -> dict[int, str]:
    """Return question_number -> selected_model for what this name already submitted."""
    rows = get_votes_for_participant(conn, event_id, participant_name.strip())
    return {int(row["question_number"]): str(row["selected_model"]) for row in rows}
