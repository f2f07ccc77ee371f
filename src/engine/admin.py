from __future__ import annotations

from typing import Any

from src.config.settings import Settings
from src.engine.catalog import add_model, create_event, delete_model, list_events, set_event_status
from src.engine.stats import compute_stats
from src.sessions.manager import authorize


def admin_stats(conn: Any, credential: str | None, settings: Settings) -> dict[str, Any]:
    authorize(conn, credential)
    return compute_stats(
        conn,
        question_count=settings.question_count,
        recent_limit=settings.recent_votes_limit,
    )


def admin_list_events(conn: Any, credential: str | None) -> list[dict[str, Any]]:
    authorize(conn, credential)
    return list_events(conn, active_only=False)


def admin_create_event(conn: Any, credential: str | None, name: Any, date: Any) -> int:
    authorize(conn, credential)
    return create_event(conn, name, date)


def admin_set_event_status(
    conn: Any, credential: str | None, event_id: int, status: str
) -> bool:
    authorize(conn, credential)
    return set_event_status(conn, event_id, status)


def admin_add_model(
    conn: Any,
    credential: str | None,
    settings: Settings,
    event_id: int,
    name: Any,
    description: str | None = None,
    color: str | None = None,
) -> int:
    authorize(conn, credential)
    return add_model(
        conn,
        event_id,
        name,
        description=description,
        color=color,
        default_color=settings.default_model_color,
    )


def admin_delete_model(conn: Any, credential: str | None, event_id: int, model_id: int) -> None:
    authorize(conn, credential)
    delete_model(conn, event_id, model_id)
