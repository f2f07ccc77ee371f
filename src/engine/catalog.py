from __future__ import annotations

from datetime import date as date_cls
from typing import Any, NoReturn

from src.db.sqlite_client import (
    count_events,
    create_event_model,
    delete_event_model,
    get_event_models,
    get_events,
    is_database_error,
    is_foreign_key_violation,
    is_unique_violation,
    update_event_status,
)
from src.db.sqlite_client import create_event as insert_event
from src.engine.errors import DuplicateModel, StorageError, ValidationError
from src.utils.status_log import log_status

DEFAULT_MODEL_COLOR = "#3B82F6"
EVENT_STATUSES = ("active", "inactive")


def _require_text(value: Any, message: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(message)
    return text


def _reraise(exc: Exception, action: str) -> NoReturn:
    if is_database_error(exc):
        log_status("CATALOG", "failed", action=action, error=exc)
        raise StorageError(str(exc)) from exc
    raise exc


def create_event(conn: Any, name: Any, date: Any) -> int:
    event_name = _require_text(name, "Name and date are required")
    event_date = _require_text(date, "Name and date are required")
    try:
        event_id = insert_event(conn, event_name, event_date, status="active")
    except Exception as exc:
        _reraise(exc, "create_event")
    log_status("CATALOG", "event_created", id=event_id, name=event_name)
    return event_id


def list_events(conn: Any, active_only: bool = False) -> list[dict[str, Any]]:
    return get_events(conn, active_only=active_only)


def set_event_status(conn: Any, event_id: int, status: str) -> bool:
    if status not in EVENT_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(EVENT_STATUSES)}")
    return update_event_status(conn, event_id, status)


def add_model(
    conn: Any,
    event_id: int,
    name: Any,
    description: str | None = None,
    color: str | None = None,
    default_color: str = DEFAULT_MODEL_COLOR,
) -> int:
    model_name = _require_text(name, "Model name is required")
    try:
        model_id = create_event_model(
            conn,
            event_id,
            model_name,
            (description or "").strip(),
            (color or "").strip() or default_color,
        )
    except Exception as exc:
        if is_unique_violation(exc):
            raise DuplicateModel() from exc
        if is_foreign_key_violation(exc):
            raise ValidationError(f"Unknown event: {event_id}") from exc
        _reraise(exc, "add_model")
    log_status("CATALOG", "model_added", id=model_id, event=event_id, name=model_name)
    return model_id


def delete_model(conn: Any, event_id: int, model_id: int) -> None:
    """Remove a model from an event's catalog.

    Deleting an absent row is not an error. Votes keep the model's name as a
    snapshot and are not touched.
    """
    try:
        removed = delete_event_model(conn, event_id, model_id)
    except Exception as exc:
        _reraise(exc, "delete_model")
    log_status("CATALOG", "model_deleted", id=model_id, event=event_id, removed=removed)


def list_models(conn: Any, event_id: int) -> list[dict[str, Any]]:
    return get_event_models(conn, event_id)


def ensure_default_event(conn: Any, name: str, today: date_cls | None = None) -> int | None:
    if count_events(conn) > 0:
        return None
    event_date = (today or date_cls.today()).isoformat()
    return create_event(conn, name, event_date)
